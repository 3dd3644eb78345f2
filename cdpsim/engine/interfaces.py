"""
Interfaces — Узкие интерфейсы внешних коллабораторов

Core зависит только от этих протоколов:
- SutEndpoint: отправка именованной операции от имени актора
- SnapshotProvider: согласованное чтение состояния
- RandomSource: детерминированный источник случайных чисел

Транспорт, деплой и планировщик акторов живут за этими границами.
"""

from typing import Any, Mapping, Protocol, Sequence

from pydantic import BaseModel, Field

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent, Lookup, Present
from cdpsim.core.domain.snapshot import StateSnapshot


# =============================================================================
# EXECUTION OUTCOME
# =============================================================================


class Event(BaseModel):
    """Доменное событие, эмитированное SUT."""

    name: str = Field(..., min_length=1)
    emitter: str = Field(default="")
    args: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ExecutionOutcome(BaseModel):
    """
    Результат исполнения операции SUT.

    gas_used * effective_gas_price — стоимость газа в native единицах,
    списанная с отправителя. base_fee_per_gas нужен для gas compensation
    ликвидатора.
    """

    success: bool
    events: tuple[Event, ...] = Field(default_factory=tuple)
    block_number: int = Field(default=0, ge=0)
    timestamp: int = Field(default=0, ge=0)
    gas_used: int = Field(default=0, ge=0)
    effective_gas_price: int = Field(default=0, ge=0)
    base_fee_per_gas: int = Field(default=0, ge=0)
    revert_reason: str | None = None

    model_config = {"frozen": True}

    @property
    def gas_cost(self) -> int:
        return self.gas_used * self.effective_gas_price

    def events_named(self, name: str) -> list[Event]:
        return [event for event in self.events if event.name == name]


def find_event(outcome: ExecutionOutcome, name: str) -> Lookup[Event]:
    """Первое событие с заданным именем."""
    for event in outcome.events:
        if event.name == name:
            return Present(event)
    return Absent(name)


# =============================================================================
# COLLABORATOR PROTOCOLS
# =============================================================================


class SutEndpoint(Protocol):
    """Именованные операции SUT."""

    def submit(
        self,
        operation: str,
        actor: Actor,
        args: Sequence[Any],
        value: int = 0,
    ) -> ExecutionOutcome:
        """Отправить операцию и дождаться терминального результата."""
        ...


class SnapshotProvider(Protocol):
    """Источник согласованных снапшотов."""

    def take_snapshot(self) -> StateSnapshot:
        ...


class RandomSource(Protocol):
    """Детерминированный источник 64-битных беззнаковых значений."""

    def next(self) -> int:
        ...


class PayloadSnapshotProvider:
    """
    SnapshotProvider поверх функции чтения сырого payload.

    Payload проходит JSON Schema контракт в StateSnapshot.from_payload.
    """

    def __init__(self, read_payload):
        self._read_payload = read_payload

    def take_snapshot(self) -> StateSnapshot:
        payload: Mapping[str, Any] = self._read_payload()
        return StateSnapshot.from_payload(payload)
