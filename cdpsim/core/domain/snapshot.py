"""
StateSnapshot — Снапшот всего наблюдаемого состояния SUT

Immutable Pydantic модель. Создаётся непосредственно до и после apply,
потребляется ровно одной верификацией и больше не используется.

SnapshotDiff — утилиты вычисления знаковых дельт балансов между двумя снапшотами.
"""

from typing import Any, Iterable, Mapping

from jsonschema import ValidationError as JsonSchemaValidationError
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from cdpsim.core.contracts.validators import validate_state_snapshot

from .ledger_state import CDPState, ContractAddresses, PriceOracleState, TokenLedger
from .lookup import Lookup, lookup
from .ranked_queue import RankedQueue
from .stability_pool import StabilityPoolState, StakingState


# =============================================================================
# STATE SNAPSHOT
# =============================================================================


class StateSnapshot(BaseModel):
    """
    Снапшот состояния SUT (point-in-time, read-only).

    Содержит:
    - Метаданные (block_number, timestamp)
    - Адреса компонентов
    - Native балансы всех интересующих адресов
    - CDP, обе ranked queue, stability pool, staking, токены, оракул
    """

    block_number: int = Field(..., ge=0)
    timestamp: int = Field(..., ge=0)

    addresses: ContractAddresses
    native_balances: dict[str, int] = Field(default_factory=dict)

    cdp: CDPState
    liquidation_queue: RankedQueue = Field(default_factory=RankedQueue)
    redemption_queue: RankedQueue = Field(default_factory=RankedQueue)
    stability_pool: StabilityPoolState
    dfire_staking: StakingState
    sbd_token: TokenLedger
    dfire_token: TokenLedger
    price_oracle: PriceOracleState

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_contract_balances(self) -> "StateSnapshot":
        """Native балансы контрактов, держащих залог, обязательны."""
        holders = self.addresses.collateral_holders()
        missing = [address for address in holders if address not in self.native_balances]
        if missing:
            raise ValueError(f"native_balances missing contract addresses: {missing}")
        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StateSnapshot":
        """
        Построение снапшота из сырого payload snapshot provider.

        Payload сначала проверяется JSON Schema контрактом state_snapshot,
        затем строится модель.

        Raises:
            SnapshotUnavailable: payload не соответствует контракту или
                значения нарушают ограничения модели
        """
        # engine импортирует domain, обратная зависимость только на время вызова
        from cdpsim.engine.errors import SnapshotUnavailable

        try:
            validate_state_snapshot(dict(payload))
            return cls.model_validate(payload)
        except (JsonSchemaValidationError, PydanticValidationError) as e:
            raise SnapshotUnavailable(f"Inconsistent snapshot payload: {e}") from e

    def native(self, address: str) -> Lookup[int]:
        return lookup(self.native_balances, address)

    def native_balance(self, address: str) -> int:
        """
        Native баланс для арифметики дельт.

        Адрес без записи даёт 0. Балансы контрактов обязательны на уровне
        модели, баланс актора шага проверяет Action.verify.
        """
        return self.native_balances.get(address, 0)

    def token(self, name: str) -> TokenLedger:
        """Ledger по имени поля ('sbd_token' или 'dfire_token')."""
        if name not in ("sbd_token", "dfire_token"):
            raise KeyError(f"Unknown token ledger: {name}")
        return getattr(self, name)


# =============================================================================
# SNAPSHOT DIFF
# =============================================================================


class SnapshotDiff:
    """
    Знаковые дельты между previous и new снапшотами.

    Все дельты — new - previous (положительная = прирост).
    """

    def __init__(self, previous: StateSnapshot, new: StateSnapshot):
        self.previous = previous
        self.new = new

    def native(self, address: str) -> int:
        return self.new.native_balance(address) - self.previous.native_balance(address)

    def token(self, token_name: str, address: str) -> int:
        return (
            self.new.token(token_name).balance_of(address)
            - self.previous.token(token_name).balance_of(address)
        )

    def supply(self, token_name: str) -> int:
        return self.new.token(token_name).total_supply - self.previous.token(token_name).total_supply

    def burned(self, token_name: str) -> int:
        return self.new.token(token_name).total_burned - self.previous.token(token_name).total_burned

    def native_sum(self, addresses: Iterable[str]) -> int:
        return sum(self.native(address) for address in dict.fromkeys(addresses))

    def token_sum(self, token_name: str, addresses: Iterable[str]) -> int:
        return sum(self.token(token_name, address) for address in dict.fromkeys(addresses))

    def total_collateral(self) -> int:
        return self.new.cdp.total_collateral - self.previous.cdp.total_collateral

    def total_debt(self) -> int:
        return self.new.cdp.total_debt - self.previous.cdp.total_debt
