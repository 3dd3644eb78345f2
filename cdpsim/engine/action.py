"""
Action — Контракт жизненного цикла действия

Каждое действие реализует три операции:
1. propose(context, actor, snapshot) → Proposal
   Чистая функция снапшота и random source. Rejection sampling ограничен
   HarnessConfig.max_proposal_attempts.
2. apply(context, actor, parameters) → ExecutionOutcome
   Отправляет ровно предложенные параметры. Неуспех → ExecutionRejected.
3. verify(context, actor, previous, new, parameters, outcome) → VerificationResult
   Чистая функция пары снапшотов. Каждое нарушение именует инвариант.

Действие не хранит изменяемого состояния между вызовами, только ссылку
на SUT endpoint и общие модели проверок.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.snapshot import SnapshotDiff, StateSnapshot

from .cdp_checks import CdpChecks
from .config import HarnessConfig
from .errors import ExecutionRejected
from .interfaces import ExecutionOutcome, RandomSource, SutEndpoint
from .verdict import InvariantChecker, VerificationResult

# Компоненты SUT (префикс имени операции)
CDP = "stableBaseCDP"
STABILITY_POOL = "stabilityPool"
DFIRE_STAKING = "dfireStaking"
PRICE_ORACLE = "priceOracle"

logger = logging.getLogger(__name__)


# =============================================================================
# PROPOSAL / CONTEXT
# =============================================================================


@dataclass(frozen=True)
class Proposal:
    """Результат propose: параметры или 'не применимо в этом раунде'."""

    applicable: bool
    parameters: dict[str, Any] = field(default_factory=dict)
    new_identifiers: dict[str, Any] = field(default_factory=dict)
    reason: str = ""

    @classmethod
    def of(cls, parameters: dict[str, Any], new_identifiers: Optional[dict[str, Any]] = None) -> "Proposal":
        return cls(applicable=True, parameters=parameters, new_identifiers=new_identifiers or {})

    @classmethod
    def not_applicable(cls, reason: str) -> "Proposal":
        return cls(applicable=False, reason=reason)


@dataclass
class ActionContext:
    """
    Контекст шага, передаваемый внешним runner.

    actors — известные runner акторы (кандидаты во frontend получатели комиссий).
    """

    random: RandomSource
    config: HarnessConfig = field(default_factory=HarnessConfig)
    actors: Sequence[Actor] = ()


@dataclass(frozen=True)
class Transition:
    """Всё, что видит verify: пара снапшотов, параметры и исход."""

    actor: Actor
    previous: StateSnapshot
    new: StateSnapshot
    parameters: dict[str, Any]
    outcome: ExecutionOutcome

    @property
    def diff(self) -> SnapshotDiff:
        return SnapshotDiff(self.previous, self.new)

    @property
    def gas_cost(self) -> int:
        return self.outcome.gas_cost


# =============================================================================
# ACTION BASE
# =============================================================================


class Action:
    """
    Базовый класс действий.

    Подклассы задают action_type, component, method и реализуют
    propose, call_arguments и check.
    """

    action_type: str = ""
    component: str = ""
    method: str = ""

    def __init__(self, endpoint: SutEndpoint, checks: Optional[CdpChecks] = None):
        self.endpoint = endpoint
        self.checks = checks or CdpChecks()

    @property
    def operation(self) -> str:
        return f"{self.component}.{self.method}"

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        raise NotImplementedError

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        """Аргументы операции SUT и native value транзакции."""
        raise NotImplementedError

    def apply(self, context: ActionContext, actor: Actor, parameters: dict[str, Any]) -> ExecutionOutcome:
        """
        Отправка предложенных параметров как есть.

        Raises:
            ExecutionRejected: SUT отклонил операцию
        """
        args, value = self.call_arguments(parameters)
        logger.debug("Submitting %s by %s: args=%s value=%d", self.operation, actor.label, args, value)
        outcome = self.endpoint.submit(self.operation, actor, args, value)
        if not outcome.success:
            raise ExecutionRejected(self.operation, outcome.revert_reason)
        return outcome

    def verify(
        self,
        context: ActionContext,
        actor: Actor,
        previous: StateSnapshot,
        new: StateSnapshot,
        parameters: dict[str, Any],
        outcome: ExecutionOutcome,
    ) -> VerificationResult:
        checker = InvariantChecker(self.action_type)
        transition = Transition(actor, previous, new, parameters, outcome)
        checker.present("native.actor_present_before", previous.native(actor.address))
        checker.present("native.actor_present_after", new.native(actor.address))
        with checker.arithmetic(f"{self.action_type}.arithmetic"):
            self.check(checker, transition)
        return checker.result(details=f"{self.operation} {parameters}")

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        """Инварианты действия (реализуется подклассом)."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def check_event(self, checker: InvariantChecker, transition: Transition, name: str, **expected_args: Any) -> None:
        """Событие name эмитировано с ожидаемыми аргументами."""
        events = transition.outcome.events_named(name)
        if not checker.holds(f"event.{name}", bool(events), expected=name, observed="not emitted"):
            return
        for key, value in expected_args.items():
            checker.equal(f"event.{name}.{key}", value, events[0].args.get(key))

    def check_native_spent(
        self,
        checker: InvariantChecker,
        transition: Transition,
        address: str,
        delta_excluding_gas: int,
    ) -> None:
        """Native дельта address = delta_excluding_gas - gas_cost."""
        checker.equal(
            "native.actor_balance",
            delta_excluding_gas - transition.gas_cost,
            transition.diff.native(address),
        )
