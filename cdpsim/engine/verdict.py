"""
Verdict — Движок инвариантов и поток вердиктов

InvariantChecker накапливает результаты проверок одного verify:
каждое нарушение именует инвариант и несёт пару expected/observed.
Отсутствие ожидаемой записи (Absent) — всегда нарушение, никогда не pass.

StepVerdict / RunReport — выход harness во внешний runner.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, TypeVar

from cdpsim.core.contracts.validators import validate_step_verdict
from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent, Lookup
from cdpsim.core.math.accumulators import AccumulatorRegression
from cdpsim.core.math.fixed_point import FixedPointDomainError

T = TypeVar("T")


# =============================================================================
# VIOLATIONS
# =============================================================================


@dataclass(frozen=True)
class Violation:
    """Нарушенный инвариант с ожидаемым и наблюдаемым значением."""

    invariant: str
    expected: Any
    observed: Any
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "invariant": self.invariant,
            "expected": _jsonable(self.expected),
            "observed": _jsonable(self.observed),
            "message": self.message,
        }


@dataclass(frozen=True)
class VerificationResult:
    """Результат verify одного шага."""

    passed: bool
    violations: tuple[Violation, ...]
    checks_run: int

    # Для отладки
    details: str = ""

    def violated(self, invariant: str) -> bool:
        return any(v.invariant == invariant for v in self.violations)


class InvariantChecker:
    """
    Накопитель проверок для одного verify.

    Проверки не прерывают verify на первом нарушении: собираются все
    расхождения, чтобы диагностика шага была полной.
    """

    def __init__(self, action_type: str):
        self.action_type = action_type
        self._violations: list[Violation] = []
        self._checks_run = 0

    @property
    def violations(self) -> tuple[Violation, ...]:
        return tuple(self._violations)

    @property
    def ok(self) -> bool:
        return not self._violations

    def fail(self, invariant: str, expected: Any, observed: Any, message: str = "") -> None:
        self._checks_run += 1
        self._violations.append(Violation(invariant, expected, observed, message))

    def equal(self, invariant: str, expected: Any, observed: Any, message: str = "") -> bool:
        """expected == observed."""
        self._checks_run += 1
        if expected == observed:
            return True
        self._violations.append(Violation(invariant, expected, observed, message))
        return False

    def holds(
        self,
        invariant: str,
        condition: bool,
        expected: Any = True,
        observed: Any = False,
        message: str = "",
    ) -> bool:
        """Произвольное условие; expected/observed описывают его для диагностики."""
        self._checks_run += 1
        if condition:
            return True
        self._violations.append(Violation(invariant, expected, observed, message))
        return False

    def present(self, invariant: str, found: Lookup[T], message: str = "") -> Optional[T]:
        """
        Запись обязана существовать.

        Returns:
            record или None (нарушение уже записано)
        """
        self._checks_run += 1
        if isinstance(found, Absent):
            self._violations.append(Violation(invariant, "present", f"absent: {found.key}", message))
            return None
        return found.record

    def absent(self, invariant: str, found: Lookup[Any], message: str = "") -> bool:
        """Запись обязана отсутствовать."""
        self._checks_run += 1
        if isinstance(found, Absent):
            return True
        self._violations.append(Violation(invariant, "absent", found.record, message))
        return False

    @contextmanager
    def arithmetic(self, invariant: str) -> Iterator[None]:
        """
        Ошибки домена fixed-point внутри блока становятся нарушением.

        Предсказание, которое нельзя вычислить (регрессия аккумулятора,
        деление на ноль), означает несогласованное наблюдаемое состояние.
        """
        try:
            yield
        except (FixedPointDomainError, AccumulatorRegression) as e:
            self.fail(invariant, "well-defined arithmetic", type(e).__name__, str(e))

    def result(self, details: str = "") -> VerificationResult:
        return VerificationResult(
            passed=not self._violations,
            violations=tuple(self._violations),
            checks_run=self._checks_run,
            details=details,
        )


# =============================================================================
# VERDICT STREAM
# =============================================================================


class ErrorKind(str, Enum):
    """Классификация исхода шага."""

    NO_APPLICABLE_PARAMETERS = "NoApplicableParameters"
    EXECUTION_REJECTED = "ExecutionRejected"
    INVARIANT_VIOLATION = "InvariantViolation"


@dataclass(frozen=True)
class StepVerdict:
    """Вердикт одного шага: {action_type, actor, parameters, passed, diagnostics}."""

    action_type: str
    actor: Actor
    parameters: dict[str, Any]
    passed: bool
    skipped: bool = False
    error_kind: Optional[ErrorKind] = None
    diagnostics: tuple[Violation, ...] = ()
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Сериализация, проверенная контрактом step_verdict."""
        payload = {
            "action_type": self.action_type,
            "actor": {"label": self.actor.label, "address": self.actor.address},
            "parameters": {key: _jsonable(value) for key, value in self.parameters.items()},
            "passed": self.passed,
            "skipped": self.skipped,
            "error_kind": self.error_kind.value if self.error_kind is not None else None,
            "diagnostics": [violation.to_dict() for violation in self.diagnostics],
        }
        validate_step_verdict(payload)
        return payload


@dataclass
class RunReport:
    """Итог run: конъюнкция вердиктов шагов."""

    verdicts: list[StepVerdict] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(verdict.passed for verdict in self.verdicts)

    @property
    def failed(self) -> list[StepVerdict]:
        return [verdict for verdict in self.verdicts if not verdict.passed]

    @property
    def skipped_count(self) -> int:
        return sum(1 for verdict in self.verdicts if verdict.skipped)

    def append(self, verdict: StepVerdict) -> None:
        self.verdicts.append(verdict)


def _jsonable(value: Any) -> Any:
    """Приведение значения диагностики к JSON-совместимому виду."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if value is None or isinstance(value, (bool, int, str, float)):
        return value
    return str(value)
