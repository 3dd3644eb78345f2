"""
Errors — Таксономия ошибок шага harness

Политика распространения:
- NoApplicableParameters: обрабатывается локально, шаг пропускается
- ExecutionRejected / InvariantViolation: шаг помечается failed, run продолжается
- SnapshotUnavailable: фатальна для run, частичная верификация не выполняется
"""

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from cdpsim.engine.verdict import Violation


class HarnessError(Exception):
    """Базовое исключение harness."""

    pass


class NoApplicableParameters(HarnessError):
    """propose не нашёл валидных параметров в пределах retry cap."""

    def __init__(self, action_type: str, reason: str):
        self.action_type = action_type
        self.reason = reason
        super().__init__(f"{action_type}: no applicable parameters ({reason})")


class ExecutionRejected(HarnessError):
    """SUT отклонил операцию. Не ретраится."""

    def __init__(self, operation: str, revert_reason: str | None = None):
        self.operation = operation
        self.revert_reason = revert_reason
        super().__init__(f"{operation} rejected by SUT: {revert_reason or 'no reason given'}")


class InvariantViolation(HarnessError):
    """verify обнаружил расхождение ожидаемого и наблюдаемого состояния."""

    def __init__(self, action_type: str, violations: Sequence["Violation"]):
        self.action_type = action_type
        self.violations = tuple(violations)
        names = ", ".join(v.invariant for v in self.violations)
        super().__init__(f"{action_type}: {len(self.violations)} invariant(s) violated: {names}")


class SnapshotUnavailable(HarnessError):
    """Snapshot provider не смог отдать согласованное чтение состояния."""

    pass
