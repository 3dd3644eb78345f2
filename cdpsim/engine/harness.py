"""
Harness — Исполнитель шагов и поток вердиктов

Один шаг: take_snapshot → propose → apply → take_snapshot → verify → verdict.
Между двумя снапшотами шага выполняется ровно один apply.

Политика ошибок:
- NoApplicableParameters → шаг пропущен (passed, skipped)
- ошибка арифметики в propose (несогласованный снапшот) → шаг failed как InvariantViolation
- ExecutionRejected / InvariantViolation → шаг failed, run продолжается
- SnapshotUnavailable → фатально, пробрасывается из run
"""

import logging
from typing import Any, Iterable, Optional

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.snapshot import StateSnapshot

from .action import Action, ActionContext
from .errors import (
    ExecutionRejected,
    InvariantViolation,
    NoApplicableParameters,
    SnapshotUnavailable,
)
from .interfaces import SnapshotProvider
from .verdict import ErrorKind, InvariantChecker, RunReport, StepVerdict, Violation

logger = logging.getLogger(__name__)


class StepRunner:
    """Исполнитель шагов поверх snapshot provider."""

    def __init__(self, provider: SnapshotProvider, context: ActionContext):
        self.provider = provider
        self.context = context

    def run_step(self, action: Action, actor: Actor) -> StepVerdict:
        """
        Один шаг действия от имени актора.

        Raises:
            SnapshotUnavailable: provider не смог отдать снапшот
        """
        previous = self._take_snapshot()

        # Несогласованный снапшот может сделать settlement в propose невычислимым
        checker = InvariantChecker(action.action_type)
        proposal = None
        with checker.arithmetic(f"{action.action_type}.proposal_arithmetic"):
            proposal = action.propose(self.context, actor, previous)
        if proposal is None:
            error = InvariantViolation(action.action_type, checker.violations)
            return self._violation_verdict(action, actor, {}, error)

        try:
            if not proposal.applicable:
                raise NoApplicableParameters(action.action_type, proposal.reason)
        except NoApplicableParameters as e:
            logger.debug("Step skipped: %s", e)
            return StepVerdict(
                action_type=action.action_type,
                actor=actor,
                parameters={},
                passed=True,
                skipped=True,
                error_kind=ErrorKind.NO_APPLICABLE_PARAMETERS,
                message=e.reason,
            )

        parameters = proposal.parameters
        try:
            outcome = action.apply(self.context, actor, parameters)
        except ExecutionRejected as e:
            logger.warning("Step failed: %s", e)
            return StepVerdict(
                action_type=action.action_type,
                actor=actor,
                parameters=parameters,
                passed=False,
                error_kind=ErrorKind.EXECUTION_REJECTED,
                diagnostics=(Violation("execution.accepted", "success", "rejected", str(e)),),
                message=str(e),
            )

        new = self._take_snapshot()

        try:
            result = action.verify(self.context, actor, previous, new, parameters, outcome)
            if not result.passed:
                raise InvariantViolation(action.action_type, result.violations)
        except InvariantViolation as e:
            return self._violation_verdict(action, actor, parameters, e)

        logger.info(
            "Step passed: %s by %s (%d checks)", action.action_type, actor.label, result.checks_run
        )
        return StepVerdict(
            action_type=action.action_type,
            actor=actor,
            parameters=parameters,
            passed=True,
        )

    def run(self, schedule: Iterable[tuple[Action, Actor]], report: Optional[RunReport] = None) -> RunReport:
        """
        Свёртка расписания в RunReport.

        Failed шаги не прерывают run. SnapshotUnavailable прерывает.
        """
        report = report if report is not None else RunReport()
        for action, actor in schedule:
            report.append(self.run_step(action, actor))

        logger.info(
            "Run finished: %d steps, %d failed, %d skipped",
            len(report.verdicts),
            len(report.failed),
            report.skipped_count,
        )
        return report

    def _violation_verdict(
        self, action: Action, actor: Actor, parameters: dict[str, Any], error: InvariantViolation
    ) -> StepVerdict:
        logger.warning("Step failed: %s", error)
        for violation in error.violations:
            logger.warning(
                "  %s: expected=%r observed=%r %s",
                violation.invariant,
                violation.expected,
                violation.observed,
                violation.message,
            )
        return StepVerdict(
            action_type=action.action_type,
            actor=actor,
            parameters=parameters,
            passed=False,
            error_kind=ErrorKind.INVARIANT_VIOLATION,
            diagnostics=error.violations,
            message=str(error),
        )

    def _take_snapshot(self) -> StateSnapshot:
        try:
            return self.provider.take_snapshot()
        except SnapshotUnavailable:
            logger.error("Snapshot provider returned an inconsistent read")
            raise
        except Exception as e:
            logger.error("Snapshot provider failed: %s", e)
            raise SnapshotUnavailable(f"Snapshot provider failed: {e}") from e
