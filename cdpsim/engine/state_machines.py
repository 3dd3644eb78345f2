"""State machines — монотонные перечислимые статусы протокола.

Два автомата проверяются на каждом шаге по паре снапшотов:
- ProtocolMode: BOOTSTRAP → NORMAL после превышения порога долга, без возврата
- RewardDistributionStatus: NOT_STARTED → STARTED (по квалифицирующему событию) → ENDED

Автоматы не хранят состояние: оценивают наблюдаемый переход previous → new.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from cdpsim.core.domain.ledger_state import ProtocolMode
from cdpsim.core.domain.stability_pool import RewardDistributionStatus

S = TypeVar("S")


@dataclass(frozen=True)
class TransitionResult(Generic[S]):
    """Результат оценки наблюдаемого перехода."""

    previous_state: S
    new_state: S
    allowed: bool
    transition_occurred: bool
    transition_reason: str

    # Для отладки
    details: str


class ProtocolModeMachine:
    """Автомат режима протокола.

    Правила:
    - NORMAL → BOOTSTRAP запрещён всегда
    - BOOTSTRAP → NORMAL допустим, только если предыдущий или новый
      total_debt превышает bootstrap_mode_debt_threshold
    - после шага, увеличившего долг выше порога, режим обязан быть NORMAL
    """

    def evaluate(
        self,
        previous_mode: ProtocolMode,
        new_mode: ProtocolMode,
        previous_debt: int,
        new_debt: int,
        threshold: int,
    ) -> TransitionResult[ProtocolMode]:
        """Оценка перехода режима.

        Args:
            previous_mode: режим в предыдущем снапшоте
            new_mode: режим в новом снапшоте
            previous_debt: total_debt до шага
            new_debt: total_debt после шага
            threshold: bootstrap_mode_debt_threshold

        Returns:
            TransitionResult с вердиктом allowed
        """
        crossed = previous_debt > threshold or new_debt > threshold
        debt_increased = new_debt > previous_debt

        if previous_mode == ProtocolMode.NORMAL and new_mode == ProtocolMode.BOOTSTRAP:
            return self._result(previous_mode, new_mode, False, "normal_to_bootstrap_forbidden",
                                "NORMAL mode never reverts")

        if previous_mode == ProtocolMode.BOOTSTRAP and new_mode == ProtocolMode.NORMAL:
            if not crossed:
                return self._result(
                    previous_mode, new_mode, False, "premature_normal",
                    f"debt {previous_debt}->{new_debt} never exceeded threshold {threshold}",
                )
            return self._result(previous_mode, new_mode, True, "threshold_crossed",
                                f"debt {new_debt} > threshold {threshold}")

        if debt_increased and new_debt > threshold and new_mode != ProtocolMode.NORMAL:
            return self._result(
                previous_mode, new_mode, False, "missed_normal_switch",
                f"debt increased to {new_debt} > threshold {threshold} but mode is {new_mode.value}",
            )

        return self._result(previous_mode, new_mode, True, "unchanged", "")

    @staticmethod
    def _result(
        previous_mode: ProtocolMode,
        new_mode: ProtocolMode,
        allowed: bool,
        reason: str,
        details: str,
    ) -> TransitionResult[ProtocolMode]:
        return TransitionResult(
            previous_state=previous_mode,
            new_state=new_mode,
            allowed=allowed,
            transition_occurred=previous_mode != new_mode,
            transition_reason=reason,
            details=details,
        )


class DistributionStatusMachine:
    """Автомат статуса распределения вторичной награды.

    - без изменений: допустимо всегда
    - NOT_STARTED → STARTED: только при квалифицирующем событии (stake в пул)
    - STARTED → ENDED: допустимо в любой момент
    - всё остальное запрещено, ENDED терминален
    """

    _ORDER = {
        RewardDistributionStatus.NOT_STARTED: 0,
        RewardDistributionStatus.STARTED: 1,
        RewardDistributionStatus.ENDED: 2,
    }

    def evaluate(
        self,
        previous_status: RewardDistributionStatus,
        new_status: RewardDistributionStatus,
        qualifying_event: bool = False,
    ) -> TransitionResult[RewardDistributionStatus]:
        if previous_status == new_status:
            return self._result(previous_status, new_status, True, "unchanged", "")

        if previous_status == RewardDistributionStatus.NOT_STARTED and new_status == RewardDistributionStatus.STARTED:
            if qualifying_event:
                return self._result(previous_status, new_status, True, "distribution_started", "")
            return self._result(previous_status, new_status, False, "start_without_trigger",
                                "STARTED requires a qualifying event")

        if previous_status == RewardDistributionStatus.STARTED and new_status == RewardDistributionStatus.ENDED:
            return self._result(previous_status, new_status, True, "distribution_ended", "")

        if self._ORDER[new_status] < self._ORDER[previous_status]:
            reason = "regression"
        else:
            reason = "skipped_state"
        return self._result(previous_status, new_status, False, reason,
                            f"{previous_status.value} -> {new_status.value} is not a legal transition")

    @staticmethod
    def _result(
        previous_status: RewardDistributionStatus,
        new_status: RewardDistributionStatus,
        allowed: bool,
        reason: str,
        details: str,
    ) -> TransitionResult[RewardDistributionStatus]:
        return TransitionResult(
            previous_state=previous_status,
            new_state=new_status,
            allowed=allowed,
            transition_occurred=previous_status != new_status,
            transition_reason=reason,
            details=details,
        )
