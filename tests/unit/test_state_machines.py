"""Тесты монотонных автоматов.

Coverage:
- ProtocolMode: BOOTSTRAP → NORMAL по порогу долга, без возврата
- RewardDistributionStatus: NOT_STARTED → STARTED (по событию) → ENDED
"""

import pytest

from cdpsim.core.domain import ProtocolMode, RewardDistributionStatus
from cdpsim.engine import DistributionStatusMachine, ProtocolModeMachine

NOT_STARTED = RewardDistributionStatus.NOT_STARTED
STARTED = RewardDistributionStatus.STARTED
ENDED = RewardDistributionStatus.ENDED


class TestProtocolModeMachine:
    """Тесты автомата режима протокола."""

    def test_switch_to_normal_after_threshold(self):
        """Долг 50 → 150 при пороге 100 → NORMAL допустим."""
        result = ProtocolModeMachine().evaluate(ProtocolMode.BOOTSTRAP, ProtocolMode.NORMAL, 50, 150, 100)

        assert result.allowed
        assert result.transition_occurred
        assert result.transition_reason == "threshold_crossed"

    def test_premature_normal(self):
        """NORMAL без превышения порога запрещён."""
        result = ProtocolModeMachine().evaluate(ProtocolMode.BOOTSTRAP, ProtocolMode.NORMAL, 50, 60, 100)

        assert not result.allowed
        assert result.transition_reason == "premature_normal"

    def test_normal_never_reverts(self):
        result = ProtocolModeMachine().evaluate(ProtocolMode.NORMAL, ProtocolMode.BOOTSTRAP, 150, 10, 100)

        assert not result.allowed
        assert result.transition_reason == "normal_to_bootstrap_forbidden"

    def test_missed_switch_after_debt_increase(self):
        """Долг вырос выше порога, а режим остался BOOTSTRAP."""
        result = ProtocolModeMachine().evaluate(ProtocolMode.BOOTSTRAP, ProtocolMode.BOOTSTRAP, 50, 150, 100)

        assert not result.allowed
        assert result.transition_reason == "missed_normal_switch"

    def test_debt_decrease_keeps_bootstrap(self):
        """Погашение долга не требует смены режима."""
        result = ProtocolModeMachine().evaluate(ProtocolMode.BOOTSTRAP, ProtocolMode.BOOTSTRAP, 150, 120, 100)

        assert result.allowed
        assert not result.transition_occurred
        assert result.transition_reason == "unchanged"


class TestDistributionStatusMachine:
    """Тесты автомата статуса распределения вторичной награды."""

    @pytest.mark.parametrize("status", [NOT_STARTED, STARTED, ENDED])
    def test_unchanged_always_allowed(self, status):
        result = DistributionStatusMachine().evaluate(status, status)
        assert result.allowed
        assert result.transition_reason == "unchanged"

    def test_start_requires_qualifying_event(self):
        machine = DistributionStatusMachine()

        assert machine.evaluate(NOT_STARTED, STARTED, qualifying_event=True).allowed

        result = machine.evaluate(NOT_STARTED, STARTED)
        assert not result.allowed
        assert result.transition_reason == "start_without_trigger"

    def test_end_any_time(self):
        assert DistributionStatusMachine().evaluate(STARTED, ENDED).allowed

    def test_ended_is_terminal(self):
        result = DistributionStatusMachine().evaluate(ENDED, STARTED, qualifying_event=True)
        assert not result.allowed
        assert result.transition_reason == "regression"

    def test_skipping_started(self):
        result = DistributionStatusMachine().evaluate(NOT_STARTED, ENDED)
        assert not result.allowed
        assert result.transition_reason == "skipped_state"
