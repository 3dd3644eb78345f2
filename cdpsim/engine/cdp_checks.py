"""
CDP checks — Общие проверки для всех действий над позициями

Каждое CDP действие дополнительно проверяет:
- позиции, кроме затронутых, не изменились (независимость)
- per-unit аккумуляторы не убывают
- переход режима протокола допустим
- переход статуса распределения вторичной награды допустим
- структура обеих ranked queue самосогласована
"""

from typing import Iterable, Optional

from cdpsim.core.domain.position import Safe
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.math.accumulators import (
    SafeSettlement,
    current_liquidation_snapshot,
    settle_safe,
)

from .distribution import ProportionalDistributionModel
from .queue_model import RankedQueueModel
from .state_machines import ProtocolModeMachine
from .verdict import InvariantChecker


class CdpChecks:
    """Набор общих проверок перехода previous → new."""

    def __init__(
        self,
        queue_model: Optional[RankedQueueModel] = None,
        distribution: Optional[ProportionalDistributionModel] = None,
    ):
        self.queue_model = queue_model or RankedQueueModel()
        self.distribution = distribution or ProportionalDistributionModel()
        self.mode_machine = ProtocolModeMachine()

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def predict_settlement(
        self,
        checker: InvariantChecker,
        previous: StateSnapshot,
        safe_id: int,
    ) -> Optional[tuple[Safe, SafeSettlement]]:
        """
        Предсказание settlement позиции против глобальных аккумуляторов previous.

        Returns:
            (safe до шага, SafeSettlement) или None, если нет данных
            (нарушение уже записано)
        """
        safe = checker.present("cdp.safe_present_before", previous.cdp.safe(safe_id))
        snapshot = checker.present("cdp.liquidation_snapshot_present_before", previous.cdp.liquidation_snapshot(safe_id))
        if safe is None or snapshot is None:
            return None

        settlement = None
        with checker.arithmetic("cdp.settlement_arithmetic"):
            settlement = settle_safe(safe, snapshot, previous.cdp)
        if settlement is None:
            return None
        return safe, settlement

    def check_settled_snapshot(self, checker: InvariantChecker, new: StateSnapshot, safe_id: int) -> None:
        """После касания snapshot позиции равен текущим глобальным значениям."""
        stored = checker.present("cdp.liquidation_snapshot_present", new.cdp.liquidation_snapshot(safe_id))
        if stored is not None:
            checker.equal("cdp.liquidation_snapshot_settled", current_liquidation_snapshot(new.cdp), stored)

    def check_totals(
        self,
        checker: InvariantChecker,
        new: StateSnapshot,
        expected_collateral: int,
        expected_debt: int,
    ) -> None:
        checker.equal("cdp.total_collateral", expected_collateral, new.cdp.total_collateral)
        checker.equal("cdp.total_debt", expected_debt, new.cdp.total_debt)

    def check_owner(self, checker: InvariantChecker, new: StateSnapshot, safe_id: int, owner: str) -> None:
        observed = checker.present("cdp.owner_present", new.cdp.owner_of(safe_id))
        if observed is not None:
            checker.equal("cdp.owner", owner, observed)

    # -------------------------------------------------------------------------
    # Общие проверки шага
    # -------------------------------------------------------------------------

    def check_untouched_safes(
        self,
        checker: InvariantChecker,
        previous: StateSnapshot,
        new: StateSnapshot,
        touched: Iterable[int],
    ) -> None:
        """Позиции вне touched не изменились: запись, владелец, snapshot."""
        touched_ids = set(touched)
        all_ids = (set(previous.cdp.safes) | set(new.cdp.safes)) - touched_ids
        for safe_id in sorted(all_ids):
            checker.equal(
                f"cdp.independence.safe[{safe_id}]",
                previous.cdp.safes.get(safe_id),
                new.cdp.safes.get(safe_id),
            )
            checker.equal(
                f"cdp.independence.owner[{safe_id}]",
                previous.cdp.owners.get(safe_id),
                new.cdp.owners.get(safe_id),
            )
            checker.equal(
                f"cdp.independence.liquidation_snapshot[{safe_id}]",
                previous.cdp.liquidation_snapshots.get(safe_id),
                new.cdp.liquidation_snapshots.get(safe_id),
            )

    def check_accumulators_monotone(
        self,
        checker: InvariantChecker,
        previous: StateSnapshot,
        new: StateSnapshot,
    ) -> None:
        pairs = (
            ("cdp.cumulative_debt_per_unit_collateral",
             previous.cdp.cumulative_debt_per_unit_collateral, new.cdp.cumulative_debt_per_unit_collateral),
            ("cdp.cumulative_collateral_per_unit_collateral",
             previous.cdp.cumulative_collateral_per_unit_collateral,
             new.cdp.cumulative_collateral_per_unit_collateral),
            ("stability_pool.total_reward_per_token",
             previous.stability_pool.total_reward_per_token, new.stability_pool.total_reward_per_token),
            ("stability_pool.total_collateral_per_token",
             previous.stability_pool.total_collateral_per_token, new.stability_pool.total_collateral_per_token),
            ("stability_pool.total_sbr_reward_per_token",
             previous.stability_pool.total_sbr_reward_per_token, new.stability_pool.total_sbr_reward_per_token),
            ("staking.total_reward_per_token",
             previous.dfire_staking.total_reward_per_token, new.dfire_staking.total_reward_per_token),
            ("staking.total_collateral_per_token",
             previous.dfire_staking.total_collateral_per_token, new.dfire_staking.total_collateral_per_token),
        )
        for name, before, after in pairs:
            checker.holds(f"{name}.monotone", after >= before, expected=f">= {before}", observed=after)

        checker.holds(
            "stability_pool.stake_reset_count.monotone",
            new.stability_pool.stake_reset_count >= previous.stability_pool.stake_reset_count,
            expected=f">= {previous.stability_pool.stake_reset_count}",
            observed=new.stability_pool.stake_reset_count,
        )

    def check_protocol_mode(self, checker: InvariantChecker, previous: StateSnapshot, new: StateSnapshot) -> None:
        result = self.mode_machine.evaluate(
            previous.cdp.protocol_mode,
            new.cdp.protocol_mode,
            previous.cdp.total_debt,
            new.cdp.total_debt,
            new.cdp.bootstrap_mode_debt_threshold,
        )
        checker.holds(
            "cdp.protocol_mode_transition",
            result.allowed,
            expected="legal transition",
            observed=f"{previous.cdp.protocol_mode.value} -> {new.cdp.protocol_mode.value}",
            message=result.details,
        )

    def check_step(
        self,
        checker: InvariantChecker,
        previous: StateSnapshot,
        new: StateSnapshot,
        touched: Iterable[int] = (),
        qualifying_event: bool = False,
    ) -> None:
        """Проверки, общие для любого шага."""
        self.check_untouched_safes(checker, previous, new, touched)
        self.check_accumulators_monotone(checker, previous, new)
        self.check_protocol_mode(checker, previous, new)
        self.distribution.check_status_transition(
            checker,
            previous.stability_pool.sbr_reward_distribution_status,
            new.stability_pool.sbr_reward_distribution_status,
            qualifying_event,
        )
        self.queue_model.check_snapshot_structure(checker, new)
