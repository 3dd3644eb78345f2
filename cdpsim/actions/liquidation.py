"""
Liquidation — Ликвидация позиций ниже liquidation ratio

Liquidate:      liquidate()            — sweep: ликвидируется tail liquidation queue
LiquidateSafe:  liquidateSafe(safeId)  — ликвидация выбранной позиции

Путь ликвидации:
- stability pool, если total_staked_raw >= settled debt: пул поглощает долг
  (raw, SBD пула и supply уменьшаются на debt, scaling factor компаундируется)
- иначе secondary mechanism: долг перераспределяется на оставшийся залог
  через cumulative_debt_per_unit_collateral += debt * P // remaining_collateral

Ликвидатор получает refund = min(gas compensation, liquidation fee).
Native баланс сохраняется на множестве {CDP, pool, staking, ликвидатор + газ}.
"""

from typing import Any

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.position import Safe
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import GAS_COMPENSATION_MARKUP_PCT, NULL_ID, PRECISION
from cdpsim.core.math.accumulators import SafeSettlement, compound_scaling_factor
from cdpsim.core.math.fixed_point import bps_of, is_undercollateralized, mul_div
from cdpsim.engine.action import CDP, Action, ActionContext, Proposal, Transition
from cdpsim.engine.interfaces import ExecutionOutcome
from cdpsim.engine.sampling import choose
from cdpsim.engine.verdict import InvariantChecker

from .common import settled_view

SBD = "sbd_token"


def liquidation_refund(
    outcome: ExecutionOutcome,
    extra_gas_compensation: int,
    liquidated_collateral: int,
    fee_bps: int,
) -> int:
    """
    Refund ликвидатору.

    gas_compensation = (gas_used + extra) * (base_fee + base_fee * 10 // 100)
    liquidation_fee  = collateral * fee_bps // BPS
    refund           = min(gas_compensation, liquidation_fee)
    """
    base_fee = outcome.base_fee_per_gas
    gas_compensation = (outcome.gas_used + extra_gas_compensation) * (
        base_fee + base_fee * GAS_COMPENSATION_MARKUP_PCT // 100
    )
    return min(gas_compensation, bps_of(liquidated_collateral, fee_bps))


def uses_stability_pool(snapshot: StateSnapshot, settled_debt: int) -> bool:
    return snapshot.stability_pool.total_staked_raw >= settled_debt


def is_liquidatable(snapshot: StateSnapshot, safe: Safe, settlement: SafeSettlement) -> bool:
    """Позиция ниже ratio и у протокола есть путь поглотить её долг."""
    if settlement.settled_debt == 0:
        return False
    if not is_undercollateralized(
        settlement.settled_collateral,
        settlement.settled_debt,
        snapshot.price_oracle.price,
        snapshot.cdp.liquidation_ratio_bps,
    ):
        return False
    remaining = snapshot.cdp.total_collateral - safe.collateral_amount
    return uses_stability_pool(snapshot, settlement.settled_debt) or remaining > 0


class LiquidationAction(Action):
    """Общие инварианты обеих форм ликвидации."""

    def target_safe_id(self, transition: Transition) -> int:
        raise NotImplementedError

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        safe_id = self.target_safe_id(transition)

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted
        debt, collateral = settlement.settled_debt, settlement.settled_collateral

        checker.holds(
            "liquidation.was_undercollateralized",
            is_undercollateralized(collateral, debt, previous.price_oracle.price, previous.cdp.liquidation_ratio_bps),
            expected="collateral value below ratio",
            observed={"collateral": collateral, "debt": debt, "price": previous.price_oracle.price},
        )

        # Позиция удалена целиком
        checker.absent("cdp.safe_removed", new.cdp.safe(safe_id))
        checker.absent("cdp.owner_cleared", new.cdp.owner_of(safe_id))
        checker.absent("cdp.liquidation_snapshot_removed", new.cdp.liquidation_snapshot(safe_id))
        self.checks.queue_model.check_removed(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral - before.collateral_amount,
            previous.cdp.total_debt - before.borrowed_amount,
        )

        if uses_stability_pool(previous, debt):
            self._check_stability_pool_path(checker, transition, debt, collateral)
        else:
            self._check_secondary_path(checker, transition, before, debt)

        # Refund и сохранение native
        refund = liquidation_refund(
            transition.outcome,
            previous.cdp.extra_gas_compensation,
            collateral,
            previous.cdp.redemption_liquidation_fee_bps,
        )
        liquidator = transition.actor.address
        addresses = new.addresses
        checker.equal("native.liquidator_refund", refund - transition.gas_cost, diff.native(liquidator))
        checker.equal(
            "native.conservation",
            0,
            diff.native_sum((addresses.stable_base_cdp, addresses.stability_pool, addresses.dfire_staking, liquidator))
            + transition.gas_cost,
        )

        self.checks.check_step(checker, previous, new, touched={safe_id})

    def _check_stability_pool_path(
        self,
        checker: InvariantChecker,
        transition: Transition,
        debt: int,
        collateral: int,
    ) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        pool_before, pool_after = previous.stability_pool, new.stability_pool

        self.check_event(checker, transition, "LiquidatedUsingStabilityPool")
        checker.equal("stability_pool.total_staked_raw", pool_before.total_staked_raw - debt, pool_after.total_staked_raw)
        checker.equal("sbd.pool_absorbs_debt", -debt, diff.token(SBD, new.addresses.stability_pool))
        checker.equal("sbd.supply_burned", -debt, diff.supply(SBD))
        checker.equal("sbd.total_burned", debt, diff.burned(SBD))
        checker.equal("native.cdp_releases_collateral", -collateral, diff.native(new.addresses.stable_base_cdp))

        if pool_before.total_staked_raw == 0:
            return
        compounded = mul_div(
            pool_before.stake_scaling_factor,
            pool_before.total_staked_raw - debt,
            pool_before.total_staked_raw,
        )
        update = compound_scaling_factor(
            pool_before.stake_scaling_factor,
            pool_before.total_staked_raw,
            debt,
            pool_before.minimum_scaling_factor,
        )
        checker.equal("stability_pool.stake_scaling_factor", update.scaling_factor, pool_after.stake_scaling_factor)

        if not update.reset:
            checker.equal("stability_pool.stake_reset_count", pool_before.stake_reset_count, pool_after.stake_reset_count)
            return

        checker.equal("stability_pool.stake_reset_count", pool_before.stake_reset_count + 1, pool_after.stake_reset_count)
        frozen = checker.present(
            "stability_pool.reset_snapshot_present",
            pool_after.reset_snapshot(pool_before.stake_reset_count),
        )
        if frozen is None:
            return
        checker.equal("stability_pool.reset_snapshot.scaling_factor", compounded, frozen.scaling_factor)
        checker.equal(
            "stability_pool.reset_snapshot.totals",
            (
                pool_after.total_reward_per_token,
                pool_after.total_collateral_per_token,
                pool_after.total_sbr_reward_per_token,
            ),
            (frozen.total_reward_per_token, frozen.total_collateral_per_token, frozen.total_sbr_reward_per_token),
        )

    def _check_secondary_path(
        self,
        checker: InvariantChecker,
        transition: Transition,
        before: Safe,
        debt: int,
    ) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff

        self.check_event(checker, transition, "LiquidatedUsingSecondaryMechanism")
        remaining = previous.cdp.total_collateral - before.collateral_amount
        if not checker.holds(
            "liquidation.redistribution_base",
            remaining > 0,
            expected="> 0 remaining collateral",
            observed=remaining,
        ):
            return
        checker.equal(
            "cdp.cumulative_debt_per_unit_collateral",
            previous.cdp.cumulative_debt_per_unit_collateral + mul_div(debt, PRECISION, remaining),
            new.cdp.cumulative_debt_per_unit_collateral,
        )
        checker.equal(
            "stability_pool.total_staked_raw",
            previous.stability_pool.total_staked_raw,
            new.stability_pool.total_staked_raw,
        )
        checker.equal("sbd.supply_unchanged", 0, diff.supply(SBD))


class Liquidate(LiquidationAction):
    """Sweep: ликвидация позиции в tail liquidation queue."""

    action_type = "Liquidate"
    component = CDP
    method = "liquidate"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        tail = snapshot.liquidation_queue.tail
        if tail == NULL_ID or tail not in snapshot.cdp.safes or tail not in snapshot.cdp.liquidation_snapshots:
            return Proposal.not_applicable("liquidation queue is empty")

        safe, settlement = settled_view(snapshot, tail)
        if not is_liquidatable(snapshot, safe, settlement):
            return Proposal.not_applicable(f"tail safe {tail} is not liquidatable")
        return Proposal.of({"expected_safe_id": tail})

    def target_safe_id(self, transition: Transition) -> int:
        return transition.previous.liquidation_queue.tail

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        safe_id = self.target_safe_id(transition)
        checker.equal("liquidation.tail_as_proposed", transition.parameters.get("expected_safe_id"), safe_id)
        self.checks.queue_model.check_tail_removal(
            checker, transition.previous.liquidation_queue, transition.new.liquidation_queue, safe_id
        )
        super().check(checker, transition)


class LiquidateSafe(LiquidationAction):
    """Ликвидация выбранной позиции ниже liquidation ratio."""

    action_type = "LiquidateSafe"
    component = CDP
    method = "liquidateSafe"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        candidates: list[int] = []
        for safe_id in snapshot.cdp.open_safe_ids():
            if safe_id not in snapshot.cdp.liquidation_snapshots:
                continue
            safe, settlement = settled_view(snapshot, safe_id)
            if is_liquidatable(snapshot, safe, settlement):
                candidates.append(safe_id)

        safe_id = choose(context.random, candidates)
        if isinstance(safe_id, Absent):
            return Proposal.not_applicable("no undercollateralized safe")
        return Proposal.of({"safe_id": safe_id.record})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"]], 0

    def target_safe_id(self, transition: Transition) -> int:
        return transition.parameters["safe_id"]
