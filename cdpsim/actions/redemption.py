"""
Redemption — Обмен SBD на залог по цене оракула

Redeem: redeem(amount, nearestSpotInLiquidationQueue)

Redemption обходит redemption queue от head: затронутые позиции образуют
префикс head-first порядка. Для каждой затронутой позиции:
    redeemed_debt_i       = settled_debt_i - new_debt_i
    redeemed_collateral_i = redeemed_debt_i * PRECISION // price
Сумма redeemed_debt_i равна amount; весь amount сжигается.
"""

from typing import Any

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import PRECISION
from cdpsim.core.math.fixed_point import mul_div
from cdpsim.engine.action import CDP, Action, ActionContext, Proposal, Transition
from cdpsim.engine.sampling import sample_amount
from cdpsim.engine.verdict import InvariantChecker

from .common import settled_safe, settled_view

SBD = "sbd_token"


def redeemable_debt(snapshot: StateSnapshot, order: list[int]) -> int:
    """Суммарный settled долг позиций redemption queue."""
    total = 0
    for safe_id in order:
        if safe_id in snapshot.cdp.safes and safe_id in snapshot.cdp.liquidation_snapshots:
            total += settled_view(snapshot, safe_id)[1].settled_debt
    return total


class Redeem(Action):
    """Redemption SBD в залог позиций с наименьшим weight."""

    action_type = "Redeem"
    component = CDP
    method = "redeem"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        order = self.checks.queue_model.head_first_order(snapshot.redemption_queue)
        upper = min(snapshot.sbd_token.balance_of(actor.address), redeemable_debt(snapshot, order))
        amount = sample_amount(context.random, upper)
        if not amount.is_present:
            return Proposal.not_applicable("nothing to redeem")
        return Proposal.of({"amount": amount.record, "nearest_spot": 0})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["amount"], parameters["nearest_spot"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        amount = transition.parameters["amount"]
        price = previous.price_oracle.price
        redeemer = transition.actor.address

        touched = sorted(
            safe_id
            for safe_id in set(previous.cdp.safes) | set(new.cdp.safes)
            if previous.cdp.safes.get(safe_id) != new.cdp.safes.get(safe_id)
        )
        self.checks.queue_model.check_redemption_prefix(checker, previous.redemption_queue, touched)

        total_collateral = previous.cdp.total_collateral
        total_debt = previous.cdp.total_debt
        redeemed_debt = 0
        redeemed_collateral = 0
        for safe_id in touched:
            predicted = self.checks.predict_settlement(checker, previous, safe_id)
            safe = checker.present("cdp.redeemed_safe_present", new.cdp.safe(safe_id))
            if predicted is None or safe is None:
                continue
            before, settlement = predicted

            debt_i = settlement.settled_debt - safe.borrowed_amount
            collateral_i = mul_div(debt_i, PRECISION, price) if debt_i > 0 else 0
            checker.holds(
                f"redeem.safe[{safe_id}].debt_reduced",
                0 < debt_i <= settlement.settled_debt,
                expected=f"(0, {settlement.settled_debt}]",
                observed=debt_i,
            )
            checker.equal(
                f"redeem.safe[{safe_id}].record",
                settled_safe(
                    before,
                    settlement,
                    borrowed_amount=settlement.settled_debt - debt_i,
                    collateral_amount=settlement.settled_collateral - collateral_i,
                ),
                safe,
            )
            self.checks.check_settled_snapshot(checker, new, safe_id)
            self.checks.queue_model.check_membership(checker, new, safe)

            total_collateral += settlement.collateral_increase - collateral_i
            total_debt += settlement.debt_increase - debt_i
            redeemed_debt += debt_i
            redeemed_collateral += collateral_i

        checker.equal("redeem.debt_matches_amount", amount, redeemed_debt)
        self.checks.check_totals(checker, new, total_collateral, total_debt)

        checker.equal("sbd.redeemer_pays", -amount, diff.token(SBD, redeemer))
        checker.equal("sbd.supply_burned", -amount, diff.supply(SBD))
        checker.equal("sbd.total_burned", amount, diff.burned(SBD))

        addresses = new.addresses
        checker.equal("native.cdp_releases_collateral", -redeemed_collateral, diff.native(addresses.stable_base_cdp))
        checker.equal(
            "native.conservation",
            0,
            diff.native_sum((addresses.stable_base_cdp, addresses.stability_pool, addresses.dfire_staking, redeemer))
            + transition.gas_cost,
        )

        self.check_event(
            checker,
            transition,
            "RedeemedBatch",
            amount=amount,
            totalCollateral=new.cdp.total_collateral,
            totalDebt=new.cdp.total_debt,
        )
        self.checks.check_step(checker, previous, new, touched=touched)
