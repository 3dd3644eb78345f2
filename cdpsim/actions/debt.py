"""
Debt — Заимствование, погашение и доплата shielding комиссии

Borrow:   borrow(safeId, amount, shieldingRate, nearestSpotLiquidation, nearestSpotRedemption)
Repay:    repay(safeId, amount, nearestSpot)
FeeTopup: feeTopup(safeId, topupRate, nearestSpot)

Комиссия в SBD распределяется на протокольную сторону (CDP, stability
pool, staking): суммарный приток туда равен комиссии.
"""

from typing import Any

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.math.fixed_point import bps_of, max_borrowable
from cdpsim.engine.action import CDP, Action, ActionContext, Proposal, Transition
from cdpsim.engine.sampling import choose, rejection_sample, uniform_int
from cdpsim.engine.verdict import InvariantChecker

from .common import settled_positions, settled_safe

SBD = "sbd_token"


class Borrow(Action):
    """
    Заимствование SBD под залог позиции.

    fee = amount * shielding_rate // BPS удерживается с выдачи;
    weight позиции растёт на shielding_rate.
    """

    action_type = "Borrow"
    component = CDP
    method = "borrow"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        price = snapshot.price_oracle.price
        ratio = snapshot.cdp.liquidation_ratio_bps

        candidates = []
        for safe, settlement in settled_positions(snapshot, actor):
            headroom = max_borrowable(settlement.settled_collateral, price, ratio) - settlement.settled_debt
            if headroom >= 1:
                candidates.append((safe.safe_id, headroom))

        choice = choose(context.random, candidates)
        if isinstance(choice, Absent):
            return Proposal.not_applicable("no safe with borrowing headroom")

        safe_id, headroom = choice.record
        return Proposal.of(
            {
                "safe_id": safe_id,
                "amount": uniform_int(context.random, 1, headroom),
                "shielding_rate": uniform_int(context.random, 0, context.config.max_shielding_rate_bps),
                "nearest_spot_liquidation": 0,
                "nearest_spot_redemption": 0,
            }
        )

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [
            parameters["safe_id"],
            parameters["amount"],
            parameters["shielding_rate"],
            parameters["nearest_spot_liquidation"],
            parameters["nearest_spot_redemption"],
        ], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        safe_id = transition.parameters["safe_id"]
        amount = transition.parameters["amount"]
        rate = transition.parameters["shielding_rate"]
        address = transition.actor.address

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted

        fee = bps_of(amount, rate)
        expected = settled_safe(
            before,
            settlement,
            borrowed_amount=settlement.settled_debt + amount,
            weight=before.weight + rate,
            total_borrowed_amount=before.total_borrowed_amount + amount,
            fee_paid=before.fee_paid + fee,
        )
        safe = checker.present("cdp.safe_present", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", expected, safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase,
            previous.cdp.total_debt + settlement.debt_increase + amount,
        )

        checker.equal("sbd.borrower_receives", amount - fee, diff.token(SBD, address))
        checker.equal("sbd.supply_minted", amount, diff.supply(SBD))
        checker.equal("sbd.protocol_fee_inflow", fee, diff.token_sum(SBD, new.addresses.protocol_side()))
        self.check_native_spent(checker, transition, address, 0)
        self.checks.check_step(checker, previous, new, touched={safe_id})


class Repay(Action):
    """Погашение части долга. Погашенные SBD сжигаются."""

    action_type = "Repay"
    component = CDP
    method = "repay"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        balance = snapshot.sbd_token.balance_of(actor.address)
        candidates = [
            (safe.safe_id, min(settlement.settled_debt, balance))
            for safe, settlement in settled_positions(snapshot, actor)
            if settlement.settled_debt > 0
        ]
        candidates = [candidate for candidate in candidates if candidate[1] >= 1]

        choice = choose(context.random, candidates)
        if isinstance(choice, Absent):
            return Proposal.not_applicable("no indebted safe or no SBD to repay with")

        safe_id, max_amount = choice.record
        return Proposal.of({"safe_id": safe_id, "amount": uniform_int(context.random, 1, max_amount), "nearest_spot": 0})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"], parameters["amount"], parameters["nearest_spot"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        safe_id, amount = transition.parameters["safe_id"], transition.parameters["amount"]

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted

        checker.holds(
            "cdp.repay_within_debt",
            amount <= settlement.settled_debt,
            expected=f"<= {settlement.settled_debt}",
            observed=amount,
        )
        expected = settled_safe(before, settlement, borrowed_amount=settlement.settled_debt - amount)
        safe = checker.present("cdp.safe_present", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", expected, safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase,
            previous.cdp.total_debt + settlement.debt_increase - amount,
        )

        checker.equal("sbd.repayer_pays", -amount, diff.token(SBD, transition.actor.address))
        checker.equal("sbd.supply_burned", -amount, diff.supply(SBD))
        checker.equal("sbd.total_burned", amount, diff.burned(SBD))
        self.check_native_spent(checker, transition, transition.actor.address, 0)
        self.checks.check_step(checker, previous, new, touched={safe_id})


class FeeTopup(Action):
    """
    Доплата shielding ставки: fee = topup_rate * settled_debt // BPS.

    weight позиции растёт на topup_rate, что сдвигает её в redemption queue.
    """

    action_type = "FeeTopup"
    component = CDP
    method = "feeTopup"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        balance = snapshot.sbd_token.balance_of(actor.address)
        indebted = [
            (safe.safe_id, settlement.settled_debt)
            for safe, settlement in settled_positions(snapshot, actor)
            if settlement.settled_debt > 0
        ]
        if not indebted:
            return Proposal.not_applicable("no indebted safe")

        def draw() -> tuple[int, int, int]:
            safe_id, debt = indebted[uniform_int(context.random, 0, len(indebted) - 1)]
            rate = uniform_int(context.random, 1, context.config.max_topup_rate_bps)
            return safe_id, rate, bps_of(debt, rate)

        choice = rejection_sample(
            draw,
            lambda candidate: 0 < candidate[2] <= balance,
            context.config.max_proposal_attempts,
        )
        if isinstance(choice, Absent):
            return Proposal.not_applicable("no affordable topup")

        safe_id, rate, _ = choice.record
        return Proposal.of({"safe_id": safe_id, "topup_rate": rate, "nearest_spot": 0})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"], parameters["topup_rate"], parameters["nearest_spot"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        safe_id, rate = transition.parameters["safe_id"], transition.parameters["topup_rate"]

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted

        fee = bps_of(settlement.settled_debt, rate)
        expected = settled_safe(
            before,
            settlement,
            weight=before.weight + rate,
            fee_paid=before.fee_paid + fee,
        )
        safe = checker.present("cdp.safe_present", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", expected, safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase,
            previous.cdp.total_debt + settlement.debt_increase,
        )

        checker.equal("sbd.topup_paid", -fee, diff.token(SBD, transition.actor.address))
        checker.equal("sbd.protocol_fee_inflow", fee, diff.token_sum(SBD, new.addresses.protocol_side()))
        checker.equal("sbd.supply_unchanged", 0, diff.supply(SBD))
        self.check_native_spent(checker, transition, transition.actor.address, 0)
        self.checks.check_step(checker, previous, new, touched={safe_id})
