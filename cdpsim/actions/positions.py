"""
Positions — Открытие, пополнение, вывод залога и закрытие позиции

OpenSafe:           openSafe(safeId, amount), value = amount
AddCollateral:      addCollateral(safeId, amount, nearestSpot), value = amount
WithdrawCollateral: withdrawCollateral(safeId, amount, nearestSpot)
CloseSafe:          closeSafe(safeId)

Каждое касание существующей позиции сначала выполняет settlement
перераспределённых долга и залога, затем применяет изменение действия.
"""

import logging
from typing import Any

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.position import Safe
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.math.fixed_point import min_collateral_for_debt
from cdpsim.engine.action import CDP, Action, ActionContext, Proposal, Transition
from cdpsim.engine.sampling import choose, rejection_sample, sample_amount, uniform_int
from cdpsim.engine.verdict import InvariantChecker

from .common import owned_safe_ids, settled_positions, settled_safe, spendable_native

logger = logging.getLogger(__name__)


# =============================================================================
# OPEN SAFE
# =============================================================================


class OpenSafe(Action):
    """Открытие новой позиции с залогом amount."""

    action_type = "OpenSafe"
    component = CDP
    method = "openSafe"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        amount = sample_amount(context.random, spendable_native(context, snapshot, actor))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("no spendable native balance")

        cdp = snapshot.cdp
        safe_id = rejection_sample(
            lambda: uniform_int(context.random, 1, context.config.max_safe_id),
            lambda candidate: candidate not in cdp.safes and candidate not in cdp.owners,
            context.config.max_proposal_attempts,
        )
        if isinstance(safe_id, Absent):
            logger.debug("OpenSafe: no free safe id after %s attempts", safe_id.key)
            return Proposal.not_applicable(f"no free safe id after {safe_id.key} attempts")

        return Proposal.of(
            {"safe_id": safe_id.record, "amount": amount.record},
            new_identifiers={"safe_id": safe_id.record},
        )

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"], parameters["amount"]], parameters["amount"]

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new
        safe_id, amount = transition.parameters["safe_id"], transition.parameters["amount"]
        address = transition.actor.address

        checker.absent("cdp.safe_fresh_before", previous.cdp.safe(safe_id))

        safe = checker.present("cdp.safe_created", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", Safe(safe_id=safe_id, collateral_amount=amount, borrowed_amount=0), safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_owner(checker, new, safe_id, address)
        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker, new, previous.cdp.total_collateral + amount, previous.cdp.total_debt
        )

        self.check_native_spent(checker, transition, address, -amount)
        checker.equal("native.cdp_balance", amount, transition.diff.native(new.addresses.stable_base_cdp))

        self.check_event(
            checker,
            transition,
            "OpenSafe",
            safeId=safe_id,
            owner=address,
            amount=amount,
            totalCollateral=new.cdp.total_collateral,
            totalDebt=new.cdp.total_debt,
        )
        self.checks.check_step(checker, previous, new, touched={safe_id})


# =============================================================================
# ADD COLLATERAL
# =============================================================================


class AddCollateral(Action):
    """Пополнение залога существующей позиции."""

    action_type = "AddCollateral"
    component = CDP
    method = "addCollateral"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        safe_id = choose(context.random, owned_safe_ids(snapshot, actor))
        if isinstance(safe_id, Absent):
            return Proposal.not_applicable("actor has no open safes")

        amount = sample_amount(context.random, spendable_native(context, snapshot, actor))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("no spendable native balance")

        return Proposal.of({"safe_id": safe_id.record, "amount": amount.record, "nearest_spot": 0})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"], parameters["amount"], parameters["nearest_spot"]], parameters["amount"]

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new
        safe_id, amount = transition.parameters["safe_id"], transition.parameters["amount"]

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted

        expected = settled_safe(before, settlement, collateral_amount=settlement.settled_collateral + amount)
        safe = checker.present("cdp.safe_present", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", expected, safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase + amount,
            previous.cdp.total_debt + settlement.debt_increase,
        )

        self.check_native_spent(checker, transition, transition.actor.address, -amount)
        checker.equal("native.cdp_balance", amount, transition.diff.native(new.addresses.stable_base_cdp))
        self.checks.check_step(checker, previous, new, touched={safe_id})


# =============================================================================
# WITHDRAW COLLATERAL
# =============================================================================


class WithdrawCollateral(Action):
    """
    Вывод части залога.

    Сумма ограничена так, чтобы позиция осталась выше liquidation ratio
    и сохранила ненулевой залог.
    """

    action_type = "WithdrawCollateral"
    component = CDP
    method = "withdrawCollateral"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        price = snapshot.price_oracle.price
        ratio = snapshot.cdp.liquidation_ratio_bps

        candidates = []
        for safe, settlement in settled_positions(snapshot, actor):
            required = max(1, min_collateral_for_debt(settlement.settled_debt, price, ratio))
            if settlement.settled_collateral > required:
                candidates.append((safe.safe_id, settlement.settled_collateral - required))

        choice = choose(context.random, candidates)
        if isinstance(choice, Absent):
            return Proposal.not_applicable("no safe with withdrawable collateral")

        safe_id, max_amount = choice.record
        amount = uniform_int(context.random, 1, max_amount)
        return Proposal.of({"safe_id": safe_id, "amount": amount, "nearest_spot": 0})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"], parameters["amount"], parameters["nearest_spot"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new
        safe_id, amount = transition.parameters["safe_id"], transition.parameters["amount"]

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        before, settlement = predicted

        checker.holds(
            "cdp.withdraw_within_collateral",
            amount < settlement.settled_collateral,
            expected=f"< {settlement.settled_collateral}",
            observed=amount,
        )
        expected = settled_safe(before, settlement, collateral_amount=settlement.settled_collateral - amount)
        safe = checker.present("cdp.safe_present", new.cdp.safe(safe_id))
        if safe is not None:
            checker.equal("cdp.safe_record", expected, safe)
            self.checks.queue_model.check_membership(checker, new, safe)

        self.checks.check_settled_snapshot(checker, new, safe_id)
        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase - amount,
            previous.cdp.total_debt + settlement.debt_increase,
        )

        self.check_native_spent(checker, transition, transition.actor.address, amount)
        checker.equal("native.cdp_balance", -amount, transition.diff.native(new.addresses.stable_base_cdp))
        self.checks.check_step(checker, previous, new, touched={safe_id})


# =============================================================================
# CLOSE SAFE
# =============================================================================


class CloseSafe(Action):
    """Закрытие позиции без долга: залог возвращается владельцу."""

    action_type = "CloseSafe"
    component = CDP
    method = "closeSafe"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        closable = [
            safe.safe_id for safe, settlement in settled_positions(snapshot, actor) if settlement.settled_debt == 0
        ]
        safe_id = choose(context.random, closable)
        if isinstance(safe_id, Absent):
            return Proposal.not_applicable("no debt-free safe to close")
        return Proposal.of({"safe_id": safe_id.record})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["safe_id"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new
        safe_id = transition.parameters["safe_id"]

        predicted = self.checks.predict_settlement(checker, previous, safe_id)
        if predicted is None:
            return
        _, settlement = predicted

        checker.equal("cdp.closed_safe_debt_free", 0, settlement.settled_debt)
        checker.absent("cdp.safe_removed", new.cdp.safe(safe_id))
        checker.absent("cdp.owner_cleared", new.cdp.owner_of(safe_id))
        checker.absent("cdp.liquidation_snapshot_removed", new.cdp.liquidation_snapshot(safe_id))
        self.checks.queue_model.check_removed(checker, new, safe_id)

        self.checks.check_totals(
            checker,
            new,
            previous.cdp.total_collateral + settlement.collateral_increase - settlement.settled_collateral,
            previous.cdp.total_debt + settlement.debt_increase - settlement.settled_debt,
        )

        self.check_native_spent(checker, transition, transition.actor.address, settlement.settled_collateral)
        checker.equal(
            "native.cdp_balance",
            -settlement.settled_collateral,
            transition.diff.native(new.addresses.stable_base_cdp),
        )
        self.check_event(checker, transition, "SafeClosed", safeId=safe_id)
        self.checks.check_step(checker, previous, new, touched={safe_id})
