"""
PriceOracle — Установка цены mock оракула

SetPrice: setPrice(price), price в целых единицах; оракул хранит price * PRECISION.
"""

from typing import Any

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.math.fixed_point import scale_price
from cdpsim.engine.action import PRICE_ORACLE, Action, ActionContext, Proposal, Transition
from cdpsim.engine.sampling import uniform_int
from cdpsim.engine.verdict import InvariantChecker


class SetPrice(Action):
    """Смена цены владельцем оракула. Состояние остальных компонентов не меняется."""

    action_type = "SetPrice"
    component = PRICE_ORACLE
    method = "setPrice"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        if actor.address != snapshot.price_oracle.owner:
            return Proposal.not_applicable("actor does not own the price oracle")
        return Proposal.of({"price": uniform_int(context.random, 1, context.config.max_price)})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["price"]], 0

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new

        checker.equal("oracle.price", scale_price(transition.parameters["price"]), new.price_oracle.price)
        checker.equal("oracle.owner_unchanged", previous.price_oracle.owner, new.price_oracle.owner)

        checker.equal("cdp.state_unchanged", previous.cdp, new.cdp)
        checker.equal("liquidation_queue.unchanged", previous.liquidation_queue, new.liquidation_queue)
        checker.equal("redemption_queue.unchanged", previous.redemption_queue, new.redemption_queue)
        checker.equal("stability_pool.unchanged", previous.stability_pool, new.stability_pool)
        checker.equal("staking.unchanged", previous.dfire_staking, new.dfire_staking)
        checker.equal("sbd.ledger_unchanged", previous.sbd_token, new.sbd_token)
        checker.equal("dfire.ledger_unchanged", previous.dfire_token, new.dfire_token)

        self.check_native_spent(checker, transition, transition.actor.address, 0)
