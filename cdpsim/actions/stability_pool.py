"""
Stability pool — Stake, unstake и claim стейкеров пула

StabilityPoolStake:   stake(amount, frontend, fee)
StabilityPoolUnstake: unstake(amount, frontend, fee)
StabilityPoolClaim:   claim() / claim(frontend, fee)

Каждое действие сначала выплачивает pending награды пользователя:
- SBD reward из баланса пула
- collateral (native) из баланса пула
- вторичную награду SBR, которая минтится
с комиссией frontend fee = pending * fee_bps // BPS по каждому активу.
Затем стейк становится effective_stake (+/- amount), а snapshots
пользователя приравниваются текущим итогам пула.
"""

from typing import Any, Optional

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import is_zero_address
from cdpsim.core.math.accumulators import (
    StabilityPoolPending,
    effective_stake,
    resolve_epoch,
    stability_pool_pending,
)
from cdpsim.engine.action import STABILITY_POOL, Action, ActionContext, Proposal, Transition
from cdpsim.engine.distribution import NATIVE, split_payout
from cdpsim.engine.sampling import sample_amount
from cdpsim.engine.verdict import InvariantChecker

from .common import choose_frontend

SBD = "sbd_token"
SBR = "dfire_token"

NO_PENDING = StabilityPoolPending(effective_stake=0, reward=0, collateral=0, sbr_reward=0)


def current_effective_stake(snapshot: StateSnapshot, address: str) -> int:
    """Effective stake пользователя против текущего пула (0 без записи или эпохи)."""
    user = snapshot.stability_pool.user(address)
    if isinstance(user, Absent):
        return 0
    epoch = resolve_epoch(snapshot.stability_pool, user.record)
    if isinstance(epoch, Absent):
        return 0
    return effective_stake(
        user.record.stake, epoch.record.scaling_factor, user.record.cumulative_product_scaling_factor
    )


class StabilityPoolAction(Action):
    """Общая проверка выплат и settlement пользователя пула."""

    component = STABILITY_POOL

    # Изменение стейка действием: +1 stake, -1 unstake, 0 claim
    stake_direction = 0
    qualifying_event = False

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["amount"], parameters["frontend"], parameters["fee"]], 0

    def predict_pending(self, checker: InvariantChecker, transition: Transition) -> Optional[StabilityPoolPending]:
        """
        Pending выплаты: итоги пула после шага против snapshots пользователя до шага.

        Пользователь без записи до шага ничего не получает.
        """
        address = transition.actor.address
        user = transition.previous.stability_pool.user(address)
        if isinstance(user, Absent):
            return NO_PENDING

        sbr_snapshot = checker.present(
            "stability_pool.sbr_snapshot_present_before",
            transition.previous.stability_pool.sbr_snapshot(address),
        )
        epoch = checker.present(
            "stability_pool.reset_epoch_present",
            resolve_epoch(transition.new.stability_pool, user.record),
        )
        if sbr_snapshot is None or epoch is None:
            return None

        pending = None
        with checker.arithmetic("stability_pool.pending_arithmetic"):
            pending = stability_pool_pending(epoch, user.record, sbr_snapshot)
        return pending

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new = transition.previous, transition.new
        address = transition.actor.address
        amount = transition.parameters.get("amount", 0)
        frontend = transition.parameters["frontend"]
        fee_bps = transition.parameters["fee"]
        signed_amount = self.stake_direction * amount

        pending = self.predict_pending(checker, transition)
        if pending is None:
            return

        # Стейк и raw итог пула
        user = checker.present("stability_pool.user_present", new.stability_pool.user(address))
        if user is not None:
            checker.equal("stability_pool.user_stake", pending.effective_stake + signed_amount, user.stake)
        checker.equal(
            "stability_pool.total_staked_raw",
            previous.stability_pool.total_staked_raw + signed_amount,
            new.stability_pool.total_staked_raw,
        )

        # Выплаты
        pool = new.addresses.stability_pool
        distribution = self.checks.distribution
        distribution.check_payout(
            checker,
            transition.diff,
            "reward",
            SBD,
            address,
            frontend,
            pool,
            split_payout(pending.reward, fee_bps),
            user_offset=-signed_amount,
            source_offset=signed_amount,
        )
        distribution.check_payout(
            checker,
            transition.diff,
            "collateral",
            NATIVE,
            address,
            frontend,
            pool,
            split_payout(pending.collateral, fee_bps),
            user_offset=-transition.gas_cost,
        )
        distribution.check_payout(
            checker,
            transition.diff,
            "sbr_reward",
            SBR,
            address,
            frontend,
            pool,
            split_payout(pending.sbr_reward, fee_bps),
            minted=True,
        )

        distribution.check_pool_user_settled(checker, new.stability_pool, address)
        self.checks.check_step(checker, previous, new, qualifying_event=self.qualifying_event)


class StabilityPoolStake(StabilityPoolAction):
    """Stake SBD в пул. Квалифицирующее событие для старта распределения SBR."""

    action_type = "StabilityPoolStake"
    method = "stake"
    stake_direction = 1
    qualifying_event = True

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        amount = sample_amount(context.random, snapshot.sbd_token.balance_of(actor.address))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("actor holds no SBD")
        frontend, fee = choose_frontend(context, actor)
        return Proposal.of({"amount": amount.record, "frontend": frontend, "fee": fee})


class StabilityPoolUnstake(StabilityPoolAction):
    """Unstake части effective стейка."""

    action_type = "StabilityPoolUnstake"
    method = "unstake"
    stake_direction = -1

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        amount = sample_amount(context.random, current_effective_stake(snapshot, actor.address))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("actor has no effective stake")
        frontend, fee = choose_frontend(context, actor)
        return Proposal.of({"amount": amount.record, "frontend": frontend, "fee": fee})

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        super().check(checker, transition)
        pool = transition.new.stability_pool
        if pool.total_staked_raw == 0:
            checker.equal("stability_pool.reward_sender_deactivated", False, pool.reward_sender_active)


class StabilityPoolClaim(StabilityPoolAction):
    """Claim наград без изменения стейка."""

    action_type = "StabilityPoolClaim"
    method = "claim"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        if isinstance(snapshot.stability_pool.user(actor.address), Absent):
            return Proposal.not_applicable("actor is not a stability pool staker")
        frontend, fee = choose_frontend(context, actor)
        return Proposal.of({"frontend": frontend, "fee": fee})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        if is_zero_address(parameters["frontend"]) and parameters["fee"] == 0:
            return [], 0
        return [parameters["frontend"], parameters["fee"]], 0
