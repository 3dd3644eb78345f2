"""
Staking — Стейкинг вторичного токена (DFIRE)

StakingStake:   stake(amount)
StakingUnstake: unstake(amount)
StakingClaim:   claim()

Перед изменением стейка контракт выплачивает pending награды:
    reward     = stake * (total_reward_per_token - reward_snapshot) // P       (SBD)
    collateral = stake * (total_collateral_per_token - collateral_snapshot) // P (native)
Комиссии frontend у staking нет.
"""

from typing import Any, Optional

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import ZERO_ADDRESS
from cdpsim.core.math.accumulators import StakingPending, staking_pending
from cdpsim.engine.action import DFIRE_STAKING, Action, ActionContext, Proposal, Transition
from cdpsim.engine.distribution import NATIVE, Payout
from cdpsim.engine.sampling import sample_amount
from cdpsim.engine.verdict import InvariantChecker

SBD = "sbd_token"
DFIRE = "dfire_token"


def staked_amount(snapshot: StateSnapshot, address: str) -> int:
    info = snapshot.dfire_staking.user(address)
    if isinstance(info, Absent):
        return 0
    return info.record.stake


class StakingAction(Action):
    """Общая проверка выплат и snapshots стейкера DFIRE."""

    component = DFIRE_STAKING

    # Изменение стейка действием: +1 stake, -1 unstake, 0 claim
    stake_direction = 0

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [parameters["amount"]], 0

    def predict_pending(self, checker: InvariantChecker, transition: Transition) -> Optional[StakingPending]:
        info = transition.previous.dfire_staking.user(transition.actor.address)
        if isinstance(info, Absent):
            return StakingPending(reward=0, collateral=0)

        pending = None
        with checker.arithmetic("staking.pending_arithmetic"):
            pending = staking_pending(transition.new.dfire_staking, info.record)
        return pending

    def check(self, checker: InvariantChecker, transition: Transition) -> None:
        previous, new, diff = transition.previous, transition.new, transition.diff
        address = transition.actor.address
        signed_amount = self.stake_direction * transition.parameters.get("amount", 0)

        pending = self.predict_pending(checker, transition)
        if pending is None:
            return

        checker.equal(
            "staking.user_stake",
            staked_amount(previous, address) + signed_amount,
            staked_amount(new, address),
        )
        checker.equal(
            "staking.total_stake",
            previous.dfire_staking.total_stake + signed_amount,
            new.dfire_staking.total_stake,
        )

        # Стейкинговый токен
        staking_address = new.addresses.dfire_staking
        checker.equal("dfire.staker_balance", -signed_amount, diff.token(DFIRE, address))
        checker.equal("dfire.staking_balance", signed_amount, diff.token(DFIRE, staking_address))
        checker.equal("dfire.supply_unchanged", 0, diff.supply(DFIRE))

        # Выплаты
        distribution = self.checks.distribution
        distribution.check_payout(
            checker, diff, "reward", SBD, address, ZERO_ADDRESS, staking_address, Payout(pending.reward, 0)
        )
        distribution.check_payout(
            checker,
            diff,
            "collateral",
            NATIVE,
            address,
            ZERO_ADDRESS,
            staking_address,
            Payout(pending.collateral, 0),
            user_offset=-transition.gas_cost,
        )

        # Полный unstake может удалить запись стейкера
        if staked_amount(new, address) > 0 or self.stake_direction >= 0:
            distribution.check_staking_user_settled(checker, new.dfire_staking, address)
        self.check_claim_event(checker, transition, pending)
        self.checks.check_step(checker, previous, new)

    def check_claim_event(self, checker: InvariantChecker, transition: Transition, pending: StakingPending) -> None:
        """Событие выплаты (только у claim)."""


class StakingStake(StakingAction):
    """Stake DFIRE."""

    action_type = "StakingStake"
    method = "stake"
    stake_direction = 1

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        amount = sample_amount(context.random, snapshot.dfire_token.balance_of(actor.address))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("actor holds no DFIRE")
        return Proposal.of({"amount": amount.record})


class StakingUnstake(StakingAction):
    """Unstake части стейка DFIRE."""

    action_type = "StakingUnstake"
    method = "unstake"
    stake_direction = -1

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        amount = sample_amount(context.random, staked_amount(snapshot, actor.address))
        if isinstance(amount, Absent):
            return Proposal.not_applicable("actor has no DFIRE stake")
        return Proposal.of({"amount": amount.record})


class StakingClaim(StakingAction):
    """Claim SBD и native наград без изменения стейка."""

    action_type = "StakingClaim"
    method = "claim"

    def propose(self, context: ActionContext, actor: Actor, snapshot: StateSnapshot) -> Proposal:
        if staked_amount(snapshot, actor.address) == 0:
            return Proposal.not_applicable("actor has no DFIRE stake")
        return Proposal.of({})

    def call_arguments(self, parameters: dict[str, Any]) -> tuple[list[Any], int]:
        return [], 0

    def check_claim_event(self, checker: InvariantChecker, transition: Transition, pending: StakingPending) -> None:
        self.check_event(
            checker,
            transition,
            "Claimed",
            account=transition.actor.address,
            reward=pending.reward,
            collateralReward=pending.collateral,
        )
