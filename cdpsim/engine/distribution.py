"""
Distribution — Проверки пропорционального распределения наград

Для каждого распределяемого актива claim:
    fee        = pending * fee_bps // BASIS_POINTS_DIVISOR
    user gain  = pending - fee
    frontend   = fee
    источник (пул или mint supply) движется ровно на -(user gain + fee)

После claim snapshots пользователя равны текущим итогам пула. Если
распределение вторичной награды ENDED, статус пользователя — CLAIMED.
"""

from typing import NamedTuple

from cdpsim.core.domain.snapshot import SnapshotDiff
from cdpsim.core.domain.stability_pool import (
    RewardDistributionStatus,
    SbrClaimStatus,
    StabilityPoolState,
    StakingState,
)
from cdpsim.core.domain.units import is_zero_address
from cdpsim.core.math.fixed_point import bps_of

from .state_machines import DistributionStatusMachine
from .verdict import InvariantChecker

# Имя native ledger в SnapshotDiff-дельтах
NATIVE = "native"


class Payout(NamedTuple):
    """Выплата одного актива: pending до комиссии и комиссия frontend."""

    pending: int
    fee: int

    @property
    def net(self) -> int:
        return self.pending - self.fee


def split_payout(pending: int, fee_bps: int) -> Payout:
    """Комиссия frontend с pending (truncation)."""
    return Payout(pending=pending, fee=bps_of(pending, fee_bps))


def ledger_delta(diff: SnapshotDiff, ledger: str, address: str) -> int:
    """Дельта баланса address в native или token ledger."""
    if ledger == NATIVE:
        return diff.native(address)
    return diff.token(ledger, address)


class ProportionalDistributionModel:
    """Проверки выплат claim и settlement snapshots стейкеров."""

    def __init__(self):
        self.status_machine = DistributionStatusMachine()

    def check_payout(
        self,
        checker: InvariantChecker,
        diff: SnapshotDiff,
        asset: str,
        ledger: str,
        user: str,
        frontend: str,
        source: str,
        payout: Payout,
        user_offset: int = 0,
        source_offset: int = 0,
        minted: bool = False,
    ) -> None:
        """
        Проверка выплаты одного актива.

        Args:
            asset: Имя актива для диагностики (reward, collateral, sbr_reward)
            ledger: NATIVE или имя token ledger снапшота
            user: Получатель
            frontend: Получатель комиссии (нулевой адрес — без комиссии)
            source: Адрес, из которого выплачивается актив (игнорируется при minted)
            payout: Ожидаемая выплата
            user_offset: Прочие движения баланса user в том же шаге (газ, стейк)
            source_offset: Прочие движения баланса source в том же шаге
            minted: Актив минтится (источник — total_supply)
        """
        user_delta = ledger_delta(diff, ledger, user)
        checker.equal(f"{asset}.user_gain", payout.net + user_offset, user_delta)

        frontend_delta = 0
        if is_zero_address(frontend):
            checker.equal(f"{asset}.no_frontend_fee", 0, payout.fee)
        else:
            frontend_delta = ledger_delta(diff, ledger, frontend)
            checker.equal(f"{asset}.frontend_fee", payout.fee, frontend_delta)

        if minted:
            checker.equal(f"{asset}.minted_supply", payout.pending, diff.supply(ledger))
            return

        source_delta = ledger_delta(diff, ledger, source)
        checker.equal(f"{asset}.source_outflow", source_offset - payout.pending, source_delta)
        checker.equal(
            f"{asset}.conservation",
            0,
            (user_delta - user_offset) + frontend_delta + (source_delta - source_offset),
        )

    def check_pool_user_settled(
        self,
        checker: InvariantChecker,
        pool: StabilityPoolState,
        address: str,
    ) -> None:
        """Snapshots пользователя stability pool равны текущим итогам пула."""
        user = checker.present("stability_pool.user_present", pool.user(address))
        if user is not None:
            checker.equal("stability_pool.reward_snapshot_settled", pool.total_reward_per_token, user.reward_snapshot)
            checker.equal(
                "stability_pool.collateral_snapshot_settled", pool.total_collateral_per_token, user.collateral_snapshot
            )
            checker.equal(
                "stability_pool.scaling_factor_settled",
                pool.stake_scaling_factor,
                user.cumulative_product_scaling_factor,
            )
            checker.equal("stability_pool.reset_count_settled", pool.stake_reset_count, user.stake_reset_count)

        sbr = checker.present("stability_pool.sbr_snapshot_present", pool.sbr_snapshot(address))
        if sbr is None:
            return
        if pool.sbr_reward_distribution_status == RewardDistributionStatus.ENDED:
            checker.equal("stability_pool.sbr_claimed_after_end", SbrClaimStatus.CLAIMED, sbr.status)
        else:
            checker.equal("stability_pool.sbr_snapshot_settled", pool.total_sbr_reward_per_token, sbr.reward_snapshot)

    def check_staking_user_settled(self, checker: InvariantChecker, staking: StakingState, address: str) -> None:
        """Snapshots стейкера вторичного токена равны текущим итогам."""
        info = checker.present("staking.user_present", staking.user(address))
        if info is None:
            return
        checker.equal("staking.reward_snapshot_settled", staking.total_reward_per_token, info.reward_snapshot)
        checker.equal("staking.collateral_snapshot_settled", staking.total_collateral_per_token, info.collateral_snapshot)

    def check_status_transition(
        self,
        checker: InvariantChecker,
        previous_status: RewardDistributionStatus,
        new_status: RewardDistributionStatus,
        qualifying_event: bool = False,
    ) -> None:
        result = self.status_machine.evaluate(previous_status, new_status, qualifying_event)
        checker.holds(
            "stability_pool.distribution_status_transition",
            result.allowed,
            expected="legal transition",
            observed=f"{previous_status.value} -> {new_status.value}",
            message=result.details,
        )
