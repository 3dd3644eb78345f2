"""
Accumulators — Модель ленивого начисления через глобальные аккумуляторы

Per-account величины (перераспределённый долг и залог позиции, награды
стейкера) не обновляются на каждое глобальное событие. Вместо этого растёт
глобальный кумулятивный аккумулятор, а значение аккаунта досчитывается
при следующем касании:

    value_new = value_old + held × (global_new − snapshot) // PRECISION

После касания snapshot аккаунта обязан совпасть с текущим глобальным
значением (settle-контракт). Если глобальный аккумулятор не двигался,
неявного settlement не ожидается.

Stability pool дополнительно масштабирует стейки мультипликативно:

    effective_stake = stake × factor × P // user_factor // P
    pending         = stake × (global − snapshot) × P // user_factor // P
    factor_new      = factor × (total_raw − absorbed) // total_raw

При падении factor ниже minimum_scaling_factor пул делает reset
(factor = PRECISION, stake_reset_count += 1), а итоги эпохи сохраняются
в stake_reset_snapshots[count].
"""

from typing import NamedTuple

from cdpsim.core.domain.ledger_state import CDPState
from cdpsim.core.domain.lookup import Absent, Lookup, Present
from cdpsim.core.domain.position import LiquidationSnapshot, Safe
from cdpsim.core.domain.stability_pool import (
    SbrClaimStatus,
    SbrRewardSnapshot,
    StabilityPoolState,
    StabilityPoolUser,
    StakeInfo,
    StakingState,
)
from cdpsim.core.domain.units import PRECISION
from cdpsim.core.math.fixed_point import FixedPointDomainError, mul_div, require_uint


# =============================================================================
# EXCEPTIONS
# =============================================================================


class AccumulatorRegression(ArithmeticError):
    """
    Глобальный аккумулятор меньше snapshot аккаунта.

    Аккумуляторы монотонны, поэтому такое наблюдение означает дефект SUT
    (или несогласованный снапшот). В ходе verify конвертируется в нарушение.
    """

    pass


# =============================================================================
# ACCRUAL
# =============================================================================


def accrue(held: int, account_snapshot: int, global_value: int) -> int:
    """
    Ленивое начисление: held * (global - snapshot) // PRECISION.

    Args:
        held: Удерживаемое количество (залог, стейк)
        account_snapshot: Значение аккумулятора при последнем касании
        global_value: Текущее значение глобального аккумулятора

    Returns:
        Начисленная с последнего касания доля

    Raises:
        AccumulatorRegression: если global_value < account_snapshot

    Examples:
        >>> accrue(100, 0, 5 * 10**17)
        50
        >>> accrue(100, 10**18, 10**18)
        0
    """
    require_uint(held, "held")
    require_uint(account_snapshot, "account_snapshot")
    require_uint(global_value, "global_value")
    if global_value < account_snapshot:
        raise AccumulatorRegression(
            f"Global accumulator {global_value} is below account snapshot {account_snapshot}"
        )
    return held * (global_value - account_snapshot) // PRECISION


# =============================================================================
# SAFE SETTLEMENT
# =============================================================================


class SafeSettlement(NamedTuple):
    """Ожидаемый результат settlement позиции при касании."""

    debt_increase: int
    collateral_increase: int
    settled_debt: int
    settled_collateral: int
    accumulators_moved: bool


def settle_safe(safe: Safe, snapshot: LiquidationSnapshot, cdp: CDPState) -> SafeSettlement:
    """
    Предсказание settlement позиции против текущих глобальных аккумуляторов.

    Обе доли считаются от залога до касания:
        debt_increase       = collateral * (cum_debt - snap_debt) // P
        collateral_increase = collateral * (cum_coll - snap_coll) // P

    Args:
        safe: Запись позиции из предыдущего снапшота
        snapshot: Её LiquidationSnapshot из предыдущего снапшота
        cdp: CDPState, против которого выполняется settlement

    Returns:
        SafeSettlement с приращениями и settled значениями
    """
    debt_increase = accrue(
        safe.collateral_amount,
        snapshot.debt_per_collateral_snapshot,
        cdp.cumulative_debt_per_unit_collateral,
    )
    collateral_increase = accrue(
        safe.collateral_amount,
        snapshot.collateral_per_collateral_snapshot,
        cdp.cumulative_collateral_per_unit_collateral,
    )
    moved = (
        snapshot.debt_per_collateral_snapshot != cdp.cumulative_debt_per_unit_collateral
        or snapshot.collateral_per_collateral_snapshot != cdp.cumulative_collateral_per_unit_collateral
    )
    return SafeSettlement(
        debt_increase=debt_increase,
        collateral_increase=collateral_increase,
        settled_debt=safe.borrowed_amount + debt_increase,
        settled_collateral=safe.collateral_amount + collateral_increase,
        accumulators_moved=moved,
    )


def settled_totals(cdp: CDPState, settlement: SafeSettlement) -> tuple[int, int]:
    """
    Итоги CDP после settlement позиции.

    Returns:
        (total_collateral, total_debt) с учётом приращений settlement
    """
    return (
        cdp.total_collateral + settlement.collateral_increase,
        cdp.total_debt + settlement.debt_increase,
    )


def current_liquidation_snapshot(cdp: CDPState) -> LiquidationSnapshot:
    """Snapshot, который обязана хранить позиция после касания."""
    return LiquidationSnapshot(
        debt_per_collateral_snapshot=cdp.cumulative_debt_per_unit_collateral,
        collateral_per_collateral_snapshot=cdp.cumulative_collateral_per_unit_collateral,
    )


# =============================================================================
# STAKE SCALING
# =============================================================================


def effective_stake(stake: int, scaling_factor: int, user_scaling_factor: int) -> int:
    """
    Стейк после поглощений долга с момента последнего касания.

    stake * scaling_factor * P // user_scaling_factor // P

    Raises:
        FixedPointDomainError: если user_scaling_factor == 0
    """
    require_uint(stake, "stake")
    if user_scaling_factor == 0:
        raise FixedPointDomainError("User scaling factor is zero")
    return mul_div(stake, scaling_factor * PRECISION, user_scaling_factor) // PRECISION


def pending_share(stake: int, account_snapshot: int, global_value: int, user_scaling_factor: int) -> int:
    """
    Отложенная награда стейкера stability pool.

    stake * (global - snapshot) * P // user_scaling_factor // P

    Raises:
        AccumulatorRegression: если global_value < account_snapshot
        FixedPointDomainError: если user_scaling_factor == 0
    """
    require_uint(stake, "stake")
    if global_value < account_snapshot:
        raise AccumulatorRegression(
            f"Pool total {global_value} is below user snapshot {account_snapshot}"
        )
    if user_scaling_factor == 0:
        raise FixedPointDomainError("User scaling factor is zero")
    return stake * (global_value - account_snapshot) * PRECISION // user_scaling_factor // PRECISION


class ScalingUpdate(NamedTuple):
    """Новый scaling factor пула после поглощения долга."""

    scaling_factor: int
    reset: bool


def compound_scaling_factor(
    scaling_factor: int,
    total_staked_raw: int,
    absorbed: int,
    minimum_scaling_factor: int = 0,
) -> ScalingUpdate:
    """
    Мультипликативное компаундирование scaling factor.

    factor * (total_raw - absorbed) // total_raw; если результат ниже
    minimum_scaling_factor, пул сбрасывает factor в PRECISION.

    Raises:
        FixedPointDomainError: если total_staked_raw == 0 или absorbed > total_staked_raw

    Examples:
        >>> compound_scaling_factor(10**18, 1_000, 250)
        ScalingUpdate(scaling_factor=750000000000000000, reset=False)
    """
    require_uint(absorbed, "absorbed")
    if total_staked_raw == 0:
        raise FixedPointDomainError("Cannot compound scaling factor over an empty pool")
    if absorbed > total_staked_raw:
        raise FixedPointDomainError(f"Absorbed {absorbed} exceeds total staked {total_staked_raw}")

    compounded = mul_div(scaling_factor, total_staked_raw - absorbed, total_staked_raw)
    if compounded < minimum_scaling_factor:
        return ScalingUpdate(scaling_factor=PRECISION, reset=True)
    return ScalingUpdate(scaling_factor=compounded, reset=False)


# =============================================================================
# STABILITY POOL PENDING
# =============================================================================


class PoolEpoch(NamedTuple):
    """Итоги пула, против которых считается pending пользователя."""

    scaling_factor: int
    total_reward_per_token: int
    total_collateral_per_token: int
    total_sbr_reward_per_token: int


def resolve_epoch(pool: StabilityPoolState, user: StabilityPoolUser) -> Lookup[PoolEpoch]:
    """
    Эпоха, в которой пользователь последний раз касался пула.

    Если reset count пользователя совпадает с пулом, это текущие итоги.
    Иначе итоги берутся из stake_reset_snapshots[user.stake_reset_count];
    отсутствие такой записи возвращается как Absent.
    """
    if user.stake_reset_count == pool.stake_reset_count:
        return Present(
            PoolEpoch(
                scaling_factor=pool.stake_scaling_factor,
                total_reward_per_token=pool.total_reward_per_token,
                total_collateral_per_token=pool.total_collateral_per_token,
                total_sbr_reward_per_token=pool.total_sbr_reward_per_token,
            )
        )

    frozen = pool.reset_snapshot(user.stake_reset_count)
    if isinstance(frozen, Absent):
        return frozen
    record = frozen.record
    return Present(
        PoolEpoch(
            scaling_factor=record.scaling_factor,
            total_reward_per_token=record.total_reward_per_token,
            total_collateral_per_token=record.total_collateral_per_token,
            total_sbr_reward_per_token=record.total_sbr_reward_per_token,
        )
    )


class StabilityPoolPending(NamedTuple):
    """Ожидаемые выплаты стейкеру (до комиссии frontend)."""

    effective_stake: int
    reward: int
    collateral: int
    sbr_reward: int


def stability_pool_pending(
    epoch: PoolEpoch,
    user: StabilityPoolUser,
    sbr_snapshot: SbrRewardSnapshot,
) -> StabilityPoolPending:
    """
    Pending выплаты пользователя stability pool.

    Используются итоги пула после действия (epoch) и snapshot пользователя
    до действия. Вторичная награда не начисляется, если уже CLAIMED.
    """
    user_factor = user.cumulative_product_scaling_factor
    sbr_reward = 0
    if sbr_snapshot.status == SbrClaimStatus.NOT_CLAIMED:
        sbr_reward = pending_share(
            user.stake, sbr_snapshot.reward_snapshot, epoch.total_sbr_reward_per_token, user_factor
        )
    return StabilityPoolPending(
        effective_stake=effective_stake(user.stake, epoch.scaling_factor, user_factor),
        reward=pending_share(user.stake, user.reward_snapshot, epoch.total_reward_per_token, user_factor),
        collateral=pending_share(
            user.stake, user.collateral_snapshot, epoch.total_collateral_per_token, user_factor
        ),
        sbr_reward=sbr_reward,
    )


# =============================================================================
# SECONDARY TOKEN STAKING PENDING
# =============================================================================


class StakingPending(NamedTuple):
    """Ожидаемые выплаты стейкеру вторичного токена."""

    reward: int
    collateral: int


def staking_pending(staking: StakingState, info: StakeInfo) -> StakingPending:
    """Pending награды staking: accrue по обоим аккумуляторам без scaling."""
    return StakingPending(
        reward=accrue(info.stake, info.reward_snapshot, staking.total_reward_per_token),
        collateral=accrue(info.stake, info.collateral_snapshot, staking.total_collateral_per_token),
    )
