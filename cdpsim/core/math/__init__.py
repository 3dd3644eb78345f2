"""
Core math modules для cdpsim

Целочисленная fixed-point арифметика и модель ленивого начисления.
"""

# Fixed Point
from cdpsim.core.math.fixed_point import (
    FixedPointDomainError,
    bps_of,
    ceil_div,
    collateral_value,
    is_undercollateralized,
    max_borrowable,
    min_collateral_for_debt,
    mul_div,
    require_uint,
    scale_price,
    sub_uint,
)

# Accumulators
from cdpsim.core.math.accumulators import (
    AccumulatorRegression,
    PoolEpoch,
    SafeSettlement,
    ScalingUpdate,
    StabilityPoolPending,
    StakingPending,
    accrue,
    compound_scaling_factor,
    current_liquidation_snapshot,
    effective_stake,
    pending_share,
    resolve_epoch,
    settle_safe,
    settled_totals,
    stability_pool_pending,
    staking_pending,
)

__all__ = [
    # Fixed Point: Exceptions
    "FixedPointDomainError",
    # Fixed Point: Primitives
    "mul_div",
    "ceil_div",
    "bps_of",
    "sub_uint",
    "require_uint",
    # Fixed Point: Price & ratio
    "scale_price",
    "collateral_value",
    "max_borrowable",
    "min_collateral_for_debt",
    "is_undercollateralized",
    # Accumulators: Exceptions
    "AccumulatorRegression",
    # Accumulators: Types
    "SafeSettlement",
    "ScalingUpdate",
    "PoolEpoch",
    "StabilityPoolPending",
    "StakingPending",
    # Accumulators: Functions
    "accrue",
    "settle_safe",
    "settled_totals",
    "current_liquidation_snapshot",
    "effective_stake",
    "pending_share",
    "compound_scaling_factor",
    "resolve_epoch",
    "stability_pool_pending",
    "staking_pending",
]
