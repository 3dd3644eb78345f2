"""
StabilityPool — Модели stability pool и staking вторичного токена

Stability pool поглощает долг ликвидированных позиций в обмен на
пропорциональные награды стейкерам:
- SBD reward (total_reward_per_token)
- collateral (total_collateral_per_token)
- вторичная награда SBR (total_sbr_reward_per_token), распределяется в окне
  NOT_STARTED → STARTED → ENDED

Стейк пользователя масштабируется мультипликативно: при каждом поглощении
долга stake_scaling_factor умножается на (1 - absorbed / total_staked_raw).
"""

from enum import Enum

from pydantic import BaseModel, Field

from .lookup import Lookup, lookup
from .units import PRECISION


# =============================================================================
# ENUMS
# =============================================================================


class RewardDistributionStatus(str, Enum):
    """
    Статус распределения вторичной награды.

    Допустимые переходы: NOT_STARTED → STARTED → ENDED. ENDED терминален.
    """

    NOT_STARTED = "NOT_STARTED"
    STARTED = "STARTED"
    ENDED = "ENDED"


class SbrClaimStatus(str, Enum):
    """Статус получения вторичной награды пользователем."""

    NOT_CLAIMED = "NOT_CLAIMED"
    CLAIMED = "CLAIMED"


# =============================================================================
# USER RECORDS
# =============================================================================


class StabilityPoolUser(BaseModel):
    """
    Запись стейкера stability pool.

    После любого claim все snapshot поля равны текущим итогам пула.
    """

    stake: int = Field(..., ge=0)
    reward_snapshot: int = Field(default=0, ge=0)
    collateral_snapshot: int = Field(default=0, ge=0)
    cumulative_product_scaling_factor: int = Field(default=PRECISION, ge=0)
    stake_reset_count: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class SbrRewardSnapshot(BaseModel):
    """Снапшот вторичной награды пользователя."""

    reward_snapshot: int = Field(default=0, ge=0)
    status: SbrClaimStatus = Field(default=SbrClaimStatus.NOT_CLAIMED)

    model_config = {"frozen": True}


class StakeResetSnapshot(BaseModel):
    """Итоги пула, зафиксированные в момент reset стейков."""

    scaling_factor: int = Field(..., ge=0)
    total_reward_per_token: int = Field(..., ge=0)
    total_collateral_per_token: int = Field(..., ge=0)
    total_sbr_reward_per_token: int = Field(..., ge=0)

    model_config = {"frozen": True}


# =============================================================================
# POOL STATE
# =============================================================================


class StabilityPoolState(BaseModel):
    """Глобальное состояние stability pool."""

    total_staked_raw: int = Field(..., ge=0)
    stake_scaling_factor: int = Field(default=PRECISION, gt=0)
    stake_reset_count: int = Field(default=0, ge=0)
    minimum_scaling_factor: int = Field(default=PRECISION // 10**9, ge=0)

    total_reward_per_token: int = Field(default=0, ge=0)
    total_collateral_per_token: int = Field(default=0, ge=0)
    total_sbr_reward_per_token: int = Field(default=0, ge=0)

    sbr_reward_distribution_status: RewardDistributionStatus = Field(
        default=RewardDistributionStatus.NOT_STARTED
    )
    reward_sender_active: bool = Field(default=False)

    users: dict[str, StabilityPoolUser] = Field(default_factory=dict)
    sbr_reward_snapshots: dict[str, SbrRewardSnapshot] = Field(default_factory=dict)
    stake_reset_snapshots: dict[int, StakeResetSnapshot] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def user(self, address: str) -> Lookup[StabilityPoolUser]:
        return lookup(self.users, address)

    def sbr_snapshot(self, address: str) -> Lookup[SbrRewardSnapshot]:
        return lookup(self.sbr_reward_snapshots, address)

    def reset_snapshot(self, reset_count: int) -> Lookup[StakeResetSnapshot]:
        return lookup(self.stake_reset_snapshots, reset_count)


# =============================================================================
# SECONDARY TOKEN STAKING
# =============================================================================


class StakeInfo(BaseModel):
    """Запись стейкера вторичного токена."""

    stake: int = Field(..., ge=0)
    reward_snapshot: int = Field(default=0, ge=0)
    collateral_snapshot: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class StakingState(BaseModel):
    """Состояние staking контракта вторичного токена."""

    total_stake: int = Field(..., ge=0)
    total_reward_per_token: int = Field(default=0, ge=0)
    total_collateral_per_token: int = Field(default=0, ge=0)
    users: dict[str, StakeInfo] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def user(self, address: str) -> Lookup[StakeInfo]:
        return lookup(self.users, address)
