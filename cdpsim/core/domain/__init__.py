"""
Domain models and value objects.

Contains the snapshot entities of the system under test: Safe, CDPState,
RankedQueue, StabilityPoolState, StakingState, TokenLedger, StateSnapshot.
"""

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.ledger_state import (
    CDPState,
    ContractAddresses,
    PriceOracleState,
    ProtocolMode,
    TokenLedger,
)
from cdpsim.core.domain.lookup import Absent, Lookup, Present, lookup
from cdpsim.core.domain.position import LiquidationSnapshot, Safe
from cdpsim.core.domain.ranked_queue import QueueNode, RankedQueue
from cdpsim.core.domain.snapshot import SnapshotDiff, StateSnapshot
from cdpsim.core.domain.stability_pool import (
    RewardDistributionStatus,
    SbrClaimStatus,
    SbrRewardSnapshot,
    StabilityPoolState,
    StabilityPoolUser,
    StakeInfo,
    StakeResetSnapshot,
    StakingState,
)
from cdpsim.core.domain.units import (
    BASIS_POINTS_DIVISOR,
    GAS_COMPENSATION_MARKUP_PCT,
    NULL_ID,
    PRECISION,
    ZERO_ADDRESS,
    is_zero_address,
)

__all__ = [
    # Units module
    "PRECISION",
    "BASIS_POINTS_DIVISOR",
    "GAS_COMPENSATION_MARKUP_PCT",
    "NULL_ID",
    "ZERO_ADDRESS",
    "is_zero_address",
    # Lookup
    "Lookup",
    "Present",
    "Absent",
    "lookup",
    # Position model
    "Safe",
    "LiquidationSnapshot",
    # Ledger state
    "CDPState",
    "ProtocolMode",
    "TokenLedger",
    "PriceOracleState",
    "ContractAddresses",
    # Ranked queue
    "RankedQueue",
    "QueueNode",
    # Stability pool / staking
    "StabilityPoolState",
    "StabilityPoolUser",
    "SbrRewardSnapshot",
    "StakeResetSnapshot",
    "RewardDistributionStatus",
    "SbrClaimStatus",
    "StakingState",
    "StakeInfo",
    # Snapshot
    "StateSnapshot",
    "SnapshotDiff",
    # Actor
    "Actor",
]
