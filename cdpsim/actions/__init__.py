"""Actions — конкретные действия над компонентами SUT.

- stableBaseCDP: позиции, долг, ликвидация, redemption
- stabilityPool: stake / unstake / claim
- dfireStaking: stake / unstake / claim
- priceOracle: setPrice
"""

from typing import Optional

from cdpsim.engine.action import Action
from cdpsim.engine.cdp_checks import CdpChecks
from cdpsim.engine.interfaces import SutEndpoint

from .debt import Borrow, FeeTopup, Repay
from .liquidation import Liquidate, LiquidateSafe
from .positions import AddCollateral, CloseSafe, OpenSafe, WithdrawCollateral
from .price_oracle import SetPrice
from .redemption import Redeem
from .stability_pool import StabilityPoolClaim, StabilityPoolStake, StabilityPoolUnstake
from .staking import StakingClaim, StakingStake, StakingUnstake

# Реестр action_type → класс действия
ACTIONS: dict[str, type[Action]] = {
    action.action_type: action
    for action in (
        OpenSafe,
        AddCollateral,
        WithdrawCollateral,
        Borrow,
        Repay,
        CloseSafe,
        FeeTopup,
        Liquidate,
        LiquidateSafe,
        Redeem,
        StabilityPoolStake,
        StabilityPoolUnstake,
        StabilityPoolClaim,
        StakingStake,
        StakingUnstake,
        StakingClaim,
        SetPrice,
    )
}


def build_actions(endpoint: SutEndpoint, checks: Optional[CdpChecks] = None) -> dict[str, Action]:
    """Экземпляры всех действий над одним endpoint с общими моделями проверок."""
    checks = checks or CdpChecks()
    return {action_type: action_cls(endpoint, checks) for action_type, action_cls in ACTIONS.items()}


__all__ = [
    "ACTIONS",
    "build_actions",
    "OpenSafe",
    "AddCollateral",
    "WithdrawCollateral",
    "Borrow",
    "Repay",
    "CloseSafe",
    "FeeTopup",
    "Liquidate",
    "LiquidateSafe",
    "Redeem",
    "StabilityPoolStake",
    "StabilityPoolUnstake",
    "StabilityPoolClaim",
    "StakingStake",
    "StakingUnstake",
    "StakingClaim",
    "SetPrice",
]
