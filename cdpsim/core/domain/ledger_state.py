"""
LedgerState — Глобальное состояние CDP и токенов

Immutable Pydantic модели для:
- CDPState (итоги, глобальные аккумуляторы, режим протокола, таблица позиций)
- TokenLedger (fungible token: supply, burned, балансы)
- PriceOracleState
- ContractAddresses (адреса компонентов SUT)
"""

from enum import Enum

from pydantic import BaseModel, Field

from .lookup import Lookup, lookup
from .position import LiquidationSnapshot, Safe


# =============================================================================
# ENUMS
# =============================================================================


class ProtocolMode(str, Enum):
    """
    Режим работы протокола.

    Монотонный: BOOTSTRAP → NORMAL (после превышения порога долга), без возврата.
    """

    BOOTSTRAP = "BOOTSTRAP"
    NORMAL = "NORMAL"


# =============================================================================
# CDP STATE
# =============================================================================


class CDPState(BaseModel):
    """
    Глобальное состояние CDP (GlobalLedgerState).

    Итоги total_collateral / total_debt учитывают только settled значения:
    отложенные доли позиций добавляются при следующем касании позиции.
    """

    total_collateral: int = Field(..., ge=0, description="Суммарный залог")
    total_debt: int = Field(..., ge=0, description="Суммарный долг")
    cumulative_debt_per_unit_collateral: int = Field(
        ..., ge=0, description="Глобальный аккумулятор перераспределённого долга"
    )
    cumulative_collateral_per_unit_collateral: int = Field(
        ..., ge=0, description="Глобальный аккумулятор перераспределённого залога"
    )
    protocol_mode: ProtocolMode = Field(default=ProtocolMode.BOOTSTRAP)
    bootstrap_mode_debt_threshold: int = Field(default=0, ge=0)

    # Параметры протокола
    liquidation_ratio_bps: int = Field(default=11_000, gt=0, description="Минимальный collateral ratio (bps)")
    redemption_liquidation_fee_bps: int = Field(default=0, ge=0)
    extra_gas_compensation: int = Field(default=0, ge=0)

    # Таблицы позиций
    safes: dict[int, Safe] = Field(default_factory=dict)
    owners: dict[int, str] = Field(default_factory=dict)
    liquidation_snapshots: dict[int, LiquidationSnapshot] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def safe(self, safe_id: int) -> Lookup[Safe]:
        return lookup(self.safes, safe_id)

    def owner_of(self, safe_id: int) -> Lookup[str]:
        return lookup(self.owners, safe_id)

    def liquidation_snapshot(self, safe_id: int) -> Lookup[LiquidationSnapshot]:
        return lookup(self.liquidation_snapshots, safe_id)

    def safes_owned_by(self, address: str) -> list[int]:
        """Открытые позиции адреса (по возрастанию id)."""
        return sorted(
            safe_id
            for safe_id, owner in self.owners.items()
            if owner == address and safe_id in self.safes and self.safes[safe_id].is_open
        )

    def open_safe_ids(self) -> list[int]:
        return sorted(safe_id for safe_id, safe in self.safes.items() if safe.is_open)


# =============================================================================
# TOKENS / ORACLE / ADDRESSES
# =============================================================================


class TokenLedger(BaseModel):
    """Fungible token ledger."""

    symbol: str = Field(..., min_length=1)
    decimals: int = Field(default=18, ge=0)
    total_supply: int = Field(..., ge=0)
    total_burned: int = Field(default=0, ge=0)
    balances: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def balance_of(self, address: str) -> int:
        # Нулевой баланс токена и отсутствие записи эквивалентны (ERC20 mapping)
        return self.balances.get(address, 0)


class PriceOracleState(BaseModel):
    """Состояние ценового оракула (price с PRECISION знаками)."""

    price: int = Field(..., gt=0)
    owner: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class ContractAddresses(BaseModel):
    """Адреса компонентов SUT."""

    stable_base_cdp: str
    stability_pool: str
    dfire_staking: str
    sbd_token: str
    dfire_token: str
    price_oracle: str

    model_config = {"frozen": True}

    def collateral_holders(self) -> tuple[str, ...]:
        """Контракты, держащие native залог; их балансы обязательны в снапшоте."""
        return (self.stable_base_cdp, self.stability_pool, self.dfire_staking)

    def protocol_side(self) -> tuple[str, ...]:
        """Адреса, получающие протокольные комиссии в SBD."""
        return (self.stable_base_cdp, self.stability_pool, self.dfire_staking)
