"""
Safe — Модель позиции (collateral/debt аккаунт)

Immutable Pydantic модели, представляющие одну позицию CDP и её
снапшот глобальных аккумуляторов на момент последнего касания.

Позиция с collateral_amount == 0 считается закрытой.
"""

from pydantic import BaseModel, Field

from .units import PRECISION


# =============================================================================
# SAFE
# =============================================================================


class Safe(BaseModel):
    """
    Позиция ("safe").

    Immutable модель (frozen=True). Все изменения позиции в SUT
    наблюдаются только через новый снапшот.
    """

    safe_id: int = Field(..., gt=0, description="Идентификатор позиции (уникален пока открыта)")
    collateral_amount: int = Field(..., ge=0, description="Залог (native units)")
    borrowed_amount: int = Field(..., ge=0, description="Текущий долг (SBD units)")
    weight: int = Field(default=0, ge=0, description="Ключ redemption queue (накопленная shielding/topup ставка)")
    total_borrowed_amount: int = Field(default=0, ge=0, description="Суммарный principal за всё время")
    fee_paid: int = Field(default=0, ge=0, description="Накопленные комиссии (монотонно не убывает)")

    model_config = {"frozen": True}

    @property
    def is_open(self) -> bool:
        return self.collateral_amount > 0

    @property
    def has_debt(self) -> bool:
        return self.borrowed_amount > 0

    def liquidation_key(self) -> int:
        """
        Ключ liquidation queue: borrowed * PRECISION // collateral.

        Returns:
            Debt-to-collateral ratio в fixed-point (0 для пустой позиции)
        """
        if self.collateral_amount == 0:
            return 0
        return self.borrowed_amount * PRECISION // self.collateral_amount


class LiquidationSnapshot(BaseModel):
    """
    Снапшот глобальных аккумуляторов, сохранённый при последнем касании позиции.

    После любого касания оба поля обязаны совпадать с текущими глобальными
    значениями CDPState (settle-контракт).
    """

    debt_per_collateral_snapshot: int = Field(..., ge=0)
    collateral_per_collateral_snapshot: int = Field(..., ge=0)

    model_config = {"frozen": True}
