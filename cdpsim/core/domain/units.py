"""
Units — Фиксированные единицы протокола

Единственный источник констант масштаба для всех расчётов harness:
- PRECISION: масштаб per-unit аккумуляторов и цены оракула (10**18)
- BASIS_POINTS_DIVISOR: делитель для ставок в basis points
- Sentinel значения (NULL_ID, ZERO_ADDRESS)

ЗАПРЕЩЕНО использовать "магические" 10**18 / 10000 вне этого модуля.
"""

from typing import Final


# =============================================================================
# МАСШТАБЫ
# =============================================================================

# Масштаб fixed-point аккумуляторов (debt/collateral per unit collateral,
# reward/collateral per token) и цены оракула
PRECISION: Final[int] = 10**18

# Делитель для ставок, заданных в basis points (1 bps = 0.01%)
BASIS_POINTS_DIVISOR: Final[int] = 10_000

# Надбавка к base fee при расчёте gas compensation ликвидатора (%)
GAS_COMPENSATION_MARKUP_PCT: Final[int] = 10


# =============================================================================
# SENTINELS
# =============================================================================

# Пустая ссылка в ranked queue (head/tail/prev/next)
NULL_ID: Final[int] = 0

# Нулевой адрес (frontend не задан, владелец сброшен)
ZERO_ADDRESS: Final[str] = "0x" + "0" * 40


def is_zero_address(address: str) -> bool:
    """True если address — нулевой адрес (без учёта регистра)."""
    return address.lower() == ZERO_ADDRESS
