"""
Fixed Point — Целочисленная арифметика протокола

Все суммы протокола — беззнаковые целые (uint256-подобные), все отношения
выражены в fixed-point с масштабом PRECISION или в basis points.
Python int не переполняется, поэтому контролируется только domain:
- отрицательное значение там, где ожидается uint → FixedPointDomainError
- деление на ноль → FixedPointDomainError

Округление: только truncation (floor для неотрицательных), как в SUT.
Единственное исключение — ceil_div для консервативных границ в propose.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Никаких float в расчётах ожидаемых значений
2. Порядок операций совпадает с порядком SUT (сначала умножение, затем деление)
"""

from cdpsim.core.domain.units import BASIS_POINTS_DIVISOR, PRECISION


# =============================================================================
# EXCEPTIONS
# =============================================================================


class FixedPointDomainError(ArithmeticError):
    """
    Нарушение domain fixed-point операции.

    Возникает при отрицательном uint или нулевом делителе. В ходе verify
    конвертируется в нарушение инварианта шага.
    """

    pass


# =============================================================================
# PRIMITIVES
# =============================================================================


def require_uint(value: int, name: str = "value") -> int:
    """
    Проверка, что value — неотрицательное целое.

    Raises:
        FixedPointDomainError: если value не int или value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise FixedPointDomainError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise FixedPointDomainError(f"{name} must be non-negative, got {value}")
    return value


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    a * b // denominator с truncation.

    Args:
        a: Множитель (uint)
        b: Множитель (uint)
        denominator: Делитель (> 0)

    Returns:
        floor(a * b / denominator)

    Raises:
        FixedPointDomainError: при отрицательных аргументах или denominator == 0

    Examples:
        >>> mul_div(100, 5 * 10**17, 10**18)
        50
        >>> mul_div(7, 1, 2)
        3
    """
    require_uint(a, "a")
    require_uint(b, "b")
    require_uint(denominator, "denominator")
    if denominator == 0:
        raise FixedPointDomainError("Division by zero in mul_div")
    return a * b // denominator


def ceil_div(a: int, b: int) -> int:
    """Деление с округлением вверх (для консервативных границ)."""
    require_uint(a, "a")
    require_uint(b, "b")
    if b == 0:
        raise FixedPointDomainError("Division by zero in ceil_div")
    return -(-a // b)


def bps_of(amount: int, rate_bps: int) -> int:
    """
    Доля amount в basis points: amount * rate_bps // BASIS_POINTS_DIVISOR.

    Examples:
        >>> bps_of(1_000, 250)
        25
    """
    return mul_div(amount, rate_bps, BASIS_POINTS_DIVISOR)


def sub_uint(a: int, b: int, name: str = "difference") -> int:
    """a - b с проверкой, что результат остаётся uint."""
    require_uint(a, "a")
    require_uint(b, "b")
    if b > a:
        raise FixedPointDomainError(f"{name} underflow: {a} - {b}")
    return a - b


# =============================================================================
# PRICE & COLLATERAL RATIO
# =============================================================================


def scale_price(raw_price: int) -> int:
    """Цена оракула в fixed-point: raw_price * PRECISION."""
    return require_uint(raw_price, "raw_price") * PRECISION


def collateral_value(collateral: int, price: int) -> int:
    """Стоимость залога в единицах долга: collateral * price // PRECISION."""
    return mul_div(collateral, price, PRECISION)


def max_borrowable(collateral: int, price: int, liquidation_ratio_bps: int) -> int:
    """
    Максимальный долг позиции при заданной цене и ratio.

    value * BPS // ratio_bps, т.е. collateral_value / ratio.
    """
    return mul_div(collateral_value(collateral, price), BASIS_POINTS_DIVISOR, liquidation_ratio_bps)


def min_collateral_for_debt(debt: int, price: int, liquidation_ratio_bps: int) -> int:
    """
    Минимальный залог, удерживающий debt выше ratio (округление вверх).

    ceil(debt * ratio_bps * PRECISION / (price * BPS))
    """
    require_uint(debt, "debt")
    require_uint(liquidation_ratio_bps, "liquidation_ratio_bps")
    return ceil_div(debt * liquidation_ratio_bps * PRECISION, require_uint(price, "price") * BASIS_POINTS_DIVISOR)


def is_undercollateralized(collateral: int, debt: int, price: int, liquidation_ratio_bps: int) -> bool:
    """
    True если позиция ниже liquidation ratio.

    collateral_value < debt * ratio_bps // BPS
    """
    if debt == 0:
        return False
    return collateral_value(collateral, price) < mul_div(debt, liquidation_ratio_bps, BASIS_POINTS_DIVISOR)
