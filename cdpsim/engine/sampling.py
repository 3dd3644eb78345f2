"""
Sampling — Выбор параметров из RandomSource

Все помощники потребляют значения только через RandomSource.next(),
поэтому последовательность решений полностью определяется seed.

Rejection sampling всегда ограничен max_attempts: исчерпание лимита
возвращает Absent, а не зацикливается.
"""

from typing import Callable, Sequence, TypeVar

from cdpsim.core.domain.lookup import Absent, Lookup, Present

from .interfaces import RandomSource
from .rng import WORD_BITS

T = TypeVar("T")


def uniform_int(source: RandomSource, low: int, high: int) -> int:
    """
    Равномерное целое в [low, high] (включительно).

    Для диапазонов шире 2**64 склеивается несколько значений next().
    Смещение modulo допустимо: нужна воспроизводимость, а не идеальная
    равномерность.

    Raises:
        ValueError: если high < low
    """
    if high < low:
        raise ValueError(f"Empty range [{low}, {high}]")
    span = high - low + 1
    if span == 1:
        return low

    words = max(1, -(-(span - 1).bit_length() // WORD_BITS))
    value = 0
    for _ in range(words):
        value = (value << WORD_BITS) | source.next()
    return low + value % span


def choose(source: RandomSource, items: Sequence[T]) -> Lookup[T]:
    """Случайный элемент последовательности; Absent для пустой."""
    if not items:
        return Absent("empty sequence")
    return Present(items[uniform_int(source, 0, len(items) - 1)])


def coin(source: RandomSource) -> bool:
    """Честная монета (одно значение next())."""
    return source.next() % 2 == 1


def rejection_sample(
    draw: Callable[[], T],
    accept: Callable[[T], bool],
    max_attempts: int,
) -> Lookup[T]:
    """
    Повторять draw() пока accept() не выполнится, не более max_attempts раз.

    Args:
        draw: Генератор кандидата (потребляет random source)
        accept: Структурное предусловие
        max_attempts: Retry cap

    Returns:
        Present(candidate) или Absent(max_attempts) при исчерпании лимита
    """
    for _ in range(max_attempts):
        candidate = draw()
        if accept(candidate):
            return Present(candidate)
    return Absent(max_attempts)


def sample_amount(source: RandomSource, upper: int, lower: int = 1) -> Lookup[int]:
    """Сумма в [lower, upper]; Absent если диапазон пуст."""
    if upper < lower:
        return Absent((lower, upper))
    return Present(uniform_int(source, lower, upper))
