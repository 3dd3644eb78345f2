"""
Lookup — Явное представление наличия/отсутствия записи

Каждый keyed lookup в снапшоте возвращает либо Present(record), либо Absent(key).
Отсутствие записи никогда не подменяется нулевым значением по умолчанию:
вызывающий код обязан явно решить, что означает Absent в его инварианте.
"""

from dataclasses import dataclass
from typing import Generic, Mapping, TypeVar, Union

T = TypeVar("T")
K = TypeVar("K")


@dataclass(frozen=True)
class Present(Generic[T]):
    """Запись найдена."""

    record: T

    @property
    def is_present(self) -> bool:
        return True

    def get_or(self, default: T) -> T:
        return self.record


@dataclass(frozen=True)
class Absent:
    """Запись отсутствует (key сохраняется для диагностики)."""

    key: object

    @property
    def is_present(self) -> bool:
        return False

    def get_or(self, default: T) -> T:
        return default


Lookup = Union[Present[T], Absent]


def lookup(mapping: Mapping[K, T], key: K) -> "Lookup[T]":
    """
    Поиск записи в mapping.

    Args:
        mapping: Отображение id/address → record
        key: Ключ

    Returns:
        Present(record) если ключ есть, иначе Absent(key)
    """
    if key in mapping:
        return Present(mapping[key])
    return Absent(key)
