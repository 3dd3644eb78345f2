"""
Тесты PseudoRandomSource и помощников выбора параметров

Проверяет:
1. Воспроизводимость последовательности по seed
2. Курсор draws продвигается ровно на одно значение за вызов
3. Диапазоны uniform_int / sample_amount
4. Ограниченный rejection sampling
"""

import pytest

from cdpsim.core.domain.lookup import Absent, Present
from cdpsim.engine import PseudoRandomSource, choose, rejection_sample, sample_amount, uniform_int
from cdpsim.engine.sampling import coin
from tests.factories import ScriptedRandom


class TestPseudoRandomSource:
    """Детерминированный источник"""

    def test_same_seed_same_sequence(self) -> None:
        a, b = PseudoRandomSource(7), PseudoRandomSource(7)
        assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]

    def test_different_seed_different_sequence(self) -> None:
        a, b = PseudoRandomSource(7), PseudoRandomSource(8)
        assert [a.next() for _ in range(5)] != [b.next() for _ in range(5)]

    def test_values_are_64_bit_unsigned(self) -> None:
        source = PseudoRandomSource(1)
        for _ in range(100):
            assert 0 <= source.next() < 2**64

    def test_cursor_advances_per_draw(self) -> None:
        source = PseudoRandomSource(3)
        for _ in range(4):
            source.next()
        assert source.draws == 4


class TestUniformInt:
    """Равномерное целое в [low, high]"""

    def test_modulo_mapping(self) -> None:
        """next() = 41 → 1 + 41 % 1000 = 42"""
        assert uniform_int(ScriptedRandom([41]), 1, 1_000) == 42

    def test_single_value_range_consumes_nothing(self) -> None:
        source = ScriptedRandom([5])
        assert uniform_int(source, 9, 9) == 9
        assert source.draws == 0

    def test_wide_range_concatenates_words(self) -> None:
        """Диапазон шире 2**64 потребляет два значения"""
        source = ScriptedRandom([1, 2])
        value = uniform_int(source, 0, 2**100)
        assert source.draws == 2
        assert value == ((1 << 64) | 2) % (2**100 + 1)

    def test_bounds_respected(self) -> None:
        source = PseudoRandomSource(11)
        for _ in range(200):
            assert 3 <= uniform_int(source, 3, 17) <= 17

    def test_empty_range(self) -> None:
        with pytest.raises(ValueError):
            uniform_int(ScriptedRandom([0]), 5, 4)


class TestSelectionHelpers:
    """choose / coin / sample_amount"""

    def test_choose_from_empty(self) -> None:
        assert isinstance(choose(ScriptedRandom([0]), []), Absent)

    def test_choose_index(self) -> None:
        assert choose(ScriptedRandom([4]), ["a", "b", "c"]) == Present("b")

    def test_coin(self) -> None:
        assert coin(ScriptedRandom([1]))
        assert not coin(ScriptedRandom([2]))

    def test_sample_amount_empty_range(self) -> None:
        assert isinstance(sample_amount(ScriptedRandom([0]), 0), Absent)

    def test_sample_amount_in_range(self) -> None:
        assert sample_amount(ScriptedRandom([9]), 10) == Present(10)


class TestRejectionSample:
    """Rejection sampling с retry cap"""

    def test_accepts_first_valid(self) -> None:
        source = ScriptedRandom([1, 2, 3, 4])
        result = rejection_sample(source.next, lambda value: value > 2, max_attempts=10)
        assert result == Present(3)
        assert source.draws == 3

    def test_exhaustion_returns_absent(self) -> None:
        source = ScriptedRandom([1])
        result = rejection_sample(source.next, lambda value: value > 2, max_attempts=5)
        assert result == Absent(5)
        assert source.draws == 5
