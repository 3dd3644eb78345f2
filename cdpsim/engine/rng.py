"""
PseudoRandomSource — Детерминированный генератор для воспроизводимых прогонов

Единственное разделяемое изменяемое состояние run. Курсор продвигается
ровно один раз на каждое потреблённое значение, в порядке вызовов.
"""

import logging
import random

logger = logging.getLogger(__name__)

# Разрядность одного значения next()
WORD_BITS = 64


class PseudoRandomSource:
    """
    Источник 64-битных беззнаковых значений поверх random.Random.

    draws — число выданных значений (курсор), нужен для диагностики
    воспроизводимости: одинаковый seed и одинаковый draws дают одинаковое
    продолжение последовательности.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._random = random.Random(seed)
        self.draws = 0
        logger.debug("PseudoRandomSource initialized with seed=%d", seed)

    def next(self) -> int:
        self.draws += 1
        return self._random.getrandbits(WORD_BITS)
