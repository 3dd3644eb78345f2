"""
Config — Параметры harness

Frozen dataclass конфигурации с дефолтами. Файлов конфигурации нет:
внешний runner передаёт экземпляры явно.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class QueueModelConfig:
    """Конфигурация проверок ranked queue.

    check_order — проверять возрастание value от head к tail.
    max_walk_nodes — предел обхода списка (защита от циклов).
    """

    check_order: bool = True
    max_walk_nodes: int = 100_000


@dataclass(frozen=True)
class HarnessConfig:
    """Конфигурация генерации параметров и проверок.

    Все суммы в минимальных единицах (wei-подобных), ставки в basis points.
    """

    # Rejection sampling
    max_proposal_attempts: int = 100

    # Идентификаторы позиций: [1, max_safe_id]
    max_safe_id: int = 2**32 - 1

    # Native резерв, который propose оставляет актору на газ
    gas_reserve: int = 10**16

    # Ставки
    max_shielding_rate_bps: int = 9_999
    max_topup_rate_bps: int = 1_000
    max_frontend_fee_bps: int = 10_000

    # Цена оракула (сырая, до умножения на PRECISION): [1, max_price]
    max_price: int = 1_000

    queue: QueueModelConfig = field(default_factory=QueueModelConfig)

    def __post_init__(self):
        if self.max_proposal_attempts < 1:
            raise ValueError(f"max_proposal_attempts must be >= 1, got {self.max_proposal_attempts}")
        if self.max_safe_id < 1:
            raise ValueError(f"max_safe_id must be >= 1, got {self.max_safe_id}")
        if self.max_price < 1:
            raise ValueError(f"max_price must be >= 1, got {self.max_price}")
        if self.gas_reserve < 0:
            raise ValueError(f"gas_reserve must be non-negative, got {self.gas_reserve}")
