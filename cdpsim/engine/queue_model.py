"""
RankedQueueModel — Проверки членства и структуры ranked queue

Модель не пересчитывает порядок целиком: тестируемый контракт —
членство, отсутствие и самосогласованность ссылок head/tail/prev/next.

Проверки:
(a) удалённые позиции отсутствуют в обеих очередях
(b) позиции без долга отсутствуют в обеих очередях, позиции с долгом
    присутствуют с ожидаемым ключом
(c) структура: пустая ⇔ head = tail = 0 ⇔ нет узлов; head.prev = 0;
    tail.next = 0; обход от head достигает tail, посещая каждый узел
    ровно один раз; обратные ссылки согласованы; опционально порядок
(d) tail removal: после sweep ликвидации новый tail равен predecessor
    старого tail
"""

from typing import Iterable, NamedTuple, Optional

from cdpsim.core.domain.position import Safe
from cdpsim.core.domain.ranked_queue import RankedQueue
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import NULL_ID

from .config import QueueModelConfig
from .verdict import InvariantChecker

LIQUIDATION_QUEUE = "liquidation_queue"
REDEMPTION_QUEUE = "redemption_queue"


class QueueWalk(NamedTuple):
    """Результат обхода очереди от head."""

    order: list[int]
    error: str


class RankedQueueModel:
    """Проверки обеих ranked queue снапшота."""

    def __init__(self, config: Optional[QueueModelConfig] = None):
        self.config = config or QueueModelConfig()

    # -------------------------------------------------------------------------
    # Обход
    # -------------------------------------------------------------------------

    def walk(self, queue: RankedQueue) -> QueueWalk:
        """
        Обход от head по next-ссылкам.

        Останавливается на первой структурной ошибке: ссылке на
        несуществующий узел, повторном посещении (цикл), нарушенной
        обратной ссылке или превышении max_walk_nodes.
        """
        order: list[int] = []
        seen: set[int] = set()
        previous = NULL_ID
        current = queue.head

        while current != NULL_ID:
            if current in seen:
                return QueueWalk(order, f"cycle at node {current}")
            if len(order) >= self.config.max_walk_nodes:
                return QueueWalk(order, f"walk exceeded {self.config.max_walk_nodes} nodes")
            if current not in queue.nodes:
                return QueueWalk(order, f"dangling reference to node {current}")

            node = queue.nodes[current]
            if node.prev != previous:
                return QueueWalk(order, f"node {current}.prev={node.prev}, expected {previous}")

            order.append(current)
            seen.add(current)
            previous = current
            current = node.next

        return QueueWalk(order, "")

    def head_first_order(self, queue: RankedQueue) -> list[int]:
        """Порядок id от head к tail (как его обходит redemption)."""
        return self.walk(queue).order

    # -------------------------------------------------------------------------
    # Проверки
    # -------------------------------------------------------------------------

    def check_structure(self, checker: InvariantChecker, queue: RankedQueue, name: str) -> None:
        """(c) Самосогласованность head/tail/prev/next."""
        empty_flags = (queue.head == NULL_ID, queue.tail == NULL_ID, not queue.nodes)
        if any(empty_flags):
            checker.holds(
                f"{name}.empty_consistency",
                all(empty_flags),
                expected="head = tail = 0 with no nodes",
                observed={"head": queue.head, "tail": queue.tail, "nodes": len(queue.nodes)},
            )
            return

        walk = self.walk(queue)
        checker.equal(f"{name}.walk_consistency", "", walk.error)
        if walk.error:
            return

        checker.equal(f"{name}.walk_reaches_tail", queue.tail, walk.order[-1])
        tail_node = checker.present(f"{name}.tail_present", queue.node(queue.tail))
        if tail_node is None:
            return
        checker.equal(f"{name}.tail_next_null", NULL_ID, tail_node.next)
        checker.equal(f"{name}.walk_visits_all_nodes", len(queue.nodes), len(walk.order))

        if self.config.check_order:
            values = [queue.nodes[safe_id].value for safe_id in walk.order]
            checker.holds(
                f"{name}.ascending_order",
                all(a <= b for a, b in zip(values, values[1:])),
                expected="non-decreasing values head→tail",
                observed=values,
            )

    def check_snapshot_structure(self, checker: InvariantChecker, snapshot: StateSnapshot) -> None:
        self.check_structure(checker, snapshot.liquidation_queue, LIQUIDATION_QUEUE)
        self.check_structure(checker, snapshot.redemption_queue, REDEMPTION_QUEUE)

    def check_removed(self, checker: InvariantChecker, snapshot: StateSnapshot, safe_id: int) -> None:
        """(a) Удалённая позиция отсутствует в NodeById обеих очередей."""
        checker.absent(f"{LIQUIDATION_QUEUE}.removed_absent", snapshot.liquidation_queue.node(safe_id))
        checker.absent(f"{REDEMPTION_QUEUE}.removed_absent", snapshot.redemption_queue.node(safe_id))

    def check_membership(self, checker: InvariantChecker, snapshot: StateSnapshot, safe: Safe) -> None:
        """
        (b) Членство позиции по её текущей записи.

        Без долга — отсутствует в обеих очередях. С долгом — присутствует
        в liquidation_queue с ключом borrowed * P // collateral и в
        redemption_queue с ключом weight.
        """
        if not safe.has_debt:
            checker.absent(f"{LIQUIDATION_QUEUE}.zero_debt_absent", snapshot.liquidation_queue.node(safe.safe_id))
            checker.absent(f"{REDEMPTION_QUEUE}.zero_debt_absent", snapshot.redemption_queue.node(safe.safe_id))
            return

        liquidation_node = checker.present(
            f"{LIQUIDATION_QUEUE}.debt_present", snapshot.liquidation_queue.node(safe.safe_id)
        )
        if liquidation_node is not None:
            checker.equal(f"{LIQUIDATION_QUEUE}.key", safe.liquidation_key(), liquidation_node.value)

        redemption_node = checker.present(
            f"{REDEMPTION_QUEUE}.debt_present", snapshot.redemption_queue.node(safe.safe_id)
        )
        if redemption_node is not None:
            checker.equal(f"{REDEMPTION_QUEUE}.key", safe.weight, redemption_node.value)

    def check_tail_removal(
        self,
        checker: InvariantChecker,
        previous_queue: RankedQueue,
        new_queue: RankedQueue,
        removed_id: int,
        name: str = LIQUIDATION_QUEUE,
    ) -> None:
        """(d) Sweep удалил tail, новый tail — predecessor старого."""
        checker.equal(f"{name}.removed_was_tail", previous_queue.tail, removed_id)
        old_tail = checker.present(f"{name}.old_tail_present", previous_queue.node(removed_id))
        if old_tail is None:
            return
        checker.equal(f"{name}.tail_moves_to_predecessor", old_tail.prev, new_queue.tail)

    def check_redemption_prefix(
        self,
        checker: InvariantChecker,
        previous_queue: RankedQueue,
        redeemed_ids: Iterable[int],
    ) -> None:
        """Затронутые redemption позиции образуют префикс head-first порядка."""
        redeemed = set(redeemed_ids)
        order = self.head_first_order(previous_queue)
        observed = [safe_id for safe_id in order if safe_id in redeemed]
        observed += sorted(redeemed - set(order))
        checker.equal(f"{REDEMPTION_QUEUE}.redeemed_prefix", order[: len(redeemed)], observed)
