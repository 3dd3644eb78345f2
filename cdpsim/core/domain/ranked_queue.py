"""
RankedQueue — Упорядоченный двусвязный список позиций

Снапшот OrderedDoublyLinkedList: head/tail и узлы (value, prev, next).
Порядок по возрастанию value от head к tail. NULL_ID (0) — пустая ссылка.

Два экземпляра в снапшоте:
- liquidation_queue: ключ borrowed * PRECISION // collateral (tail — самая рискованная)
- redemption_queue: ключ weight (head — первая к redemption)
"""

from pydantic import BaseModel, Field

from .lookup import Lookup, lookup
from .units import NULL_ID


class QueueNode(BaseModel):
    """Узел ranked queue."""

    value: int = Field(..., ge=0)
    prev: int = Field(default=NULL_ID, ge=0)
    next: int = Field(default=NULL_ID, ge=0)

    model_config = {"frozen": True}


class RankedQueue(BaseModel):
    """Снапшот ranked queue."""

    head: int = Field(default=NULL_ID, ge=0)
    tail: int = Field(default=NULL_ID, ge=0)
    nodes: dict[int, QueueNode] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def node(self, safe_id: int) -> Lookup[QueueNode]:
        """NodeById lookup."""
        return lookup(self.nodes, safe_id)
