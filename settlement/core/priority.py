"""Priority operation queue and rolling hash collection."""
from __future__ import annotations

from typing import Dict, Iterable, Tuple

from ..errors import PriorityQueueEmpty
from .encoding import EMPTY_STRING_KECCAK, hash_words
from .interfaces import PriorityQueue
from .types import PriorityOperation


class PriorityOperationQueue:
    """Head/tail indexed FIFO of priority operations.

    Popped entries are dropped from storage but the head index keeps
    counting, so ``head`` is the total number of operations ever processed.
    """

    def __init__(self, operations: Iterable[PriorityOperation] = ()) -> None:
        self._data: Dict[int, PriorityOperation] = {}
        self.head = 0
        self.tail = 0
        for operation in operations:
            self.push_back(operation)

    def __len__(self) -> int:
        return self.tail - self.head

    def is_empty(self) -> bool:
        return self.tail == self.head

    def push_back(self, operation: PriorityOperation) -> None:
        self._data[self.tail] = operation
        self.tail += 1

    def front(self) -> PriorityOperation:
        if self.is_empty():
            raise PriorityQueueEmpty("priority queue is empty")
        return self._data[self.head]

    def pop_front(self) -> PriorityOperation:
        operation = self.front()
        del self._data[self.head]
        self.head += 1
        return operation

    def snapshot(self) -> Tuple[int, int, Dict[int, PriorityOperation]]:
        return self.head, self.tail, dict(self._data)

    def restore(self, marker: object) -> None:
        head, tail, data = marker  # type: ignore[misc]
        self.head, self.tail, self._data = head, tail, dict(data)


def rolling_priority_hash(operations: Iterable[PriorityOperation]) -> bytes:
    """Fold ``operations`` into ``keccak(...keccak(keccak("") , op1)..., opN)``."""

    concat_hash = EMPTY_STRING_KECCAK
    for operation in operations:
        concat_hash = hash_words(concat_hash, operation.canonical_tx_hash)
    return concat_hash


def collect_operations(queue: PriorityQueue, count: int) -> bytes:
    """Pop ``count`` operations from ``queue`` and return their rolling hash."""

    if count < 0:
        raise ValueError("count must be non-negative")
    return rolling_priority_hash(queue.pop_front() for _ in range(count))


__all__ = ["PriorityOperationQueue", "collect_operations", "rolling_priority_hash"]
