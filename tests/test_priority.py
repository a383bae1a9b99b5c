import pytest

from factories import priority_ops
from settlement.core.encoding import EMPTY_STRING_KECCAK, keccak256
from settlement.core.priority import PriorityOperationQueue, collect_operations, rolling_priority_hash
from settlement.errors import PriorityQueueEmpty


def test_empty_rolling_hash_is_keccak_of_empty_string() -> None:
    assert rolling_priority_hash([]) == EMPTY_STRING_KECCAK == keccak256(b"")


def test_rolling_hash_folds_in_order() -> None:
    first, second = priority_ops(2)
    expected = keccak256(keccak256(EMPTY_STRING_KECCAK + first.canonical_tx_hash) + second.canonical_tx_hash)
    assert rolling_priority_hash([first, second]) == expected
    assert rolling_priority_hash([second, first]) != expected


def test_collect_pops_from_front() -> None:
    ops = priority_ops(3)
    queue = PriorityOperationQueue(ops)

    assert collect_operations(queue, 2) == rolling_priority_hash(ops[:2])
    assert len(queue) == 1
    assert queue.head == 2
    assert queue.front() == ops[2]


def test_collect_zero_leaves_queue_untouched() -> None:
    queue = PriorityOperationQueue(priority_ops(1))
    assert collect_operations(queue, 0) == EMPTY_STRING_KECCAK
    assert len(queue) == 1


def test_collect_more_than_queued() -> None:
    queue = PriorityOperationQueue(priority_ops(1))
    with pytest.raises(PriorityQueueEmpty):
        collect_operations(queue, 2)


def test_snapshot_restore() -> None:
    ops = priority_ops(3)
    queue = PriorityOperationQueue(ops)
    marker = queue.snapshot()
    queue.pop_front()
    queue.pop_front()
    queue.restore(marker)
    assert queue.head == 0
    assert len(queue) == 3
    assert queue.pop_front() == ops[0]
