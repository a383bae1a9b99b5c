import pytest

from factories import h
from settlement.core.encoding import ZERO_HASH
from settlement.core.state import SettlementState, UpgradeMarker
from settlement.core.types import StoredBatchInfo
from settlement.errors import CounterInvariantViolated, SequencingError, SettlementError


def test_from_genesis_stores_hash_of_batch_zero() -> None:
    genesis = StoredBatchInfo.zero()
    state = SettlementState.from_genesis(genesis)
    assert state.stored_batch_hash(0) == genesis.hash()
    assert state.stored_batch_hash(1) == ZERO_HASH


def test_counter_invariant_is_a_settlement_error() -> None:
    state = SettlementState(total_committed=1, total_verified=2)
    with pytest.raises(CounterInvariantViolated) as excinfo:
        state.check_invariants()
    assert isinstance(excinfo.value, SequencingError)
    assert isinstance(excinfo.value, SettlementError)


def test_snapshot_is_independent_of_later_changes() -> None:
    state = SettlementState.from_genesis(StoredBatchInfo.zero())
    saved = state.snapshot()

    state.stored_batch_hashes[1] = h("batch 1")
    state.l2_logs_root_hashes[1] = h("logs 1")
    state.total_committed = 1
    state.upgrade = UpgradeMarker(tx_hash=h("upgrade"), batch_number=1)

    assert set(saved.stored_batch_hashes) == {0}
    assert saved.l2_logs_root_hashes == {}
    assert saved.total_committed == 0
    assert not saved.upgrade.is_set

    state.restore(saved)
    assert set(state.stored_batch_hashes) == {0}
    assert state.total_committed == 0
    assert state.upgrade == UpgradeMarker()
