import pytest

from factories import STATE_DIFF_HASH, h, make_batch
from settlement.configuration import Profile, build_profile_config
from settlement.core.commitment import (
    batch_auxiliary_output,
    batch_metadata,
    batch_pass_through_data,
    create_batch_commitment,
)
from settlement.core.encoding import ZERO_HASH, encode_words, keccak256
from settlement.core.types import StoredBatchInfo
from settlement.errors import SystemLogsTooLarge


@pytest.fixture
def batch():
    return make_batch(StoredBatchInfo.zero())


def test_pass_through_layout(batch) -> None:
    data = batch_pass_through_data(batch)
    assert len(data) == 8 + 32 + 8 + 32
    assert data[:8] == batch.index_repeated_storage_changes.to_bytes(8, "big")
    assert data[8:40] == batch.new_state_root
    assert data[40:] == bytes(40)


def test_metadata_layout(config) -> None:
    data = batch_metadata(config.chain)
    assert len(data) == 1 + 32 + 32
    assert data[0] == 0
    assert data[1:33] == config.chain.l2_bootloader_bytecode_hash
    assert data[33:] == config.chain.l2_default_account_bytecode_hash


def test_auxiliary_output_layout(batch) -> None:
    blobs = [h("blob 0"), ZERO_HASH]
    data = batch_auxiliary_output(batch, STATE_DIFF_HASH, blobs)
    assert data == encode_words(
        keccak256(batch.system_logs),
        STATE_DIFF_HASH,
        batch.bootloader_heap_initial_contents_hash,
        batch.events_queue_state_hash,
        h("blob 0"),
        ZERO_HASH,
        ZERO_HASH,
        ZERO_HASH,
    )


def test_commitment_combines_parts(batch, config) -> None:
    result = create_batch_commitment(batch, config.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH])
    assert result.commitment == keccak256(
        result.pass_through_hash + result.metadata_hash + result.auxiliary_output_hash
    )
    assert set(result.to_dict()) == {
        "pass_through_hash",
        "metadata_hash",
        "auxiliary_output_hash",
        "commitment",
    }


def test_commitment_is_deterministic(batch, config) -> None:
    first = create_batch_commitment(batch, config.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH])
    second = create_batch_commitment(batch, config.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH])
    assert first == second


def test_commitment_depends_on_chain_metadata(batch, config) -> None:
    local = build_profile_config(Profile.LOCALNET)
    mainnet = create_batch_commitment(batch, config.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH])
    localnet = create_batch_commitment(batch, local.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH])
    assert mainnet.pass_through_hash == localnet.pass_through_hash
    assert mainnet.metadata_hash != localnet.metadata_hash


def test_oversized_system_logs_rejected(batch, config) -> None:
    with pytest.raises(SystemLogsTooLarge):
        create_batch_commitment(
            batch, config.chain, STATE_DIFF_HASH, [ZERO_HASH, ZERO_HASH], max_system_logs_bytes=88
        )
