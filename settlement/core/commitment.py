"""Batch commitment construction.

The commitment is a hash over three independently hashed parts so that the
proving circuit can check each part without re-hashing the whole batch:

* pass-through data carried unchanged from batch to batch,
* metadata that is constant for a protocol version,
* auxiliary output describing the batch's logs, state diff and blobs.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from ..configuration import ChainSection
from ..errors import SystemLogsTooLarge
from .encoding import ZERO_HASH, concat, encode_words, hash_words, keccak256, to_hex, uint_to_bytes
from .types import MAX_NUMBER_OF_BLOBS, CommitBatchInfo

# 4 bytes of log count followed by up to 512 serialized logs.
DEFAULT_MAX_SYSTEM_LOGS_BYTES = 4 + 88 * 512


@dataclass(frozen=True)
class BatchCommitment:
    """The commitment together with the three part hashes it was built from."""

    pass_through_hash: bytes
    metadata_hash: bytes
    auxiliary_output_hash: bytes
    commitment: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "pass_through_hash": to_hex(self.pass_through_hash),
            "metadata_hash": to_hex(self.metadata_hash),
            "auxiliary_output_hash": to_hex(self.auxiliary_output_hash),
            "commitment": to_hex(self.commitment),
        }


def batch_pass_through_data(batch: CommitBatchInfo) -> bytes:
    # The trailing zero fields are the retired secondary-root slot.
    return concat(
        (
            uint_to_bytes(batch.index_repeated_storage_changes, 8),
            batch.new_state_root,
            uint_to_bytes(0, 8),
            ZERO_HASH,
        )
    )


def batch_metadata(chain: ChainSection) -> bytes:
    return concat(
        (
            uint_to_bytes(int(chain.zk_porter_available), 1),
            chain.l2_bootloader_bytecode_hash,
            chain.l2_default_account_bytecode_hash,
        )
    )


def batch_auxiliary_output(
    batch: CommitBatchInfo,
    state_diff_hash: bytes,
    blob_commitments: Sequence[bytes],
    max_system_logs_bytes: int = DEFAULT_MAX_SYSTEM_LOGS_BYTES,
) -> bytes:
    if len(batch.system_logs) > max_system_logs_bytes:
        raise SystemLogsTooLarge(
            f"system logs of {len(batch.system_logs)} bytes exceed {max_system_logs_bytes}"
        )
    if len(blob_commitments) != MAX_NUMBER_OF_BLOBS:
        raise ValueError(f"expected {MAX_NUMBER_OF_BLOBS} blob commitment slots")
    return encode_words(
        keccak256(batch.system_logs),
        state_diff_hash,
        batch.bootloader_heap_initial_contents_hash,
        batch.events_queue_state_hash,
        *blob_commitments,
        # Retired blob output slots.
        ZERO_HASH,
        ZERO_HASH,
    )


def create_batch_commitment(
    batch: CommitBatchInfo,
    chain: ChainSection,
    state_diff_hash: bytes,
    blob_commitments: Sequence[bytes],
    max_system_logs_bytes: int = DEFAULT_MAX_SYSTEM_LOGS_BYTES,
) -> BatchCommitment:
    """Build the commitment of ``batch`` for proof-circuit consumption."""

    pass_through_hash = keccak256(batch_pass_through_data(batch))
    metadata_hash = keccak256(batch_metadata(chain))
    auxiliary_output_hash = keccak256(
        batch_auxiliary_output(batch, state_diff_hash, blob_commitments, max_system_logs_bytes)
    )
    return BatchCommitment(
        pass_through_hash=pass_through_hash,
        metadata_hash=metadata_hash,
        auxiliary_output_hash=auxiliary_output_hash,
        commitment=hash_words(pass_through_hash, metadata_hash, auxiliary_output_hash),
    )


__all__ = [
    "BatchCommitment",
    "DEFAULT_MAX_SYSTEM_LOGS_BYTES",
    "batch_auxiliary_output",
    "batch_metadata",
    "batch_pass_through_data",
    "create_batch_commitment",
]
