"""Batch records exchanged with the lifecycle controller.

``CommitBatchInfo`` is the untrusted description of a batch submitted for
commitment; ``StoredBatchInfo`` is the canonical record the controller
derives from it.  The stored record is never persisted in full: only
:meth:`StoredBatchInfo.hash` is kept, so any later call that references a
batch must supply the complete record and have it re-hashed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .encoding import (
    EMPTY_STRING_KECCAK,
    ZERO_HASH,
    bytes32_from_hex,
    concat,
    from_hex,
    hash_words,
    require_address,
    require_bytes32,
    to_hex,
    uint_to_bytes,
)

L2_TO_L1_LOG_SERIALIZE_SIZE = 88
MAX_NUMBER_OF_BLOBS = 2


@dataclass(frozen=True)
class L2Log:
    """A single serialized L2 -> L1 log record."""

    shard_id: int
    is_service: bool
    tx_number_in_batch: int
    sender: bytes
    key: bytes
    value: bytes

    def __post_init__(self) -> None:
        require_address(self.sender, "sender")
        require_bytes32(self.key, "key")
        require_bytes32(self.value, "value")
        if not 0 <= self.shard_id < 256:
            raise ValueError("shard_id must fit in one byte")
        if not 0 <= self.tx_number_in_batch < 1 << 16:
            raise ValueError("tx_number_in_batch must fit in two bytes")

    def encode(self) -> bytes:
        return concat(
            (
                uint_to_bytes(self.shard_id, 1),
                uint_to_bytes(int(self.is_service), 1),
                uint_to_bytes(self.tx_number_in_batch, 2),
                self.sender,
                self.key,
                self.value,
            )
        )

    @classmethod
    def decode(cls, record: bytes) -> "L2Log":
        if len(record) != L2_TO_L1_LOG_SERIALIZE_SIZE:
            raise ValueError(f"log record must be {L2_TO_L1_LOG_SERIALIZE_SIZE} bytes")
        return cls(
            shard_id=record[0],
            is_service=bool(record[1]),
            tx_number_in_batch=int.from_bytes(record[2:4], "big"),
            sender=bytes(record[4:24]),
            key=bytes(record[24:56]),
            value=bytes(record[56:88]),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "shard_id": self.shard_id,
            "is_service": self.is_service,
            "tx_number_in_batch": self.tx_number_in_batch,
            "sender": to_hex(self.sender),
            "key": to_hex(self.key),
            "value": to_hex(self.value),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "L2Log":
        return cls(
            shard_id=int(data.get("shard_id", 0)),
            is_service=bool(data.get("is_service", True)),
            tx_number_in_batch=int(data.get("tx_number_in_batch", 0)),
            sender=from_hex(data["sender"], "sender"),
            key=bytes32_from_hex(data["key"], "key"),
            value=bytes32_from_hex(data["value"], "value"),
        )


@dataclass(frozen=True)
class L2Message:
    """An arbitrary message sent from L2 through the L1 messenger."""

    tx_number_in_batch: int
    sender: bytes
    data: bytes


@dataclass(frozen=True)
class StoredBatchInfo:
    """Canonical record of a committed batch."""

    batch_number: int
    batch_hash: bytes
    index_repeated_storage_changes: int
    number_of_layer1_txs: int
    priority_operations_hash: bytes
    l2_logs_tree_root: bytes
    timestamp: int
    commitment: bytes

    def __post_init__(self) -> None:
        for name in ("batch_hash", "priority_operations_hash", "l2_logs_tree_root", "commitment"):
            require_bytes32(getattr(self, name), name)
        if self.batch_number < 0 or self.timestamp < 0:
            raise ValueError("batch_number and timestamp must be non-negative")

    @classmethod
    def zero(cls) -> "StoredBatchInfo":
        """Zero-initialised record used as the genesis predecessor."""

        return cls(
            batch_number=0,
            batch_hash=ZERO_HASH,
            index_repeated_storage_changes=0,
            number_of_layer1_txs=0,
            priority_operations_hash=ZERO_HASH,
            l2_logs_tree_root=ZERO_HASH,
            timestamp=0,
            commitment=ZERO_HASH,
        )

    @classmethod
    def genesis(cls, state_root: bytes, index_repeated_storage_changes: int, commitment: bytes) -> "StoredBatchInfo":
        return cls(
            batch_number=0,
            batch_hash=state_root,
            index_repeated_storage_changes=index_repeated_storage_changes,
            number_of_layer1_txs=0,
            priority_operations_hash=EMPTY_STRING_KECCAK,
            l2_logs_tree_root=ZERO_HASH,
            timestamp=0,
            commitment=commitment,
        )

    def hash(self) -> bytes:
        """Return ``keccak256(abi.encode(self))``."""

        return hash_words(
            self.batch_number,
            self.batch_hash,
            self.index_repeated_storage_changes,
            self.number_of_layer1_txs,
            self.priority_operations_hash,
            self.l2_logs_tree_root,
            self.timestamp,
            self.commitment,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "batch_number": self.batch_number,
            "batch_hash": to_hex(self.batch_hash),
            "index_repeated_storage_changes": self.index_repeated_storage_changes,
            "number_of_layer1_txs": self.number_of_layer1_txs,
            "priority_operations_hash": to_hex(self.priority_operations_hash),
            "l2_logs_tree_root": to_hex(self.l2_logs_tree_root),
            "timestamp": self.timestamp,
            "commitment": to_hex(self.commitment),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoredBatchInfo":
        return cls(
            batch_number=int(data["batch_number"]),
            batch_hash=bytes32_from_hex(data["batch_hash"], "batch_hash"),
            index_repeated_storage_changes=int(data["index_repeated_storage_changes"]),
            number_of_layer1_txs=int(data["number_of_layer1_txs"]),
            priority_operations_hash=bytes32_from_hex(
                data["priority_operations_hash"], "priority_operations_hash"
            ),
            l2_logs_tree_root=bytes32_from_hex(data["l2_logs_tree_root"], "l2_logs_tree_root"),
            timestamp=int(data["timestamp"]),
            commitment=bytes32_from_hex(data["commitment"], "commitment"),
        )


@dataclass(frozen=True)
class CommitBatchInfo:
    """Untrusted description of a batch submitted for commitment."""

    batch_number: int
    timestamp: int
    index_repeated_storage_changes: int
    new_state_root: bytes
    number_of_layer1_txs: int
    priority_operations_hash: bytes
    bootloader_heap_initial_contents_hash: bytes
    events_queue_state_hash: bytes
    system_logs: bytes
    pubdata_commitments: bytes

    def __post_init__(self) -> None:
        for name in (
            "new_state_root",
            "priority_operations_hash",
            "bootloader_heap_initial_contents_hash",
            "events_queue_state_hash",
        ):
            require_bytes32(getattr(self, name), name)

    def to_dict(self) -> Dict[str, object]:
        return {
            "batch_number": self.batch_number,
            "timestamp": self.timestamp,
            "index_repeated_storage_changes": self.index_repeated_storage_changes,
            "new_state_root": to_hex(self.new_state_root),
            "number_of_layer1_txs": self.number_of_layer1_txs,
            "priority_operations_hash": to_hex(self.priority_operations_hash),
            "bootloader_heap_initial_contents_hash": to_hex(self.bootloader_heap_initial_contents_hash),
            "events_queue_state_hash": to_hex(self.events_queue_state_hash),
            "system_logs": to_hex(self.system_logs),
            "pubdata_commitments": to_hex(self.pubdata_commitments),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CommitBatchInfo":
        system_logs = data.get("system_logs", "0x")
        if isinstance(system_logs, (list, tuple)):
            system_logs = b"".join(L2Log.from_dict(item).encode() for item in system_logs)
        return cls(
            batch_number=int(data["batch_number"]),
            timestamp=int(data["timestamp"]),
            index_repeated_storage_changes=int(data["index_repeated_storage_changes"]),
            new_state_root=bytes32_from_hex(data["new_state_root"], "new_state_root"),
            number_of_layer1_txs=int(data["number_of_layer1_txs"]),
            priority_operations_hash=bytes32_from_hex(
                data["priority_operations_hash"], "priority_operations_hash"
            ),
            bootloader_heap_initial_contents_hash=bytes32_from_hex(
                data.get("bootloader_heap_initial_contents_hash", to_hex(ZERO_HASH)),
                "bootloader_heap_initial_contents_hash",
            ),
            events_queue_state_hash=bytes32_from_hex(
                data.get("events_queue_state_hash", to_hex(ZERO_HASH)),
                "events_queue_state_hash",
            ),
            system_logs=from_hex(system_logs, "system_logs"),
            pubdata_commitments=from_hex(data.get("pubdata_commitments", "0x"), "pubdata_commitments"),
        )


@dataclass
class LogProcessingOutput:
    """Values extracted from a batch's system logs during one commit."""

    l2_logs_tree_root: bytes = ZERO_HASH
    pubdata_hash: bytes = ZERO_HASH
    state_diff_hash: bytes = ZERO_HASH
    packed_batch_and_l2_block_timestamp: int = 0
    previous_batch_hash: bytes = ZERO_HASH
    chained_priority_txs_hash: bytes = ZERO_HASH
    number_of_layer1_txs: int = 0
    blob_hashes: list[bytes] = field(default_factory=lambda: [ZERO_HASH] * MAX_NUMBER_OF_BLOBS)

    @property
    def batch_timestamp(self) -> int:
        return self.packed_batch_and_l2_block_timestamp >> 128

    @property
    def last_l2_block_timestamp(self) -> int:
        return self.packed_batch_and_l2_block_timestamp & ((1 << 128) - 1)


@dataclass(frozen=True)
class PriorityOperation:
    """Layer-1 originated operation awaiting inclusion in a batch."""

    canonical_tx_hash: bytes
    expiration_timestamp: int = 0
    layer2_tip: int = 0

    def __post_init__(self) -> None:
        require_bytes32(self.canonical_tx_hash, "canonical_tx_hash")


@dataclass(frozen=True)
class ProofInput:
    """Proof bundle handed to the external verifier."""

    serialized_proof: bytes
    recursive_aggregation_input: bytes = b""


def pack_timestamps(batch_timestamp: int, last_l2_block_timestamp: int) -> bytes:
    """Pack the batch and last L2 block timestamps into one log value."""

    return uint_to_bytes((batch_timestamp << 128) | last_l2_block_timestamp)


__all__ = [
    "CommitBatchInfo",
    "L2Log",
    "L2Message",
    "L2_TO_L1_LOG_SERIALIZE_SIZE",
    "LogProcessingOutput",
    "MAX_NUMBER_OF_BLOBS",
    "PriorityOperation",
    "ProofInput",
    "StoredBatchInfo",
    "pack_timestamps",
]
