"""System log classification.

A committed batch carries a flat buffer of fixed-size system logs.  Each
recognised key must appear exactly once and must be emitted by the single
system contract authorised for it.  Presence is tracked in a small bitmap
which, after the scan, must equal :data:`BITMAP_NO_UPGRADE` (keys 0-8) or
:data:`BITMAP_WITH_UPGRADE` (keys 0-9) when a system contract upgrade is
expected in the batch.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterable, Iterator

from ..errors import (
    DuplicateLogKey,
    IncompleteLogSet,
    MalformedLogBuffer,
    UnknownLogKey,
    UpgradeHashMismatch,
    WrongLogSender,
)
from .encoding import ZERO_HASH, address_from_int, to_hex
from .types import L2_TO_L1_LOG_SERIALIZE_SIZE, L2Log, LogProcessingOutput


class SystemLogKey(IntEnum):
    """Keys of the system logs emitted once per batch."""

    L2_TO_L1_LOGS_TREE_ROOT = 0
    TOTAL_L2_TO_L1_PUBDATA = 1
    STATE_DIFF_HASH = 2
    PACKED_BATCH_AND_L2_BLOCK_TIMESTAMP = 3
    PREV_BATCH_HASH = 4
    CHAINED_PRIORITY_TXN_HASH = 5
    NUMBER_OF_LAYER_1_TXS = 6
    BLOB_ONE_HASH = 7
    BLOB_TWO_HASH = 8
    EXPECTED_SYSTEM_CONTRACT_UPGRADE_TX_HASH = 9


class PubdataSourceKind(IntEnum):
    """Source tag found in the first byte of the pubdata commitments."""

    INLINE = 0
    BLOB_REFERENCED = 1


L2_BOOTLOADER_ADDRESS = address_from_int(0x8001)
L2_TO_L1_MESSENGER_ADDRESS = address_from_int(0x8008)
L2_SYSTEM_CONTEXT_ADDRESS = address_from_int(0x800B)

BITMAP_WIDTH = 10
BITMAP_NO_UPGRADE = (1 << 9) - 1
BITMAP_WITH_UPGRADE = (1 << 10) - 1

AUTHORIZED_LOG_SENDERS: Dict[SystemLogKey, bytes] = {
    SystemLogKey.L2_TO_L1_LOGS_TREE_ROOT: L2_TO_L1_MESSENGER_ADDRESS,
    SystemLogKey.TOTAL_L2_TO_L1_PUBDATA: L2_TO_L1_MESSENGER_ADDRESS,
    SystemLogKey.STATE_DIFF_HASH: L2_TO_L1_MESSENGER_ADDRESS,
    SystemLogKey.PACKED_BATCH_AND_L2_BLOCK_TIMESTAMP: L2_SYSTEM_CONTEXT_ADDRESS,
    SystemLogKey.PREV_BATCH_HASH: L2_SYSTEM_CONTEXT_ADDRESS,
    SystemLogKey.CHAINED_PRIORITY_TXN_HASH: L2_SYSTEM_CONTEXT_ADDRESS,
    SystemLogKey.NUMBER_OF_LAYER_1_TXS: L2_SYSTEM_CONTEXT_ADDRESS,
    SystemLogKey.BLOB_ONE_HASH: L2_TO_L1_MESSENGER_ADDRESS,
    SystemLogKey.BLOB_TWO_HASH: L2_TO_L1_MESSENGER_ADDRESS,
    SystemLogKey.EXPECTED_SYSTEM_CONTRACT_UPGRADE_TX_HASH: L2_BOOTLOADER_ADDRESS,
}


def is_bit_set(bitmap: int, index: int) -> bool:
    return (bitmap >> index) & 1 == 1


def set_bit(bitmap: int, index: int) -> int:
    if not 0 <= index < BITMAP_WIDTH:
        raise ValueError(f"bit index {index} outside the {BITMAP_WIDTH}-bit log bitmap")
    return bitmap | (1 << index)


def iter_system_logs(system_logs: bytes) -> Iterator[L2Log]:
    """Yield decoded records from a flat system log buffer."""

    if len(system_logs) % L2_TO_L1_LOG_SERIALIZE_SIZE:
        raise MalformedLogBuffer(
            f"system log buffer of {len(system_logs)} bytes is not a multiple of "
            f"{L2_TO_L1_LOG_SERIALIZE_SIZE}"
        )
    for offset in range(0, len(system_logs), L2_TO_L1_LOG_SERIALIZE_SIZE):
        yield L2Log.decode(system_logs[offset : offset + L2_TO_L1_LOG_SERIALIZE_SIZE])


def encode_system_logs(logs: Iterable[L2Log]) -> bytes:
    return b"".join(log.encode() for log in logs)


def process_system_logs(
    system_logs: bytes,
    expected_upgrade_tx_hash: bytes,
    source: PubdataSourceKind,
) -> LogProcessingOutput:
    """Classify ``system_logs`` into a :class:`LogProcessingOutput`.

    ``expected_upgrade_tx_hash`` is zero unless the batch must carry the
    system contract upgrade transaction.  ``source`` selects whether the
    pubdata hash (inline) or the blob hashes (blob referenced) are captured.
    """

    output = LogProcessingOutput()
    bitmap = 0

    for log in iter_system_logs(system_logs):
        raw_key = int.from_bytes(log.key, "big")
        if raw_key >= BITMAP_WIDTH:
            raise UnknownLogKey(f"unexpected system log key {raw_key}")
        if is_bit_set(bitmap, raw_key):
            raise DuplicateLogKey(f"system log key {raw_key} emitted more than once")
        bitmap = set_bit(bitmap, raw_key)

        key = SystemLogKey(raw_key)
        _verify_log_sender(log.sender, key)

        if key is SystemLogKey.L2_TO_L1_LOGS_TREE_ROOT:
            output.l2_logs_tree_root = log.value
        elif key is SystemLogKey.TOTAL_L2_TO_L1_PUBDATA:
            if source is PubdataSourceKind.INLINE:
                output.pubdata_hash = log.value
        elif key is SystemLogKey.STATE_DIFF_HASH:
            output.state_diff_hash = log.value
        elif key is SystemLogKey.PACKED_BATCH_AND_L2_BLOCK_TIMESTAMP:
            output.packed_batch_and_l2_block_timestamp = int.from_bytes(log.value, "big")
        elif key is SystemLogKey.PREV_BATCH_HASH:
            output.previous_batch_hash = log.value
        elif key is SystemLogKey.CHAINED_PRIORITY_TXN_HASH:
            output.chained_priority_txs_hash = log.value
        elif key is SystemLogKey.NUMBER_OF_LAYER_1_TXS:
            output.number_of_layer1_txs = int.from_bytes(log.value, "big")
        elif key in (SystemLogKey.BLOB_ONE_HASH, SystemLogKey.BLOB_TWO_HASH):
            if source is PubdataSourceKind.BLOB_REFERENCED:
                output.blob_hashes[key - SystemLogKey.BLOB_ONE_HASH] = log.value
        elif key is SystemLogKey.EXPECTED_SYSTEM_CONTRACT_UPGRADE_TX_HASH:
            if log.value != expected_upgrade_tx_hash:
                raise UpgradeHashMismatch(
                    f"upgrade log carries {to_hex(log.value)}, expected {to_hex(expected_upgrade_tx_hash)}"
                )

    required = BITMAP_NO_UPGRADE if expected_upgrade_tx_hash == ZERO_HASH else BITMAP_WITH_UPGRADE
    if bitmap != required:
        raise IncompleteLogSet(f"system log bitmap is {bitmap:#x}, expected {required:#x}")
    return output


def _verify_log_sender(sender: bytes, key: SystemLogKey) -> None:
    expected = AUTHORIZED_LOG_SENDERS[key]
    if sender != expected:
        raise WrongLogSender(
            f"log {key.name} sent by {to_hex(sender)}, expected {to_hex(expected)}"
        )


__all__ = [
    "AUTHORIZED_LOG_SENDERS",
    "BITMAP_NO_UPGRADE",
    "BITMAP_WITH_UPGRADE",
    "BITMAP_WIDTH",
    "L2_BOOTLOADER_ADDRESS",
    "L2_SYSTEM_CONTEXT_ADDRESS",
    "L2_TO_L1_MESSENGER_ADDRESS",
    "PubdataSourceKind",
    "SystemLogKey",
    "encode_system_logs",
    "is_bit_set",
    "iter_system_logs",
    "process_system_logs",
]
