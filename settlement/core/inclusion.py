"""Inclusion proofs for L2 -> L1 logs of executed batches."""
from __future__ import annotations

import logging
from typing import Sequence

from ..errors import BatchNotExecuted, InvalidDefaultLeaf
from .encoding import keccak256, require_address, word
from .logs import L2_TO_L1_MESSENGER_ADDRESS
from .merkle import calculate_root
from .state import SettlementState
from .types import L2_TO_L1_LOG_SERIALIZE_SIZE, L2Log, L2Message

logger = logging.getLogger(__name__)

L2_L1_LOGS_TREE_DEFAULT_LEAF_HASH = keccak256(bytes(L2_TO_L1_LOG_SERIALIZE_SIZE))


def prove_l2_log_inclusion(
    state: SettlementState,
    batch_number: int,
    index: int,
    log: L2Log,
    proof: Sequence[bytes],
) -> bool:
    """Return whether ``log`` sits at ``index`` of the batch's log tree."""

    if batch_number > state.total_executed:
        raise BatchNotExecuted(f"batch {batch_number} has not been executed")
    hashed_log = keccak256(log.encode())
    if hashed_log == L2_L1_LOGS_TREE_DEFAULT_LEAF_HASH:
        raise InvalidDefaultLeaf("cannot prove inclusion of the empty log")

    calculated = calculate_root(proof, index, hashed_log)
    included = calculated == state.l2_logs_root_hash(batch_number)
    logger.debug("Log inclusion in batch %d at index %d: %s", batch_number, index, included)
    return included


def message_to_log(message: L2Message) -> L2Log:
    """Wrap ``message`` in the service log the L1 messenger emits for it."""

    return L2Log(
        shard_id=0,
        is_service=True,
        tx_number_in_batch=message.tx_number_in_batch,
        sender=L2_TO_L1_MESSENGER_ADDRESS,
        key=word(require_address(message.sender, "sender")),
        value=keccak256(message.data),
    )


def prove_l2_message_inclusion(
    state: SettlementState,
    batch_number: int,
    index: int,
    message: L2Message,
    proof: Sequence[bytes],
) -> bool:
    return prove_l2_log_inclusion(state, batch_number, index, message_to_log(message), proof)


__all__ = [
    "L2_L1_LOGS_TREE_DEFAULT_LEAF_HASH",
    "message_to_log",
    "prove_l2_log_inclusion",
    "prove_l2_message_inclusion",
]
