"""Batch lifecycle controller: commit, prove, execute and revert.

Every entry point takes the :class:`~settlement.core.state.SettlementState`
explicitly and either applies all of its changes or none of them: the state
and the priority queue are snapshotted on entry and restored if anything
raises.  Batches inside a call are processed strictly in list order.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Sequence, Tuple

from ..configuration import AppConfig
from ..errors import (
    ChainMismatch,
    CommittedBoundsExceeded,
    CannotRevertExecuted,
    EmptyBatchSet,
    ExecutedExceedsVerified,
    L2BlockTimestampTooEarly,
    MultiProofUnsupported,
    NonSequentialBatch,
    NotCommitted,
    NothingToRevert,
    OutOfOrderExecution,
    PreviousBatchMismatch,
    PriorityHashMismatch,
    ProofRejected,
    ProvenChainMismatch,
    TimestampMismatch,
    TimestampNotIncreasing,
    TimestampTooNew,
    TimestampTooOld,
    TxCountMismatch,
    UnknownCommittedBatch,
    UpgradeAlreadyPending,
)
from .commitment import create_batch_commitment
from .da import DataAvailabilityVerifier, InlinePubdata, PubdataSource, parse_pubdata_commitments
from .encoding import ZERO_HASH, concat, keccak256, to_hex
from .interfaces import BlobHashSource, PointEvaluator, PriorityQueue, ProofVerifier, PubdataSink
from .logs import process_system_logs
from .priority import PriorityOperationQueue, collect_operations
from .state import SettlementState, UpgradeMarker
from .types import CommitBatchInfo, LogProcessingOutput, ProofInput, StoredBatchInfo

logger = logging.getLogger(__name__)


class Executor:
    """Validates and applies lifecycle transitions for a chain."""

    def __init__(
        self,
        config: AppConfig,
        *,
        proof_verifier: ProofVerifier | None = None,
        priority_queue: PriorityQueue | None = None,
        blob_hashes: BlobHashSource | None = None,
        point_evaluator: PointEvaluator | None = None,
        pubdata_sink: PubdataSink | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config
        self.proof_verifier = proof_verifier
        self.priority_queue: PriorityQueue = (
            priority_queue if priority_queue is not None else PriorityOperationQueue()
        )
        self.data_availability = DataAvailabilityVerifier(blob_hashes, point_evaluator)
        self.pubdata_sink = pubdata_sink
        self.clock = clock or (lambda: int(time.time()))

    # -- commit -----------------------------------------------------------

    def commit_batches(
        self,
        state: SettlementState,
        last_committed: StoredBatchInfo,
        new_batches: Sequence[CommitBatchInfo],
        system_upgrade_tx_hash: bytes = ZERO_HASH,
    ) -> Tuple[StoredBatchInfo, ...]:
        """Commit ``new_batches`` on top of ``last_committed``.

        A non-zero ``system_upgrade_tx_hash`` must be carried by the first
        batch of the call; the remaining batches must not carry it.
        """

        relayed: List[bytes] = []
        committed: List[StoredBatchInfo] = []
        with self._atomic(state, "commit"):
            if last_committed.hash() != state.stored_batch_hash(state.total_committed):
                raise PreviousBatchMismatch(
                    f"batch {last_committed.batch_number} does not match stored hash at {state.total_committed}"
                )
            if not new_batches:
                raise EmptyBatchSet("no batches to commit")
            if system_upgrade_tx_hash != ZERO_HASH:
                if state.upgrade.is_set:
                    raise UpgradeAlreadyPending(
                        f"upgrade {to_hex(state.upgrade.tx_hash)} from batch "
                        f"{state.upgrade.batch_number} has not been executed"
                    )
                state.upgrade = UpgradeMarker(
                    tx_hash=system_upgrade_tx_hash, batch_number=new_batches[0].batch_number
                )

            previous = last_committed
            for position, batch in enumerate(new_batches):
                expected_upgrade = system_upgrade_tx_hash if position == 0 else ZERO_HASH
                stored, source = self.commit_one_batch(previous, batch, expected_upgrade)
                state.stored_batch_hashes[stored.batch_number] = stored.hash()
                if isinstance(source, InlinePubdata):
                    relayed.append(source.pubdata)
                committed.append(stored)
                logger.info(
                    "BlockCommit batch=%d hash=%s commitment=%s",
                    stored.batch_number,
                    to_hex(stored.batch_hash),
                    to_hex(stored.commitment),
                )
                previous = stored
            state.total_committed += len(new_batches)

            # Relayed only once every batch of the call has been accepted.
            if self.pubdata_sink is not None:
                for pubdata in relayed:
                    self.pubdata_sink.send_to_l1(self.config.chain.chain_id, pubdata)
        return tuple(committed)

    def commit_one_batch(
        self,
        previous: StoredBatchInfo,
        batch: CommitBatchInfo,
        expected_upgrade_tx_hash: bytes = ZERO_HASH,
    ) -> Tuple[StoredBatchInfo, PubdataSource]:
        """Validate ``batch`` against ``previous`` and derive its stored record.

        Does not touch any lifecycle state; collaborators used for data
        availability are still consulted.
        """

        if batch.batch_number != previous.batch_number + 1:
            raise NonSequentialBatch(
                f"batch {batch.batch_number} does not follow batch {previous.batch_number}"
            )

        source = parse_pubdata_commitments(batch.pubdata_commitments)
        log_output = process_system_logs(batch.system_logs, expected_upgrade_tx_hash, source.kind)
        blob_commitments = self.data_availability.verify(source, log_output)

        if previous.batch_hash != log_output.previous_batch_hash:
            raise ChainMismatch(
                f"batch {batch.batch_number} builds on {to_hex(log_output.previous_batch_hash)}, "
                f"previous batch hash is {to_hex(previous.batch_hash)}"
            )
        if log_output.number_of_layer1_txs != batch.number_of_layer1_txs:
            raise TxCountMismatch(
                f"logs report {log_output.number_of_layer1_txs} L1 txs, batch declares {batch.number_of_layer1_txs}"
            )
        if log_output.chained_priority_txs_hash != batch.priority_operations_hash:
            raise PriorityHashMismatch(
                f"logged priority hash {to_hex(log_output.chained_priority_txs_hash)} differs from "
                f"declared {to_hex(batch.priority_operations_hash)}"
            )
        self._verify_batch_timestamp(log_output, batch.timestamp, previous.timestamp)

        commitment = create_batch_commitment(
            batch,
            self.config.chain,
            log_output.state_diff_hash,
            blob_commitments,
            self.config.limits.max_system_logs_bytes,
        )
        stored = StoredBatchInfo(
            batch_number=batch.batch_number,
            batch_hash=batch.new_state_root,
            index_repeated_storage_changes=batch.index_repeated_storage_changes,
            number_of_layer1_txs=batch.number_of_layer1_txs,
            priority_operations_hash=batch.priority_operations_hash,
            l2_logs_tree_root=log_output.l2_logs_tree_root,
            timestamp=batch.timestamp,
            commitment=commitment.commitment,
        )
        return stored, source

    def _verify_batch_timestamp(
        self,
        log_output: LogProcessingOutput,
        expected_batch_timestamp: int,
        previous_batch_timestamp: int,
    ) -> None:
        batch_timestamp = log_output.batch_timestamp
        last_l2_block_timestamp = log_output.last_l2_block_timestamp
        limits = self.config.limits

        if batch_timestamp != expected_batch_timestamp:
            raise TimestampMismatch(
                f"logged batch timestamp {batch_timestamp} differs from declared {expected_batch_timestamp}"
            )
        if previous_batch_timestamp >= batch_timestamp:
            raise TimestampNotIncreasing(
                f"batch timestamp {batch_timestamp} is not after previous {previous_batch_timestamp}"
            )
        if last_l2_block_timestamp < batch_timestamp:
            raise L2BlockTimestampTooEarly(
                f"last L2 block timestamp {last_l2_block_timestamp} precedes batch timestamp {batch_timestamp}"
            )

        now = self.clock()
        if now - limits.commit_timestamp_not_older > batch_timestamp:
            raise TimestampTooOld(f"batch timestamp {batch_timestamp} is older than the staleness window")
        if last_l2_block_timestamp > now + limits.commit_timestamp_approximation_delta:
            raise TimestampTooNew(f"last L2 block timestamp {last_l2_block_timestamp} is in the future")

    # -- prove ------------------------------------------------------------

    def prove_batches(
        self,
        state: SettlementState,
        last_verified: StoredBatchInfo,
        committed_batches: Sequence[StoredBatchInfo],
        proof: ProofInput,
    ) -> None:
        with self._atomic(state, "prove"):
            if last_verified.hash() != state.stored_batch_hash(state.total_verified):
                raise ProvenChainMismatch(
                    f"batch {last_verified.batch_number} does not match stored hash at {state.total_verified}"
                )
            if not committed_batches:
                raise EmptyBatchSet("no batches to prove")

            current_total = state.total_verified
            previous_commitment = last_verified.commitment
            public_inputs: List[int] = []
            for batch in committed_batches:
                current_total += 1
                if batch.hash() != state.stored_batch_hash(current_total):
                    raise UnknownCommittedBatch(
                        f"batch {batch.batch_number} does not match stored hash at {current_total}"
                    )
                public_inputs.append(self.batch_proof_public_input(previous_commitment, batch.commitment))
                previous_commitment = batch.commitment

            if len(public_inputs) != 1:
                raise MultiProofUnsupported(f"{len(public_inputs)} batches submitted, one proof per batch")
            if current_total > state.total_committed:
                raise CommittedBoundsExceeded(
                    f"verified count {current_total} would exceed committed count {state.total_committed}"
                )
            if self.proof_verifier is None:
                raise ProofRejected("no proof verifier configured")
            if not self.proof_verifier.verify(
                public_inputs, proof.serialized_proof, proof.recursive_aggregation_input
            ):
                raise ProofRejected(f"proof for batches up to {current_total} rejected")

            logger.info(
                "BlocksVerification previous=%d current=%d", state.total_verified, current_total
            )
            state.total_verified = current_total

    def batch_proof_public_input(self, previous_commitment: bytes, current_commitment: bytes) -> int:
        verifier = self.config.verifier
        digest = keccak256(
            concat(
                (
                    previous_commitment,
                    current_commitment,
                    verifier.recursion_node_level_vk_hash,
                    verifier.recursion_leaf_level_vk_hash,
                    verifier.recursion_circuits_set_vks_hash,
                )
            )
        )
        return int.from_bytes(digest, "big") % (1 << (256 - self.config.limits.public_input_shift))

    # -- execute ----------------------------------------------------------

    def execute_batches(self, state: SettlementState, batches: Sequence[StoredBatchInfo]) -> None:
        with self._atomic(state, "execute"):
            if not batches:
                raise EmptyBatchSet("no batches to execute")
            for position, batch in enumerate(batches):
                self._execute_one_batch(state, batch, position)

            new_total = state.total_executed + len(batches)
            if new_total > state.total_verified:
                raise ExecutedExceedsVerified(
                    f"executed count {new_total} would exceed verified count {state.total_verified}"
                )
            state.total_executed = new_total

            upgrade_batch = state.upgrade.batch_number
            if upgrade_batch != 0 and upgrade_batch <= new_total:
                logger.info("System contract upgrade from batch %d executed", upgrade_batch)
                state.upgrade = UpgradeMarker()

    def _execute_one_batch(self, state: SettlementState, batch: StoredBatchInfo, position: int) -> None:
        expected_number = state.total_executed + position + 1
        if batch.batch_number != expected_number:
            raise OutOfOrderExecution(f"batch {batch.batch_number} executed, expected {expected_number}")
        if batch.hash() != state.stored_batch_hash(batch.batch_number):
            raise NotCommitted(f"batch {batch.batch_number} does not match its stored hash")

        priority_hash = collect_operations(self.priority_queue, batch.number_of_layer1_txs)
        if priority_hash != batch.priority_operations_hash:
            raise PriorityHashMismatch(
                f"queued operations hash to {to_hex(priority_hash)}, batch {batch.batch_number} "
                f"declares {to_hex(batch.priority_operations_hash)}"
            )
        state.l2_logs_root_hashes[batch.batch_number] = batch.l2_logs_tree_root
        logger.info(
            "BlockExecution batch=%d hash=%s commitment=%s",
            batch.batch_number,
            to_hex(batch.batch_hash),
            to_hex(batch.commitment),
        )

    # -- revert -----------------------------------------------------------

    def revert_batches(self, state: SettlementState, new_last_batch: int) -> None:
        with self._atomic(state, "revert"):
            if new_last_batch < state.total_executed:
                raise CannotRevertExecuted(
                    f"cannot revert to {new_last_batch}, {state.total_executed} batches executed"
                )
            if new_last_batch >= state.total_committed:
                raise NothingToRevert(
                    f"nothing to revert, {state.total_committed} batches committed"
                )
            if new_last_batch < state.total_verified:
                state.total_verified = new_last_batch
            state.total_committed = new_last_batch
            if state.upgrade.batch_number > new_last_batch:
                state.upgrade = UpgradeMarker()

            logger.info(
                "BlocksRevert committed=%d verified=%d executed=%d",
                state.total_committed,
                state.total_verified,
                state.total_executed,
            )

    # -- internals --------------------------------------------------------

    @contextmanager
    def _atomic(self, state: SettlementState, operation: str) -> Iterator[None]:
        saved = state.snapshot()
        queue_marker = self.priority_queue.snapshot()
        try:
            yield
            state.check_invariants()
        except Exception as exc:
            state.restore(saved)
            self.priority_queue.restore(queue_marker)
            logger.warning("%s rejected: %s", operation, exc)
            raise


__all__ = ["Executor"]
