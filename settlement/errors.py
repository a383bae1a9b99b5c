"""Error taxonomy for the settlement validation core.

Every rejection raised by the lifecycle controller and its helpers derives
from :class:`SettlementError`.  The three category bases mirror how callers
are expected to react:

* :class:`SequencingError` - the call referenced the wrong predecessor or
  violated counter ordering; resubmit with corrected arguments.
* :class:`DataIntegrityError` - submitted data does not match its declared
  hashes or layout; the submitter is buggy or malicious.
* :class:`ExternalDependencyError` - an injected collaborator (proof
  verifier, point evaluation, priority queue) refused the call.

``SettlementError`` subclasses :class:`ValueError` so that callers which
already treat validation failures as ``ValueError`` keep working.
"""
from __future__ import annotations


class SettlementError(ValueError):
    """Base class for all settlement rejections."""

    kind = "settlement"


class SequencingError(SettlementError):
    kind = "sequencing"


class DataIntegrityError(SettlementError):
    kind = "data-integrity"


class ExternalDependencyError(SettlementError):
    kind = "external-dependency"


# ---------------------------------------------------------------------------
#  Sequencing
# ---------------------------------------------------------------------------


class PreviousBatchMismatch(SequencingError):
    """The supplied last committed batch does not match the stored hash."""


class EmptyBatchSet(SequencingError):
    """No batches were supplied."""


class NonSequentialBatch(SequencingError):
    """A batch number is not its predecessor's number plus one."""


class UpgradeAlreadyPending(SequencingError):
    """A system contract upgrade is already recorded and not yet executed."""


class ProvenChainMismatch(SequencingError):
    """The supplied last verified batch does not match the stored hash."""


class UnknownCommittedBatch(SequencingError):
    """A batch submitted for proving was never committed at that position."""


class MultiProofUnsupported(SequencingError):
    """More than one batch was submitted in a single proof."""


class CommittedBoundsExceeded(SequencingError):
    """Proving would move the verified counter past the committed one."""


class OutOfOrderExecution(SequencingError):
    """A batch was submitted for execution out of order."""


class NotCommitted(SequencingError):
    """A batch submitted for execution does not match its stored hash."""


class ExecutedExceedsVerified(SequencingError):
    """Execution would move the executed counter past the verified one."""


class CannotRevertExecuted(SequencingError):
    """Revert target lies below the executed counter."""


class NothingToRevert(SequencingError):
    """Revert target is not below the committed counter."""


class BatchNotExecuted(SequencingError):
    """Inclusion was requested for a batch that has not been executed."""


class CounterInvariantViolated(SequencingError):
    """executed <= verified <= committed no longer holds."""


# ---------------------------------------------------------------------------
#  Data integrity
# ---------------------------------------------------------------------------


class MalformedLogBuffer(DataIntegrityError):
    """System log buffer length is not a multiple of the record size."""


class DuplicateLogKey(DataIntegrityError):
    """The same system log key was emitted more than once."""


class WrongLogSender(DataIntegrityError):
    """A system log was emitted by an unauthorised sender."""


class UnknownLogKey(DataIntegrityError):
    """A system log uses a key outside the recognised set."""


class IncompleteLogSet(DataIntegrityError):
    """The processed log bitmap does not equal the required value."""


class UpgradeHashMismatch(DataIntegrityError):
    """The upgrade log does not carry the expected upgrade tx hash."""


class UnknownPubdataSource(DataIntegrityError):
    """The pubdata commitments buffer has no recognised source tag."""


class InvalidPubdataCommitmentsSize(DataIntegrityError):
    """Blob commitments are not a whole number of fixed-size slots."""


class TooManyBlobs(DataIntegrityError):
    """More blob openings were supplied than there are commitment slots."""


class PubdataHashMismatch(DataIntegrityError):
    """Inline pubdata does not hash to the value declared in the logs."""


class MissingBlobHash(DataIntegrityError):
    """The platform reports no versioned hash for a declared blob."""


class ExtraBlobDetected(DataIntegrityError):
    """The platform reports a blob that no opening accounts for."""


class BlobHashCommitmentMismatch(DataIntegrityError):
    """Log-declared blob hashes disagree with the supplied blob openings."""


class SystemLogsTooLarge(DataIntegrityError):
    """The raw system log buffer exceeds the configured ceiling."""


class ChainMismatch(DataIntegrityError):
    """The logged previous batch hash differs from the predecessor's."""


class PriorityHashMismatch(DataIntegrityError):
    """A rolling priority operations hash does not match."""


class TxCountMismatch(DataIntegrityError):
    """The logged L1 transaction count differs from the declared one."""


class TimestampMismatch(DataIntegrityError):
    """The logged batch timestamp differs from the declared one."""


class TimestampNotIncreasing(DataIntegrityError):
    """The batch timestamp is not after the previous batch timestamp."""


class L2BlockTimestampTooEarly(DataIntegrityError):
    """The last L2 block timestamp precedes the batch timestamp."""


class TimestampTooOld(DataIntegrityError):
    """The batch timestamp lies outside the staleness window."""


class TimestampTooNew(DataIntegrityError):
    """The last L2 block timestamp lies too far in the future."""


class EmptyProof(DataIntegrityError):
    """A Merkle proof with no siblings was supplied."""


class ProofTooLong(DataIntegrityError):
    """A Merkle proof exceeds the maximum tree height."""


class IndexTooLarge(DataIntegrityError):
    """A leaf index does not fit in a tree of the proof's height."""


class PathLengthMismatch(DataIntegrityError):
    """Range proof boundary paths have different lengths."""


class EmptyPaths(DataIntegrityError):
    """Range proof boundary paths are empty."""


class NothingToProve(DataIntegrityError):
    """A range proof was requested for no leaves."""


class IndexHeightMismatch(DataIntegrityError):
    """The range does not fit in a tree of the proof's height."""


class InvalidDefaultLeaf(DataIntegrityError):
    """An inclusion proof targeted the default (empty) log leaf."""


# ---------------------------------------------------------------------------
#  External dependencies
# ---------------------------------------------------------------------------


class InvalidBlobProof(ExternalDependencyError):
    """The point evaluation primitive rejected a blob opening."""


class ProofRejected(ExternalDependencyError):
    """The proof verifier rejected the submitted proof."""


class PriorityQueueEmpty(ExternalDependencyError):
    """Fewer priority operations are queued than a batch declares."""


__all__ = [name for name in dir() if name[0].isupper()]
