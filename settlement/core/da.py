"""Data availability verification for committed batches.

The pubdata commitments buffer starts with a one-byte source tag:

``0`` (inline)
    The rest of the buffer is the pubdata itself; its keccak hash must
    equal the ``TOTAL_L2_TO_L1_PUBDATA`` system log.
``1`` (blob referenced)
    The rest of the buffer is a sequence of 144-byte blob openings.  Each
    opening is checked against the platform's versioned hash for the
    matching blob index through the EIP-4844 point evaluation primitive.

Verification returns exactly :data:`MAX_NUMBER_OF_BLOBS` blob commitment
digests; unused slots are zero.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from ..errors import (
    BlobHashCommitmentMismatch,
    ExtraBlobDetected,
    InvalidBlobProof,
    InvalidPubdataCommitmentsSize,
    MissingBlobHash,
    PubdataHashMismatch,
    TooManyBlobs,
    UnknownPubdataSource,
)
from .encoding import ZERO_HASH, concat, keccak256, to_hex
from .interfaces import BlobHashSource, PointEvaluator
from .logs import PubdataSourceKind
from .types import MAX_NUMBER_OF_BLOBS, LogProcessingOutput

logger = logging.getLogger(__name__)

BLS_MODULUS = 0x73EDA753299D7D483339D80809A1D80553BDA402FFFE5BFEFFFFFFFF00000001
FIELD_ELEMENTS_PER_BLOB = 4096

OPENING_POINT_SIZE = 16
CLAIMED_VALUE_SIZE = 32
KZG_COMMITMENT_SIZE = 48
KZG_PROOF_SIZE = 48
PUBDATA_COMMITMENT_SIZE = OPENING_POINT_SIZE + CLAIMED_VALUE_SIZE + KZG_COMMITMENT_SIZE + KZG_PROOF_SIZE


@dataclass(frozen=True)
class BlobOpening:
    """One 144-byte blob opening from the pubdata commitments buffer."""

    opening_point: bytes
    claimed_value: bytes
    commitment: bytes
    proof: bytes

    @classmethod
    def decode(cls, slot: bytes) -> "BlobOpening":
        if len(slot) != PUBDATA_COMMITMENT_SIZE:
            raise InvalidPubdataCommitmentsSize(
                f"blob opening must be {PUBDATA_COMMITMENT_SIZE} bytes, got {len(slot)}"
            )
        cursor = 0
        parts = []
        for size in (OPENING_POINT_SIZE, CLAIMED_VALUE_SIZE, KZG_COMMITMENT_SIZE, KZG_PROOF_SIZE):
            parts.append(bytes(slot[cursor : cursor + size]))
            cursor += size
        return cls(*parts)

    def encode(self) -> bytes:
        return concat((self.opening_point, self.claimed_value, self.commitment, self.proof))

    @property
    def padded_opening_point(self) -> bytes:
        return bytes(32 - OPENING_POINT_SIZE) + self.opening_point

    def precompile_input(self) -> bytes:
        """Opening bytes in point evaluation order: ``z || y || commitment || proof``."""

        return concat((self.padded_opening_point, self.claimed_value, self.commitment, self.proof))


@dataclass(frozen=True)
class InlinePubdata:
    pubdata: bytes

    kind = PubdataSourceKind.INLINE


@dataclass(frozen=True)
class BlobPubdata:
    openings: Tuple[BlobOpening, ...]

    kind = PubdataSourceKind.BLOB_REFERENCED


PubdataSource = Union[InlinePubdata, BlobPubdata]


def parse_pubdata_commitments(buffer: bytes) -> PubdataSource:
    """Decode the tag-prefixed pubdata commitments buffer."""

    if not buffer:
        raise UnknownPubdataSource("pubdata commitments buffer is empty")
    tag, body = buffer[0], bytes(buffer[1:])
    if tag == PubdataSourceKind.INLINE:
        return InlinePubdata(pubdata=body)
    if tag == PubdataSourceKind.BLOB_REFERENCED:
        if len(body) % PUBDATA_COMMITMENT_SIZE:
            raise InvalidPubdataCommitmentsSize(
                f"blob commitments of {len(body)} bytes are not a multiple of {PUBDATA_COMMITMENT_SIZE}"
            )
        count = len(body) // PUBDATA_COMMITMENT_SIZE
        if count > MAX_NUMBER_OF_BLOBS:
            raise TooManyBlobs(f"{count} blob openings supplied, at most {MAX_NUMBER_OF_BLOBS} allowed")
        openings = tuple(
            BlobOpening.decode(body[i * PUBDATA_COMMITMENT_SIZE : (i + 1) * PUBDATA_COMMITMENT_SIZE])
            for i in range(count)
        )
        return BlobPubdata(openings=openings)
    raise UnknownPubdataSource(f"unknown pubdata source tag {tag}")


def encode_pubdata_source(source: PubdataSource) -> bytes:
    if isinstance(source, InlinePubdata):
        return bytes([PubdataSourceKind.INLINE]) + source.pubdata
    return bytes([PubdataSourceKind.BLOB_REFERENCED]) + concat(o.encode() for o in source.openings)


class NoBlobs:
    """Blob hash source for environments without blob-carrying transactions."""

    def hash_for_blob(self, index: int) -> bytes:
        return ZERO_HASH


class DataAvailabilityVerifier:
    """Verifies that a batch's pubdata was published."""

    def __init__(
        self,
        blob_hashes: BlobHashSource | None = None,
        point_evaluator: PointEvaluator | None = None,
    ) -> None:
        self.blob_hashes = blob_hashes or NoBlobs()
        self.point_evaluator = point_evaluator

    def verify(self, source: PubdataSource, log_output: LogProcessingOutput) -> List[bytes]:
        """Return the blob commitment digests for ``source``."""

        if isinstance(source, InlinePubdata):
            return self.verify_inline(source, log_output.pubdata_hash)
        if isinstance(source, BlobPubdata):
            commitments = self.verify_blobs(source.openings)
            _check_blob_hashes(log_output.blob_hashes, commitments)
            return commitments
        raise UnknownPubdataSource(f"unsupported pubdata source {source!r}")  # pragma: no cover

    def verify_inline(self, source: InlinePubdata, declared_hash: bytes) -> List[bytes]:
        actual = keccak256(source.pubdata)
        if actual != declared_hash:
            raise PubdataHashMismatch(
                f"inline pubdata hashes to {to_hex(actual)}, logs declare {to_hex(declared_hash)}"
            )
        return [ZERO_HASH] * MAX_NUMBER_OF_BLOBS

    def verify_blobs(self, openings: Sequence[BlobOpening]) -> List[bytes]:
        commitments = [ZERO_HASH] * MAX_NUMBER_OF_BLOBS
        for index, opening in enumerate(openings):
            versioned_hash = self.blob_hashes.hash_for_blob(index)
            if versioned_hash == ZERO_HASH:
                raise MissingBlobHash(f"no versioned hash published for blob {index}")
            self.point_evaluation(versioned_hash, opening)
            commitments[index] = keccak256(
                concat((versioned_hash, opening.opening_point, opening.claimed_value))
            )
            logger.debug("Verified blob %d with versioned hash %s", index, to_hex(versioned_hash))

        if self.blob_hashes.hash_for_blob(len(openings)) != ZERO_HASH:
            raise ExtraBlobDetected(f"blob {len(openings)} is published but has no opening")
        return commitments

    def point_evaluation(self, versioned_hash: bytes, opening: BlobOpening) -> None:
        if self.point_evaluator is None:
            raise InvalidBlobProof("no point evaluation primitive configured")
        try:
            result = self.point_evaluator.evaluate(versioned_hash, opening.precompile_input())
        except Exception as exc:
            raise InvalidBlobProof(f"point evaluation failed: {exc}") from exc
        if result != BLS_MODULUS:
            raise InvalidBlobProof(f"point evaluation returned {result!r}")


def _check_blob_hashes(blob_hashes: Sequence[bytes], commitments: Sequence[bytes]) -> None:
    for index, (blob_hash, commitment) in enumerate(zip(blob_hashes, commitments)):
        if (blob_hash == ZERO_HASH) != (commitment == ZERO_HASH):
            raise BlobHashCommitmentMismatch(
                f"blob slot {index}: log hash {to_hex(blob_hash)} does not match supplied openings"
            )


__all__ = [
    "BLS_MODULUS",
    "BlobOpening",
    "BlobPubdata",
    "DataAvailabilityVerifier",
    "FIELD_ELEMENTS_PER_BLOB",
    "InlinePubdata",
    "NoBlobs",
    "PUBDATA_COMMITMENT_SIZE",
    "PubdataSource",
    "encode_pubdata_source",
    "parse_pubdata_commitments",
]
