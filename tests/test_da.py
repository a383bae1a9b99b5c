import pytest

from factories import StaticBlobSource, StubPointEvaluator, blob_opening, h
from settlement.core.da import (
    BLS_MODULUS,
    PUBDATA_COMMITMENT_SIZE,
    BlobPubdata,
    DataAvailabilityVerifier,
    InlinePubdata,
    encode_pubdata_source,
    parse_pubdata_commitments,
)
from settlement.core.encoding import ZERO_HASH, keccak256
from settlement.core.types import LogProcessingOutput
from settlement.errors import (
    BlobHashCommitmentMismatch,
    ExtraBlobDetected,
    InvalidBlobProof,
    InvalidPubdataCommitmentsSize,
    MissingBlobHash,
    PubdataHashMismatch,
    TooManyBlobs,
    UnknownPubdataSource,
)

VERSIONED_0 = b"\x01" + h("versioned 0")[1:]
VERSIONED_1 = b"\x01" + h("versioned 1")[1:]


def test_parse_inline_source() -> None:
    source = parse_pubdata_commitments(b"\x00hello")
    assert source == InlinePubdata(pubdata=b"hello")


def test_parse_blob_source() -> None:
    openings = (blob_opening(1), blob_opening(5))
    buffer = encode_pubdata_source(BlobPubdata(openings))
    assert len(buffer) == 1 + 2 * PUBDATA_COMMITMENT_SIZE
    assert parse_pubdata_commitments(buffer) == BlobPubdata(openings)


@pytest.mark.parametrize(
    "buffer, error",
    [
        (b"", UnknownPubdataSource),
        (b"\x02abc", UnknownPubdataSource),
        (b"\x01" + bytes(PUBDATA_COMMITMENT_SIZE - 1), InvalidPubdataCommitmentsSize),
        (b"\x01" + bytes(3 * PUBDATA_COMMITMENT_SIZE), TooManyBlobs),
    ],
)
def test_parse_rejects_bad_buffers(buffer: bytes, error: type) -> None:
    with pytest.raises(error):
        parse_pubdata_commitments(buffer)


def test_empty_blob_body_is_zero_blobs() -> None:
    assert parse_pubdata_commitments(b"\x01") == BlobPubdata(())


def test_inline_hash_must_match() -> None:
    verifier = DataAvailabilityVerifier()
    output = LogProcessingOutput(pubdata_hash=keccak256(b"pubdata"))
    assert verifier.verify(InlinePubdata(b"pubdata"), output) == [ZERO_HASH, ZERO_HASH]

    with pytest.raises(PubdataHashMismatch):
        verifier.verify(InlinePubdata(b"tampered"), output)


def test_blob_commitment_digest() -> None:
    evaluator = StubPointEvaluator()
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]), evaluator)
    opening = blob_opening(7)

    commitments = verifier.verify_blobs([opening])

    # The digest covers the raw 16-byte opening point; only the evaluation input is padded.
    expected = keccak256(VERSIONED_0 + opening.opening_point + opening.claimed_value)
    assert len(VERSIONED_0 + opening.opening_point + opening.claimed_value) == 80
    assert commitments == [expected, ZERO_HASH]
    versioned_hash, precompile_input = evaluator.calls[0]
    assert versioned_hash == VERSIONED_0
    assert precompile_input == bytes(16) + opening.opening_point + opening.claimed_value + opening.commitment + opening.proof


def test_two_blobs() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0, VERSIONED_1]), StubPointEvaluator())
    commitments = verifier.verify_blobs([blob_opening(1), blob_opening(2)])
    assert all(commitment != ZERO_HASH for commitment in commitments)
    assert commitments[0] != commitments[1]


def test_missing_blob_hash() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]), StubPointEvaluator())
    with pytest.raises(MissingBlobHash):
        verifier.verify_blobs([blob_opening(1), blob_opening(2)])


def test_extra_blob_detected() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0, VERSIONED_1]), StubPointEvaluator())
    with pytest.raises(ExtraBlobDetected):
        verifier.verify_blobs([blob_opening(1)])


def test_point_evaluation_wrong_result() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]), StubPointEvaluator(result=1))
    with pytest.raises(InvalidBlobProof):
        verifier.verify_blobs([blob_opening(1)])


def test_point_evaluation_failure_is_wrapped() -> None:
    evaluator = StubPointEvaluator(error=ValueError("bad proof"))
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]), evaluator)
    with pytest.raises(InvalidBlobProof, match="bad proof"):
        verifier.verify_blobs([blob_opening(1)])


def test_blobs_without_evaluator_are_rejected() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]))
    with pytest.raises(InvalidBlobProof):
        verifier.verify_blobs([blob_opening(1)])


def test_logged_blob_hashes_must_line_up() -> None:
    verifier = DataAvailabilityVerifier(StaticBlobSource([VERSIONED_0]), StubPointEvaluator())
    output = LogProcessingOutput(blob_hashes=[ZERO_HASH, ZERO_HASH])
    with pytest.raises(BlobHashCommitmentMismatch):
        verifier.verify(BlobPubdata((blob_opening(1),)), output)

    output = LogProcessingOutput(blob_hashes=[h("linear 0"), ZERO_HASH])
    commitments = verifier.verify(BlobPubdata((blob_opening(1),)), output)
    assert commitments[1] == ZERO_HASH


def test_bls_modulus_value() -> None:
    assert BLS_MODULUS == 52435875175126190479447740508185965837690552500527637822603658699938581184513
