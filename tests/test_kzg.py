import dataclasses
import hashlib
from pathlib import Path

import ckzg
import pytest

from factories import StaticBlobSource, blob_opening
from settlement.core.da import BLS_MODULUS, BlobOpening, DataAvailabilityVerifier
from settlement.core.encoding import keccak256
from settlement.core.kzg import CKZGPointEvaluator, kzg_to_versioned_hash
from settlement.errors import InvalidBlobProof


def test_versioned_hash() -> None:
    commitment = bytes(range(48))
    versioned = kzg_to_versioned_hash(commitment)
    assert len(versioned) == 32
    assert versioned[0] == 0x01
    assert versioned[1:] == hashlib.sha256(commitment).digest()[1:]


def test_versioned_hash_requires_48_bytes() -> None:
    with pytest.raises(ValueError):
        kzg_to_versioned_hash(bytes(32))


def test_setup_is_loaded_lazily(tmp_path: Path) -> None:
    evaluator = CKZGPointEvaluator(tmp_path / "missing-setup.txt")
    assert evaluator.trusted_setup_path.name == "missing-setup.txt"


def test_rejects_mismatched_versioned_hash(tmp_path: Path) -> None:
    evaluator = CKZGPointEvaluator(tmp_path / "missing-setup.txt")
    opening = blob_opening(1)
    with pytest.raises(ValueError, match="versioned hash"):
        evaluator.evaluate(b"\x01" + bytes(31), opening.precompile_input())


def test_rejects_short_input(tmp_path: Path) -> None:
    evaluator = CKZGPointEvaluator(tmp_path / "missing-setup.txt")
    with pytest.raises(ValueError):
        evaluator.evaluate(b"\x01" + bytes(31), bytes(10))


def test_missing_setup_surfaces_as_invalid_blob_proof(tmp_path: Path) -> None:
    opening = blob_opening(1)
    versioned = kzg_to_versioned_hash(opening.commitment)
    verifier = DataAvailabilityVerifier(
        StaticBlobSource([versioned]), CKZGPointEvaluator(tmp_path / "missing-setup.txt")
    )
    with pytest.raises(InvalidBlobProof):
        verifier.verify_blobs([opening])


# ---------------------------------------------------------------------------
#  Real openings against the public EIP-4844 ceremony setup
# ---------------------------------------------------------------------------

TRUSTED_SETUP = Path(__file__).parent / "trusted_setup.txt"
FIELD_ELEMENTS_PER_BLOB = 4096


def make_blob() -> bytes:
    # A leading zero byte keeps every field element below the BLS modulus.
    return b"".join(
        b"\x00" + keccak256(f"field element {i}".encode())[1:] for i in range(FIELD_ELEMENTS_PER_BLOB)
    )


@pytest.fixture(scope="module")
def real_opening() -> BlobOpening:
    setup = ckzg.load_trusted_setup(str(TRUSTED_SETUP), 0)
    blob = make_blob()
    commitment = ckzg.blob_to_kzg_commitment(blob, setup)
    point = keccak256(b"opening point")[:16]
    proof, claimed_value = ckzg.compute_kzg_proof(blob, bytes(16) + point, setup)
    return BlobOpening(point, bytes(claimed_value), bytes(commitment), bytes(proof))


@pytest.fixture(scope="module")
def evaluator() -> CKZGPointEvaluator:
    return CKZGPointEvaluator(TRUSTED_SETUP)


def test_valid_opening_returns_modulus(evaluator, real_opening) -> None:
    versioned = kzg_to_versioned_hash(real_opening.commitment)
    assert evaluator.evaluate(versioned, real_opening.precompile_input()) == BLS_MODULUS


def test_tampered_claimed_value_is_rejected(evaluator, real_opening) -> None:
    tampered = dataclasses.replace(real_opening, claimed_value=(1).to_bytes(32, "big"))
    versioned = kzg_to_versioned_hash(tampered.commitment)
    with pytest.raises(ValueError, match="verification failed"):
        evaluator.evaluate(versioned, tampered.precompile_input())


def test_real_opening_through_verifier(evaluator, real_opening) -> None:
    versioned = kzg_to_versioned_hash(real_opening.commitment)
    verifier = DataAvailabilityVerifier(StaticBlobSource([versioned]), evaluator)
    commitments = verifier.verify_blobs([real_opening])
    assert commitments[0] == keccak256(versioned + real_opening.opening_point + real_opening.claimed_value)

    tampered = dataclasses.replace(real_opening, claimed_value=(1).to_bytes(32, "big"))
    with pytest.raises(InvalidBlobProof):
        verifier.verify_blobs([tampered])
