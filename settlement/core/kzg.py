"""EIP-4844 point evaluation backed by the ``ckzg`` bindings."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import ckzg

from .da import BLS_MODULUS, KZG_COMMITMENT_SIZE, KZG_PROOF_SIZE

VERSIONED_HASH_VERSION_KZG = 0x01
POINT_EVALUATION_INPUT_SIZE = 32 + 32 + KZG_COMMITMENT_SIZE + KZG_PROOF_SIZE


def kzg_to_versioned_hash(commitment: bytes) -> bytes:
    """Return ``0x01 || sha256(commitment)[1:]``."""

    if len(commitment) != KZG_COMMITMENT_SIZE:
        raise ValueError(f"KZG commitment must be {KZG_COMMITMENT_SIZE} bytes")
    return bytes([VERSIONED_HASH_VERSION_KZG]) + hashlib.sha256(commitment).digest()[1:]


class CKZGPointEvaluator:
    """Point evaluation primitive using a c-kzg-4844 trusted setup.

    The trusted setup is loaded on first use so that constructing the
    evaluator (e.g. while building an executor from configuration) does not
    touch the filesystem.
    """

    def __init__(self, trusted_setup_path: str | Path, precompute: int = 0) -> None:
        self.trusted_setup_path = Path(trusted_setup_path)
        self.precompute = precompute
        self._setup: Any = None

    def _trusted_setup(self) -> Any:
        if self._setup is None:
            if not self.trusted_setup_path.exists():
                raise FileNotFoundError(f"trusted setup not found: {self.trusted_setup_path}")
            self._setup = ckzg.load_trusted_setup(str(self.trusted_setup_path), self.precompute)
        return self._setup

    def evaluate(self, versioned_hash: bytes, opening: bytes) -> int:
        if len(opening) != POINT_EVALUATION_INPUT_SIZE:
            raise ValueError(f"opening must be {POINT_EVALUATION_INPUT_SIZE} bytes, got {len(opening)}")
        z = opening[0:32]
        y = opening[32:64]
        commitment = opening[64 : 64 + KZG_COMMITMENT_SIZE]
        proof = opening[64 + KZG_COMMITMENT_SIZE :]
        if kzg_to_versioned_hash(commitment) != versioned_hash:
            raise ValueError("versioned hash does not match KZG commitment")
        if not ckzg.verify_kzg_proof(commitment, z, y, proof, self._trusted_setup()):
            raise ValueError("KZG proof verification failed")
        return BLS_MODULUS


__all__ = ["CKZGPointEvaluator", "kzg_to_versioned_hash"]
