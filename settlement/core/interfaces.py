"""Capabilities the lifecycle controller consumes from its environment."""
from __future__ import annotations

from typing import Protocol, Sequence

from .types import PriorityOperation


class ProofVerifier(Protocol):
    def verify(
        self,
        public_inputs: Sequence[int],
        proof: bytes,
        recursive_aggregation_input: bytes,
    ) -> bool:
        ...


class PriorityQueue(Protocol):
    """FIFO of pending priority operations.

    ``snapshot`` and ``restore`` let the controller undo pops when the
    enclosing call is rejected.
    """

    def pop_front(self) -> PriorityOperation:
        ...

    def snapshot(self) -> object:
        ...

    def restore(self, marker: object) -> None:
        ...


class BlobHashSource(Protocol):
    def hash_for_blob(self, index: int) -> bytes:
        """Return the versioned hash of blob ``index`` or 32 zero bytes."""
        ...


class PointEvaluator(Protocol):
    def evaluate(self, versioned_hash: bytes, opening: bytes) -> int:
        """Verify a KZG opening and return the BLS modulus on success."""
        ...


class PubdataSink(Protocol):
    def send_to_l1(self, chain_id: int, pubdata: bytes) -> None:
        ...


__all__ = [
    "BlobHashSource",
    "PointEvaluator",
    "PriorityQueue",
    "ProofVerifier",
    "PubdataSink",
]
