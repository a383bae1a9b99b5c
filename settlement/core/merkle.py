"""Merkle root reconstruction for append-only binary keccak trees.

Both entry points return the recomputed root; comparing it to a trusted
root is the caller's job.  Parents are always ``keccak256(left || right)``
with the side chosen by position, never by value.
"""
from __future__ import annotations

from typing import List, Sequence

from ..errors import (
    EmptyPaths,
    EmptyProof,
    IndexHeightMismatch,
    IndexTooLarge,
    NothingToProve,
    PathLengthMismatch,
    ProofTooLong,
)
from .encoding import keccak256

MAX_TREE_HEIGHT = 256


def hash_pair(left: bytes, right: bytes) -> bytes:
    return keccak256(left + right)


def calculate_root(path: Sequence[bytes], index: int, leaf: bytes) -> bytes:
    """Recompute the root from ``leaf`` at ``index`` and its bottom-up sibling ``path``."""

    height = len(path)
    if height == 0:
        raise EmptyProof("Merkle proof has no siblings")
    if height > MAX_TREE_HEIGHT:
        raise ProofTooLong(f"Merkle proof of {height} levels exceeds {MAX_TREE_HEIGHT}")
    if index < 0 or index >> height:
        raise IndexTooLarge(f"leaf index {index} does not fit in a tree of height {height}")

    current = leaf
    for sibling in path:
        if index % 2 == 0:
            current = hash_pair(current, sibling)
        else:
            current = hash_pair(sibling, current)
        index //= 2
    return current


def calculate_root_paths(
    start_path: Sequence[bytes],
    end_path: Sequence[bytes],
    start_index: int,
    leaves: Sequence[bytes],
) -> bytes:
    """Recompute the root from a contiguous run of ``leaves``.

    ``start_path`` and ``end_path`` are the single-leaf proofs of the first
    and last leaf of the run.  At each level only the boundary siblings are
    taken from the paths; everything inside the run is hashed from the
    level below.
    """

    height = len(start_path)
    if height != len(end_path):
        raise PathLengthMismatch(f"boundary paths have {height} and {len(end_path)} levels")
    if height > MAX_TREE_HEIGHT:
        raise ProofTooLong(f"Merkle proof of {height} levels exceeds {MAX_TREE_HEIGHT}")
    if height == 0:
        raise EmptyPaths("range proof boundary paths are empty")
    if not leaves:
        raise NothingToProve("range proof contains no leaves")
    if start_index < 0 or start_index + len(leaves) > 1 << height:
        raise IndexHeightMismatch(
            f"range [{start_index}, {start_index + len(leaves)}) does not fit in a tree of height {height}"
        )

    level: List[bytes] = list(leaves)
    for depth in range(height):
        parity = start_index % 2
        level_len = len(level)
        # An extra parent is needed when the run starts on a right child or ends on a left child.
        next_len = level_len // 2 + (parity | (level_len % 2))
        ends_on_left_child = (start_index + level_len) % 2 == 1
        parents: List[bytes] = []
        for i in range(next_len):
            if i == 0 and parity == 1:
                left = start_path[depth]
            else:
                left = level[2 * i - parity]
            if i == next_len - 1 and ends_on_left_child:
                right = end_path[depth]
            else:
                right = level[2 * i + 1 - parity]
            parents.append(hash_pair(left, right))
        level = parents
        start_index //= 2
    return level[0]


__all__ = ["MAX_TREE_HEIGHT", "calculate_root", "calculate_root_paths", "hash_pair"]
