"""Explicit lifecycle state threaded through every controller call."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from ..errors import CounterInvariantViolated
from .encoding import ZERO_HASH, to_hex
from .types import StoredBatchInfo


@dataclass(frozen=True)
class UpgradeMarker:
    """Pending system contract upgrade and the batch that carried it."""

    tx_hash: bytes = ZERO_HASH
    batch_number: int = 0

    @property
    def is_set(self) -> bool:
        return self.tx_hash != ZERO_HASH

    def to_dict(self) -> Dict[str, object]:
        return {"tx_hash": to_hex(self.tx_hash), "batch_number": self.batch_number}


@dataclass
class SettlementState:
    """Counters, stored batch hashes and the upgrade marker.

    ``stored_batch_hashes`` is append-only: revert moves the counters back
    but leaves the hashes of reverted batches in place.
    """

    stored_batch_hashes: Dict[int, bytes] = field(default_factory=dict)
    l2_logs_root_hashes: Dict[int, bytes] = field(default_factory=dict)
    total_committed: int = 0
    total_verified: int = 0
    total_executed: int = 0
    upgrade: UpgradeMarker = field(default_factory=UpgradeMarker)

    @classmethod
    def from_genesis(cls, genesis: StoredBatchInfo) -> "SettlementState":
        if genesis.batch_number != 0:
            raise ValueError("genesis batch must have number 0")
        return cls(stored_batch_hashes={0: genesis.hash()})

    def stored_batch_hash(self, batch_number: int) -> bytes:
        return self.stored_batch_hashes.get(batch_number, ZERO_HASH)

    def l2_logs_root_hash(self, batch_number: int) -> bytes:
        return self.l2_logs_root_hashes.get(batch_number, ZERO_HASH)

    def check_invariants(self) -> None:
        if not self.total_executed <= self.total_verified <= self.total_committed:
            raise CounterInvariantViolated(
                "counter invariant violated: "
                f"executed={self.total_executed} verified={self.total_verified} committed={self.total_committed}"
            )

    def snapshot(self) -> "SettlementState":
        # Hash values and the upgrade marker are immutable; copying the maps is enough.
        return SettlementState(
            stored_batch_hashes=dict(self.stored_batch_hashes),
            l2_logs_root_hashes=dict(self.l2_logs_root_hashes),
            total_committed=self.total_committed,
            total_verified=self.total_verified,
            total_executed=self.total_executed,
            upgrade=self.upgrade,
        )

    def restore(self, snapshot: "SettlementState") -> None:
        self.stored_batch_hashes = dict(snapshot.stored_batch_hashes)
        self.l2_logs_root_hashes = dict(snapshot.l2_logs_root_hashes)
        self.total_committed = snapshot.total_committed
        self.total_verified = snapshot.total_verified
        self.total_executed = snapshot.total_executed
        self.upgrade = snapshot.upgrade

    def summary(self) -> Dict[str, object]:
        return {
            "total_committed": self.total_committed,
            "total_verified": self.total_verified,
            "total_executed": self.total_executed,
            "last_committed_hash": to_hex(self.stored_batch_hash(self.total_committed)),
            "upgrade": self.upgrade.to_dict(),
        }


__all__ = ["SettlementState", "UpgradeMarker"]
