"""Rollup settlement validation core."""

from .configuration import (
    AppConfig,
    ChainSection,
    LimitsSection,
    Profile,
    ProfileMetadata,
    VerifierSection,
    available_profiles,
    build_profile_config,
    load_config,
    parse_overrides,
    profile_metadata,
)
from .core.da import (
    BlobOpening,
    BlobPubdata,
    DataAvailabilityVerifier,
    InlinePubdata,
    parse_pubdata_commitments,
)
from .core.executor import Executor
from .core.inclusion import prove_l2_log_inclusion, prove_l2_message_inclusion
from .core.logs import SystemLogKey, encode_system_logs, process_system_logs
from .core.merkle import calculate_root, calculate_root_paths
from .core.priority import PriorityOperationQueue, collect_operations
from .core.state import SettlementState, UpgradeMarker
from .core.types import (
    CommitBatchInfo,
    L2Log,
    L2Message,
    LogProcessingOutput,
    PriorityOperation,
    ProofInput,
    StoredBatchInfo,
)
from .errors import (
    DataIntegrityError,
    ExternalDependencyError,
    SequencingError,
    SettlementError,
)

__all__ = [
    "AppConfig",
    "ChainSection",
    "LimitsSection",
    "Profile",
    "ProfileMetadata",
    "VerifierSection",
    "available_profiles",
    "build_profile_config",
    "load_config",
    "parse_overrides",
    "profile_metadata",
    "BlobOpening",
    "BlobPubdata",
    "DataAvailabilityVerifier",
    "InlinePubdata",
    "parse_pubdata_commitments",
    "Executor",
    "prove_l2_log_inclusion",
    "prove_l2_message_inclusion",
    "SystemLogKey",
    "encode_system_logs",
    "process_system_logs",
    "calculate_root",
    "calculate_root_paths",
    "PriorityOperationQueue",
    "collect_operations",
    "SettlementState",
    "UpgradeMarker",
    "CommitBatchInfo",
    "L2Log",
    "L2Message",
    "LogProcessingOutput",
    "PriorityOperation",
    "ProofInput",
    "StoredBatchInfo",
    "DataIntegrityError",
    "ExternalDependencyError",
    "SequencingError",
    "SettlementError",
]
