from __future__ import annotations

import pytest

from factories import NOW, RecordingSink, StubVerifier
from settlement.configuration import AppConfig, Profile, build_profile_config
from settlement.core.executor import Executor
from settlement.core.priority import PriorityOperationQueue
from settlement.core.state import SettlementState
from settlement.core.types import StoredBatchInfo


@pytest.fixture
def config() -> AppConfig:
    return build_profile_config(Profile.MAINNET)


@pytest.fixture
def genesis() -> StoredBatchInfo:
    return StoredBatchInfo.zero()


@pytest.fixture
def state(genesis: StoredBatchInfo) -> SettlementState:
    return SettlementState.from_genesis(genesis)


@pytest.fixture
def queue() -> PriorityOperationQueue:
    return PriorityOperationQueue()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def executor(
    config: AppConfig, queue: PriorityOperationQueue, verifier: StubVerifier, sink: RecordingSink
) -> Executor:
    return Executor(
        config,
        proof_verifier=verifier,
        priority_queue=queue,
        pubdata_sink=sink,
        clock=lambda: NOW,
    )
