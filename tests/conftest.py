# ============================================================================
# TEST FIXTURES
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Tests - Shared fakes and runtime harness
# PURPOSE: Scripted extraction engine, local object store, zero-delay retries
# CREATED: 19 OCT 2026
# ============================================================================
"""
Shared test fixtures.

FakeExtractionEngine reads the input file's content as a key into a
scripted tree:

    {"root":  {"embedded": ["a.bin", "b.bin"]},
     "a.bin": {"produced": ["a"]},
     "b.bin": {"produced": ["b"]}}

Produced files are written as <directory>/<name>.txt, embedded files as
<directory>/embedded/<name> containing their own name, so the embedded
file is the key of its own subtree.
"""

import asyncio
import os
import zipfile
from typing import Dict, List, Optional

import pytest

from core.config import (
    OrchestrationConfig,
    RetryDefaults,
    StorageDefaults,
    TimeoutDefaults,
    WorkerDefaults,
)
from core.models import ArtifactRef, ExtractionResult, ExtractionTask
from infrastructure.extraction import ExtractionEngine
from infrastructure.relay_log import MemoryRelayLog
from infrastructure.storage import LocalObjectStore
from orchestrator import build_runtime
from repositories.checkpoint_repo import MemoryCheckpointStore


# ============================================================================
# FAKES
# ============================================================================

class FakeExtractionEngine(ExtractionEngine):
    """Extraction engine driven by a scripted tree."""

    def __init__(
        self,
        tree: Optional[Dict[str, Dict[str, List[str]]]] = None,
        fail: Optional[Dict[str, BaseException]] = None,
    ):
        self.tree = tree or {}
        self.fail = dict(fail or {})
        self.calls: List[ExtractionTask] = []
        self.keys: List[str] = []

    async def extract(self, task, heartbeat=None):
        self.calls.append(task)
        with open(task.path) as f:
            key = f.read().strip()
        self.keys.append(key)
        if key in self.fail:
            raise self.fail[key]

        node = self.tree.get(key, {})
        os.makedirs(task.directory, exist_ok=True)

        produced = []
        for name in node.get("produced", []):
            path = os.path.join(task.directory, f"{name}.txt")
            with open(path, "w") as f:
                f.write(f"text of {key}")
            produced.append(ArtifactRef(path=path, mimetype="text/plain"))

        embedded = []
        for name in node.get("embedded", []):
            path = os.path.join(task.directory, "embedded", name)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as f:
                f.write(name)
            embedded.append(ArtifactRef(path=path, checksum=name))

        if heartbeat is not None:
            heartbeat(task.task_id)
        await asyncio.sleep(0)
        return ExtractionResult(produced=produced, embedded=embedded)


def make_config(tmp_path, **sections) -> OrchestrationConfig:
    """Test configuration rooted under tmp_path."""
    sections.setdefault(
        "worker",
        WorkerDefaults(
            worker_id="worker-1",
            max_concurrent_activities=50,
            workspace_root=str(tmp_path / "workspaces"),
        ),
    )
    sections.setdefault(
        "timeouts",
        TimeoutDefaults(query_poll_interval=0.005, query_heartbeat_timeout=5.0),
    )
    sections.setdefault(
        "storage",
        StorageDefaults(backend="local", local_root=str(tmp_path / "store")),
    )
    sections.setdefault("retry", RetryDefaults(maximum_attempts=3))
    return OrchestrationConfig(**sections)


class Harness:
    """Runtime wired to in-memory and local collaborators."""

    def __init__(self, tmp_path, tree=None, fail=None, worker_ids=None, **sections):
        self.config = make_config(tmp_path, **sections)
        self.store = LocalObjectStore(self.config.storage.local_root)
        self.relay_log = MemoryRelayLog()
        self.engine = FakeExtractionEngine(tree, fail)
        self.checkpoints = MemoryCheckpointStore()
        self.delays: List[float] = []
        self.runtime = build_runtime(
            self.config,
            store=self.store,
            relay_log=self.relay_log,
            engine=self.engine,
            checkpoints=self.checkpoints,
            sleep=self.sleep,
            worker_ids=worker_ids or ["worker-1"],
        )

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)

    @property
    def workspace_root(self) -> str:
        return self.config.worker.workspace_root

    def workspace_entries(self) -> List[str]:
        if not os.path.isdir(self.workspace_root):
            return []
        return sorted(os.listdir(self.workspace_root))

    def archive_names(self, locator: str) -> List[str]:
        with zipfile.ZipFile(self.store.path_for(locator)) as archive:
            return sorted(archive.namelist())


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def make_harness(tmp_path):
    """Factory for a Harness under this test's tmp_path."""
    def factory(**kwargs) -> Harness:
        return Harness(tmp_path, **kwargs)
    return factory


@pytest.fixture
def config(tmp_path) -> OrchestrationConfig:
    return make_config(tmp_path)


@pytest.fixture
def engine_factory():
    """FakeExtractionEngine constructor for tests that wire activities by hand."""
    return FakeExtractionEngine
