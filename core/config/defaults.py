# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for retries, history bounds, workers, timeouts
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the orchestrator. These can be overridden
via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides read once, in from_env()
- The resulting OrchestrationConfig is passed explicitly to the runtime,
  workflows and activities; nothing reads the environment at use sites
"""

import os
import socket
import tempfile
from dataclasses import dataclass, field
from typing import Optional
from enum import Enum

from core.models.retry import RetryPolicy


class StorageBackend(str, Enum):
    """Object store implementations."""
    BLOB = "blob"     # Azure Blob Storage
    LOCAL = "local"   # Directory tree on the local filesystem


@dataclass(frozen=True)
class RetryDefaults:
    """
    Defaults for activity retries.

    1s initial delay, doubling, capped at 100s, at most 10 attempts.
    """
    initial_interval_seconds: float = 1.0
    backoff_coefficient: float = 2.0
    maximum_interval_seconds: float = 100.0
    maximum_attempts: int = 10

    def to_policy(self) -> RetryPolicy:
        """Build the RetryPolicy applied to every activity."""
        return RetryPolicy(
            initial_interval_seconds=self.initial_interval_seconds,
            backoff_coefficient=self.backoff_coefficient,
            maximum_interval_seconds=self.maximum_interval_seconds,
            maximum_attempts=self.maximum_attempts,
        )

    @classmethod
    def from_env(cls) -> "RetryDefaults":
        """Create from environment variables."""
        return cls(
            initial_interval_seconds=float(os.getenv("RETRY_INITIAL_SECONDS", 1.0)),
            backoff_coefficient=float(os.getenv("RETRY_BACKOFF_COEFFICIENT", 2.0)),
            maximum_interval_seconds=float(os.getenv("RETRY_MAX_SECONDS", 100.0)),
            maximum_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", 10)),
        )


@dataclass(frozen=True)
class HistoryDefaults:
    """
    Defaults for history-bounded restarts.

    A long-lived workflow continues as new once its run history grows
    past max_history_length events.
    """
    max_history_length: int = 10_000

    @classmethod
    def from_env(cls) -> "HistoryDefaults":
        """Create from environment variables."""
        return cls(max_history_length=int(os.getenv("MAX_HISTORY_LENGTH", 10_000)))


@dataclass(frozen=True)
class WorkerDefaults:
    """
    Defaults for workers.

    Every worker listens on the shared task queue plus a sticky queue named
    after itself; workspace activities are pinned to the sticky queue.
    """
    task_queue: str = "mime-processing"
    worker_id: str = field(default_factory=socket.gethostname)
    max_concurrent_activities: int = 1000
    workspace_root: str = field(default_factory=tempfile.gettempdir)

    @classmethod
    def from_env(cls) -> "WorkerDefaults":
        """Create from environment variables."""
        return cls(
            task_queue=os.getenv("TASK_QUEUE", "mime-processing"),
            worker_id=os.getenv("WORKER_ID", socket.gethostname()),
            max_concurrent_activities=int(os.getenv("MAX_CONCURRENT_ACTIVITIES", 1000)),
            workspace_root=os.getenv("WORKSPACE_ROOT", tempfile.gettempdir()),
        )


@dataclass(frozen=True)
class TimeoutDefaults:
    """
    Defaults for activity timeouts (seconds).

    Extraction can run for hours on large archives; everything else is
    expected to be quick.
    """
    default_timeout: float = 30.0
    transfer_timeout: float = 3600.0
    extraction_timeout: float = 3 * 3600.0
    package_timeout: float = 3600.0

    # Tailing query against the relay log
    query_heartbeat_timeout: float = 30.0
    query_poll_interval: float = 0.5
    query_batch_size: int = 100

    @classmethod
    def from_env(cls) -> "TimeoutDefaults":
        """Create from environment variables."""
        return cls(
            default_timeout=float(os.getenv("DEFAULT_TIMEOUT_SECONDS", 30)),
            transfer_timeout=float(os.getenv("TRANSFER_TIMEOUT_SECONDS", 3600)),
            extraction_timeout=float(os.getenv("EXTRACTION_TIMEOUT_SECONDS", 3 * 3600)),
            package_timeout=float(os.getenv("PACKAGE_TIMEOUT_SECONDS", 3600)),
            query_heartbeat_timeout=float(os.getenv("QUERY_HEARTBEAT_TIMEOUT_SECONDS", 30)),
            query_poll_interval=float(os.getenv("QUERY_POLL_INTERVAL_SECONDS", 0.5)),
            query_batch_size=int(os.getenv("QUERY_BATCH_SIZE", 100)),
        )


@dataclass(frozen=True)
class StorageDefaults:
    """Defaults for the object store."""
    backend: str = StorageBackend.BLOB.value
    account_name: Optional[str] = None
    local_root: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "object-store"))

    @classmethod
    def from_env(cls) -> "StorageDefaults":
        """Create from environment variables."""
        return cls(
            backend=os.getenv("STORAGE_BACKEND", StorageBackend.BLOB.value).lower(),
            account_name=os.getenv("STORAGE_ACCOUNT_NAME"),
            local_root=os.getenv(
                "STORAGE_LOCAL_ROOT",
                os.path.join(tempfile.gettempdir(), "object-store"),
            ),
        )


@dataclass(frozen=True)
class ExtractionDefaults:
    """
    Defaults for the extraction engine client.

    When a task carries a relay key, embedded artifacts beyond
    inline_embedded_limit are appended to the relay log instead of being
    returned inline.
    """
    base_url: str = "http://127.0.0.1:8080"
    request_timeout: float = 3 * 3600.0
    inline_embedded_limit: int = 100

    @classmethod
    def from_env(cls) -> "ExtractionDefaults":
        """Create from environment variables."""
        return cls(
            base_url=os.getenv("EXTRACTION_ENGINE_URL", "http://127.0.0.1:8080"),
            request_timeout=float(os.getenv("EXTRACTION_REQUEST_TIMEOUT_SECONDS", 3 * 3600)),
            inline_embedded_limit=int(os.getenv("EXTRACTION_INLINE_EMBEDDED_LIMIT", 100)),
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """Defaults for the PostgreSQL pool backing the relay log and checkpoints."""
    url: Optional[str] = None
    min_pool_size: int = 2
    max_pool_size: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            url=os.getenv("DATABASE_URL"),
            min_pool_size=int(os.getenv("DB_POOL_MIN", 2)),
            max_pool_size=int(os.getenv("DB_POOL_MAX", 10)),
        )


# ============================================================================
# GLOBAL CONFIG INSTANCE
# ============================================================================

@dataclass
class OrchestrationConfig:
    """Container for all configuration sections."""
    retry: RetryDefaults = field(default_factory=RetryDefaults)
    history: HistoryDefaults = field(default_factory=HistoryDefaults)
    worker: WorkerDefaults = field(default_factory=WorkerDefaults)
    timeouts: TimeoutDefaults = field(default_factory=TimeoutDefaults)
    storage: StorageDefaults = field(default_factory=StorageDefaults)
    extraction: ExtractionDefaults = field(default_factory=ExtractionDefaults)
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self.retry.to_policy()

    @classmethod
    def from_env(cls) -> "OrchestrationConfig":
        """Create all sections from environment variables."""
        return cls(
            retry=RetryDefaults.from_env(),
            history=HistoryDefaults.from_env(),
            worker=WorkerDefaults.from_env(),
            timeouts=TimeoutDefaults.from_env(),
            storage=StorageDefaults.from_env(),
            extraction=ExtractionDefaults.from_env(),
            database=DatabaseDefaults.from_env(),
        )


_config: Optional[OrchestrationConfig] = None


def get_config() -> OrchestrationConfig:
    """Get the process-wide configuration built from the environment."""
    global _config
    if _config is None:
        _config = OrchestrationConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset configuration (for testing)."""
    global _config
    _config = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "StorageBackend",
    "RetryDefaults",
    "HistoryDefaults",
    "WorkerDefaults",
    "TimeoutDefaults",
    "StorageDefaults",
    "ExtractionDefaults",
    "DatabaseDefaults",
    "OrchestrationConfig",
    "get_config",
    "reset_config",
]
