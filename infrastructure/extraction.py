# ============================================================================
# EXTRACTION ENGINE CLIENT
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Infrastructure - External extraction engine
# PURPOSE: Run text/metadata/render/embedded extraction for one file
# CREATED: 19 OCT 2026
# ============================================================================
"""
Extraction Engine Client

The extraction engine is an external service that reads one file from a
worker-local path and writes its outputs into a directory on the same
host (a sidecar sharing the worker's volume). It answers with the files
it produced and the embedded files it carved out.

HttpExtractionEngine contract:

    POST {base_url}/extract
    {"path": ..., "directory": ..., "mimetype": ..., "types": [...]}

    200 {"produced": [{"path", "mimetype", "checksum"}...],
         "embedded": [{"path", "mimetype", "checksum"}...]}
    400 / 415 / 422  -> input the engine cannot process (never retried)
    5xx              -> engine failure (retried)

Extraction can take hours; the client heartbeats while it waits so the
runtime's watchdog can tell a slow extraction from a dead worker.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import aiohttp

from core.config import ExtractionDefaults
from core.errors import ExtractionError, MalformedInputError
from core.models.artifact import ArtifactRef, ExtractionResult, ExtractionTask

logger = logging.getLogger(__name__)

HeartbeatFunc = Callable[..., None]

# Statuses meaning the input itself is unprocessable
MALFORMED_INPUT_STATUSES = frozenset({400, 415, 422})


def _no_heartbeat(*_args: Any) -> None:
    return None


class ExtractionEngine(ABC):
    """Interface to the extraction engine."""

    @abstractmethod
    async def extract(
        self,
        task: ExtractionTask,
        heartbeat: Optional[HeartbeatFunc] = None,
    ) -> ExtractionResult:
        """
        Extract one file.

        Args:
            task: File, output directory, MIME type and requested kinds
            heartbeat: Called periodically while the extraction runs

        Returns:
            ExtractionResult with produced and embedded artifacts

        Raises:
            MalformedInputError: If the input can never be processed
            ExtractionError: If the engine failed (retryable)
        """

    async def close(self) -> None:
        """Release client resources."""


class HttpExtractionEngine(ExtractionEngine):
    """
    Extraction engine reached over HTTP.

    POST {base_url}/extract
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 3 * 3600.0,
        heartbeat_interval: float = 10.0,
    ):
        """
        Initialize client.

        Args:
            base_url: Base URL of the engine
            timeout_seconds: Total request timeout
            heartbeat_interval: Seconds between heartbeats while waiting
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._heartbeat_interval = heartbeat_interval
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_defaults(cls, defaults: ExtractionDefaults) -> "HttpExtractionEngine":
        return cls(base_url=defaults.base_url, timeout_seconds=defaults.request_timeout)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def extract(
        self,
        task: ExtractionTask,
        heartbeat: Optional[HeartbeatFunc] = None,
    ) -> ExtractionResult:
        heartbeat = heartbeat or _no_heartbeat
        request = asyncio.ensure_future(self._post(task))
        try:
            while True:
                done, _ = await asyncio.wait({request}, timeout=self._heartbeat_interval)
                if done:
                    return request.result()
                heartbeat(task.task_id)
        finally:
            if not request.done():
                request.cancel()

    async def _post(self, task: ExtractionTask) -> ExtractionResult:
        url = f"{self._base_url}/extract"
        payload = {
            "path": task.path,
            "directory": task.directory,
            "mimetype": task.mimetype,
            "types": [t.value for t in task.types],
        }

        try:
            session = await self._get_session()
            async with session.post(url, json=payload) as response:
                if response.status in MALFORMED_INPUT_STATUSES:
                    body = await response.text()
                    raise MalformedInputError(
                        f"Engine rejected {task.path} ({task.mimetype}): "
                        f"status={response.status} body={body[:500]}"
                    )
                if response.status != 200:
                    body = await response.text()
                    raise ExtractionError(
                        f"Engine failed on {task.path}: status={response.status} body={body[:500]}"
                    )
                data: Dict[str, Any] = await response.json()

        except asyncio.TimeoutError:
            raise ExtractionError(f"Engine timed out on {task.path}")

        except aiohttp.ClientError as e:
            raise ExtractionError(f"Engine unreachable at {url}: {e}")

        return ExtractionResult(
            produced=[ArtifactRef(**item) for item in data.get("produced", [])],
            embedded=[ArtifactRef(**item) for item in data.get("embedded", [])],
        )

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


__all__ = [
    "ExtractionEngine",
    "HttpExtractionEngine",
    "HeartbeatFunc",
    "MALFORMED_INPUT_STATUSES",
]
