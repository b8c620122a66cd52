# ============================================================================
# ACTIVITY PAYLOAD MODELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Inputs of worker activities
# PURPOSE: Typed requests for transfer, cleanup, packaging and log queries
# CREATED: 19 OCT 2026
# EXPORTS: WorkingDirectory, CleanupRequest, IdentifyRequest, TransferRequest,
#          PackageRequest, RelayQuery, ObjectExtractionRequest
# DEPENDENCIES: pydantic
# ============================================================================
"""
Activity Payload Models

Every activity takes one of these (or an ExtractionTask) as its only
argument, so the runtime can retry an attempt with exactly the same input.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import DEFAULT_MIMETYPE, OutputKind


class WorkingDirectory(BaseModel):
    """A worker-local directory and the sticky queue that can reach it."""

    path: str
    affinity_key: str

    model_config = {"frozen": True}


class CleanupRequest(BaseModel):
    """Paths to remove from the worker that owns them."""

    paths: List[str] = Field(default_factory=list)


class IdentifyRequest(BaseModel):
    """Look up the MIME type of a stored object."""

    locator: str


class TransferRequest(BaseModel):
    """Move one object between the object store and a local path."""

    locator: str
    path: str


class PackageRequest(BaseModel):
    """Package a directory into a zip archive."""

    directory: str
    archive_name: str = Field(default="archive.zip")


class RelayQuery(BaseModel):
    """Tail the relay log for one key starting after a cursor."""

    relay_key: str
    after_id: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1)


class ObjectExtractionRequest(BaseModel):
    """
    Extract a stored object without a workspace.

    The worker downloads the object to a scratch directory, runs the
    extraction engine and uploads every output under output_prefix. The
    returned ExtractionResult carries object locators instead of paths.
    """

    task_id: str = Field(..., max_length=256)
    locator: str
    output_prefix: str = Field(..., description="Locator prefix outputs are uploaded under")
    mimetype: Optional[str] = Field(default=None)
    types: List[OutputKind] = Field(default_factory=list)

    @property
    def effective_mimetype(self) -> str:
        return self.mimetype or DEFAULT_MIMETYPE


__all__ = [
    "WorkingDirectory",
    "CleanupRequest",
    "IdentifyRequest",
    "TransferRequest",
    "PackageRequest",
    "RelayQuery",
    "ObjectExtractionRequest",
]
