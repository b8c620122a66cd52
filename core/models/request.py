# ============================================================================
# PROCESS REQUEST & WORKSPACE MODELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Top-level job and its working area
# PURPOSE: Inputs/outputs of the root pipeline and the workspace it owns
# CREATED: 19 OCT 2026
# EXPORTS: ProcessRequest, ProcessResult, Workspace
# DEPENDENCIES: pydantic
# ============================================================================
"""
Process Request & Workspace Models

A ProcessRequest is created by the caller and is immutable for the
lifetime of one root pipeline run.

A Workspace is the worker-local directory pair that run owns:

    root_path   - slot the input object is downloaded into
    directory   - working directory the extraction engine writes into
    affinity_key - task queue of the worker that created both

The working directory is not replicated, so every activity that touches
it is dispatched to affinity_key.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import OutputKind


class ProcessRequest(BaseModel):
    """One top-level extraction job."""

    input_locator: str = Field(..., description="Locator of the object to process")
    output_locator: str = Field(..., description="Locator the packaged result is uploaded to")
    mimetype: Optional[str] = Field(
        default=None,
        description="MIME hint; identified from the object store when absent",
    )
    types: List[OutputKind] = Field(
        default_factory=lambda: [OutputKind.TEXT, OutputKind.METADATA],
        description="Output kinds requested from the extraction engine",
    )
    recurse: bool = Field(default=False, description="Re-run extraction on embedded files")

    model_config = {"frozen": True}


class ProcessResult(BaseModel):
    """Result of a root pipeline run."""

    output_locator: str
    discovered: int = Field(default=0, ge=0, description="Embedded artifacts expanded")


class Workspace(BaseModel):
    """Worker-local working area for one root pipeline run."""

    root_path: str
    directory: str
    affinity_key: str = Field(..., description="Task queue pinned to the creating worker")

    model_config = {"frozen": True}

    def cleanup_paths(self, *extra: Optional[str]) -> List[str]:
        """Paths to remove at teardown, in removal order."""
        paths = [self.root_path, self.directory]
        paths.extend(p for p in extra if p)
        return paths


__all__ = ["ProcessRequest", "ProcessResult", "Workspace"]
