# ============================================================================
# ARTIFACT & EXTRACTION TASK MODELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Units of extraction work and their outputs
# PURPOSE: Define ArtifactRef, RelayEntry, ExtractionTask, ExtractionResult
# CREATED: 19 OCT 2026
# EXPORTS: ArtifactRef, RelayEntry, ExtractionTask, ExtractionResult
# DEPENDENCIES: pydantic
# ============================================================================
"""
Artifact & Extraction Task Models

Lifecycle:
    1. An ExtractionTask is created for the root file or a discovered file
    2. The extraction engine produces an ExtractionResult
    3. `produced` artifacts are terminal (packaged into the archive)
    4. `embedded` artifacts become new ExtractionTasks
    5. For large trees the engine appends embedded artifacts to the relay
       log instead of returning them inline; `relayed` counts those

RelayEntry ids are assigned by the relay log and strictly increase within
one relay key. Each entry carries the producer tag of the extraction
attempt that appended it (<task_id>#<attempt>), so entries left behind by
a failed attempt are never mistaken for those of another producer.
"""

import posixpath
from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import DEFAULT_MIMETYPE, OutputKind


class ArtifactRef(BaseModel):
    """One produced or discovered file."""

    path: str = Field(..., description="Local path or object locator")
    mimetype: str = Field(default=DEFAULT_MIMETYPE)
    checksum: Optional[str] = Field(default=None, description="Content identity for dedup")

    model_config = {"frozen": True}

    @property
    def parent(self) -> str:
        """Directory containing the artifact."""
        return posixpath.dirname(self.path)


class RelayEntry(BaseModel):
    """One record in the append-only relay log."""

    id: int = Field(..., ge=1, description="Monotonic id assigned by the log")
    path: str
    mimetype: str = Field(default=DEFAULT_MIMETYPE)
    checksum: str = Field(default="")
    producer: str = Field(default="", description="Extraction attempt that appended the entry")

    model_config = {"frozen": True}

    def to_artifact(self) -> ArtifactRef:
        return ArtifactRef(path=self.path, mimetype=self.mimetype, checksum=self.checksum or None)


class ExtractionTask(BaseModel):
    """One unit of extraction work."""

    task_id: str = Field(..., max_length=256)
    path: str = Field(..., description="File to extract (local path or locator)")
    directory: str = Field(..., description="Where outputs are written")
    mimetype: str = Field(default=DEFAULT_MIMETYPE)
    types: List[OutputKind] = Field(default_factory=list)
    relay_key: Optional[str] = Field(
        default=None,
        description="Relay log key embedded outputs are appended under",
    )

    model_config = {"frozen": True}

    @classmethod
    def for_artifact(
        cls,
        task_id: str,
        artifact: ArtifactRef,
        types: List[OutputKind],
        relay_key: Optional[str] = None,
    ) -> "ExtractionTask":
        """
        Create the task for a discovered artifact.

        Outputs of an embedded file land next to it, so nested content
        keeps the directory structure the engine carved it into.
        """
        return cls(
            task_id=task_id,
            path=artifact.path,
            directory=artifact.parent,
            mimetype=artifact.mimetype or DEFAULT_MIMETYPE,
            types=list(types),
            relay_key=relay_key,
        )


class ExtractionResult(BaseModel):
    """Normalised output of one ExtractionTask."""

    produced: List[ArtifactRef] = Field(default_factory=list)
    embedded: List[ArtifactRef] = Field(default_factory=list)
    relayed: int = Field(default=0, ge=0, description="Entries appended directly to the relay log")
    relay_producer: Optional[str] = Field(
        default=None,
        description="Producer tag of the relayed entries; only entries carrying it count toward `relayed`",
    )

    @property
    def is_empty(self) -> bool:
        return not self.produced and not self.embedded and self.relayed == 0


__all__ = ["ArtifactRef", "RelayEntry", "ExtractionTask", "ExtractionResult"]
