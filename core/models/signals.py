# ============================================================================
# SIGNAL PAYLOADS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Messages exchanged on named signal channels
# PURPOSE: Typed payloads for outputs / terminate / add / finish channels
# CREATED: 19 OCT 2026
# EXPORTS: RelayBatch, TerminateNotice, AddNotice, FinishNotice
# DEPENDENCIES: pydantic
# ============================================================================
"""
Signal Payloads

Within one channel delivery is FIFO. Across two channels there is no
ordering guarantee, which is why receivers compare counters instead of
inferring completion from whichever channel fired last.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.models.artifact import ArtifactRef, RelayEntry


class RelayBatch(BaseModel):
    """
    Batch of newly discovered artifacts for the expansion controller.

    `entries` come from the relay log and count toward the relayed total
    the producers report. `artifacts` were returned inline by an extraction
    and are not part of that total.
    """
    entries: List[RelayEntry] = Field(default_factory=list)
    artifacts: List[ArtifactRef] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.entries) + len(self.artifacts)

    def all_artifacts(self) -> List[ArtifactRef]:
        """Artifacts in delivery order: logged entries first, then inline."""
        return [e.to_artifact() for e in self.entries] + list(self.artifacts)


class TerminateNotice(BaseModel):
    """No more root-adjacent work is coming."""
    relayed: int = Field(
        default=0,
        ge=0,
        description="Entries the root extraction appended to the relay log",
    )
    producer: Optional[str] = Field(default=None, description="Producer tag of those entries")


class AddNotice(BaseModel):
    """Add one artifact to the aggregation."""
    locator: str


class FinishNotice(BaseModel):
    """Declare the final number of add notices."""
    total: int = Field(..., ge=0)


__all__ = ["RelayBatch", "TerminateNotice", "AddNotice", "FinishNotice"]
