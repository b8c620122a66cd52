# ============================================================================
# CHECKPOINT MODELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Carry-over state for continue-as-new
# PURPOSE: Serialisable state of long-lived workflows across history restarts
# CREATED: 19 OCT 2026
# EXPORTS: ExpansionCheckpoint, RelayCheckpoint, WorkflowCheckpoint
# DEPENDENCIES: pydantic
# ============================================================================
"""
Checkpoint Models

Long-lived workflows (expansion controller, output relay) replace their
own history with a fresh run once it grows past the configured bound.
Anything not captured here is lost at that boundary, so the capture is
exhaustive:

    ExpansionCheckpoint - counters, terminate flag, in-flight tasks and
                          any artifacts received but not yet launched
    RelayCheckpoint     - log cursor

WorkflowCheckpoint is the persisted envelope stored by a CheckpointStore
so a restarted process can recover the latest run of a workflow id.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from core.models.artifact import ArtifactRef, ExtractionTask


class ExpansionCheckpoint(BaseModel):
    """Carry-over state of the expansion controller."""

    discovered: int = Field(default=0, ge=0, description="Cumulative artifacts discovered")
    expected: Dict[str, int] = Field(
        default_factory=dict,
        description="Relay entries each successful producer reported",
    )
    received: Dict[str, int] = Field(
        default_factory=dict,
        description="Relay entries delivered by the relay, per producer",
    )
    terminated: bool = Field(default=False, description="Terminate notice already received")
    outstanding: List[ExtractionTask] = Field(
        default_factory=list,
        description="Extraction tasks launched but not yet completed",
    )
    buffered: List[ArtifactRef] = Field(
        default_factory=list,
        description="Artifacts received but not yet launched",
    )
    failed: int = Field(default=0, ge=0, description="Branches dropped after extraction failure")
    restarts: int = Field(default=0, ge=0)

    @property
    def outstanding_count(self) -> int:
        return len(self.outstanding)


class RelayCheckpoint(BaseModel):
    """Carry-over state of the output relay."""

    cursor: int = Field(default=0, ge=0, description="Last forwarded relay log id")
    forwarded: int = Field(default=0, ge=0, description="Entries forwarded so far")
    restarts: int = Field(default=0, ge=0)


class WorkflowCheckpoint(BaseModel):
    """Persisted continue-as-new payload for one workflow id."""

    checkpoint_id: str = Field(default_factory=lambda: str(uuid.uuid4()), max_length=64)
    workflow_id: str = Field(..., max_length=256)
    workflow_name: str = Field(..., max_length=64)
    run_id: str = Field(..., max_length=64)
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


__all__ = ["ExpansionCheckpoint", "RelayCheckpoint", "WorkflowCheckpoint"]
