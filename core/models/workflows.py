# ============================================================================
# WORKFLOW INPUT / RESULT MODELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Arguments and results of workflow runs
# PURPOSE: Inputs carried across continue-as-new, results returned to parents
# CREATED: 19 OCT 2026
# EXPORTS: ExpansionInput, ExpansionResult, RelayInput, RelayResult,
#          AggregateInput, AggregateResult, CollectInput, CollectResult
# DEPENDENCIES: pydantic
# ============================================================================
"""
Workflow Input / Result Models

Long-lived workflows take an optional checkpoint in their input. A fresh
run has none; a run started by continue-as-new (or by recovery after a
process restart) resumes from it.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import OutputKind
from core.models.activities import ObjectExtractionRequest
from core.models.checkpoint import ExpansionCheckpoint, RelayCheckpoint


# ============================================================================
# EXPANSION CONTROLLER
# ============================================================================

class ExpansionInput(BaseModel):
    """Input of the expansion controller."""

    types: List[OutputKind] = Field(default_factory=list)
    relay_key: Optional[str] = Field(default=None, description="Relay key passed to every task")
    task_queue: Optional[str] = Field(default=None, description="Affinity key of the workspace")
    checkpoint: Optional[ExpansionCheckpoint] = None


class ExpansionResult(BaseModel):
    """Result of the expansion controller."""

    discovered: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


# ============================================================================
# OUTPUT RELAY
# ============================================================================

class RelayInput(BaseModel):
    """Input of the output relay."""

    relay_key: str
    expansion_id: str = Field(..., description="Workflow id that receives forwarded batches")
    checkpoint: Optional[RelayCheckpoint] = None


class RelayResult(BaseModel):
    """Result of the output relay."""

    cursor: int = Field(default=0, ge=0)
    forwarded: int = Field(default=0, ge=0)


# ============================================================================
# RESULT AGGREGATOR
# ============================================================================

class AggregateInput(BaseModel):
    """Input of the result aggregator."""

    output_locator: str


class AggregateResult(BaseModel):
    """Result of the result aggregator."""

    count: int = Field(default=0, ge=0, description="Files included in the upload")
    output_locator: Optional[str] = Field(default=None, description="None when nothing was uploaded")
    failed: int = Field(default=0, ge=0, description="Adds whose download failed")


# ============================================================================
# PUSH-TOPOLOGY COLLECTION
# ============================================================================

class CollectInput(BaseModel):
    """
    Input of the breadth-first collection driver.

    pending / total / discovered are carry-over state; a fresh run leaves
    them empty and seeds the queue from input_locator.
    """

    input_locator: str
    aggregator_id: str
    output_prefix: str
    mimetype: Optional[str] = None
    types: List[OutputKind] = Field(
        default_factory=lambda: [OutputKind.TEXT, OutputKind.METADATA],
    )
    recurse: bool = True
    pending: Optional[List[ObjectExtractionRequest]] = None
    total: int = Field(default=0, ge=0)
    discovered: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


class CollectResult(BaseModel):
    """Result of the collection driver."""

    total: int = Field(default=0, ge=0, description="Add notices sent")
    discovered: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


__all__ = [
    "ExpansionInput",
    "ExpansionResult",
    "RelayInput",
    "RelayResult",
    "AggregateInput",
    "AggregateResult",
    "CollectInput",
    "CollectResult",
]
