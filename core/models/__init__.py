# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the extraction orchestrator. Every model is JSON
serialisable so it can cross a signal channel, an activity boundary or a
continue-as-new checkpoint unchanged.
"""

from core.models.request import ProcessRequest, ProcessResult, Workspace
from core.models.artifact import ArtifactRef, RelayEntry, ExtractionTask, ExtractionResult
from core.models.signals import RelayBatch, TerminateNotice, AddNotice, FinishNotice
from core.models.checkpoint import ExpansionCheckpoint, RelayCheckpoint, WorkflowCheckpoint
from core.models.aggregation import AggregationState
from core.models.retry import RetryPolicy, DEFAULT_RETRY_POLICY
from core.models.activities import (
    WorkingDirectory,
    CleanupRequest,
    IdentifyRequest,
    TransferRequest,
    PackageRequest,
    RelayQuery,
    ObjectExtractionRequest,
)
from core.models.workflows import (
    ExpansionInput,
    ExpansionResult,
    RelayInput,
    RelayResult,
    AggregateInput,
    AggregateResult,
    CollectInput,
    CollectResult,
)

__all__ = [
    # Request
    "ProcessRequest",
    "ProcessResult",
    "Workspace",
    # Artifacts
    "ArtifactRef",
    "RelayEntry",
    "ExtractionTask",
    "ExtractionResult",
    # Signals
    "RelayBatch",
    "TerminateNotice",
    "AddNotice",
    "FinishNotice",
    # Checkpoints
    "ExpansionCheckpoint",
    "RelayCheckpoint",
    "WorkflowCheckpoint",
    # Aggregation
    "AggregationState",
    # Retry
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    # Activity payloads
    "WorkingDirectory",
    "CleanupRequest",
    "IdentifyRequest",
    "TransferRequest",
    "PackageRequest",
    "RelayQuery",
    "ObjectExtractionRequest",
    # Workflow inputs / results
    "ExpansionInput",
    "ExpansionResult",
    "RelayInput",
    "RelayResult",
    "AggregateInput",
    "AggregateResult",
    "CollectInput",
    "CollectResult",
]
