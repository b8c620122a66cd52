# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import OutputKind, RunStatus, SignalName, ActivityName, WorkflowName
from core.errors import (
    OrchestrationError,
    ActivityError,
    LocatorParseError,
    MalformedInputError,
    ContinueAsNew,
)
from core.models import (
    ProcessRequest,
    ProcessResult,
    Workspace,
    ArtifactRef,
    RelayEntry,
    ExtractionTask,
    ExtractionResult,
    RetryPolicy,
)

__all__ = [
    # Enums
    "OutputKind",
    "RunStatus",
    "SignalName",
    "ActivityName",
    "WorkflowName",
    # Errors
    "OrchestrationError",
    "ActivityError",
    "LocatorParseError",
    "MalformedInputError",
    "ContinueAsNew",
    # Models
    "ProcessRequest",
    "ProcessResult",
    "Workspace",
    "ArtifactRef",
    "RelayEntry",
    "ExtractionTask",
    "ExtractionResult",
    "RetryPolicy",
]
