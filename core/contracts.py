# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Foundation - Core enums and shared names
# PURPOSE: Define output kinds, run states and channel/activity names
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: OutputKind, RunStatus, SignalName, ActivityName, WorkflowName
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the extraction orchestrator.

These are the names that cross boundaries:
- Signal channels between workflow instances
- Activity names dispatched to workers
- Workflow names registered with the runtime

Keeping them in one place means a typo fails at import time rather than
as a signal delivered to a channel nobody listens on.
"""

from enum import Enum


# ============================================================================
# OUTPUT KINDS
# ============================================================================

class OutputKind(str, Enum):
    """Kinds of output the extraction engine can be asked to produce."""
    TEXT = "text"                # Extracted text of a file
    METADATA = "metadata"        # Metadata document of a file
    PDF = "pdf"                  # Rendered version of a file
    EMBEDDED = "embedded"        # Files embedded in the original


# ============================================================================
# RUN STATUS
# ============================================================================

class RunStatus(str, Enum):
    """
    Workflow run lifecycle states.

    State transitions:
        RUNNING -> COMPLETED
                -> FAILED
                -> CONTINUED_AS_NEW -> (new run) RUNNING
                -> CANCELLED
    """
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CONTINUED_AS_NEW = "continued_as_new"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state for the workflow (not just the run)."""
        return self in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED)


# ============================================================================
# NAMES
# ============================================================================

class SignalName(str, Enum):
    """Named signal channels."""
    OUTPUTS = "outputs"          # Relay -> expansion: batch of discovered artifacts
    TERMINATE = "terminate"      # Pipeline -> expansion/relay: no more root work
    ADD = "add"                  # Producer -> aggregator: one artifact locator
    FINISH = "finish"            # Producer -> aggregator: declared total


class ActivityName(str, Enum):
    """Activities registered on workers."""
    CREATE_WORKSPACE = "create_workspace"
    REMOVE_WORKSPACE = "remove_workspace"
    CREATE_WORKING_DIRECTORY = "create_working_directory"
    IDENTIFY = "identify"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    EXTRACT = "extract"
    EXTRACT_OBJECT = "extract_object"
    PACKAGE = "package"
    QUERY_RELAY_LOG = "query_relay_log"


class WorkflowName(str, Enum):
    """Workflows registered with the runtime."""
    PROCESS = "process"
    EXPANSION = "expansion"
    RELAY = "relay"
    AGGREGATE = "aggregate"
    COLLECT = "collect"


DEFAULT_MIMETYPE = "application/octet-stream"


__all__ = [
    "OutputKind",
    "RunStatus",
    "SignalName",
    "ActivityName",
    "WorkflowName",
    "DEFAULT_MIMETYPE",
]
