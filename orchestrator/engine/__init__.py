# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Durable execution substrate
# PURPOSE: Channels, selector, workflow context and runtime
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- channels: Named FIFO signal mailboxes owned by a workflow id
- selector: Wait on channels and futures, run one callback at a time
- context: WorkflowContext API used by workflow code
- runtime: Executions, workers, retries, timeouts, continue-as-new
"""

from orchestrator.engine.channels import SignalChannel
from orchestrator.engine.selector import Selector
from orchestrator.engine.context import ActivityOptions, WorkflowContext
from orchestrator.engine.runtime import (
    Runtime,
    Worker,
    WorkflowDefinition,
    WorkflowExecution,
    WorkflowHandle,
)

__all__ = [
    "SignalChannel",
    "Selector",
    "ActivityOptions",
    "WorkflowContext",
    "Runtime",
    "Worker",
    "WorkflowDefinition",
    "WorkflowExecution",
    "WorkflowHandle",
]
