# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Workflows and runtime assembly
# PURPOSE: Register workflows and worker activities on one runtime
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

Workflows:
    process    - root pipeline (ProcessRequest -> ProcessResult)
    expansion  - expansion controller
    relay      - output relay
    aggregate  - result aggregator
    collect    - push-topology collection driver

Usage:
    from orchestrator import build_runtime

    runtime = build_runtime(config, store, relay_log, engine)
    result = await runtime.execute_workflow("process", "job-1", request)
"""

import asyncio
from typing import List, Optional

from core.config import OrchestrationConfig, get_config
from core.contracts import WorkflowName
from core.models import AggregateInput, CollectInput, ExpansionInput, ProcessRequest, RelayInput
from handlers import (
    ActivityRegistry,
    ArchiveActivities,
    ExtractionActivities,
    RelayLogActivities,
    TransferActivities,
    WorkspaceActivities,
)
from infrastructure.extraction import ExtractionEngine
from infrastructure.relay_log import RelayLog
from infrastructure.storage import ObjectStore
from orchestrator.aggregator import aggregate_workflow
from orchestrator.collect import collect_workflow
from orchestrator.engine import Runtime
from orchestrator.engine.runtime import SleepFunc
from orchestrator.expansion import ExpansionState, expansion_workflow
from orchestrator.pipeline import process_workflow
from orchestrator.relay import RelayState, relay_workflow
from repositories.checkpoint_repo import CheckpointStore


def register_workflows(runtime: Runtime) -> None:
    """Register every workflow with its input model."""
    runtime.register_workflow(WorkflowName.PROCESS, process_workflow, ProcessRequest)
    runtime.register_workflow(WorkflowName.EXPANSION, expansion_workflow, ExpansionInput)
    runtime.register_workflow(WorkflowName.RELAY, relay_workflow, RelayInput)
    runtime.register_workflow(WorkflowName.AGGREGATE, aggregate_workflow, AggregateInput)
    runtime.register_workflow(WorkflowName.COLLECT, collect_workflow, CollectInput)


def build_registry(
    config: OrchestrationConfig,
    store: ObjectStore,
    relay_log: RelayLog,
    engine: ExtractionEngine,
) -> ActivityRegistry:
    """Registry holding every activity, bound to the given collaborators."""
    registry = ActivityRegistry()
    WorkspaceActivities(config.worker).register(registry)
    TransferActivities(store).register(registry)
    ExtractionActivities(
        engine,
        relay_log=relay_log,
        store=store,
        defaults=config.extraction,
        worker_defaults=config.worker,
    ).register(registry)
    ArchiveActivities().register(registry)
    RelayLogActivities(relay_log, config.timeouts).register(registry)
    return registry


def build_runtime(
    config: Optional[OrchestrationConfig] = None,
    store: Optional[ObjectStore] = None,
    relay_log: Optional[RelayLog] = None,
    engine: Optional[ExtractionEngine] = None,
    checkpoints: Optional[CheckpointStore] = None,
    sleep: SleepFunc = asyncio.sleep,
    worker_ids: Optional[List[str]] = None,
) -> Runtime:
    """
    Assemble a runtime with every workflow and one or more workers.

    Args:
        config: Orchestration configuration (from environment when None)
        store: Object store the transfer activities use
        relay_log: Relay log shared by extraction and the tailing query
        engine: Extraction engine
        checkpoints: Continue-as-new persistence
        sleep: Retry backoff sleep
        worker_ids: One worker per id (default: the configured worker id)
    """
    config = config or get_config()
    runtime = Runtime(config, checkpoints=checkpoints, sleep=sleep)
    register_workflows(runtime)
    for worker_id in worker_ids or [config.worker.worker_id]:
        runtime.add_worker(build_registry(config, store, relay_log, engine), worker_id=worker_id)
    return runtime


__all__ = [
    "build_runtime",
    "build_registry",
    "register_workflows",
    "process_workflow",
    "expansion_workflow",
    "relay_workflow",
    "aggregate_workflow",
    "collect_workflow",
    "ExpansionState",
    "RelayState",
]
