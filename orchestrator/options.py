# ============================================================================
# ACTIVITY OPTION PRESETS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - Timeouts per activity class
# PURPOSE: Build ActivityOptions from TimeoutDefaults
# CREATED: 19 OCT 2026
# ============================================================================
"""
Activity Option Presets

Activities fall into a handful of timeout classes. Workflows ask for the
class they need and pass the task queue (shared queue when None, or a
workspace affinity key).
"""

from typing import Optional

from core.config import OrchestrationConfig
from orchestrator.engine.context import ActivityOptions


def short_options(config: OrchestrationConfig, task_queue: Optional[str] = None) -> ActivityOptions:
    """Workspace bookkeeping and MIME lookups."""
    return ActivityOptions(
        task_queue=task_queue,
        start_to_close_timeout=config.timeouts.default_timeout,
    )


def transfer_options(config: OrchestrationConfig, task_queue: Optional[str] = None) -> ActivityOptions:
    """Object store downloads and uploads."""
    return ActivityOptions(
        task_queue=task_queue,
        start_to_close_timeout=config.timeouts.transfer_timeout,
    )


def extraction_options(config: OrchestrationConfig, task_queue: Optional[str] = None) -> ActivityOptions:
    """
    Extraction can run for hours; the heartbeat timeout is what detects
    a lost worker.
    """
    return ActivityOptions(
        task_queue=task_queue,
        start_to_close_timeout=config.timeouts.extraction_timeout,
        heartbeat_timeout=config.timeouts.query_heartbeat_timeout,
    )


def package_options(config: OrchestrationConfig, task_queue: Optional[str] = None) -> ActivityOptions:
    return ActivityOptions(
        task_queue=task_queue,
        start_to_close_timeout=config.timeouts.package_timeout,
    )


def query_options(config: OrchestrationConfig) -> ActivityOptions:
    """Tailing relay log query: no start-to-close bound, heartbeat only."""
    return ActivityOptions(heartbeat_timeout=config.timeouts.query_heartbeat_timeout)


__all__ = [
    "short_options",
    "transfer_options",
    "extraction_options",
    "package_options",
    "query_options",
]
