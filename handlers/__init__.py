# ============================================================================
# ACTIVITY HANDLERS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Activity registration and implementations
# PURPOSE: Worker-side activities grouped by the collaborators they use
# CREATED: 19 OCT 2026
# ============================================================================
"""
Activity Handlers

Each activity group is a class constructed with its collaborators and a
`register(registry)` method:

    WorkspaceActivities   - create/remove workspaces and working directories
    TransferActivities    - identify, download, upload (object store)
    ExtractionActivities  - extract, extract_object (extraction engine)
    ArchiveActivities     - package a directory into a zip archive
    RelayLogActivities    - tailing query against the relay log

Usage:
    registry = ActivityRegistry()
    WorkspaceActivities(config.worker).register(registry)
    TransferActivities(store).register(registry)
    runtime.add_worker(registry, worker_id="worker-1")
"""

from handlers.registry import ActivityContext, ActivityFunc, ActivityRegistry
from handlers.workspace import WorkspaceActivities
from handlers.transfer import TransferActivities
from handlers.extraction import ExtractionActivities
from handlers.archive import ArchiveActivities
from handlers.relay_query import RelayLogActivities

__all__ = [
    "ActivityContext",
    "ActivityFunc",
    "ActivityRegistry",
    "WorkspaceActivities",
    "TransferActivities",
    "ExtractionActivities",
    "ArchiveActivities",
    "RelayLogActivities",
]
