# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Infrastructure - External collaborators
# PURPOSE: Object store, relay log and extraction engine clients
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for the extraction orchestrator.

Provides:
- ObjectStore: BlobObjectStore (Azure) and LocalObjectStore (filesystem)
- RelayLog: PostgresRelayLog and MemoryRelayLog
- ExtractionEngine: HttpExtractionEngine

Usage:
    from infrastructure import create_object_store, HttpExtractionEngine

    store = create_object_store(config.storage)
    engine = HttpExtractionEngine.from_defaults(config.extraction)
"""

from infrastructure.storage import (
    ObjectStore,
    ObjectNotFoundError,
    BlobObjectStore,
    LocalObjectStore,
    create_object_store,
)
from infrastructure.relay_log import (
    RelayLog,
    PostgresRelayLog,
    MemoryRelayLog,
)
from infrastructure.extraction import (
    ExtractionEngine,
    HttpExtractionEngine,
)

__all__ = [
    # Object store
    'ObjectStore',
    'ObjectNotFoundError',
    'BlobObjectStore',
    'LocalObjectStore',
    'create_object_store',
    # Relay log
    'RelayLog',
    'PostgresRelayLog',
    'MemoryRelayLog',
    # Extraction engine
    'ExtractionEngine',
    'HttpExtractionEngine',
]
