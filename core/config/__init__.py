# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the orchestrator.
"""

from core.config.defaults import (
    StorageBackend,
    RetryDefaults,
    HistoryDefaults,
    WorkerDefaults,
    TimeoutDefaults,
    StorageDefaults,
    ExtractionDefaults,
    DatabaseDefaults,
    OrchestrationConfig,
    get_config,
    reset_config,
)

__all__ = [
    "StorageBackend",
    "RetryDefaults",
    "HistoryDefaults",
    "WorkerDefaults",
    "TimeoutDefaults",
    "StorageDefaults",
    "ExtractionDefaults",
    "DatabaseDefaults",
    "OrchestrationConfig",
    "get_config",
    "reset_config",
]
