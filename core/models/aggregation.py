# ============================================================================
# AGGREGATION STATE MODEL
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Accumulator for push-based collection
# PURPOSE: Track add/finish notifications independently of arrival order
# CREATED: 19 OCT 2026
# EXPORTS: AggregationState
# DEPENDENCIES: pydantic
# ============================================================================
"""
Aggregation State

"add" and "finish" arrive on two channels with no ordering between them,
so "finish(3)" may be observed before the third "add". Completion is
decided only by comparing the two counters.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class AggregationState(BaseModel):
    """Accumulator for the result aggregator."""

    added: int = Field(default=0, ge=0)
    declared_total: Optional[int] = Field(default=None, ge=0, description="None until finish")
    pending: List[str] = Field(default_factory=list, description="Locators being downloaded")
    failed: List[str] = Field(default_factory=list, description="Locators that could not be fetched")

    @property
    def finished(self) -> bool:
        """Finish notice received."""
        return self.declared_total is not None

    @property
    def is_satisfied(self) -> bool:
        """All declared adds have been observed."""
        return self.finished and self.added >= self.declared_total

    def on_add(self, locator: str) -> None:
        self.added += 1
        self.pending.append(locator)

    def on_finish(self, total: int) -> None:
        self.declared_total = total

    def on_failed(self, locator: str) -> None:
        self.failed.append(locator)


__all__ = ["AggregationState"]
