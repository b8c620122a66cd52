# ============================================================================
# TRANSFER ACTIVITIES
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Handlers - Object store transfers
# PURPOSE: identify, download, upload
# CREATED: 19 OCT 2026
# ============================================================================
"""
Transfer Activities

Thin activity wrappers around an ObjectStore. Locators are parsed inside
the store, so a malformed locator surfaces as LocatorParseError on the
first attempt and is never retried.
"""

import logging

from core.contracts import ActivityName, DEFAULT_MIMETYPE
from core.models import IdentifyRequest, TransferRequest
from handlers.registry import ActivityContext, ActivityRegistry
from infrastructure.storage import ObjectStore

logger = logging.getLogger(__name__)


class TransferActivities:
    """Object store activities."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def register(self, registry: ActivityRegistry) -> None:
        registry.register(ActivityName.IDENTIFY, self.identify, description="Look up MIME type")
        registry.register(ActivityName.DOWNLOAD, self.download, description="Object -> local path")
        registry.register(ActivityName.UPLOAD, self.upload, description="Local path -> object")

    def identify(self, ctx: ActivityContext, request: IdentifyRequest) -> str:
        """Content type stored with the object, falling back to octet-stream."""
        mimetype = self.store.content_type(request.locator) or DEFAULT_MIMETYPE
        logger.info(f"Identified {request.locator} as {mimetype}")
        return mimetype

    def download(self, ctx: ActivityContext, request: TransferRequest) -> str:
        """Download an object. Returns the local path."""
        self.store.download(request.locator, request.path)
        ctx.heartbeat()
        return request.path

    def upload(self, ctx: ActivityContext, request: TransferRequest) -> str:
        """Upload a local file. Returns the locator."""
        self.store.upload(request.path, request.locator)
        ctx.heartbeat()
        return request.locator


__all__ = ["TransferActivities"]
