# ============================================================================
# OBJECT STORE INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Infrastructure - Object store operations
# PURPOSE: Streaming download/upload of objects addressed by locator
# CREATED: 19 OCT 2026
# ============================================================================
"""
Object Store Infrastructure

Every stored object is addressed by a locator (object://container/key).
Two implementations of ObjectStore:

- BlobObjectStore: Azure Blob Storage; container = blob container,
  key = blob path. Uses DefaultAzureCredential (or ManagedIdentityCredential
  when AZURE_CLIENT_ID is set). Container clients are cached per instance.
- LocalObjectStore: directory tree root/container/key on the local
  filesystem, for development and tests.

All methods are synchronous and stream to/from disk; activities calling
them run in the worker's thread pool.
"""

import mimetypes
import os
import shutil
import threading
import time
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.storage.blob import BlobServiceClient, ContentSettings

from core.config import StorageBackend, StorageDefaults
from core.contracts import DEFAULT_MIMETYPE
from core.locators import ObjectLocator, parse_locator

logger = logging.getLogger(__name__)


def detect_content_type(path: str) -> str:
    """Guess a content type from a file name."""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_MIMETYPE


class ObjectNotFoundError(FileNotFoundError):
    """Raised when a locator does not name a stored object."""

    def __init__(self, locator: str):
        self.locator = locator
        super().__init__(f"Object not found: {locator}")


# ============================================================================
# INTERFACE
# ============================================================================

class ObjectStore(ABC):
    """Object store addressed by locators."""

    @abstractmethod
    def download(self, locator: str, path: str) -> int:
        """
        Stream an object to a local path.

        Returns:
            Bytes written

        Raises:
            LocatorParseError: If the locator is malformed
            ObjectNotFoundError: If the object does not exist
        """

    @abstractmethod
    def upload(self, path: str, locator: str, content_type: Optional[str] = None) -> int:
        """
        Stream a local file to an object.

        Returns:
            Bytes uploaded
        """

    @abstractmethod
    def content_type(self, locator: str) -> str:
        """Stored content type of an object (DEFAULT_MIMETYPE when unknown)."""

    @abstractmethod
    def exists(self, locator: str) -> bool:
        """Check if an object exists."""


# ============================================================================
# AZURE BLOB STORAGE
# ============================================================================

class BlobObjectStore(ObjectStore):
    """
    Azure Blob Storage object store.

    Usage:
        store = BlobObjectStore(account_name="extractionstore")
        store.download("object://inputs/batch/input.zip", "/work/ws-1/input")
    """

    def __init__(
        self,
        account_name: str,
        credential: Optional[Any] = None,
        chunk_size_mb: int = 32,
    ):
        if not account_name:
            raise ValueError("BlobObjectStore requires an explicit account_name")

        self.account_name = account_name
        self.chunk_size_mb = chunk_size_mb

        # Container client cache with thread-safe access
        self._container_clients: Dict[str, Any] = {}
        self._container_clients_lock = threading.Lock()

        # Lazy initialization of Azure clients
        self._blob_service: Optional[BlobServiceClient] = None
        self._credential = credential

        logger.info(f"BlobObjectStore initialized for account: {self.account_name}")

    # ========================================================================
    # AZURE CLIENT INITIALIZATION
    # ========================================================================

    def _get_credential(self):
        """Get Azure credential (lazy initialization)."""
        if self._credential is None:
            # User-Assigned Managed Identity when a client id is configured
            client_id = os.environ.get("AZURE_CLIENT_ID")
            if client_id:
                self._credential = ManagedIdentityCredential(client_id=client_id)
                logger.debug("ManagedIdentityCredential initialized with client_id")
            else:
                self._credential = DefaultAzureCredential()
                logger.debug("DefaultAzureCredential initialized")
        return self._credential

    def _get_blob_service(self) -> BlobServiceClient:
        """Get BlobServiceClient (lazy initialization)."""
        if self._blob_service is None:
            account_url = f"https://{self.account_name}.blob.core.windows.net"
            self._blob_service = BlobServiceClient(
                account_url=account_url,
                credential=self._get_credential(),
            )
            logger.debug(f"BlobServiceClient initialized for {account_url}")
        return self._blob_service

    def _get_container_client(self, container: str):
        """
        Get or create cached container client.

        Thread-safe with double-checked locking pattern.
        """
        if container in self._container_clients:
            return self._container_clients[container]

        with self._container_clients_lock:
            if container in self._container_clients:
                return self._container_clients[container]

            container_client = self._get_blob_service().get_container_client(container)
            self._container_clients[container] = container_client
            logger.debug(f"Created container client for: {container}")
            return container_client

    def _blob_client(self, target: ObjectLocator):
        return self._get_container_client(target.container).get_blob_client(target.key)

    # ========================================================================
    # STREAMING OPERATIONS
    # ========================================================================

    def download(self, locator: str, path: str) -> int:
        """Stream blob to a local file without loading it into memory."""
        target = parse_locator(locator)
        destination = Path(path)
        destination.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading {target} -> {path}")
        start_time = time.time()
        bytes_transferred = 0

        try:
            download_stream = self._blob_client(target).download_blob()
            with open(destination, "wb") as f:
                for chunk in download_stream.chunks():
                    f.write(chunk)
                    bytes_transferred += len(chunk)
        except ResourceNotFoundError:
            self._remove_partial(destination)
            raise ObjectNotFoundError(locator)
        except Exception:
            self._remove_partial(destination)
            raise

        duration = time.time() - start_time
        logger.info(
            f"Downloaded {bytes_transferred / (1024 * 1024):.2f}MB in {duration:.1f}s"
        )
        return bytes_transferred

    def upload(self, path: str, locator: str, content_type: Optional[str] = None) -> int:
        """Stream a local file to a blob."""
        target = parse_locator(locator)
        source = Path(path)
        if not source.is_file():
            raise FileNotFoundError(f"Source file does not exist: {path}")

        content_type = content_type or detect_content_type(path)
        file_size = source.stat().st_size

        logger.info(f"Uploading {path} -> {target} ({content_type})")
        start_time = time.time()

        with open(source, "rb") as f:
            self._blob_client(target).upload_blob(
                f,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
                max_concurrency=4,
                length=file_size,
            )

        duration = time.time() - start_time
        logger.info(f"Uploaded {file_size / (1024 * 1024):.2f}MB in {duration:.1f}s")
        return file_size

    def content_type(self, locator: str) -> str:
        target = parse_locator(locator)
        try:
            props = self._blob_client(target).get_blob_properties()
        except ResourceNotFoundError:
            raise ObjectNotFoundError(locator)
        stored = props.content_settings.content_type if props.content_settings else None
        return stored or detect_content_type(target.key)

    def exists(self, locator: str) -> bool:
        target = parse_locator(locator)
        return self._blob_client(target).exists()

    def _remove_partial(self, destination: Path) -> None:
        if destination.exists():
            try:
                destination.unlink()
                logger.info(f"Cleaned up partial file: {destination}")
            except OSError as e:
                logger.warning(f"Failed to clean up partial file: {e}")


# ============================================================================
# LOCAL FILESYSTEM
# ============================================================================

class LocalObjectStore(ObjectStore):
    """
    Object store backed by a local directory tree.

    object://container/key maps to <root>/<container>/<key>.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def path_for(self, locator: str) -> Path:
        target = parse_locator(locator)
        resolved = (self.root / target.container / target.key).resolve()
        if self.root.resolve() not in resolved.parents:
            raise ValueError(f"Locator escapes store root: {locator}")
        return resolved

    def download(self, locator: str, path: str) -> int:
        source = self.path_for(locator)
        if not source.is_file():
            raise ObjectNotFoundError(locator)
        destination = Path(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        size = destination.stat().st_size
        logger.debug(f"Downloaded {locator} -> {path} ({size} bytes)")
        return size

    def upload(self, path: str, locator: str, content_type: Optional[str] = None) -> int:
        source = Path(path)
        if not source.is_file():
            raise FileNotFoundError(f"Source file does not exist: {path}")
        destination = self.path_for(locator)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        logger.debug(f"Uploaded {path} -> {locator}")
        return destination.stat().st_size

    def content_type(self, locator: str) -> str:
        source = self.path_for(locator)
        if not source.is_file():
            raise ObjectNotFoundError(locator)
        return detect_content_type(source.name)

    def exists(self, locator: str) -> bool:
        return self.path_for(locator).is_file()

    def put_bytes(self, locator: str, data: bytes) -> None:
        """Write an object directly. Used to seed stores in development."""
        destination = self.path_for(locator)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)


# ============================================================================
# FACTORY
# ============================================================================

def create_object_store(defaults: StorageDefaults) -> ObjectStore:
    """
    Build the configured object store.

    Raises:
        ValueError: On an unknown backend or a blob backend with no account
    """
    backend = StorageBackend(defaults.backend)
    if backend is StorageBackend.LOCAL:
        return LocalObjectStore(defaults.local_root)
    if not defaults.account_name:
        raise ValueError(
            "Blob storage not configured. "
            "Set STORAGE_ACCOUNT_NAME to the storage account name."
        )
    return BlobObjectStore(account_name=defaults.account_name)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ObjectStore",
    "ObjectNotFoundError",
    "BlobObjectStore",
    "LocalObjectStore",
    "create_object_store",
    "detect_content_type",
]
