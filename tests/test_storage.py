# ============================================================================
# OBJECT STORE TESTS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Tests - Blob and local object stores
# PURPOSE: Verify streaming transfers and not-found handling
# CREATED: 19 OCT 2026
# ============================================================================
"""
Object Store Tests

Covers:
1. BlobObjectStore streams chunks to disk and removes partial files
2. Missing blobs surface as ObjectNotFoundError
3. Uploads carry the content type
4. Container clients are cached per container
5. LocalObjectStore round trip and content type detection

Azure clients are MagicMocks patched in at BlobServiceClient.

Run with:
    pytest tests/test_storage.py -v
"""

from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import ResourceNotFoundError

from infrastructure.storage import BlobObjectStore, LocalObjectStore, ObjectNotFoundError


@pytest.fixture
def blob_service():
    with patch("infrastructure.storage.BlobServiceClient") as service_cls:
        yield service_cls.return_value


def blob_client(blob_service):
    return blob_service.get_container_client.return_value.get_blob_client.return_value


class TestBlobObjectStore:

    def test_requires_account(self):
        with pytest.raises(ValueError):
            BlobObjectStore(account_name="")

    def test_download_streams_chunks(self, blob_service, tmp_path):
        blob_client(blob_service).download_blob.return_value.chunks.return_value = [b"ab", b"cd"]
        store = BlobObjectStore("account", credential=object())
        target = tmp_path / "nested" / "input"

        size = store.download("object://inputs/a.zip", str(target))

        assert size == 4
        assert target.read_bytes() == b"abcd"
        blob_service.get_container_client.assert_called_once_with("inputs")
        blob_service.get_container_client.return_value.get_blob_client.assert_called_once_with("a.zip")

    def test_missing_blob(self, blob_service, tmp_path):
        blob_client(blob_service).download_blob.side_effect = ResourceNotFoundError("gone")
        store = BlobObjectStore("account", credential=object())
        target = tmp_path / "input"

        with pytest.raises(ObjectNotFoundError):
            store.download("object://inputs/a.zip", str(target))
        assert not target.exists()

    def test_partial_file_removed(self, blob_service, tmp_path):
        def chunks():
            yield b"partial"
            raise ConnectionError("reset")

        blob_client(blob_service).download_blob.return_value.chunks.side_effect = chunks
        store = BlobObjectStore("account", credential=object())
        target = tmp_path / "input"

        with pytest.raises(ConnectionError):
            store.download("object://inputs/a.zip", str(target))
        assert not target.exists()

    def test_upload_sets_content_type(self, blob_service, tmp_path):
        source = tmp_path / "archive.zip"
        source.write_bytes(b"PK")
        store = BlobObjectStore("account", credential=object())

        assert store.upload(str(source), "object://results/out.zip") == 2

        kwargs = blob_client(blob_service).upload_blob.call_args.kwargs
        assert kwargs["content_settings"].content_type == "application/zip"
        assert kwargs["overwrite"] is True

    def test_content_type_falls_back_to_name(self, blob_service):
        blob_client(blob_service).get_blob_properties.return_value.content_settings = None
        store = BlobObjectStore("account", credential=object())

        assert store.content_type("object://inputs/report.pdf") == "application/pdf"

    def test_container_clients_cached(self, blob_service):
        store = BlobObjectStore("account", credential=object())

        store.exists("object://inputs/a")
        store.exists("object://inputs/b")

        assert blob_service.get_container_client.call_count == 1


class TestLocalObjectStore:

    def test_round_trip(self, tmp_path):
        store = LocalObjectStore(str(tmp_path / "store"))
        source = tmp_path / "doc.txt"
        source.write_text("hello")

        store.upload(str(source), "object://bucket/docs/doc.txt")
        store.download("object://bucket/docs/doc.txt", str(tmp_path / "copy.txt"))

        assert (tmp_path / "copy.txt").read_text() == "hello"
        assert store.content_type("object://bucket/docs/doc.txt") == "text/plain"

    def test_content_type_of_missing_object(self, tmp_path):
        with pytest.raises(ObjectNotFoundError):
            LocalObjectStore(str(tmp_path)).content_type("object://bucket/none")
