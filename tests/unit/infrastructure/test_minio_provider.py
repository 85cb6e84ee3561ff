"""Unit tests for MinIO blob storage provider."""

import tempfile
import threading
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

MODULE = "envelope_images.commons.infrastructure.blob.minio_provider"


class FakeS3Error(Exception):
    """Stand-in for minio.error.S3Error carrying only the error code."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


class TestMinioBlobStorage:
    """Tests for MinioBlobStorage with a mocked Minio client."""

    @pytest.fixture
    def mock_client(self):
        with patch(f"{MODULE}.Minio") as mock_minio_class, patch(
            f"{MODULE}.S3Error", FakeS3Error
        ):
            client = MagicMock()
            mock_minio_class.return_value = client
            yield client

    @pytest.fixture
    def storage(self, mock_client):
        from envelope_images.commons.infrastructure.blob.minio_provider import (
            MinioBlobStorage,
        )

        return MinioBlobStorage(
            endpoint="localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
            bucket="uploads",
        )

    def _stat(self, size: int = 4, content_type: str = "image/png"):
        stat = MagicMock()
        stat.size = size
        stat.content_type = content_type
        stat.last_modified = datetime(2024, 1, 1, tzinfo=UTC)
        stat.metadata = {"x-amz-meta-filename": "my%20photo.png"}
        return stat

    async def test_ensure_ready_creates_missing_bucket(self, storage, mock_client):
        mock_client.bucket_exists.return_value = False

        await storage.ensure_ready()

        mock_client.make_bucket.assert_called_once_with("uploads")

    async def test_ensure_ready_keeps_existing_bucket(self, storage, mock_client):
        mock_client.bucket_exists.return_value = True

        await storage.ensure_ready()

        mock_client.make_bucket.assert_not_called()

    async def test_create_puts_whole_stream(self, storage, mock_client):
        uploaded = {}

        def put_object(**kwargs):
            uploaded.update(kwargs)
            uploaded["body"] = kwargs["data"].read()

        mock_client.put_object.side_effect = put_object
        mock_client.stat_object.return_value = self._stat()

        stored = await storage.create(
            _chunks(b"ab", b"cd"),
            content_type="image/png",
            filename="my photo.png",
            metadata={"envelopeId": "7"},
        )

        assert uploaded["bucket_name"] == "uploads"
        assert uploaded["object_name"] == stored.handle
        assert uploaded["length"] == 4
        assert uploaded["body"] == b"abcd"
        assert uploaded["metadata"] == {"filename": "my%20photo.png", "envelopeId": "7"}
        assert stored.size_bytes == 4
        assert stored.filename == "my photo.png"

    async def test_create_spools_off_the_event_loop(self, storage, mock_client):
        loop_thread = threading.get_ident()
        write_threads: list[int] = []

        class RecordingSpool(tempfile.SpooledTemporaryFile):
            def write(self, s):
                write_threads.append(threading.get_ident())
                return super().write(s)

        mock_client.stat_object.return_value = self._stat()

        with patch.object(tempfile, "SpooledTemporaryFile", RecordingSpool):
            await storage.create(_chunks(b"ab", b"cd"), content_type="image/png")

        assert len(write_threads) == 2
        assert loop_thread not in write_threads

    async def test_create_failing_source_uploads_nothing(self, storage, mock_client):
        async def failing():
            yield b"ab"
            raise OSError("disconnect")

        with pytest.raises(OSError):
            await storage.create(failing())

        mock_client.put_object.assert_not_called()

    async def test_open_read_missing_returns_none(self, storage, mock_client):
        mock_client.stat_object.side_effect = FakeS3Error("NoSuchKey")

        assert await storage.open_read("abc") is None
        mock_client.get_object.assert_not_called()

    async def test_open_read_malformed_handle_returns_none(self, storage, mock_client):
        mock_client.stat_object.side_effect = ValueError("invalid object name")
        assert await storage.open_read("../etc") is None

    async def test_open_read_other_errors_propagate(self, storage, mock_client):
        mock_client.stat_object.side_effect = FakeS3Error("AccessDenied")

        with pytest.raises(FakeS3Error):
            await storage.open_read("abc")

    async def test_open_read_streams_and_releases(self, storage, mock_client):
        mock_client.stat_object.return_value = self._stat()
        response = MagicMock()
        response.read.side_effect = [b"ab", b"cd", b""]
        mock_client.get_object.return_value = response

        reader = await storage.open_read("abc", chunk_size=2)

        assert reader is not None
        assert reader.metadata.content_type == "image/png"
        assert [c async for c in reader.chunks] == [b"ab", b"cd"]
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    async def test_delete_existing(self, storage, mock_client):
        mock_client.stat_object.return_value = self._stat()

        assert await storage.delete("abc") is True
        mock_client.remove_object.assert_called_once_with("uploads", "abc")

    async def test_delete_missing(self, storage, mock_client):
        mock_client.stat_object.side_effect = FakeS3Error("NoSuchKey")

        assert await storage.delete("abc") is False
        mock_client.remove_object.assert_not_called()

    async def test_list_blobs_cutoff(self, storage, mock_client):
        old = MagicMock(object_name="old", size=1, last_modified=datetime(2024, 1, 1, tzinfo=UTC))
        new = MagicMock(object_name="new", size=1, last_modified=datetime(2024, 6, 1, tzinfo=UTC))
        mock_client.list_objects.return_value = [old, new]

        listed = await storage.list_blobs(created_before=datetime(2024, 3, 1, tzinfo=UTC))

        assert [b.handle for b in listed] == ["old"]

    async def test_health_check_failure(self, storage, mock_client):
        mock_client.bucket_exists.side_effect = ConnectionError("refused")

        status = await storage.health_check()

        assert status.healthy is False
        assert "refused" in (status.message or "")
