"""
Unit tests for the storage clients.

The mock client is exercised directly. The R2 client runs against a real
boto3 S3 client whose responses come from botocore's Stubber, so no
network or credentials are involved.
"""

import io
import threading
from datetime import datetime, timezone

import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from r2store.infrastructure.storage.client import (
    MockStorageClient,
    R2StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
)

BUCKET = "test-bucket"


def read_all(obj) -> bytes:
    return b"".join(obj.body)


# ---------------------------------------------------------------------------
# Mock client
# ---------------------------------------------------------------------------

class TestMockStorageClient:
    """Tests for the in-memory client."""

    async def test_empty_bucket_lists_nothing(self):
        assert await MockStorageClient().list_objects() == []

    async def test_put_then_get_returns_content_and_metadata(self):
        storage = MockStorageClient()

        await storage.put_object("a.txt", b"hello", content_type="text/plain")
        obj = await storage.get_object("a.txt")

        assert read_all(obj) == b"hello"
        assert obj.content_type == "text/plain"
        assert obj.size == 5
        assert obj.etag == '"5d41402abc4b2a76b9719d911017c592"'
        assert obj.last_modified.tzinfo is not None

    async def test_put_accepts_file_objects(self):
        storage = MockStorageClient()

        await storage.put_object("a.bin", io.BytesIO(b"\x00\x01"))
        obj = await storage.get_object("a.bin")

        assert read_all(obj) == b"\x00\x01"
        assert obj.content_type == "application/octet-stream"

    async def test_put_overwrites(self):
        storage = MockStorageClient()

        await storage.put_object("a.txt", b"one")
        await storage.put_object("a.txt", b"two")

        assert read_all(await storage.get_object("a.txt")) == b"two"
        assert [o.key for o in await storage.list_objects()] == ["a.txt"]

    async def test_missing_key_returns_none(self):
        assert await MockStorageClient().get_object("nope") is None

    async def test_delete_removes_and_tolerates_missing(self):
        storage = MockStorageClient()
        await storage.put_object("a.txt", b"x")

        await storage.delete_object("a.txt")
        await storage.delete_object("a.txt")

        assert await storage.get_object("a.txt") is None


class TestCreateStorageClient:
    """Tests for the factory function."""

    def test_mock_mode_returns_mock(self):
        assert isinstance(create_storage_client(mock_mode=True), MockStorageClient)

    def test_real_mode_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            create_storage_client()


# ---------------------------------------------------------------------------
# R2 client
# ---------------------------------------------------------------------------

@pytest.fixture
def r2_client() -> R2StorageClient:
    config = StorageConfig(
        access_key_id="test-key",
        secret_access_key="test-secret",
        bucket_name=BUCKET,
        endpoint_url="https://account.r2.cloudflarestorage.com",
    )
    return R2StorageClient(config)


@pytest.fixture
def stubber(r2_client):
    with Stubber(r2_client._s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestR2StorageClient:
    """Tests for the boto3-backed client."""

    async def test_list_walks_every_page(self, r2_client, stubber):
        modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        stubber.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "a.txt", "Size": 1, "LastModified": modified}],
                "IsTruncated": True,
                "NextContinuationToken": "page-2",
            },
            {"Bucket": BUCKET},
        )
        stubber.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "b.txt", "Size": 2, "LastModified": modified}],
                "IsTruncated": False,
            },
            {"Bucket": BUCKET, "ContinuationToken": "page-2"},
        )

        objects = await r2_client.list_objects()

        assert [o.key for o in objects] == ["a.txt", "b.txt"]
        assert objects[1].size == 2

    async def test_list_of_empty_bucket(self, r2_client, stubber):
        stubber.add_response("list_objects_v2", {"IsTruncated": False}, {"Bucket": BUCKET})

        assert await r2_client.list_objects() == []

    async def test_get_copies_backend_metadata(self, r2_client, stubber):
        data = b"hello world"
        stubber.add_response(
            "get_object",
            {
                "Body": StreamingBody(io.BytesIO(data), len(data)),
                "ContentType": "text/plain",
                "ContentLength": len(data),
                "ETag": '"abc123"',
                "CacheControl": "max-age=60",
            },
            {"Bucket": BUCKET, "Key": "hello.txt"},
        )

        obj = await r2_client.get_object("hello.txt")

        assert read_all(obj) == data
        assert obj.content_type == "text/plain"
        assert obj.size == len(data)
        assert obj.etag == '"abc123"'
        assert obj.cache_control == "max-age=60"

    async def test_get_missing_key_returns_none(self, r2_client, stubber):
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            http_status_code=404,
        )

        assert await r2_client.get_object("missing.txt") is None

    async def test_get_failure_raises_storage_error(self, r2_client, stubber):
        stubber.add_client_error(
            "get_object",
            service_error_code="AccessDenied",
            http_status_code=403,
        )

        with pytest.raises(StorageError, match="Download failed"):
            await r2_client.get_object("secret.txt")

    async def test_put_sends_key_body_and_content_type(self, r2_client, stubber):
        stubber.add_response(
            "put_object",
            {"ETag": '"abc123"'},
            {"Bucket": BUCKET, "Key": "hello.txt", "Body": ANY, "ContentType": "text/plain"},
        )

        await r2_client.put_object("hello.txt", b"hello", content_type="text/plain")

    async def test_put_failure_raises_storage_error(self, r2_client, stubber):
        stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)

        with pytest.raises(StorageError, match="Upload failed"):
            await r2_client.put_object("hello.txt", b"hello")

    async def test_delete_sends_key(self, r2_client, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "hello.txt"})

        await r2_client.delete_object("hello.txt")

    async def test_list_failure_raises_storage_error(self, r2_client, stubber):
        stubber.add_client_error("list_objects_v2", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(StorageError, match="List failed"):
            await r2_client.list_objects()


class RecordingS3Client:
    """Stands in for the boto3 client and notes which thread each call ran on."""

    def __init__(self) -> None:
        self.threads: list[int] = []

    def _record(self) -> None:
        self.threads.append(threading.get_ident())

    def get_paginator(self, operation_name):
        recorder = self

        class _Paginator:
            def paginate(self, **kwargs):
                recorder._record()
                return [{"Contents": [{"Key": "a.txt", "Size": 1}]}]

        return _Paginator()

    def get_object(self, **kwargs):
        self._record()
        return {"Body": StreamingBody(io.BytesIO(b"x"), 1), "ContentLength": 1}

    def put_object(self, **kwargs):
        self._record()

    def delete_object(self, **kwargs):
        self._record()


class TestR2StorageClientThreading:
    """The boto3 client is synchronous and must not run on the event loop."""

    async def test_s3_calls_run_in_worker_threads(self, r2_client):
        loop_thread = threading.get_ident()
        s3 = RecordingS3Client()
        r2_client._s3_client = s3

        await r2_client.list_objects()
        await r2_client.get_object("a.txt")
        await r2_client.put_object("a.txt", b"x")
        await r2_client.delete_object("a.txt")

        assert len(s3.threads) == 4
        assert loop_thread not in s3.threads
