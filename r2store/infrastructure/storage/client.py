"""
Object storage client for the file bucket.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
The bucket is the only durable state in the system: this layer holds no
cache and no copy, it translates between boto3 responses and our own
StoredObject / ObjectSummary types.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, Optional, Protocol, Union

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# S3 error codes that mean "no such object" rather than a failure
_MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}

# bytes per chunk when streaming object bodies back to the client
STREAM_CHUNK_SIZE = 64 * 1024


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    Explicit configuration keeps the client easy to build in tests
    and documents exactly what a bucket connection needs.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


@dataclass
class ObjectSummary:
    """One entry of a bucket listing."""
    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None


@dataclass
class StoredObject:
    """
    An object fetched from the bucket.

    All metadata comes from the storage backend as-is; nothing here is
    computed by the application. `body` yields the content in chunks so
    large objects are never held in memory whole.
    """
    key: str
    body: Iterator[bytes]
    content_type: str
    size: Optional[int]
    etag: Optional[str]
    last_modified: Optional[datetime] = None
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None


ObjectContent = Union[bytes, BinaryIO]


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def list_objects(self) -> list[ObjectSummary]:
        """List every object in the bucket."""
        ...

    async def get_object(self, key: str) -> Optional[StoredObject]:
        """Fetch an object, or None if the key does not exist."""
        ...

    async def put_object(
        self,
        key: str,
        content: ObjectContent,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Write an object, replacing any existing one with the same key."""
        ...

    async def delete_object(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. This abstraction means
    we could swap to actual S3, MinIO, or other S3-compatible storage
    with minimal changes.

    boto3 is synchronous, so every S3 call runs in a worker thread via
    asyncio.to_thread and never blocks the event loop. Object bodies are
    iterated by StreamingResponse, which also moves that work off the loop.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize R2 client with boto3.

        boto3 is imported here (not at module level) because mock mode
        doesn't need it.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config

        # R2 requires v4 signatures and path-style addressing
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def list_objects(self) -> list[ObjectSummary]:
        """
        List every object in the bucket.

        A single ListObjectsV2 call returns at most 1000 keys, so we walk
        the paginator until the listing is exhausted.
        """
        def _list() -> list[ObjectSummary]:
            paginator = self._s3_client.get_paginator('list_objects_v2')
            return [
                ObjectSummary(
                    key=obj['Key'],
                    size=obj.get('Size'),
                    last_modified=obj.get('LastModified'),
                )
                for page in paginator.paginate(Bucket=self._config.bucket_name)
                for obj in page.get('Contents', [])
            ]

        try:
            objects = await asyncio.to_thread(_list)
        except Exception as e:
            logger.error(
                "Failed to list objects",
                extra={"bucket": self._config.bucket_name, "error": str(e)}
            )
            raise StorageError(f"List failed: {e}")

        logger.debug("Listed objects", extra={"count": len(objects)})
        return objects

    async def get_object(self, key: str) -> Optional[StoredObject]:
        """Fetch an object from R2, or None if it does not exist."""
        from botocore.exceptions import ClientError

        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in _MISSING_OBJECT_CODES:
                logger.debug("Object not found", extra={"key": key})
                return None
            logger.error(
                "Failed to fetch object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")
        except Exception as e:
            logger.error(
                "Failed to fetch object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")

        return StoredObject(
            key=key,
            body=response['Body'].iter_chunks(chunk_size=STREAM_CHUNK_SIZE),
            content_type=response.get('ContentType') or DEFAULT_CONTENT_TYPE,
            size=response.get('ContentLength'),
            etag=response.get('ETag'),
            last_modified=response.get('LastModified'),
            cache_control=response.get('CacheControl'),
            content_disposition=response.get('ContentDisposition'),
            content_encoding=response.get('ContentEncoding'),
            content_language=response.get('ContentLanguage'),
        )

    async def put_object(
        self,
        key: str,
        content: ObjectContent,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """
        Upload an object to R2 storage.

        Existing objects with the same key are overwritten; R2 keeps
        no versions.
        """
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded object",
            extra={"key": key, "content_type": content_type}
        )

    async def delete_object(self, key: str) -> None:
        """Delete an object from R2."""
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")

        logger.info("Deleted object", extra={"key": key})


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockEntry:
    data: bytes
    content_type: str
    etag: str
    last_modified: datetime


class MockStorageClient:
    """
    In-memory storage for local development.

    This mock enables testing the full API flow without provisioning
    real object storage. Objects live in a dictionary keyed by object
    key; ETags are quoted MD5 digests like the ones S3 returns for
    single-part uploads.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        self._objects: dict[str, _MockEntry] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def list_objects(self) -> list[ObjectSummary]:
        """List objects held in memory."""
        return [
            ObjectSummary(
                key=key,
                size=len(entry.data),
                last_modified=entry.last_modified,
            )
            for key, entry in self._objects.items()
        ]

    async def get_object(self, key: str) -> Optional[StoredObject]:
        """Retrieve object from memory."""
        entry = self._objects.get(key)
        if entry is None:
            return None

        return StoredObject(
            key=key,
            body=iter([entry.data]),
            content_type=entry.content_type,
            size=len(entry.data),
            etag=entry.etag,
            last_modified=entry.last_modified,
        )

    async def put_object(
        self,
        key: str,
        content: ObjectContent,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Store object in memory."""
        data = content if isinstance(content, bytes) else content.read()

        self._objects[key] = _MockEntry(
            data=data,
            content_type=content_type,
            etag=f'"{hashlib.md5(data).hexdigest()}"',
            last_modified=datetime.now(timezone.utc).replace(microsecond=0),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def delete_object(self, key: str) -> None:
        """Delete object from memory."""
        self._objects.pop(key, None)

        logger.debug("Deleted object from mock storage", extra={"key": key})


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
