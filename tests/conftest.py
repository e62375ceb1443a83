"""
Shared fixtures.

API tests drive the ASGI app in-process through httpx, with the
in-memory storage client standing in for R2.
"""

from typing import AsyncGenerator, Callable, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from r2store.config.settings import Settings
from r2store.infrastructure.storage.client import MockStorageClient, StorageError
from r2store.main import create_app


class RecordingStorageClient(MockStorageClient):
    """In-memory storage that remembers which operations were called."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    async def list_objects(self):
        self.calls.append("list")
        return await super().list_objects()

    async def get_object(self, key):
        self.calls.append("get")
        return await super().get_object(key)

    async def put_object(self, key, content, content_type="application/octet-stream"):
        self.calls.append("put")
        await super().put_object(key, content, content_type=content_type)

    async def delete_object(self, key):
        self.calls.append("delete")
        await super().delete_object(key)


class FailingStorageClient:
    """Storage backend whose every call fails."""

    async def list_objects(self):
        raise StorageError("List failed: connection reset")

    async def get_object(self, key):
        raise StorageError("Download failed: connection reset")

    async def put_object(self, key, content, content_type="application/octet-stream"):
        raise StorageError("Upload failed: connection reset")

    async def delete_object(self, key):
        raise StorageError("Delete failed: connection reset")


def make_settings(access_token: Optional[str] = None) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        access_token=access_token,
        r2_mock_mode=True,
    )


@pytest.fixture
def storage() -> RecordingStorageClient:
    return RecordingStorageClient()


@pytest.fixture
def failing_storage() -> FailingStorageClient:
    return FailingStorageClient()


@pytest.fixture
def make_client(storage) -> Callable:
    """
    Factory for AsyncClients bound to a fresh app.

    Each test picks its own token configuration (and optionally its own
    backend) while sharing the same storage fixture by default.
    """

    def _make(access_token: Optional[str] = None, backend=None) -> AsyncClient:
        app = create_app(
            settings=make_settings(access_token),
            storage=backend if backend is not None else storage,
        )
        transport = ASGITransport(app=app)
        return AsyncClient(transport=transport, base_url="http://test")

    return _make


@pytest.fixture
async def client(make_client) -> AsyncGenerator[AsyncClient, None]:
    """Client for an app without a token."""
    async with make_client() as ac:
        yield ac


@pytest.fixture
async def token_client(make_client) -> AsyncGenerator[AsyncClient, None]:
    """Client for an app configured with token "abc"."""
    async with make_client("abc") as ac:
        yield ac


@pytest.fixture
async def unwired_client() -> AsyncGenerator[AsyncClient, None]:
    """Client for an app left to build its own storage from settings."""
    app = create_app(settings=make_settings(), storage=None)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
