"""Tests for the mount test endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from spstorage.api.deps import get_token_manager
from spstorage.core.exceptions import TokenUnavailableError
from spstorage.core.sharepoint.exceptions import LibraryNotFoundError
from spstorage.main import app

MOUNT = {
    "site_url": "https://contoso.sharepoint.com/sites/Eng",
    "library": "Documents/Archive",
    "identity": "alice",
    "client_id": "cid",
    "client_secret": "secret",
}


@pytest_asyncio.fixture
async def client():
    """HTTP client against the ASGI app with a stub token manager."""
    app.dependency_overrides[get_token_manager] = lambda: MagicMock()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_storage():
    """Patch SharePointStorage in the storage router."""
    with patch("spstorage.api.storage.SharePointStorage") as mock_cls:
        storage = MagicMock()
        storage.test = AsyncMock(return_value=True)
        storage.close = AsyncMock()
        storage.get_id.return_value = "sharepoint2::abc"
        mock_cls.return_value = storage
        yield mock_cls, storage


class TestMountTestEndpoint:
    """Tests for POST /api/v1/storage/test."""

    @pytest.mark.asyncio
    async def test_success_returns_storage_id(self, client, mock_storage):
        """A working mount reports its storage id."""
        mock_cls, storage = mock_storage

        response = await client.post("/api/v1/storage/test", json=MOUNT)

        assert response.json() == {
            "status": "success",
            "data": {"storage_id": "sharepoint2::abc"},
        }
        config = mock_cls.call_args.args[0]
        assert config.library_path == "Documents/Archive"
        storage.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_resolution_failure_reported(self, client, mock_storage):
        """Resolution errors come back as an error envelope."""
        _, storage = mock_storage
        storage.test.side_effect = LibraryNotFoundError(
            "Document library not found: Documents", library_name="Documents"
        )

        response = await client.post("/api/v1/storage/test", json=MOUNT)

        body = response.json()
        assert body["status"] == "error"
        assert body["data"]["error_type"] == "LibraryNotFoundError"
        storage.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_token_failure_reported(self, client, mock_storage):
        """Missing tokens come back as an error envelope."""
        _, storage = mock_storage
        storage.test.side_effect = TokenUnavailableError(0, "alice")

        response = await client.post("/api/v1/storage/test", json=MOUNT)

        assert response.json()["data"]["error_type"] == "TokenUnavailableError"


class TestHealth:
    """Tests for the health endpoint."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Health check responds."""
        response = await client.get("/health")

        assert response.json() == {"status": "healthy"}
