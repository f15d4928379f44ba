"""Microsoft Graph API client wrapper for read-only drive access.

Provides low-level HTTP operations for SharePoint via Graph API with:
- Per-call bearer tokens (one client serves many identities)
- Separate timeouts for metadata calls and content downloads
- Retry with exponential backoff for transient errors
- Rate limit handling (HTTP 429) with Retry-After header support
- Error mapping to SharePoint exception classes
"""

import asyncio
from typing import IO, Any

import httpx

from spstorage.core.logging import get_logger
from spstorage.core.sharepoint.exceptions import (
    GraphResponseError,
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
    SharePointPermissionError,
    SharePointRateLimitError,
)

logger = get_logger(__name__)


class GraphClient:
    """Low-level Microsoft Graph API client with retry and throttling.

    Attributes:
        GRAPH_BASE_URL: Base URL for Microsoft Graph API v1.0
        DOWNLOAD_CHUNK_SIZE: Size of chunks read from content downloads
    """

    GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
    DOWNLOAD_CHUNK_SIZE = 1024 * 1024  # 1MB

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        metadata_timeout: float = 30.0,
        download_timeout: float = 120.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize Graph client.

        Args:
            http_client: Optional injected httpx.AsyncClient; created
                lazily against GRAPH_BASE_URL when omitted
            metadata_timeout: Timeout in seconds for JSON lookups
            download_timeout: Timeout in seconds for content downloads
            max_retries: Retries for 429, 5xx and connection errors
        """
        self._client = http_client
        self._owns_client = http_client is None
        self.metadata_timeout = metadata_timeout
        self.download_timeout = download_timeout
        self.max_retries = max_retries

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Returns:
            httpx.AsyncClient rooted at the Graph base URL
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.GRAPH_BASE_URL,
                headers={"Accept": "application/json"},
                timeout=self.metadata_timeout,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.debug("graph_client_closed")

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        retry_count: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make HTTP request with retry and error handling.

        Implements retry logic for:
        - HTTP 429 (rate limit): Uses Retry-After header
        - HTTP 5xx (server errors): Exponential backoff (1s, 2s, 4s)
        - Connection errors and timeouts: Exponential backoff

        Args:
            method: HTTP method
            path: API path relative to the base URL, or an absolute URL
                (e.g. an @odata.nextLink)
            token: Bearer access token
            retry_count: Maximum number of retries (default: max_retries)
            **kwargs: Additional arguments for httpx request

        Returns:
            httpx.Response on success

        Raises:
            SharePointAuthenticationError: On HTTP 401
            SharePointPermissionError: On HTTP 403
            SharePointNotFoundError: On HTTP 404
            SharePointRateLimitError: On HTTP 429 after retries exhausted
            SharePointError: On other errors after retries exhausted
        """
        client = await self._get_client()
        if retry_count is None:
            retry_count = self.max_retries

        headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
        kwargs.setdefault("timeout", self.metadata_timeout)
        last_exception: Exception | None = None

        for attempt in range(retry_count + 1):
            try:
                logger.debug(
                    "graph_request_attempt",
                    method=method,
                    path=path,
                    attempt=attempt + 1,
                    max_attempts=retry_count + 1,
                )

                response = await client.request(method, path, headers=headers, **kwargs)

                if response.status_code == 401:
                    logger.error(
                        "graph_authentication_error",
                        path=path,
                        status_code=response.status_code,
                    )
                    raise SharePointAuthenticationError(
                        f"Authentication failed: {response.text}"
                    )

                if response.status_code == 403:
                    logger.error(
                        "graph_permission_error",
                        path=path,
                        status_code=response.status_code,
                    )
                    raise SharePointPermissionError(
                        f"Permission denied: {response.text}"
                    )

                if response.status_code == 404:
                    logger.info(
                        "graph_not_found",
                        path=path,
                        status_code=response.status_code,
                    )
                    raise SharePointNotFoundError(f"Resource not found: {path}")

                if response.status_code == 429:
                    retry_after = _retry_after_seconds(response)
                    if attempt < retry_count:
                        logger.warning(
                            "graph_rate_limit_retrying",
                            path=path,
                            retry_after=retry_after,
                            attempt=attempt + 1,
                        )
                        await asyncio.sleep(retry_after)
                        continue
                    logger.error(
                        "graph_rate_limit_exhausted",
                        path=path,
                        retry_after=retry_after,
                    )
                    raise SharePointRateLimitError(
                        "Rate limit exceeded",
                        retry_after_seconds=retry_after,
                    )

                if response.status_code >= 500:
                    if attempt < retry_count:
                        delay = 2**attempt
                        logger.warning(
                            "graph_server_error_retrying",
                            path=path,
                            status_code=response.status_code,
                            delay=delay,
                            attempt=attempt + 1,
                        )
                        await asyncio.sleep(delay)
                        continue
                    logger.error(
                        "graph_server_error_exhausted",
                        path=path,
                        status_code=response.status_code,
                    )
                    raise SharePointError(
                        f"Server error {response.status_code}: {response.text}"
                    )

                if response.status_code >= 400:
                    logger.error(
                        "graph_client_error",
                        path=path,
                        status_code=response.status_code,
                        response=response.text[:500],
                    )
                    raise SharePointError(
                        f"Graph API error {response.status_code}: {response.text}"
                    )

                logger.debug(
                    "graph_request_success",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                )
                return response

            except httpx.RequestError as e:
                last_exception = e
                if attempt < retry_count:
                    delay = 2**attempt
                    logger.warning(
                        "graph_connection_error_retrying",
                        path=path,
                        error=str(e),
                        delay=delay,
                        attempt=attempt + 1,
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    "graph_connection_error_exhausted",
                    path=path,
                    error=str(e),
                )
                raise SharePointError(
                    f"Connection error after {retry_count + 1} attempts: {e}"
                ) from e

        raise SharePointError(
            f"Request failed after {retry_count + 1} attempts"
        ) from last_exception

    async def get_json(
        self,
        path: str,
        token: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GET a Graph resource and decode its JSON object body.

        Args:
            path: API path or absolute URL
            token: Bearer access token
            params: Optional query parameters

        Returns:
            Decoded JSON object

        Raises:
            GraphResponseError: If the body is not a JSON object
            SharePointError: For request failures (see _request)
        """
        kwargs: dict[str, Any] = {}
        if params:
            kwargs["params"] = params

        response = await self._request("GET", path, token, **kwargs)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("graph_invalid_json", path=path)
            raise GraphResponseError(f"Invalid JSON from Graph for {path}") from e

        if not isinstance(data, dict):
            logger.error("graph_unexpected_json", path=path, type=type(data).__name__)
            raise GraphResponseError(f"Expected a JSON object from Graph for {path}")
        return data

    async def download(
        self,
        drive_id: str,
        item_id: str,
        token: str,
        sink: IO[bytes],
    ) -> int:
        """Stream file content by item ID into a writable binary sink.

        Graph answers the content endpoint with a redirect to a
        pre-authenticated URL, which is followed.

        Args:
            drive_id: SharePoint drive ID
            item_id: SharePoint item ID
            token: Bearer access token
            sink: Writable binary file object

        Returns:
            Number of bytes written

        Raises:
            SharePointNotFoundError: If file does not exist
            SharePointError: For other errors
        """
        path = f"/drives/{drive_id}/items/{item_id}/content"
        client = await self._get_client()

        logger.info(
            "graph_download_start",
            drive_id=drive_id,
            item_id=item_id,
        )

        written = 0
        try:
            async with client.stream(
                "GET",
                path,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.download_timeout,
                follow_redirects=True,
            ) as response:
                if response.status_code == 404:
                    raise SharePointNotFoundError(f"Item not found: {item_id}")
                if response.status_code in (401, 403):
                    raise SharePointPermissionError(
                        f"Download refused with status {response.status_code}"
                    )
                if response.status_code >= 400:
                    raise SharePointError(
                        f"Download failed with status {response.status_code}"
                    )

                async for chunk in response.aiter_bytes(self.DOWNLOAD_CHUNK_SIZE):
                    sink.write(chunk)
                    written += len(chunk)
        except httpx.RequestError as e:
            logger.error(
                "graph_download_error",
                drive_id=drive_id,
                item_id=item_id,
                error=str(e),
            )
            raise SharePointError(f"Download failed for {item_id}: {e}") from e

        logger.info(
            "graph_download_complete",
            drive_id=drive_id,
            item_id=item_id,
            size=written,
        )
        return written


def _retry_after_seconds(response: httpx.Response) -> int:
    """Read Retry-After as whole seconds (default 60)."""
    try:
        return int(response.headers.get("Retry-After", "60"))
    except ValueError:
        return 60
