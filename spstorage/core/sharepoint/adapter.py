"""SharePoint storage adapter implementing the ReadOnlyStorage interface.

Composes the token lifecycle manager, the drive locator and the listing
engine into a read-only file store over one document library mount.

Each operation builds its own DriveContext (resolved binding plus a
freshly validated access token). Only the DriveBinding is memoized on the
instance: it is resolved once and never re-resolved, and a resolution
failure is kept so later operations short-circuit instead of repeating
the failing lookups. Token failures are not kept; the next operation
retries token acquisition.
"""

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from tempfile import SpooledTemporaryFile
from typing import IO, Any

from spstorage.config import Settings, get_settings
from spstorage.core.exceptions import (
    ConfigurationError,
    SPStorageError,
    TokenUnavailableError,
)
from spstorage.core.logging import get_logger
from spstorage.core.sharepoint.client import GraphClient
from spstorage.core.sharepoint.exceptions import DriveResolutionError
from spstorage.core.sharepoint.listing import MAX_PAGE_SIZE, list_children
from spstorage.core.sharepoint.models import (
    DriveBinding,
    DriveContext,
    RemoteFile,
    RemoteFolder,
    RemoteItem,
)
from spstorage.core.sharepoint.paths import split_library_path
from spstorage.core.sharepoint.resolver import DriveLocator
from spstorage.core.storage import (
    DIRECTORY_MIME_TYPE,
    DirectoryEntry,
    FileStat,
    FileType,
    Permission,
    ReadOnlyStorage,
)
from spstorage.models.credential import IDENTITY_SCOPE
from spstorage.services.token_service import TokenLifecycleManager

logger = get_logger(__name__)

STORAGE_ID_PREFIX = "sharepoint2::"

# Mode characters implying write intent
WRITE_MODE_CHARS = frozenset("wax+")


@dataclass(frozen=True)
class SharePointMountConfig:
    """Options of one mounted document library."""

    site_url: str
    library_path: str
    identity: str
    tenant: str
    client_id: str
    client_secret: str
    scope_id: int = IDENTITY_SCOPE

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any],
        settings: Settings | None = None,
    ) -> "SharePointMountConfig":
        """Build a mount config from host mount options.

        Client credentials and tenant fall back to the application
        settings when the mount does not set them.
        """
        settings = settings or get_settings()
        return cls(
            site_url=str(options.get("site_url") or "").strip().rstrip("/"),
            library_path=str(options.get("library") or "").strip().strip("/"),
            identity=str(options.get("identity") or ""),
            tenant=settings.resolve_tenant(options.get("tenant")),
            client_id=str(options.get("client_id") or settings.graph_client_id),
            client_secret=str(
                options.get("client_secret") or settings.graph_client_secret
            ),
            scope_id=int(options.get("scope_id") or IDENTITY_SCOPE),
        )

    def validate(self) -> None:
        """Raise ConfigurationError for missing required options."""
        missing = [
            name
            for name, value in (
                ("site_url", self.site_url),
                ("identity", self.identity),
                ("client_id", self.client_id),
                ("client_secret", self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"SharePoint mount is missing required options: {', '.join(missing)}"
            )


class SharePointStorage(ReadOnlyStorage):
    """Read-only ReadOnlyStorage implementation for SharePoint Online.

    Attributes:
        config: Mount options
        _tokens: Token lifecycle manager serving access tokens
        _client: GraphClient instance for API calls
        _binding: Resolved drive coordinates, once resolved
        _resolution_error: Terminal resolution failure, once hit
    """

    def __init__(
        self,
        config: SharePointMountConfig,
        token_manager: TokenLifecycleManager,
        client: GraphClient | None = None,
        page_size: int | None = None,
        spool_max_bytes: int | None = None,
    ) -> None:
        settings = get_settings()
        self.config = config
        self._tokens = token_manager
        self._owns_client = client is None
        self._client = client or GraphClient(
            metadata_timeout=settings.graph_metadata_timeout,
            download_timeout=settings.graph_download_timeout,
            max_retries=settings.graph_max_retries,
        )
        self._page_size = page_size or settings.graph_page_size or MAX_PAGE_SIZE
        self._spool_max_bytes = spool_max_bytes or settings.download_spool_max_bytes
        self._locator = DriveLocator(self._client)
        self._binding: DriveBinding | None = None
        self._resolution_error: DriveResolutionError | None = None

    # --- identity and context ---

    def get_id(self) -> str:
        """Deterministic id from site URL, library path and mount root path."""
        _, mount_root_path = split_library_path(self.config.library_path)
        key = "|".join([self.config.site_url, self.config.library_path, mount_root_path])
        return STORAGE_ID_PREFIX + hashlib.sha1(key.encode("utf-8")).hexdigest()

    async def test(self) -> bool:
        """Verify configuration, token acquisition and drive resolution.

        Unlike the browsing operations, failures propagate so an
        administrator sees why a mount does not work.

        Raises:
            ConfigurationError: If required options are missing or invalid
            TokenUnavailableError: If no access token could be obtained
            DriveResolutionError: If site, library or sub path do not resolve
        """
        ctx = await self._open_context()
        logger.info(
            "sharepoint_mount_test_passed",
            storage_id=self.get_id(),
            drive_id=ctx.drive_id,
        )
        return True

    async def _open_context(self) -> DriveContext:
        """Build the per-operation context: valid token plus resolved binding."""
        self.config.validate()

        token = await self._tokens.get_valid_access_token(
            self.config.scope_id,
            self.config.identity,
            self.config.tenant,
            self.config.client_id,
            self.config.client_secret,
        )
        if not token:
            raise TokenUnavailableError(self.config.scope_id, self.config.identity)

        binding = await self._resolve(token)
        return DriveContext(binding=binding, access_token=token)

    async def _resolve(self, token: str) -> DriveBinding:
        if self._resolution_error is not None:
            raise self._resolution_error
        if self._binding is not None:
            return self._binding

        try:
            self._binding = await self._locator.resolve(
                self.config.site_url, self.config.library_path, token
            )
        except DriveResolutionError as e:
            logger.warning(
                "sharepoint_drive_resolution_failed",
                site_url=self.config.site_url,
                library=self.config.library_path,
                error_type=type(e).__name__,
                error=str(e),
            )
            self._resolution_error = e
            raise
        return self._binding

    async def _get_item(self, path: str) -> RemoteItem | None:
        try:
            ctx = await self._open_context()
            return await self._locator.get_item_by_path(ctx, path)
        except SPStorageError as e:
            logger.warning(
                "sharepoint_item_lookup_failed",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    # --- read operations ---

    async def file_exists(self, path: str) -> bool:
        return await self._get_item(path) is not None

    async def is_dir(self, path: str) -> bool:
        return isinstance(await self._get_item(path), RemoteFolder)

    async def is_file(self, path: str) -> bool:
        return isinstance(await self._get_item(path), RemoteFile)

    async def filetype(self, path: str) -> FileType | None:
        item = await self._get_item(path)
        if item is None:
            return None
        return _file_type(item)

    async def stat(self, path: str) -> FileStat:
        """Stat a path; unresolvable paths yield FileStat.missing()."""
        item = await self._get_item(path)
        if item is None:
            return FileStat.missing()

        return FileStat(
            size=_item_size(item),
            mtime=_item_mtime(item),
            type=_file_type(item),
            mimetype=_item_mimetype(item),
            permissions=Permission.READ,
        )

    async def get_directory_content(self, path: str) -> list[DirectoryEntry]:
        """List a folder; any upstream failure yields an empty listing."""
        try:
            ctx = await self._open_context()
            items = await list_children(self._client, ctx, path, self._page_size)
        except SPStorageError as e:
            logger.warning(
                "sharepoint_listing_failed",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            return []

        return [
            DirectoryEntry(
                name=item.name,
                size=_item_size(item),
                mtime=_item_mtime(item),
                type=_file_type(item),
                mimetype=_item_mimetype(item),
                etag=_item_etag(item),
                permissions=Permission.READ,
            )
            for item in items
        ]

    async def open(self, path: str, mode: str = "rb") -> IO[bytes] | None:
        """Download a file into a spooled buffer positioned at the start.

        Returns None for write modes, folders, missing items and any
        download failure.
        """
        if WRITE_MODE_CHARS.intersection(mode):
            logger.info("sharepoint_open_write_refused", path=path, mode=mode)
            return None

        try:
            ctx = await self._open_context()
            item = await self._locator.get_item_by_path(ctx, path)
            if not isinstance(item, RemoteFile):
                logger.info(
                    "sharepoint_open_not_a_file",
                    path=path,
                    found=item is not None,
                )
                return None

            buffer = SpooledTemporaryFile(max_size=self._spool_max_bytes)
            try:
                await self._client.download(
                    ctx.drive_id, item.id, ctx.access_token, buffer
                )
            except SPStorageError:
                buffer.close()
                raise
        except SPStorageError as e:
            logger.warning(
                "sharepoint_open_failed",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        buffer.seek(0)
        return buffer

    # --- write operations (never supported) ---

    async def mkdir(self, path: str) -> bool:
        return self._refuse_write("mkdir", path)

    async def rmdir(self, path: str) -> bool:
        return self._refuse_write("rmdir", path)

    async def unlink(self, path: str) -> bool:
        return self._refuse_write("unlink", path)

    async def touch(self, path: str, mtime: int | None = None) -> bool:
        return self._refuse_write("touch", path)

    async def rename(self, source: str, target: str) -> bool:
        return self._refuse_write("rename", source)

    async def copy(self, source: str, target: str) -> bool:
        return self._refuse_write("copy", source)

    async def write(self, path: str, data: bytes) -> bool:
        return self._refuse_write("write", path)

    def _refuse_write(self, operation: str, path: str) -> bool:
        logger.debug("sharepoint_write_refused", operation=operation, path=path)
        return False

    async def close(self) -> None:
        """Close the Graph client if this adapter created it."""
        if self._owns_client:
            await self._client.close()
            logger.debug("sharepoint_adapter_closed")


def _file_type(item: RemoteItem) -> FileType:
    return "dir" if isinstance(item, RemoteFolder) else "file"


def _item_size(item: RemoteItem) -> int:
    return item.size if isinstance(item, RemoteFile) else 0


def _item_mtime(item: RemoteItem) -> int:
    if item.last_modified is None:
        return 0
    return int(item.last_modified.timestamp())


def _item_mimetype(item: RemoteItem) -> str:
    if isinstance(item, RemoteFolder):
        return DIRECTORY_MIME_TYPE
    return item.mime_type


def _item_etag(item: RemoteItem) -> str:
    source = item.etag or f"{item.id}:{_item_mtime(item)}"
    return hashlib.sha1(source.encode("utf-8")).hexdigest()[:32]
