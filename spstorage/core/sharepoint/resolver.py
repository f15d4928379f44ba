"""Drive location: site URL and library path to Graph site, drive and item ids.

Resolution runs once per adapter instance:
1. GET /sites/{host}:{path} for the site id
2. list the site's drives and match the library by exact display name
3. verify the optional sub path is a folder; it becomes the mount root
"""

from typing import Any
from urllib.parse import quote

from spstorage.core.logging import get_logger
from spstorage.core.sharepoint.client import GraphClient
from spstorage.core.sharepoint.exceptions import (
    LibraryNotFoundError,
    SharePointNotFoundError,
    SiteNotFoundError,
    SubPathInvalidError,
)
from spstorage.core.sharepoint.listing import list_all
from spstorage.core.sharepoint.models import (
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_NAME,
    ROOT_FOLDER,
    DriveBinding,
    DriveContext,
    RemoteItem,
    decode_item,
)
from spstorage.core.sharepoint.paths import (
    build_drive_path,
    encode_drive_path,
    normalize_virtual_path,
    parse_site_url,
    split_library_path,
)

logger = get_logger(__name__)


class DriveLocator:
    """Resolves mount coordinates and item paths against Graph."""

    def __init__(self, client: GraphClient) -> None:
        self._client = client

    async def resolve(self, site_url: str, library_path: str, token: str) -> DriveBinding:
        """Resolve a mount's site URL and library path into a DriveBinding.

        Args:
            site_url: e.g. https://contoso.sharepoint.com/sites/Eng
            library_path: "Library[/Sub/Path]"; empty selects "Documents"
            token: Bearer access token

        Raises:
            InvalidSiteUrlError: If the URL lacks a host or a path
            SiteNotFoundError: If the site lookup yields no id
            LibraryNotFoundError: If no drive is named like the library
            SubPathInvalidError: If the sub path is missing or not a folder
            SharePointError: For other request failures
        """
        host, site_path = parse_site_url(site_url)
        site_id = await self._lookup_site_id(host, site_path, token)

        library_name, sub_path = split_library_path(library_path)
        drive_id = await self._lookup_drive_id(site_id, library_name, token)

        if sub_path:
            await self._verify_folder(drive_id, sub_path, token)

        logger.info(
            "sharepoint_drive_resolved",
            site_url=site_url,
            library=library_name,
            site_id=site_id,
            drive_id=drive_id,
            mount_root_path=sub_path,
        )
        return DriveBinding(
            site_url=site_url,
            library_path=library_path,
            site_id=site_id,
            drive_id=drive_id,
            mount_root_path=sub_path,
        )

    async def get_item_by_path(self, ctx: DriveContext, path: str) -> RemoteItem | None:
        """Look up the item at a mount-relative path.

        The mount root itself is answered without a remote call.

        Returns:
            RemoteItem, or None if nothing exists at the path

        Raises:
            SharePointError: For request failures other than 404
        """
        relative = normalize_virtual_path(path)
        if not relative:
            return ROOT_FOLDER

        drive_path = build_drive_path(ctx.mount_root_path, relative)
        try:
            payload = await self._client.get_json(
                item_endpoint(ctx.drive_id, drive_path), ctx.access_token
            )
        except SharePointNotFoundError:
            return None
        return decode_item(payload)

    async def _lookup_site_id(self, host: str, site_path: str, token: str) -> str:
        try:
            data = await self._client.get_json(f"/sites/{host}:{quote(site_path)}", token)
        except SharePointNotFoundError as e:
            raise SiteNotFoundError(f"Site not found: {host}{site_path}") from e

        site_id = data.get(FIELD_ID)
        if not site_id:
            raise SiteNotFoundError(f"Site lookup returned no id: {host}{site_path}")
        return str(site_id)

    async def _lookup_drive_id(self, site_id: str, library_name: str, token: str) -> str:
        drives = await list_all(
            self._client,
            token,
            f"/sites/{site_id}/drives",
            params={"$select": f"{FIELD_ID},{FIELD_NAME}"},
        )
        for drive in drives:
            if drive.get(FIELD_NAME) == library_name and drive.get(FIELD_ID):
                return str(drive[FIELD_ID])

        logger.warning(
            "sharepoint_library_not_found",
            site_id=site_id,
            library=library_name,
            available=[drive.get(FIELD_NAME) for drive in drives],
        )
        raise LibraryNotFoundError(
            f"Document library not found: {library_name}",
            library_name=library_name,
        )

    async def _verify_folder(self, drive_id: str, sub_path: str, token: str) -> None:
        try:
            data: dict[str, Any] = await self._client.get_json(
                item_endpoint(drive_id, sub_path), token
            )
        except SharePointNotFoundError as e:
            raise SubPathInvalidError(
                f"Library sub path not found: {sub_path}", sub_path=sub_path
            ) from e

        if FIELD_FOLDER not in data:
            raise SubPathInvalidError(
                f"Library sub path is not a folder: {sub_path}", sub_path=sub_path
            )


def item_endpoint(drive_id: str, drive_path: str) -> str:
    """Item-by-path endpoint; an empty drive path must use the root endpoint."""
    if not drive_path:
        return f"/drives/{drive_id}/root"
    return f"/drives/{drive_id}/root:/{encode_drive_path(drive_path)}"
