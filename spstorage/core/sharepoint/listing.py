"""Folder listing with transparent @odata.nextLink pagination."""

from typing import Any

from spstorage.core.logging import get_logger
from spstorage.core.sharepoint.client import GraphClient
from spstorage.core.sharepoint.exceptions import GraphResponseError
from spstorage.core.sharepoint.models import (
    FIELD_ETAG,
    FIELD_FILE,
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_LAST_MODIFIED,
    FIELD_NAME,
    FIELD_SIZE,
    ODATA_NEXT_LINK,
    ODATA_VALUE,
    DriveContext,
    RemoteItem,
    decode_item,
)
from spstorage.core.sharepoint.paths import (
    build_drive_path,
    encode_drive_path,
    normalize_virtual_path,
)

logger = get_logger(__name__)

# Only the driveItem fields translated into stat and listing records
LIST_SELECT_FIELDS = ",".join(
    [
        FIELD_ID,
        FIELD_NAME,
        FIELD_SIZE,
        FIELD_LAST_MODIFIED,
        FIELD_FOLDER,
        FIELD_FILE,
        FIELD_ETAG,
    ]
)

# Largest $top Graph accepts for driveItem children
MAX_PAGE_SIZE = 999


async def list_all(
    client: GraphClient,
    token: str,
    path: str,
    params: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Fetch every page of a collection and return the accumulated values.

    The first request carries ``params``; continuation links already
    encode the query, so later pages are requested as returned.

    Raises:
        GraphResponseError: If a page has no ``value`` array
        SharePointError: For request failures
    """
    items: list[dict[str, Any]] = []
    next_url: str | None = path
    page_params = params
    pages = 0

    while next_url:
        data = await client.get_json(next_url, token, params=page_params)
        values = data.get(ODATA_VALUE)
        if not isinstance(values, list):
            raise GraphResponseError(f"Collection page without '{ODATA_VALUE}': {path}")

        items.extend(value for value in values if isinstance(value, dict))
        pages += 1
        next_url = data.get(ODATA_NEXT_LINK)
        page_params = None

    logger.debug("graph_collection_listed", path=path, pages=pages, items=len(items))
    return items


def children_endpoint(drive_id: str, drive_path: str) -> str:
    """Children endpoint of a folder; the drive root has its own form."""
    if not drive_path:
        return f"/drives/{drive_id}/root/children"
    return f"/drives/{drive_id}/root:/{encode_drive_path(drive_path)}:/children"


async def list_children(
    client: GraphClient,
    ctx: DriveContext,
    relative_path: str,
    page_size: int = MAX_PAGE_SIZE,
) -> list[RemoteItem]:
    """List the children of a mount-relative folder path.

    Items that cannot be decoded (no id) or carry no name are skipped.
    """
    drive_path = build_drive_path(
        ctx.mount_root_path, normalize_virtual_path(relative_path)
    )
    params = {
        "$top": str(min(page_size, MAX_PAGE_SIZE)),
        "$select": LIST_SELECT_FIELDS,
    }

    payloads = await list_all(
        client,
        ctx.access_token,
        children_endpoint(ctx.drive_id, drive_path),
        params=params,
    )

    items: list[RemoteItem] = []
    for payload in payloads:
        item = decode_item(payload)
        if item is None or not item.name:
            continue
        items.append(item)
    return items
