"""Data models for Microsoft Graph drive items and resolved drive bindings."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_MIME_TYPE = "mimeType"
FIELD_SIZE = "size"
FIELD_LAST_MODIFIED = "lastModifiedDateTime"
FIELD_ETAG = "eTag"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"

DEFAULT_MIME_TYPE = "application/octet-stream"

# Synthetic id used for the mount root, which is never looked up remotely
ROOT_ITEM_ID = "root"


@dataclass(frozen=True)
class RemoteFolder:
    """A folder item of a drive."""

    id: str
    name: str
    last_modified: datetime | None = None
    etag: str | None = None

    is_folder: ClassVar[bool] = True


@dataclass(frozen=True)
class RemoteFile:
    """A file item of a drive."""

    id: str
    name: str
    size: int = 0
    mime_type: str = DEFAULT_MIME_TYPE
    last_modified: datetime | None = None
    etag: str | None = None

    is_folder: ClassVar[bool] = False


RemoteItem = RemoteFile | RemoteFolder

ROOT_FOLDER = RemoteFolder(id=ROOT_ITEM_ID, name="")


def parse_graph_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 Graph timestamp such as 2024-03-01T10:15:00Z."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def decode_item(payload: dict[str, Any]) -> RemoteItem | None:
    """Decode a driveItem JSON object into a RemoteFile or RemoteFolder.

    Presence of the ``folder`` facet marks a folder. Missing optional
    fields fall back to: size 0, mime type application/octet-stream,
    no timestamp, no etag.

    Returns:
        Decoded item, or None when the payload carries no id
    """
    item_id = payload.get(FIELD_ID)
    if not item_id:
        return None

    name = str(payload.get(FIELD_NAME) or "")
    last_modified = parse_graph_datetime(payload.get(FIELD_LAST_MODIFIED))
    etag = payload.get(FIELD_ETAG)
    etag = str(etag) if etag else None

    if FIELD_FOLDER in payload:
        return RemoteFolder(
            id=str(item_id),
            name=name,
            last_modified=last_modified,
            etag=etag,
        )

    file_facet = payload.get(FIELD_FILE)
    mime_type = DEFAULT_MIME_TYPE
    if isinstance(file_facet, dict) and file_facet.get(FIELD_MIME_TYPE):
        mime_type = str(file_facet[FIELD_MIME_TYPE])

    try:
        size = int(payload.get(FIELD_SIZE) or 0)
    except (TypeError, ValueError):
        size = 0

    return RemoteFile(
        id=str(item_id),
        name=name,
        size=size,
        mime_type=mime_type,
        last_modified=last_modified,
        etag=etag,
    )


@dataclass(frozen=True)
class DriveBinding:
    """Remote coordinates of a mount, resolved once per adapter instance."""

    site_url: str
    library_path: str
    site_id: str
    drive_id: str
    mount_root_path: str = ""


@dataclass(frozen=True)
class DriveContext:
    """Per-operation context passed to path resolution and listing calls."""

    binding: DriveBinding
    access_token: str

    @property
    def drive_id(self) -> str:
        return self.binding.drive_id

    @property
    def mount_root_path(self) -> str:
        return self.binding.mount_root_path
