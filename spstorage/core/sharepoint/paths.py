"""Path handling between the host namespace and drive-relative paths."""

from urllib.parse import quote, urlsplit

from spstorage.core.sharepoint.exceptions import InvalidSiteUrlError

# Library used when the mount names none
DEFAULT_LIBRARY_NAME = "Documents"

# Second segment of host paths shaped "<identity>/files/<mount>/..."
HOST_STORAGE_MARKER = "files"


def split_segments(path: str) -> list[str]:
    """Split a path on "/" dropping empty and "." segments."""
    return [segment for segment in path.split("/") if segment and segment != "."]


def split_library_path(library_path: str) -> tuple[str, str]:
    """Split "Library[/Sub/Path]" into (library name, sub path).

    An empty library path selects the default "Documents" library.
    """
    segments = split_segments(library_path)
    if not segments:
        return DEFAULT_LIBRARY_NAME, ""
    return segments[0], "/".join(segments[1:])


def encode_drive_path(path: str) -> str:
    """Percent-encode each segment of a drive path."""
    return "/".join(quote(segment, safe="") for segment in split_segments(path))


def build_drive_path(mount_root_path: str, relative_path: str) -> str:
    """Join the mount root and a mount-relative path into a drive path.

    Redundant separators are dropped; either side may be empty.
    """
    return "/".join(split_segments(mount_root_path) + split_segments(relative_path))


def strip_mount_root(mount_root_path: str, drive_path: str) -> str:
    """Inverse of build_drive_path for paths under the mount root."""
    root = split_segments(mount_root_path)
    segments = split_segments(drive_path)
    if segments[: len(root)] != root:
        raise ValueError(f"{drive_path!r} is not under mount root {mount_root_path!r}")
    return "/".join(segments[len(root) :])


def normalize_virtual_path(path: str) -> str:
    """Strip a host prefix of the form "<identity>/files/<mount>/".

    The host may hand over paths from its own virtual namespace. When the
    second segment is the storage-area marker, the first three segments
    are dropped; any other path is returned unchanged (minus surrounding
    slashes).
    """
    path = path.strip("/")
    if path in ("", "."):
        return ""

    segments = path.split("/")
    if len(segments) >= 3 and segments[1] == HOST_STORAGE_MARKER:
        return "/".join(segments[3:])

    return path


def parse_site_url(site_url: str) -> tuple[str, str]:
    """Split a site URL into (host, server-relative path).

    Raises:
        InvalidSiteUrlError: If the host or the path is missing
    """
    parts = urlsplit(site_url.strip())
    host = parts.hostname or ""
    path = parts.path.rstrip("/")

    if not host or not path:
        raise InvalidSiteUrlError(
            f"Site URL must include a host and a site path: {site_url!r}"
        )
    return host, path
