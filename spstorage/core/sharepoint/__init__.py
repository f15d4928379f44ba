"""SharePoint integration for read-only document library mounts.

This package exposes a SharePoint Online document library through Microsoft
Graph as a read-only file store.

Modules:
    - exceptions: SharePoint-specific exception classes
    - models: RemoteItem variants, DriveBinding and DriveContext
    - paths: host path normalization and drive path composition
    - client: Graph API client wrapper
    - listing: paginated folder listings
    - resolver: site/drive/item resolution
    - adapter: ReadOnlyStorage implementation
"""

from spstorage.core.sharepoint.adapter import SharePointMountConfig, SharePointStorage
from spstorage.core.sharepoint.client import GraphClient
from spstorage.core.sharepoint.exceptions import (
    DriveResolutionError,
    GraphResponseError,
    InvalidSiteUrlError,
    LibraryNotFoundError,
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
    SharePointPermissionError,
    SharePointRateLimitError,
    SiteNotFoundError,
    SubPathInvalidError,
)
from spstorage.core.sharepoint.models import (
    DriveBinding,
    DriveContext,
    RemoteFile,
    RemoteFolder,
    RemoteItem,
)
from spstorage.core.sharepoint.resolver import DriveLocator

__all__ = [
    # Exceptions
    "SharePointError",
    "SharePointAuthenticationError",
    "SharePointRateLimitError",
    "SharePointNotFoundError",
    "SharePointPermissionError",
    "GraphResponseError",
    "DriveResolutionError",
    "InvalidSiteUrlError",
    "SiteNotFoundError",
    "LibraryNotFoundError",
    "SubPathInvalidError",
    # Models
    "DriveBinding",
    "DriveContext",
    "RemoteFile",
    "RemoteFolder",
    "RemoteItem",
    # Components
    "GraphClient",
    "DriveLocator",
    "SharePointMountConfig",
    "SharePointStorage",
]
