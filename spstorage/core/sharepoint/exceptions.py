"""SharePoint-specific exception classes.

These exceptions map to common Microsoft Graph API error scenarios
for SharePoint document library browsing and drive resolution.
"""

from spstorage.core.exceptions import ConfigurationError, ExternalServiceError


class SharePointError(ExternalServiceError):
    """Base exception for SharePoint operations.

    All SharePoint-related errors should inherit from this class
    to allow catching all SharePoint errors with a single except clause.
    """

    pass


class SharePointAuthenticationError(SharePointError):
    """Raised when Graph rejects the bearer token (HTTP 401)."""

    pass


class SharePointRateLimitError(SharePointError):
    """Raised when Microsoft Graph API rate limit is exceeded.

    Graph API returns HTTP 429 with Retry-After header.
    The retry_after_seconds attribute indicates when to retry.
    """

    def __init__(self, message: str, retry_after_seconds: int | None = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class SharePointNotFoundError(SharePointError):
    """Raised when a requested site, drive or item does not exist (HTTP 404)."""

    pass


class SharePointPermissionError(SharePointError):
    """Raised when the identity lacks permission for the request (HTTP 403).

    Distinct from AuthenticationError which is about token validity.
    """

    pass


class GraphResponseError(SharePointError):
    """Raised when a Graph response body is not the expected JSON shape."""

    pass


# --- Drive resolution ---


class DriveResolutionError(SharePointError):
    """Base exception for failures mapping a mount onto site/drive ids.

    Terminal for the adapter instance that hit it.
    """

    pass


class InvalidSiteUrlError(DriveResolutionError, ConfigurationError):
    """Raised when the site URL has no host or no path component."""

    pass


class SiteNotFoundError(DriveResolutionError):
    """Raised when the site lookup returns no site id."""

    pass


class LibraryNotFoundError(DriveResolutionError):
    """Raised when no drive of the site carries the configured library name."""

    def __init__(self, message: str, library_name: str | None = None):
        super().__init__(message)
        self.library_name = library_name


class SubPathInvalidError(DriveResolutionError):
    """Raised when the library sub-path is missing or is not a folder."""

    def __init__(self, message: str, sub_path: str | None = None):
        super().__init__(message)
        self.sub_path = sub_path
