"""Core application exception classes.

This module provides a centralized exception hierarchy for all spstorage
errors. All custom exceptions inherit from SPStorageError, enabling:
- A single except clause at the storage adapter boundary
- Easy categorization of errors by type
- Structured logging with exception context

Exception Hierarchy:
    SPStorageError (base)
    +-- ConfigurationError (missing/invalid mount or client configuration)
    +-- CredentialStoreError (credential database failures)
    +-- ExternalServiceError (identity provider / Graph API failures)
        +-- TokenError
        |   +-- MissingRefreshTokenError
        |   +-- TokenTransportError
        |   +-- TokenResponseError
        |   +-- TokenEndpointError
        |   +-- TokenUnavailableError
        +-- SharePointError (defined in core/sharepoint/exceptions.py)
"""


class SPStorageError(Exception):
    """Base exception for all spstorage errors.

    Example:
        try:
            await adapter.test()
        except SPStorageError as e:
            logger.error("mount_test_failed", error=str(e))
    """

    pass


# --- Category Exceptions ---


class ConfigurationError(SPStorageError):
    """Exception for missing or invalid configuration.

    Raised when required configuration is missing or invalid, such as:
    - Missing site URL
    - Missing client id / client secret
    - A site URL without host or path

    Configuration errors are never retried.
    """

    pass


class ExternalServiceError(SPStorageError):
    """Base exception for external service/API failures.

    Covers the Microsoft identity platform token endpoint and the
    Microsoft Graph API.
    """

    pass


class CredentialStoreError(SPStorageError):
    """Exception for credential database failures.

    Wraps SQLAlchemy errors raised while reading or writing stored
    credentials, so callers handle them like any other spstorage error.
    """

    pass


# --- Token Exceptions ---


class TokenError(ExternalServiceError):
    """Base exception for access token acquisition failures.

    Terminal for a single access attempt only; the next operation
    re-attempts the full acquisition sequence.
    """

    pass


class MissingRefreshTokenError(TokenError):
    """Raised when a stored credential has no refresh token to exchange."""

    pass


class TokenTransportError(TokenError):
    """Raised when the token endpoint cannot be reached (network/timeout)."""

    pass


class TokenResponseError(TokenError):
    """Raised when the token endpoint returns an unusable body.

    This covers non-JSON bodies and JSON bodies missing access_token
    or refresh_token.
    """

    pass


class TokenEndpointError(TokenError):
    """Raised when the token endpoint rejects the request.

    Either a non-2xx status or an ``error`` field in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.error_description = error_description


class TokenUnavailableError(TokenError):
    """Raised when no valid access token could be obtained for an identity."""

    def __init__(self, scope_id: int, identity: str):
        super().__init__(
            f"No valid access token for identity {identity!r} (scope {scope_id})"
        )
        self.scope_id = scope_id
        self.identity = identity
