"""
Error types raised by the OAuth clients, connection repositories,
provider API bindings and the social authentication filter.
"""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from socialconnect.connect.data import ConnectionKey


class SocialError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, provider_id: str | None = None):
        super().__init__(message)
        self.provider_id = provider_id


# OAuth protocol


class OAuthExchangeError(SocialError):
    """The provider rejected a token exchange (bad code, verifier or client credentials)."""

    def __init__(
        self,
        message: str,
        provider_id: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ):
        super().__init__(message, provider_id)
        self.status_code = status_code
        self.detail = detail


# Connection repositories


class ConnectionRepositoryError(SocialError):
    """Base class for connection persistence errors."""


class NotConnectedError(ConnectionRepositoryError):
    """The user has no connection to the requested provider."""

    def __init__(self, provider_id: str):
        super().__init__(f"Not connected to provider '{provider_id}'", provider_id)


class DuplicateConnectionError(ConnectionRepositoryError):
    """A connection with the same key already exists for this user."""

    def __init__(self, key: "ConnectionKey"):
        super().__init__(
            f"The connection with key {key} already exists",
            key.provider_id,
        )
        self.key = key


class NoSuchConnectionError(ConnectionRepositoryError):
    """No connection exists for the given key."""

    def __init__(self, key: "ConnectionKey"):
        super().__init__(f"No such connection exists with key {key}", key.provider_id)
        self.key = key


# Social authentication


class AuthenticationError(SocialError):
    """Base class for sign-in failures."""

    error_code = "authentication_failed"


class BadCredentialsError(AuthenticationError):
    """The provider account is not bound to any local user."""

    error_code = "bad_credentials"


class MultipleUserIdsError(AuthenticationError):
    """More than one local user is bound to the same provider account."""

    error_code = "multiple_users"

    def __init__(self, key: "ConnectionKey", user_ids: list[str]):
        super().__init__(
            f"{len(user_ids)} local users are connected to {key}",
            key.provider_id,
        )
        self.key = key
        self.user_ids = list(user_ids)


class UserNotFoundError(AuthenticationError):
    """The local user bound to a connection no longer exists or is disabled."""

    error_code = "user_not_found"


class ProviderAuthenticationError(AuthenticationError):
    """The provider leg of the sign-in failed."""

    error_code = "provider_error"


class InvalidStateError(AuthenticationError):
    """The OAuth2 callback state does not match the one issued for this session."""

    error_code = "invalid_state"


class SocialAuthenticationRedirect(SocialError):
    """Control flow signal: send the browser to ``url``."""

    def __init__(self, url: str):
        super().__init__(f"Redirect to {url}")
        self.url = url


# Provider API calls


class ApiError(SocialError):
    """An error returned by a provider API."""

    retryable = False

    def __init__(
        self,
        provider_id: str | None,
        message: str,
        status_code: int | None = None,
    ):
        super().__init__(message, provider_id)
        self.status_code = status_code


class NotAuthorizedError(ApiError):
    """The credential is no longer accepted; the user has to reconnect."""


class ExpiredAuthorizationError(NotAuthorizedError):
    """The access token has expired."""

    def __init__(
        self,
        provider_id: str | None,
        message: str = "The authorization has expired.",
        status_code: int | None = None,
    ):
        super().__init__(provider_id, message, status_code)


class InvalidAuthorizationError(NotAuthorizedError):
    """The access token is malformed or unknown to the provider."""


class RevokedAuthorizationError(NotAuthorizedError):
    """The user revoked the application's access."""


class MissingAuthorizationError(NotAuthorizedError):
    """An operation requiring authorization was attempted without a credential."""


class RateLimitExceededError(ApiError):
    """The provider throttled the request."""

    retryable = True


class ServerError(ApiError):
    """The provider failed internally or is unavailable."""

    retryable = True


class DuplicateContentError(ApiError):
    """The provider rejected content it has already seen."""


class ResourceNotFoundError(ApiError):
    """The requested provider resource does not exist."""


def classify_http_error(
    provider_id: str | None,
    status_code: int,
    message: str = "",
) -> ApiError:
    """Map an HTTP status returned by a provider API to an ``ApiError``."""
    message = message or f"Provider responded with HTTP {status_code}"
    if status_code == 401:
        return InvalidAuthorizationError(provider_id, message, status_code)
    if status_code == 403:
        return NotAuthorizedError(provider_id, message, status_code)
    if status_code == 404:
        return ResourceNotFoundError(provider_id, message, status_code)
    if status_code == 409:
        return DuplicateContentError(provider_id, message, status_code)
    if status_code == 429:
        return RateLimitExceededError(provider_id, message, status_code)
    if status_code >= 500:
        return ServerError(provider_id, message, status_code)
    return ApiError(provider_id, message, status_code)
