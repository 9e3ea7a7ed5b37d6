"""
OAuth1 tokens and parameters.
"""
from dataclasses import dataclass, field
from enum import Enum


class OAuth1Version(str, Enum):
    """Protocol revision spoken by a provider."""
    # Callback supplied on the authorize URL, no verifier
    CORE_10 = "1.0"
    # Callback sent with the request token, verifier required
    CORE_10_REVISION_A = "1.0a"


@dataclass(frozen=True)
class OAuthToken:
    """A request or access token and its secret."""
    value: str
    secret: str | None = None


@dataclass(frozen=True)
class AuthorizedRequestToken:
    """A request token the user has authorized, with the verifier sent back by the provider."""
    request_token: OAuthToken
    verifier: str | None = None

    @property
    def value(self) -> str:
        return self.request_token.value

    @property
    def secret(self) -> str | None:
        return self.request_token.secret


@dataclass
class OAuth1Parameters:
    """Parameters appended to the authorize/authenticate URL."""
    callback_url: str | None = None
    extra: dict[str, str] = field(default_factory=dict)
