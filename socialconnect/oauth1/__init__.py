"""
OAuth 1.0 / 1.0a client support.
"""
from socialconnect.oauth1.types import (
    AuthorizedRequestToken,
    OAuth1Parameters,
    OAuth1Version,
    OAuthToken,
)
from socialconnect.oauth1.signing import SigningSupport, TimestampGenerator
from socialconnect.oauth1.template import OAuth1Template
from socialconnect.oauth1.binding import OAuth1ApiBinding, OAuth1Auth

__all__ = [
    "AuthorizedRequestToken",
    "OAuth1Parameters",
    "OAuth1Version",
    "OAuthToken",
    "SigningSupport",
    "TimestampGenerator",
    "OAuth1Template",
    "OAuth1ApiBinding",
    "OAuth1Auth",
]
