"""
OAuth 2 client support.
"""
from socialconnect.oauth2.types import AccessGrant, GrantType, OAuth2Parameters, OAuth2Version
from socialconnect.oauth2.template import OAuth2Template
from socialconnect.oauth2.binding import OAuth2ApiBinding, OAuth2Auth

__all__ = [
    "AccessGrant",
    "GrantType",
    "OAuth2Parameters",
    "OAuth2Version",
    "OAuth2Template",
    "OAuth2ApiBinding",
    "OAuth2Auth",
]
