"""
Social sign-in: authentication services, provider and filter.
"""
from socialconnect.security.session import AUTHENTICATED_USER_KEY, DictSessionStore, SessionStore, session_store_for
from socialconnect.security.attempts import ProviderSignInAttempts
from socialconnect.security.tokens import SocialAuthenticationToken
from socialconnect.security.services import (
    MANY_TO_MANY,
    MANY_TO_ONE,
    ONE_TO_MANY,
    ONE_TO_ONE,
    ConnectionCardinality,
    OAuth1AuthenticationService,
    OAuth2AuthenticationService,
    SocialAuthenticationService,
    SocialRequest,
)
from socialconnect.security.registry import SocialAuthenticationServiceRegistry
from socialconnect.security.provider import SocialAuthenticationProvider, SQLUserDetailsService
from socialconnect.security.filter import FilterResult, SocialAuthenticationFilter

__all__ = [
    "AUTHENTICATED_USER_KEY",
    "DictSessionStore",
    "SessionStore",
    "session_store_for",
    "ProviderSignInAttempts",
    "SocialAuthenticationToken",
    "MANY_TO_MANY",
    "MANY_TO_ONE",
    "ONE_TO_MANY",
    "ONE_TO_ONE",
    "ConnectionCardinality",
    "OAuth1AuthenticationService",
    "OAuth2AuthenticationService",
    "SocialAuthenticationService",
    "SocialRequest",
    "SocialAuthenticationServiceRegistry",
    "SocialAuthenticationProvider",
    "SQLUserDetailsService",
    "FilterResult",
    "SocialAuthenticationFilter",
]
