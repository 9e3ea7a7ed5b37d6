"""
Provider connection factories.
"""
from socialconnect.providers.facebook import FacebookApi, FacebookConnectionFactory
from socialconnect.providers.twitter import TwitterApi, TwitterConnectionFactory
from socialconnect.providers.generic import (
    GenericOAuth1Api,
    GenericOAuth1ConnectionFactory,
    GenericOAuth2Api,
    GenericOAuth2ConnectionFactory,
)

__all__ = [
    "FacebookApi",
    "FacebookConnectionFactory",
    "TwitterApi",
    "TwitterConnectionFactory",
    "GenericOAuth1Api",
    "GenericOAuth1ConnectionFactory",
    "GenericOAuth2Api",
    "GenericOAuth2ConnectionFactory",
]
