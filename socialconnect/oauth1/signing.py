"""
HMAC-SHA1 request signing (RFC 5849).
"""
import base64
import hashlib
import hmac
import random
import time
from collections.abc import Iterable, Mapping
from typing import Protocol
from urllib.parse import parse_qsl, quote

import httpx

HMAC_SHA1_SIGNATURE_NAME = "HMAC-SHA1"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

Params = Iterable[tuple[str, str]]


def oauth_encode(value: str) -> str:
    """Percent-encode everything outside ALPHA / DIGIT / "-" / "." / "_" / "~"."""
    return quote(value, safe="~")


class TimestampGenerator(Protocol):
    def generate_timestamp(self) -> int:
        ...

    def generate_nonce(self, timestamp: int) -> int:
        ...


class DefaultTimestampGenerator:
    def generate_timestamp(self) -> int:
        return int(time.time())

    def generate_nonce(self, timestamp: int) -> int:
        return timestamp + random.randint(0, 2**31 - 1)


class SigningSupport:
    """
    Builds OAuth1 ``Authorization`` header values.
    
    Tests inject a ``TimestampGenerator`` to get stable timestamps and nonces.
    """

    def __init__(self, timestamp_generator: TimestampGenerator | None = None):
        self.timestamp_generator = timestamp_generator or DefaultTimestampGenerator()

    def common_oauth_parameters(self, consumer_key: str) -> dict[str, str]:
        timestamp = self.timestamp_generator.generate_timestamp()
        return {
            "oauth_consumer_key": consumer_key,
            "oauth_signature_method": HMAC_SHA1_SIGNATURE_NAME,
            "oauth_timestamp": str(timestamp),
            "oauth_nonce": str(self.timestamp_generator.generate_nonce(timestamp)),
            "oauth_version": "1.0",
        }

    def build_authorization_header_value(
        self,
        method: str,
        url: str | httpx.URL,
        oauth_parameters: Mapping[str, str],
        additional_parameters: Params,
        consumer_secret: str,
        token_secret: str | None = None,
    ) -> str:
        """
        Sign a request and return the header value.
        
        ``additional_parameters`` are the decoded query and form-body
        parameters of the request; they take part in the signature but
        are not repeated in the header.
        """
        collected = list(oauth_parameters.items()) + list(additional_parameters)
        base_string = self.build_base_string(method, base_string_uri(url), collected)
        signature = self.calculate_signature(base_string, consumer_secret, token_secret)
        header = ", ".join(
            f'{oauth_encode(name)}="{oauth_encode(value)}"'
            for name, value in oauth_parameters.items()
        )
        return f'OAuth {header}, oauth_signature="{oauth_encode(signature)}"'

    def build_authorization_header_for_request(
        self,
        request: httpx.Request,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str | None,
    ) -> str:
        """Sign an outgoing API request with access-token credentials."""
        oauth_parameters = self.common_oauth_parameters(consumer_key)
        oauth_parameters["oauth_token"] = access_token
        parameters = parse_qsl(request.url.query.decode(), keep_blank_values=True)
        if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPE):
            parameters += parse_qsl(request.content.decode(), keep_blank_values=True)
        return self.build_authorization_header_value(
            request.method,
            request.url,
            oauth_parameters,
            parameters,
            consumer_secret,
            access_token_secret,
        )

    def build_base_string(self, method: str, base_uri: str, parameters: Params) -> str:
        return "&".join([
            method.upper(),
            oauth_encode(base_uri),
            oauth_encode(normalize_parameters(parameters)),
        ])

    def calculate_signature(
        self,
        base_string: str,
        consumer_secret: str,
        token_secret: str | None,
    ) -> str:
        key = f"{oauth_encode(consumer_secret)}&{oauth_encode(token_secret or '')}"
        digest = hmac.new(key.encode(), base_string.encode(), hashlib.sha1).digest()
        return base64.b64encode(digest).decode()


def normalize_parameters(parameters: Params) -> str:
    """Encode, sort by name then value, and join the signature parameters."""
    encoded = sorted(
        (oauth_encode(name), oauth_encode(value or ""))
        for name, value in parameters
        if name not in ("oauth_signature", "realm")
    )
    return "&".join(f"{name}={value}" for name, value in encoded)


def base_string_uri(url: str | httpx.URL) -> str:
    """Scheme, host, non-default port and path of ``url``; no query or fragment."""
    url = httpx.URL(url)
    scheme = url.scheme.lower()
    host = url.host.lower()
    port = url.port
    if port is not None and not (
        (scheme == "http" and port == 80) or (scheme == "https" and port == 443)
    ):
        host = f"{host}:{port}"
    path = url.raw_path.decode("ascii").split("?", 1)[0]
    return f"{scheme}://{host}{path}"
