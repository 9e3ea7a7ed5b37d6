"""
Signed HTTP access to OAuth1-protected provider APIs.
"""
from collections.abc import Generator

import httpx

from socialconnect.errors import classify_http_error
from socialconnect.oauth1.signing import SigningSupport


class OAuth1Auth(httpx.Auth):
    """httpx auth flow that signs every request with the access-token credentials."""

    requires_request_body = True

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str | None,
        signing_support: SigningSupport | None = None,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.access_token = access_token
        self.access_token_secret = access_token_secret
        self.signing_support = signing_support or SigningSupport()

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.signing_support.build_authorization_header_for_request(
            request,
            self.consumer_key,
            self.consumer_secret,
            self.access_token,
            self.access_token_secret,
        )
        yield request


class OAuth1ApiBinding:
    """
    Base class for provider API clients authorized with OAuth1.
    
    Subclasses call ``get_json``/``post_form``; error responses are
    translated with ``translate_error``.
    """

    provider_id: str | None = None

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str | None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.access_token = access_token
        self.access_token_secret = access_token_secret
        self.auth = OAuth1Auth(consumer_key, consumer_secret, access_token, access_token_secret)
        self.transport = transport
        self.timeout = timeout

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token)

    async def get_json(self, url: str, params: dict | None = None) -> dict:
        async with httpx.AsyncClient(auth=self.auth, transport=self.transport, timeout=self.timeout) as client:
            response = await client.get(url, params=params)
        self.raise_for_status(response)
        return response.json()

    async def post_form(self, url: str, data: dict | None = None) -> dict:
        async with httpx.AsyncClient(auth=self.auth, transport=self.transport, timeout=self.timeout) as client:
            response = await client.post(url, data=data)
        self.raise_for_status(response)
        return response.json()

    def raise_for_status(self, response: httpx.Response) -> None:
        if response.is_error:
            raise self.translate_error(response)

    def translate_error(self, response: httpx.Response) -> Exception:
        return classify_http_error(self.provider_id, response.status_code, response.text)
