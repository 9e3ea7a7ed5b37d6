"""
Bearer-style HTTP access to OAuth2-protected provider APIs.
"""
from collections.abc import Generator

import httpx

from socialconnect.errors import classify_http_error
from socialconnect.oauth2.types import OAuth2Version


class OAuth2Auth(httpx.Auth):
    """httpx auth flow adding the access token in the provider's header style."""

    def __init__(self, access_token: str, version: OAuth2Version = OAuth2Version.BEARER):
        self.access_token = access_token
        self.version = version

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.version.authorization_header_value(self.access_token)
        yield request


class OAuth2ApiBinding:
    """Base class for provider API clients authorized with an OAuth2 access token."""

    provider_id: str | None = None
    oauth2_version: OAuth2Version = OAuth2Version.BEARER

    def __init__(
        self,
        access_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        oauth2_version: OAuth2Version | None = None,
    ):
        self.access_token = access_token
        self.auth = OAuth2Auth(access_token, oauth2_version or self.oauth2_version)
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
