"""
Tests for OAuth1 signing and the three-legged token flow.
"""
import httpx
import pytest

from socialconnect.errors import OAuthExchangeError
from socialconnect.oauth1 import (
    AuthorizedRequestToken,
    OAuth1Parameters,
    OAuth1Template,
    OAuth1Version,
    OAuthToken,
    SigningSupport,
)
from socialconnect.oauth1.signing import base_string_uri, normalize_parameters

# Photo-sharing example from OAuth Core 1.0, appendix A
PHOTOS_OAUTH_PARAMETERS = {
    "oauth_consumer_key": "dpf43f3p2l4k3l03",
    "oauth_token": "nnch734d00sl2jdk",
    "oauth_signature_method": "HMAC-SHA1",
    "oauth_timestamp": "1191242096",
    "oauth_nonce": "kllo9940pd9333jh",
    "oauth_version": "1.0",
}
PHOTOS_SIGNATURE = "tR3%2BTy81lMeYAr%2FFid0kMTYa%2FWM%3D"


class FixedTimestampGenerator:
    def generate_timestamp(self) -> int:
        return 1191242096

    def generate_nonce(self, timestamp: int) -> str:
        return "kllo9940pd9333jh"


def test_base_string():
    """Test the signature base string for the photos example."""
    support = SigningSupport()
    parameters = list(PHOTOS_OAUTH_PARAMETERS.items()) + [("file", "vacation.jpg"), ("size", "original")]
    
    base_string = support.build_base_string("GET", "http://photos.example.net/photos", parameters)
    
    assert base_string == (
        "GET&http%3A%2F%2Fphotos.example.net%2Fphotos&file%3Dvacation.jpg"
        "%26oauth_consumer_key%3Ddpf43f3p2l4k3l03%26oauth_nonce%3Dkllo9940pd9333jh"
        "%26oauth_signature_method%3DHMAC-SHA1%26oauth_timestamp%3D1191242096"
        "%26oauth_token%3Dnnch734d00sl2jdk%26oauth_version%3D1.0%26size%3Doriginal"
    )


def test_authorization_header_signature():
    """Test HMAC-SHA1 signature against the published example."""
    header = SigningSupport().build_authorization_header_value(
        "GET",
        "http://photos.example.net/photos",
        PHOTOS_OAUTH_PARAMETERS,
        [("file", "vacation.jpg"), ("size", "original")],
        "kd94hf93k423kf44",
        "pfkkdhi9sl3r4s00",
    )
    
    assert header.startswith("OAuth ")
    assert f'oauth_signature="{PHOTOS_SIGNATURE}"' in header
    assert 'oauth_consumer_key="dpf43f3p2l4k3l03"' in header
    # Query parameters are signed but not sent in the header
    assert "file=" not in header


def test_authorization_header_for_request():
    """Test signing an outgoing request picks up its query parameters."""
    support = SigningSupport(FixedTimestampGenerator())
    request = httpx.Request("GET", "http://photos.example.net/photos?file=vacation.jpg&size=original")
    
    header = support.build_authorization_header_for_request(
        request,
        "dpf43f3p2l4k3l03",
        "kd94hf93k423kf44",
        "nnch734d00sl2jdk",
        "pfkkdhi9sl3r4s00",
    )
    
    assert f'oauth_signature="{PHOTOS_SIGNATURE}"' in header


def test_base_string_uri():
    """Test default ports and query strings are dropped from the base URI."""
    assert base_string_uri("HTTP://Example.COM:80/r%20v/X?id=123") == "http://example.com/r%20v/X"
    assert base_string_uri("https://www.example.net:8080/?q=1") == "https://www.example.net:8080/"


def test_normalize_parameters_excludes_signature_and_realm():
    """Test the signature and realm never take part in the signature."""
    normalized = normalize_parameters([
        ("b", "2"),
        ("a", "x y"),
        ("oauth_signature", "ignored"),
        ("realm", "Example"),
        ("a", "1"),
    ])
    
    assert normalized == "a=1&a=x%20y&b=2"


def _template(handler, version=OAuth1Version.CORE_10_REVISION_A, authenticate_url=None) -> OAuth1Template:
    return OAuth1Template(
        "consumer-key",
        "consumer-secret",
        "https://provider.test/oauth1/request_token",
        "https://provider.test/oauth1/authorize",
        "https://provider.test/oauth1/access_token",
        authenticate_url=authenticate_url,
        version=version,
        transport=httpx.MockTransport(handler),
    )


def _token_handler(captured: list):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, text="oauth_token=tok&oauth_token_secret=sec&oauth_callback_confirmed=true")
    return handler


def test_missing_required_settings():
    """Test the template refuses to be built without consumer credentials."""
    with pytest.raises(ValueError):
        OAuth1Template(
            "",
            "consumer-secret",
            "https://provider.test/oauth1/request_token",
            "https://provider.test/oauth1/authorize",
            "https://provider.test/oauth1/access_token",
        )


@pytest.mark.asyncio
async def test_fetch_request_token_sends_callback_for_revision_a():
    """Test 1.0a sends oauth_callback in the request-token header."""
    captured = []
    template = _template(_token_handler(captured))
    
    token = await template.fetch_request_token("https://app.test/callback")
    
    assert token == OAuthToken("tok", "sec")
    header = captured[0].headers["Authorization"]
    assert captured[0].method == "POST"
    assert 'oauth_callback="https%3A%2F%2Fapp.test%2Fcallback"' in header
    assert 'oauth_consumer_key="consumer-key"' in header


@pytest.mark.asyncio
async def test_fetch_request_token_without_callback_for_core_10():
    """Test 1.0 leaves oauth_callback out of the request-token header."""
    captured = []
    template = _template(_token_handler(captured), version=OAuth1Version.CORE_10)
    
    await template.fetch_request_token("https://app.test/callback")
    
    assert "oauth_callback" not in captured[0].headers["Authorization"]


def test_build_authorize_url_revision_a():
    """Test 1.0a authorize URL carries only the request token."""
    template = _template(_token_handler([]))
    
    url = template.build_authorize_url("tok", OAuth1Parameters(callback_url="https://app.test/callback"))
    
    assert url == "https://provider.test/oauth1/authorize?oauth_token=tok"


def test_build_authorize_url_core_10_includes_callback():
    """Test 1.0 authorize URL carries the callback."""
    template = _template(_token_handler([]), version=OAuth1Version.CORE_10)
    
    url = template.build_authorize_url("tok", OAuth1Parameters(callback_url="https://app.test/callback"))
    
    assert url == (
        "https://provider.test/oauth1/authorize"
        "?oauth_token=tok&oauth_callback=https%3A%2F%2Fapp.test%2Fcallback"
    )


def test_build_authenticate_url():
    """Test authenticate URL, and the fallback to authorize URL."""
    with_authenticate = _template(_token_handler([]), authenticate_url="https://provider.test/oauth1/authenticate")
    without_authenticate = _template(_token_handler([]))
    
    assert with_authenticate.build_authenticate_url("tok") == "https://provider.test/oauth1/authenticate?oauth_token=tok"
    assert without_authenticate.build_authenticate_url("tok") == "https://provider.test/oauth1/authorize?oauth_token=tok"


@pytest.mark.asyncio
async def test_exchange_for_access_token_sends_verifier():
    """Test the access-token request carries the request token and verifier."""
    captured = []
    template = _template(_token_handler(captured))
    
    access_token = await template.exchange_for_access_token(
        AuthorizedRequestToken(OAuthToken("request-token", "request-secret"), "verifier-1")
    )
    
    assert access_token.value == "tok"
    assert access_token.secret == "sec"
    header = captured[0].headers["Authorization"]
    assert 'oauth_token="request-token"' in header
    assert 'oauth_verifier="verifier-1"' in header


@pytest.mark.asyncio
async def test_exchange_requires_verifier_for_revision_a():
    """Test 1.0a refuses to exchange without a verifier."""
    captured = []
    template = _template(_token_handler(captured))
    
    with pytest.raises(OAuthExchangeError):
        await template.exchange_for_access_token(
            AuthorizedRequestToken(OAuthToken("request-token", "request-secret"), None)
        )
    
    assert captured == []


@pytest.mark.asyncio
async def test_rejected_token_request():
    """Test an error response raises OAuthExchangeError with the status."""
    template = _template(lambda request: httpx.Response(401, text="oauth_problem=signature_invalid"))
    
    with pytest.raises(OAuthExchangeError) as exc_info:
        await template.fetch_request_token("https://app.test/callback")
    
    assert exc_info.value.status_code == 401
    assert "signature_invalid" in exc_info.value.detail
