"""
Shared pytest fixtures for idbridge tests.

This module provides common fixtures including:
- RSA signing keys and JWKS documents built from them
- A token minting helper
- Static key set fetchers and httpx mock transports for provider fakes
"""

import base64
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from idbridge.modules.auth import FetchError, KeySet

DOMAIN = "tenant.example.auth0.com"
AUDIENCE = "https://api.example.com"
ISSUER = f"https://{DOMAIN}/"


def int_to_base64url(n: int) -> str:
    """Convert integer to base64url-encoded string."""
    raw = n.to_bytes((n.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def jwk_for(private_key, kid: str) -> Dict[str, Any]:
    """Public JWK for a private key."""
    numbers = private_key.public_key().public_numbers()
    return {
        "kty": "RSA",
        "kid": kid,
        "use": "sig",
        "alg": "RS256",
        "n": int_to_base64url(numbers.n),
        "e": int_to_base64url(numbers.e),
        "x5c": [],
    }


class StaticKeySetFetcher:
    """Fetcher returning a fixed JWKS document and counting calls."""

    def __init__(self, document: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.document = document
        self.error = error
        self.calls: List[str] = []

    def fetch(self, domain: str) -> KeySet:
        self.calls.append(domain)
        if self.error:
            raise self.error
        return KeySet.from_jwks(self.document)


@pytest.fixture(scope="session")
def private_key():
    """RSA key pair used to sign test tokens."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    """A second, unrelated RSA key pair."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks(private_key):
    """JWKS document publishing the test key as kid 'key-1'."""
    return {"keys": [jwk_for(private_key, "key-1")]}


@pytest.fixture
def key_fetcher(jwks):
    return StaticKeySetFetcher(jwks)


@pytest.fixture
def failing_fetcher():
    return StaticKeySetFetcher(error=FetchError("connection refused"))


@pytest.fixture
def valid_claims():
    """Claims accepted by the verifier for DOMAIN/AUDIENCE."""
    now = int(time.time())
    return {
        "sub": "auth0|user-123",
        "email": "test@example.com",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + 3600,
    }


@pytest.fixture
def make_token(private_key) -> Callable[..., str]:
    """Mint an RS256 token; override the key, kid, algorithm or headers as needed."""

    def _make(claims: Dict[str, Any], key=None, kid: Optional[str] = "key-1",
              algorithm: str = "RS256", headers: Optional[Dict[str, Any]] = None) -> str:
        token_headers = dict(headers or {})
        if kid is not None:
            token_headers["kid"] = kid
        return jwt.encode(claims, key or private_key, algorithm=algorithm, headers=token_headers)

    return _make


@pytest.fixture
def mock_http():
    """
    Build an httpx.Client whose requests are answered by a handler.

    Every request is recorded on ``client.requests``.
    """

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_record))
        client.requests = requests
        return client

    return _build
