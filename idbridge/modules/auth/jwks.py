"""
JSON Web Key Set retrieval.

Signing keys are fetched on demand with a single bounded HTTP request per
call. There is no retry and, by default, no cache: a rotated key is
visible on the very next verification, at the cost of one round trip to
the identity provider per request.

CachingKeySetFetcher can be layered on top for resilience. With it,
rotation is observed at most ``ttl`` seconds late.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

import httpx
import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import FetchError

logger = logging.getLogger(__name__)

JWKS_URL_TEMPLATE = "https://{domain}/.well-known/jwks.json"
DEFAULT_TIMEOUT = 10.0

_STRING_FIELDS = ("kid", "kty", "n", "e", "use", "alg")


@dataclass(frozen=True)
class SigningKey:
    """A single published public signing key."""
    kid: str
    kty: str
    n: str
    e: str
    use: Optional[str] = None
    alg: Optional[str] = None
    x5c: Tuple[str, ...] = ()

    @classmethod
    def from_jwk(cls, jwk: Dict[str, Any]) -> "SigningKey":
        """
        Build a key from its JWK representation.

        Raises:
            ValueError: a field has the wrong JSON type
        """
        for name in _STRING_FIELDS:
            if jwk.get(name) is not None and not isinstance(jwk[name], str):
                raise ValueError(f"JWK field {name!r} must be a string")
        x5c = jwk.get("x5c") or []
        if not isinstance(x5c, list) or not all(isinstance(c, str) for c in x5c):
            raise ValueError("JWK field 'x5c' must be an array of strings")

        return cls(
            kid=jwk.get("kid") or "",
            kty=jwk.get("kty") or "",
            n=jwk.get("n") or "",
            e=jwk.get("e") or "",
            use=jwk.get("use"),
            alg=jwk.get("alg"),
            x5c=tuple(x5c),
        )

    def public_key(self) -> rsa.RSAPublicKey:
        """
        Load the RSA public key through PyJWT.

        Raises:
            ValueError: the key is not an RSA key or its numbers are unusable
        """
        if self.kty != "RSA":
            raise ValueError(f"unsupported key type: {self.kty!r}")
        if not self.n or not self.e:
            raise ValueError("key is missing modulus or exponent")
        try:
            return jwt.PyJWK({"kty": self.kty, "kid": self.kid, "n": self.n, "e": self.e}).key
        except (jwt.PyJWTError, ValueError) as e:
            raise ValueError(f"unusable key {self.kid!r}: {e}") from e


@dataclass(frozen=True)
class KeySet:
    """The set of keys published by one issuer, looked up by kid."""
    keys: Tuple[SigningKey, ...] = field(default_factory=tuple)

    @classmethod
    def from_jwks(cls, document: Any) -> "KeySet":
        """
        Parse a JWKS document.

        Raises:
            FetchError: the document has no ``keys`` array or a key is mistyped
        """
        if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
            raise FetchError("JWKS document has no 'keys' array")
        try:
            return cls(tuple(
                SigningKey.from_jwk(jwk) for jwk in document["keys"] if isinstance(jwk, dict)
            ))
        except ValueError as e:
            raise FetchError(f"invalid JWKS document: {e}") from e

    def find(self, kid: str) -> Optional[SigningKey]:
        """Return the first key with a matching kid."""
        for key in self.keys:
            if key.kid == kid:
                return key
        return None

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[SigningKey]:
        return iter(self.keys)


class HTTPKeySetFetcher:
    """
    Fetches a JWKS document over HTTPS.

    Holds no mutable state besides the HTTP client, so one instance can be
    shared by every request thread. The client belongs to the caller, which
    closes it.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        timeout: float = DEFAULT_TIMEOUT,
        url_template: str = JWKS_URL_TEMPLATE,
    ):
        """
        Args:
            http_client: Client to issue requests with
            timeout: Per-request timeout in seconds
            url_template: JWKS location, formatted with ``domain``
        """
        self.http_client = http_client
        self.timeout = timeout
        self.url_template = url_template

    def fetch(self, domain: str) -> KeySet:
        url = self.url_template.format(domain=domain)
        try:
            response = self.http_client.get(url, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch JWKS from {url}: {e}")
            raise FetchError(f"failed to fetch JWKS from {url}: {e}") from e
        except ValueError as e:
            logger.warning(f"JWKS response from {url} is not JSON")
            raise FetchError(f"invalid JWKS document from {url}") from e

        try:
            key_set = KeySet.from_jwks(document)
        except FetchError as e:
            logger.warning(f"Rejected JWKS document from {url}: {e}")
            raise
        logger.debug(f"Fetched {len(key_set)} signing keys from {url}")
        return key_set


class CachingKeySetFetcher:
    """
    Short-TTL cache in front of another fetcher, keyed by domain.

    Failed fetches are not cached.
    """

    def __init__(
        self,
        fetcher,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.fetcher = fetcher
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[KeySet, float]] = {}

    def fetch(self, domain: str) -> KeySet:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(domain)
            if entry and now < entry[1]:
                return entry[0]

        key_set = self.fetcher.fetch(domain)
        with self._lock:
            self._entries[domain] = (key_set, now + self.ttl)
        return key_set

    def invalidate(self, domain: Optional[str] = None) -> None:
        """Drop cached keys for one domain, or all of them."""
        with self._lock:
            if domain is None:
                self._entries.clear()
            else:
                self._entries.pop(domain, None)
