"""
Authentication Module - Black Box Interface

Purpose: Verify bearer tokens against an issuer's published signing keys
Interface: JWKSTokenVerifier.verify(), KeySetFetcher.fetch(), AuthFactory.build()
Hidden: Key reconstruction, JWKS transport, claim checks

This module can be replaced with any other verifier implementation
without affecting the middleware that calls it.
"""

from .errors import AuthError, AuthErrorCode, FetchError
from .factory import AuthFactory
from .interfaces import AuthenticatedIdentity, KeySetFetcher, TokenVerifier
from .jwks import CachingKeySetFetcher, HTTPKeySetFetcher, KeySet, SigningKey
from .verifier import JWKSTokenVerifier

__all__ = [
    "AuthError",
    "AuthErrorCode",
    "AuthFactory",
    "AuthenticatedIdentity",
    "CachingKeySetFetcher",
    "FetchError",
    "HTTPKeySetFetcher",
    "JWKSTokenVerifier",
    "KeySet",
    "KeySetFetcher",
    "SigningKey",
    "TokenVerifier",
]
