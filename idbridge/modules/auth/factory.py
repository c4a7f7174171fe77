"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the token verification stack based on configuration
- Wires dependencies together
- Returns only the verifier interface
"""

import logging

import httpx

from .interfaces import TokenVerifier
from .jwks import CachingKeySetFetcher, HTTPKeySetFetcher
from .verifier import JWKSTokenVerifier
from ...config.provider import AuthConfig

logger = logging.getLogger(__name__)


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates the key fetcher, optionally behind a TTL cache
    - Injects it into the token verifier
    - Returns only the public interface
    """

    @staticmethod
    def build(
        auth_config: AuthConfig,
        http_client: httpx.Client,
    ) -> TokenVerifier:
        """
        Build the token verifier.

        Args:
            auth_config: Authentication configuration
            http_client: Shared HTTP client, owned and closed by the caller

        Returns:
            TokenVerifier (hides fetcher and caching details)
        """
        fetcher = HTTPKeySetFetcher(http_client=http_client, timeout=auth_config.http_timeout)

        if auth_config.jwks_cache_ttl > 0:
            logger.info(
                f"Caching signing keys for {auth_config.jwks_cache_ttl}s; "
                "key rotation may take that long to be observed"
            )
            fetcher = CachingKeySetFetcher(fetcher, ttl=auth_config.jwks_cache_ttl)
        else:
            logger.info("Signing keys fetched fresh on every verification")

        return JWKSTokenVerifier(fetcher)
