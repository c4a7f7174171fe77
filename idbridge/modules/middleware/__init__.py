"""
Authentication Middleware Module - Black Box Interface

Purpose: Authenticate inbound requests with an Authorization: Bearer token
Interface: BearerAuthMiddleware, create_bearer_auth_middleware(), get_identity()
Hidden: Header parsing, verifier invocation, error formatting

The verified identity is attached to the request being served and handed
to route handlers explicitly through the get_identity dependency. Nothing
is stored globally.
"""

import logging
from typing import Dict, Iterable, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..auth.errors import AuthError
from ..auth.interfaces import AuthenticatedIdentity, TokenVerifier

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


class MissingCredentials(Exception):
    """No usable Authorization header on the request."""


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        MissingCredentials: header absent or not exactly "Bearer <token>"
    """
    if not authorization:
        raise MissingCredentials("Authorization header required")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        raise MissingCredentials("Invalid authorization header format")

    return parts[1]


class BearerAuthMiddleware:
    """
    Bearer token authentication middleware for FastAPI applications.

    Performs exactly one verification per request and never retries.
    Requests on skipped paths pass through untouched.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        audience: str,
        domain: str,
        skip_paths: Optional[Dict[str, list]] = None,
        skip_prefixes: Optional[Iterable[str]] = None,
        log_attempts: bool = True
    ):
        """
        Initialize bearer authentication middleware.

        Args:
            verifier: Token verifier to delegate to
            audience: Audience every token must be issued for
            domain: Issuer domain whose keys sign accepted tokens
            skip_paths: Dict of {path: [methods]} to skip authentication
            skip_prefixes: Path prefixes that never require authentication
            log_attempts: Whether to log authentication attempts
        """
        self.verifier = verifier
        self.audience = audience
        self.domain = domain
        self.skip_paths = skip_paths or {}
        self.skip_prefixes = tuple(skip_prefixes or ())
        self.log_attempts = log_attempts

    def should_skip_auth(self, request: Request) -> bool:
        """Check if authentication should be skipped for this request."""
        path = str(request.url.path)
        method = request.method.upper()

        if path in self.skip_paths:
            allowed_methods = self.skip_paths[path]
            if "*" in allowed_methods or method in allowed_methods:
                return True

        return any(path.startswith(prefix) for prefix in self.skip_prefixes)

    @staticmethod
    def format_error(message: str) -> Dict:
        return {"error": message, "status": 401}

    async def __call__(self, request: Request, call_next):
        """Process the request through bearer authentication."""
        if self.should_skip_auth(request):
            return await call_next(request)

        try:
            token = extract_bearer_token(request.headers.get("Authorization"))
        except MissingCredentials as e:
            if self.log_attempts:
                logger.warning(f"Rejected {request.method} {request.url.path}: {e}")
            return JSONResponse(status_code=401, content=self.format_error(str(e)))

        try:
            identity = await run_in_threadpool(
                self.verifier.verify, token, self.audience, self.domain
            )
        except AuthError as e:
            if self.log_attempts:
                logger.warning(
                    f"Token rejected for {request.url.path}: {e.code.value} ({e.detail or e.message})"
                )
            return JSONResponse(
                status_code=401,
                content=self.format_error("Invalid token")
            )
        except Exception as e:
            logger.error(f"Error during authentication: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal error during authentication", "status": 500}
            )

        if self.log_attempts:
            logger.info(f"Request authenticated for subject: {identity.subject}")

        request.state.identity = identity
        return await call_next(request)


def create_bearer_auth_middleware(
    verifier: TokenVerifier,
    audience: str,
    domain: str,
    skip_paths: Optional[Dict[str, list]] = None,
    skip_prefixes: Optional[Iterable[str]] = None,
) -> BearerAuthMiddleware:
    """
    Factory function to create bearer authentication middleware.

    Args:
        verifier: Token verifier
        audience: Expected token audience
        domain: Expected issuer domain
        skip_paths: Paths to skip authentication {"/path": ["GET", "POST"]}
        skip_prefixes: Path prefixes to skip authentication

    Returns:
        Configured BearerAuthMiddleware instance
    """
    default_skip_paths = {
        "/health": ["GET"],
        "/docs": ["GET"],
        "/openapi.json": ["GET"],
    }

    if skip_paths:
        default_skip_paths.update(skip_paths)

    return BearerAuthMiddleware(
        verifier=verifier,
        audience=audience,
        domain=domain,
        skip_paths=default_skip_paths,
        skip_prefixes=skip_prefixes,
    )


def get_identity(request: Request) -> AuthenticatedIdentity:
    """FastAPI dependency returning the identity verified for this request."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


__all__ = [
    "BearerAuthMiddleware",
    "MissingCredentials",
    "create_bearer_auth_middleware",
    "extract_bearer_token",
    "get_identity",
]
