"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Optional, Protocol, List

DEFAULT_AUTH0_CONNECTION = "Username-Password-Authentication"


@dataclass
class AuthConfig:
    """Bearer token authentication configuration."""
    domain: str
    audience: str
    jwks_cache_ttl: float = 0.0
    http_timeout: float = 10.0


@dataclass
class MigrationConfig:
    """Legacy-to-target provider migration configuration."""
    passage_app_id: Optional[str]
    passage_api_key: Optional[str]
    auth0_domain: str
    client_id: Optional[str]
    client_secret: Optional[str]
    connection: str = DEFAULT_AUTH0_CONNECTION
    http_timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        """Migration endpoints are only enabled with Passage credentials."""
        return bool(self.passage_app_id) and bool(self.passage_api_key)


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    cors_origins: List[str]


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_auth_config(self) -> AuthConfig:
        """Get authentication configuration."""
        ...

    def get_migration_config(self) -> MigrationConfig:
        """Get migration configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[dict] = None):
        self._env = os.environ if environ is None else environ

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._env.get(name)
        return value if value else default

    def get_auth_config(self) -> AuthConfig:
        """Get authentication configuration from environment variables."""
        domain = self._get("AUTH0_DOMAIN")
        audience = self._get("AUTH0_AUDIENCE")

        # Authentication cannot run without these - fatal at startup
        if not domain or not audience:
            raise ValueError(
                "AUTH0_DOMAIN and AUTH0_AUDIENCE environment variables are required"
            )

        return AuthConfig(
            domain=domain,
            audience=audience,
            jwks_cache_ttl=float(self._get("JWKS_CACHE_TTL", "0")),
            http_timeout=float(self._get("HTTP_TIMEOUT", "10")),
        )

    def get_migration_config(self) -> MigrationConfig:
        """Get migration configuration from environment variables."""
        return MigrationConfig(
            passage_app_id=self._get("PASSAGE_APP_ID"),
            passage_api_key=self._get("PASSAGE_API_KEY"),
            auth0_domain=self._get("AUTH0_DOMAIN", ""),
            client_id=self._get("CLIENT_ID"),
            client_secret=self._get("CLIENT_SECRET"),
            connection=self._get("AUTH0_CONNECTION", DEFAULT_AUTH0_CONNECTION),
            http_timeout=float(self._get("HTTP_TIMEOUT", "10")),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(self._get("API_PORT") or self._get("PORT", "8080")),
            host=self._get("API_HOST", "0.0.0.0"),
            debug=self._get("API_DEBUG", "false").lower() == "true",
            cors_origins=self._get("CORS_ORIGINS", "*").split(","),
        )
