"""
idbridge shared API models.

These models define the request and response bodies of the HTTP
endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

BEARER_PREFIX = "Bearer "


# Request Models (API Input)


class ExchangeTokenRequest(BaseModel):
    """Request to exchange a Passage token for an Auth0 account."""

    passage_token: str = Field(..., description="Passage JWT, optionally with a Bearer prefix")

    @field_validator("passage_token")
    @classmethod
    def strip_bearer_prefix(cls, v):
        """Remove a leading "Bearer " and reject empty tokens."""
        if v.startswith(BEARER_PREFIX):
            v = v[len(BEARER_PREFIX):]
        if not v:
            raise ValueError("passage_token is required")
        return v


# Response Models (API Output)


class ExchangeTokenResponse(BaseModel):
    """Result of a token exchange."""

    success: bool
    auth0_user_id: Optional[str] = None
    email: Optional[str] = None
    is_new_migration: bool = False
    message: Optional[str] = None


class MigrationStatsResponse(BaseModel):
    """Migration ledger statistics."""

    total_migrated_users: int
    cache_size: int


class MigrationStatusResponse(BaseModel):
    """Migration status of one legacy user."""

    passage_user_id: str
    auth0_user_id: str
    email: str
    migrated_at: str
    last_exchange: str


class AccountResponse(BaseModel):
    """Authenticated caller and their application account."""

    user_id: str
    email: str
    account_id: str
    created_at: str
