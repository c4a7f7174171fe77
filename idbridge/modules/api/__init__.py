"""
API Module - Black Box Interface

Purpose: HTTP request and response models
Interface: Pydantic models shared by the routers
Hidden: Field validation details

The API module only describes payloads - it contains no business logic.
"""

from .models import (
    AccountResponse,
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    MigrationStatsResponse,
    MigrationStatusResponse,
)

__all__ = [
    "AccountResponse",
    "ExchangeTokenRequest",
    "ExchangeTokenResponse",
    "MigrationStatsResponse",
    "MigrationStatusResponse",
]
