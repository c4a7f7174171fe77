"""
Migration HTTP endpoints.

These routes need no bearer token: the Passage token in the request body
proves the caller owns the identity being migrated.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ..api.models import (
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    MigrationStatsResponse,
    MigrationStatusResponse,
)
from .errors import MigrationError, MigrationErrorCode
from .exchange import TokenExchangeService

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = (
    "User migrated successfully. Use passwordless authentication to get Auth0 token."
)


def parse_exchange_request(body: bytes) -> str:
    """
    Extract the Passage token from an exchange request body.

    Raises:
        MigrationError: INVALID_REQUEST_BODY
    """
    try:
        payload = ExchangeTokenRequest.model_validate_json(body or b"null")
    except ValidationError as e:
        message = "Invalid request body"
        for detail in e.errors():
            if detail.get("type") in ("missing", "value_error"):
                message = "passage_token is required"
        raise MigrationError(MigrationErrorCode.INVALID_REQUEST_BODY, message) from e
    return payload.passage_token


def create_migration_router(service: TokenExchangeService) -> APIRouter:
    """
    Create migration router with injected exchange service.

    Args:
        service: Token exchange service

    Returns:
        FastAPI router with migration endpoints
    """
    router = APIRouter(prefix="/migrate", tags=["migration"])

    @router.post("/exchange-token", response_model=ExchangeTokenResponse)
    async def exchange_token(request: Request):
        """
        Exchange a Passage JWT for an Auth0 user.

        Returns:
            200: Account found or created
            400: Body missing, unparseable, or without passage_token
            401: Validation or provisioning failed
        """
        try:
            passage_token = parse_exchange_request(await request.body())
        except MigrationError as e:
            logger.info(f"Rejected exchange request: {e}")
            return JSONResponse(
                status_code=400,
                content=ExchangeTokenResponse(success=False, message=str(e)).model_dump(exclude_none=True),
            )

        try:
            result = await run_in_threadpool(service.exchange_token, passage_token)
        except MigrationError as e:
            logger.warning(f"Token exchange failed ({e.code.value}): {e}")
            return JSONResponse(
                status_code=401,
                content=ExchangeTokenResponse(success=False, message=str(e)).model_dump(exclude_none=True),
            )

        return ExchangeTokenResponse(
            success=True,
            auth0_user_id=result.target_user_id,
            email=result.identifier,
            is_new_migration=result.is_new_migration,
            message=SUCCESS_MESSAGE,
        )

    @router.get("/stats", response_model=MigrationStatsResponse)
    def migration_stats():
        """View migration statistics."""
        return service.get_migration_stats()

    @router.get("/status/{passage_user_id}", response_model=MigrationStatusResponse)
    def migration_status(passage_user_id: str):
        """
        Migration status of one Passage user.

        Returns:
            200: Migration record
            404: User has not been migrated
        """
        record = service.get_migration_status(passage_user_id)
        if record is None:
            raise HTTPException(status_code=404, detail="User has not been migrated")
        return record.to_dict()

    return router
