"""Account endpoints for authenticated callers."""

from fastapi import APIRouter, Depends

from ..api.models import AccountResponse
from ..auth.interfaces import AuthenticatedIdentity
from ..middleware import get_identity
from .store import InMemoryAccountStore


def create_account_router(store: InMemoryAccountStore) -> APIRouter:
    """
    Create account router with injected store.

    Routes here sit behind the bearer authentication middleware.
    """
    router = APIRouter(tags=["accounts"])

    @router.get("/me", response_model=AccountResponse)
    def me(identity: AuthenticatedIdentity = Depends(get_identity)):
        """Current user's account, created on first access."""
        account = store.create_account_if_not_exists(identity.subject, identity.email)
        return AccountResponse(
            user_id=identity.subject,
            email=identity.email,
            account_id=account.id,
            created_at=account.created_at,
        )

    return router
