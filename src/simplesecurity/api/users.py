"""User administration API (Administrator role only)."""

from fastapi import APIRouter, Depends

from simplesecurity.api.deps import get_provider, require_role
from simplesecurity.api.schemas import UserRead
from simplesecurity.provider import SecurityProvider
from simplesecurity.store.credential_store import ADMIN_ROLE

router = APIRouter()


@router.get(
    "/users",
    response_model=list[UserRead],
    dependencies=[Depends(require_role(ADMIN_ROLE))],
)
async def list_users(provider: SecurityProvider = Depends(get_provider)):
    users = await provider.list_users()
    return [UserRead.model_validate(u) for u in users]
