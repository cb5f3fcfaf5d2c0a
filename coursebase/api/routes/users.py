from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from coursebase.api.deps import get_current_user, get_identity, get_user_directory
from coursebase.api.schemas import PageResponse, UserOut, to_page_response
from coursebase.domain.entities import User
from coursebase.ports.identity import VerifiedIdentity
from coursebase.services.users import UserDirectory

router = APIRouter()


@router.post("/session", response_model=UserOut, status_code=201)
async def start_session(
    identity: VerifiedIdentity = Depends(get_identity),
    users: UserDirectory = Depends(get_user_directory),
) -> Any:
    """Sign in: returns the caller's user, creating it on first sight."""
    return UserOut.model_validate(await users.start_session(identity))


@router.get("", response_model=PageResponse[UserOut])
async def list_users(
    page: int | None = Query(None),
    limit: int | None = Query(None),
    date_range: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    search: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
) -> Any:
    """Newest users first, optionally narrowed by sign-up window and name or email."""
    filters = {"date_range": date_range, "start_date": start_date, "end_date": end_date, "search": search}
    result = await users.list(
        {k: v for k, v in filters.items() if v is not None}, {"page": page, "limit": limit}
    )
    return to_page_response(result, UserOut)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
) -> Any:
    return UserOut.model_validate(await users.get_user(user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def update_profile(
    user_id: str,
    payload: dict[str, Any] | None = Body(None),
    current_user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
) -> Any:
    return UserOut.model_validate(await users.update_profile(current_user, user_id, payload))
