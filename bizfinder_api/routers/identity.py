"""Identity proxy endpoints: user lookup and metadata writes via Clerk."""

import logging
from fastapi import APIRouter, HTTPException, Query

from bizfinder_api.schemas import IdentityUser, MetadataUpdate
from bizfinder_api.services import clerk
from bizfinder_api.services.errors import IdentityError

router = APIRouter()
logger = logging.getLogger(__name__)


def _http_error(e: IdentityError) -> HTTPException:
    if e.status_code == 404:
        return HTTPException(status_code=404, detail="User not found")
    return HTTPException(status_code=502, detail=str(e))


@router.get("/users", response_model=list[IdentityUser])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Summarized identity-provider users, newest first."""
    try:
        return await clerk.list_users(limit=limit, offset=offset)
    except IdentityError as e:
        logger.warning("Listing users failed: %s", e)
        raise _http_error(e)


@router.get("/users/{user_id}", response_model=IdentityUser)
async def get_user(user_id: str):
    try:
        return await clerk.get_user(user_id)
    except IdentityError as e:
        raise _http_error(e)


@router.patch("/users/{user_id}/metadata", response_model=IdentityUser)
async def update_metadata(user_id: str, data: MetadataUpdate):
    """
    Merge ``unsafeMetadata`` into the user's record. Optional profile fields
    (username, first/last name) are written in the same call, as the
    onboarding screen does.
    """
    try:
        if data.username or data.first_name or data.last_name:
            await clerk.update_profile(
                user_id,
                username=data.username,
                first_name=data.first_name,
                last_name=data.last_name,
            )
        return await clerk.update_unsafe_metadata(user_id, data.unsafe_metadata)
    except IdentityError as e:
        logger.warning("Metadata update failed: user=%s error=%s", user_id, e)
        raise _http_error(e)
