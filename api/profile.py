from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import RequestContext, get_object_store, require_member
from api.responses import profile_to_response
from database import get_db
from schemas.profile import ProfileUpdate
from services.avatars import get_avatar
from services.storage import FallbackObjectStore
from services.users import update_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("")
async def get_profile(ctx: RequestContext = Depends(require_member)):
    return profile_to_response(ctx.user.profile)


@router.put("")
async def put_profile(
    body: ProfileUpdate,
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    profile = await update_profile(db, ctx.user, body.model_dump(exclude_unset=True, by_alias=False))
    return profile_to_response(profile)


@router.get("/avatar")
async def get_my_avatar(
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    obj = await get_avatar(db, store, ctx.user_id)
    return Response(content=obj.data, media_type=obj.content_type)
