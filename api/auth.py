from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import RequestContext, get_context
from api.responses import user_to_response
from database import get_db
from schemas.auth import LoginRequest, SignupRequest
from services import users as user_service
from services.auth import create_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", status_code=201)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.signup(
        db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        company_name=body.company_name,
    )
    return {"success": True, "user": user_to_response(user)}


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate(db, body.email, body.password)
    token, lifetime = create_access_token(user.id, user.email)
    return {
        "success": True,
        "accessToken": token,
        "tokenType": "bearer",
        "expiresIn": lifetime,
    }


@router.get("/me")
async def me(ctx: RequestContext = Depends(get_context)):
    return user_to_response(ctx.user)
