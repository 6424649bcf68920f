"""Request-scoped dependencies: caller identity, role, storage and relay."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from models import Role, User
from services.auth import decode_access_token
from services.errors import AccessDeniedError, AuthenticationError
from services.feed import ChangeFeed, chat_feed
from services.relay import MessageRelay, TelegramRelay
from services.storage import FallbackObjectStore, build_object_store
from services.users import get_role, get_user

bearer = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    user: User
    role: Role | None

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


async def get_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Authenticate the bearer token; the role comes from user_roles, not the token."""
    if credentials is None:
        raise AuthenticationError("No authorization header")
    user_id = decode_access_token(credentials.credentials)
    user = await get_user(db, user_id)
    if not user:
        raise AuthenticationError("Invalid user")
    return RequestContext(user=user, role=await get_role(db, user.id))


async def require_member(ctx: RequestContext = Depends(get_context)) -> RequestContext:
    """Any approved account (client or admin)."""
    if ctx.role is None:
        raise AccessDeniedError("Your account is awaiting approval")
    return ctx


async def require_admin(ctx: RequestContext = Depends(get_context)) -> RequestContext:
    if not ctx.is_admin:
        raise AccessDeniedError("Admin access required")
    return ctx


@lru_cache(maxsize=1)
def _object_store() -> FallbackObjectStore:
    return build_object_store(settings)


def get_object_store() -> FallbackObjectStore:
    return _object_store()


def get_relay() -> MessageRelay:
    return TelegramRelay.from_settings(settings)


def get_chat_feed() -> ChangeFeed:
    return chat_feed
