"""
Profile photos managed from the back-office.

Photos live in the same object store as loan documents under
``avatars/{user_id}/{timestamp}.{ext}``; the profile's ``avatar_url`` holds
that key. A replaced or removed photo's object is deleted after the profile
row points away from it.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from models import ActivityAction, Profile
from services.activity import record_activity
from services.errors import NotFoundError, ValidationError
from services.storage import FallbackObjectStore, StoredObject, safe_filename
from services.users import get_user

logger = logging.getLogger(__name__)

AVATAR_MAX_BYTES = 5 * 1024 * 1024
AVATAR_PREFIX = "avatars"


def build_avatar_key(user_id: str, filename: str, timestamp: int | None = None) -> str:
    """avatars/{userId}/{timestamp}.{ext}, timestamp in milliseconds."""
    ts = timestamp if timestamp is not None else time.time_ns() // 1_000_000
    name = safe_filename(filename)
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else "img"
    return f"{AVATAR_PREFIX}/{safe_filename(user_id)}/{ts}.{ext}"


def is_avatar_key(user_id: str, key: str | None) -> bool:
    return bool(key) and key.startswith(f"{AVATAR_PREFIX}/{safe_filename(user_id)}/")


async def _profile_for(session: AsyncSession, user_id: str) -> Profile:
    user = await get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.profile is None:
        now = datetime.now(timezone.utc)
        user.profile = Profile(user_id=user.id, email=user.email, created_at=now, updated_at=now)
        await session.flush()
    return user.profile


async def set_avatar(
    session: AsyncSession,
    store: FallbackObjectStore,
    user_id: str,
    *,
    filename: str,
    data: bytes,
    content_type: str | None,
    actor_id: str | None = None,
) -> Profile:
    if not data:
        raise ValidationError("File is empty")
    if len(data) > AVATAR_MAX_BYTES:
        raise ValidationError("Please select an image smaller than 5MB")
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Please select an image file")

    profile = await _profile_for(session, user_id)
    old_key = profile.avatar_url
    key = build_avatar_key(user_id, filename)
    await store.put(key, data, content_type)

    profile.avatar_url = key
    profile.updated_at = datetime.now(timezone.utc)
    await session.flush()
    await record_activity(
        session,
        ActivityAction.PROFILE_UPDATED,
        f"Profile photo updated for {profile.email or user_id}",
        user_id=actor_id,
    )
    if is_avatar_key(user_id, old_key) and old_key != key:
        await store.delete(old_key)
    logger.info("Stored profile photo %s for user %s", key, user_id)
    return profile


async def remove_avatar(
    session: AsyncSession,
    store: FallbackObjectStore,
    user_id: str,
    *,
    actor_id: str | None = None,
) -> Profile:
    profile = await _profile_for(session, user_id)
    old_key = profile.avatar_url
    if not old_key:
        return profile
    profile.avatar_url = None
    profile.updated_at = datetime.now(timezone.utc)
    await session.flush()
    await record_activity(
        session,
        ActivityAction.PROFILE_UPDATED,
        f"Profile photo removed for {profile.email or user_id}",
        user_id=actor_id,
    )
    if is_avatar_key(user_id, old_key):
        await store.delete(old_key)
    return profile


async def get_avatar(session: AsyncSession, store: FallbackObjectStore, user_id: str) -> StoredObject:
    user = await get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    profile = user.profile
    if profile is None or not is_avatar_key(user_id, profile.avatar_url):
        raise NotFoundError("No profile photo")
    return await store.get(profile.avatar_url)
