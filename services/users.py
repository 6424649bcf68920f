from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config import settings
from models import ActivityAction, Profile, Role, User, UserRole
from services.activity import record_activity
from services.auth import hash_password, verify_password
from services.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# avatar_url is managed through services.avatars only
PROFILE_FIELDS = ("first_name", "last_name", "phone", "company_name")


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(
        select(User)
        .options(selectinload(User.profile), selectinload(User.role))
        .where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def get_role(session: AsyncSession, user_id: str) -> Role | None:
    """Role is read from user_roles on every call; no row means pending."""
    result = await session.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    value = result.scalar_one_or_none()
    return Role(value) if value else None


async def signup(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    company_name: str | None = None,
) -> User:
    email = email.strip().lower()
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters")
    existing = await session.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("An account with this email already exists")

    user = User(
        id=f"usr-{uuid.uuid4().hex[:12]}",
        email=email,
        password_hash=hash_password(password),
        created_at=datetime.now(timezone.utc),
    )
    now = datetime.now(timezone.utc)
    user.profile = Profile(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        company_name=company_name,
        created_at=now,
        updated_at=now,
    )
    # No role row until an admin approves the signup
    user.role = UserRole(role=Role.ADMIN.value, created_at=now) if email in settings.admin_email_set else None
    session.add(user)
    await session.flush()
    await record_activity(session, ActivityAction.SIGNUP, f"New signup: {email}", user_id=user.id)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise AuthenticationError("Invalid email or password")
    await record_activity(session, ActivityAction.LOGIN, "Signed in", user_id=user.id)
    return user


async def update_profile(session: AsyncSession, user: User, changes: dict) -> Profile:
    profile = user.profile
    if profile is None:
        profile = Profile(user_id=user.id, email=user.email, created_at=datetime.now(timezone.utc))
        session.add(profile)
        user.profile = profile
    for field, value in changes.items():
        if field in PROFILE_FIELDS:
            setattr(profile, field, value)
    profile.updated_at = datetime.now(timezone.utc)
    await session.flush()
    await record_activity(session, ActivityAction.PROFILE_UPDATED, "Profile updated", user_id=user.id)
    return profile


async def list_users(
    session: AsyncSession,
    *,
    role: str | None = None,
    search: str | None = None,
) -> list[User]:
    stmt = (
        select(User)
        .options(selectinload(User.profile), selectinload(User.role))
        .outerjoin(Profile, Profile.user_id == User.id)
        .outerjoin(UserRole, UserRole.user_id == User.id)
        .order_by(User.created_at.desc())
    )
    if role == "pending":
        stmt = stmt.where(UserRole.user_id.is_(None))
    elif role:
        stmt = stmt.where(UserRole.role == role)
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(or_(
            User.email.ilike(term),
            Profile.first_name.ilike(term),
            Profile.last_name.ilike(term),
            Profile.company_name.ilike(term),
        ))
    result = await session.execute(stmt)
    return list(result.scalars().unique().all())


async def set_role(session: AsyncSession, user_id: str, role: Role, *, actor_id: str | None = None) -> UserRole:
    """Insert or update the user's role row."""
    user = await get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.role is None:
        user.role = UserRole(user_id=user.id, role=role.value, created_at=datetime.now(timezone.utc))
    else:
        user.role.role = role.value
    await session.flush()
    await record_activity(
        session,
        ActivityAction.ROLE_CHANGED,
        f"Role for {user.email} set to {role.value}",
        user_id=actor_id,
    )
    return user.role


async def remove_role(session: AsyncSession, user_id: str, *, actor_id: str | None = None) -> None:
    user = await get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
    await session.flush()
    await record_activity(
        session,
        ActivityAction.ROLE_CHANGED,
        f"Access revoked for {user.email}",
        user_id=actor_id,
    )


async def delete_user(session: AsyncSession, user_id: str, *, actor_id: str | None = None) -> None:
    """Delete role, profile and account. Loan applications stay for the record."""
    user = await get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user_id == actor_id:
        raise ConflictError("Admins cannot delete their own account")
    email = user.email
    await session.delete(user)
    await session.flush()
    await record_activity(session, ActivityAction.USER_DELETED, f"Deleted user {email}", user_id=actor_id)
