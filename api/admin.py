from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import RequestContext, get_object_store, require_admin
from api.documents import file_response
from api.responses import (
    activity_to_response,
    application_to_response,
    document_to_response,
    profile_to_response,
    user_to_response,
)
from database import get_db
from models import Profile, Role
from schemas.admin import RoleUpdate
from schemas.application import DocumentStatusUpdate, StageUpdate, StatusUpdate
from services import applications as app_service
from services import avatars as avatar_service
from services import documents as doc_service
from services import users as user_service
from services.activity import list_activity
from services.stats import admin_stats
from services.storage import FallbackObjectStore
from utils.serialize import camelize

router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _profiles_by_user(db: AsyncSession, user_ids: set[str]) -> dict[str, Profile]:
    if not user_ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.user_id.in_(user_ids)))
    return {p.user_id: p for p in result.scalars().all()}


# ── Stats ────────────────────────────────────────────

@router.get("/stats")
async def get_stats(
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return camelize(await admin_stats(db))


# ── Users ────────────────────────────────────────────

@router.get("/users")
async def list_users(
    role: Optional[str] = Query(None, description="client, admin or pending"),
    search: Optional[str] = None,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db, role=role, search=search)
    return [user_to_response(u) for u in users]


@router.put("/users/{user_id}/role")
async def set_user_role(
    user_id: str,
    body: RoleUpdate,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.set_role(db, user_id, Role(body.role), actor_id=ctx.user_id)
    return {"success": True, "userId": user_id, "role": body.role}


@router.post("/users/{user_id}/approve")
async def approve_user(
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.set_role(db, user_id, Role.CLIENT, actor_id=ctx.user_id)
    return {"success": True, "userId": user_id, "role": Role.CLIENT.value}


@router.post("/users/{user_id}/reject")
async def reject_user(
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.remove_role(db, user_id, actor_id=ctx.user_id)
    return {"success": True, "userId": user_id, "role": None}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, user_id, actor_id=ctx.user_id)
    return {"success": True}


@router.get("/users/{user_id}/avatar")
async def get_user_avatar(
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    obj = await avatar_service.get_avatar(db, store, user_id)
    return Response(content=obj.data, media_type=obj.content_type)


@router.put("/users/{user_id}/avatar")
async def upload_user_avatar(
    user_id: str,
    file: UploadFile = File(...),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    """Replace the user's profile photo; the previous object is deleted."""
    profile = await avatar_service.set_avatar(
        db,
        store,
        user_id,
        filename=file.filename or "avatar",
        data=await file.read(),
        content_type=file.content_type,
        actor_id=ctx.user_id,
    )
    return {"success": True, "profile": profile_to_response(profile)}


@router.delete("/users/{user_id}/avatar")
async def remove_user_avatar(
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    profile = await avatar_service.remove_avatar(db, store, user_id, actor_id=ctx.user_id)
    return {"success": True, "profile": profile_to_response(profile)}


# ── Applications ─────────────────────────────────────

@router.get("/applications")
async def list_applications(
    status: Optional[str] = None,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    apps = await app_service.list_applications(db, status=status)
    owners = await _profiles_by_user(db, {a.user_id for a in apps if a.user_id})
    return [application_to_response(a, owner=owners.get(a.user_id)) for a in apps]


@router.get("/applications/{application_id}")
async def get_application(
    application_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.get_application(db, application_id)
    owners = await _profiles_by_user(db, {app.user_id} if app.user_id else set())
    return application_to_response(app, include_documents=True, owner=owners.get(app.user_id))


@router.patch("/applications/{application_id}/status")
async def update_application_status(
    application_id: str,
    body: StatusUpdate,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.change_status(db, application_id, body.status, actor_id=ctx.user_id)
    return application_to_response(app)


@router.patch("/applications/{application_id}/stage")
async def update_application_stage(
    application_id: str,
    body: StageUpdate,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.change_stage(db, application_id, body.current_stage, actor_id=ctx.user_id)
    return application_to_response(app)


@router.get("/client-activities")
async def client_activities(
    limit: int = Query(50, ge=1, le=500),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Applications ordered by their most recent action."""
    apps = await app_service.list_applications(db, order_by_last_action=True, limit=limit)
    owners = await _profiles_by_user(db, {a.user_id for a in apps if a.user_id})
    return [application_to_response(a, owner=owners.get(a.user_id)) for a in apps]


# ── Documents ────────────────────────────────────────

@router.get("/documents")
async def list_documents(
    status: Optional[str] = None,
    loan_id: Optional[str] = Query(None, alias="loanId"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    docs = await doc_service.list_documents(db, status=status, loan_id=loan_id)
    out = []
    for d in docs:
        item = document_to_response(d)
        item["referenceNumber"] = d.loan.reference_number if d.loan else None
        out.append(item)
    return out


@router.patch("/documents/{document_id}/status")
async def update_document_status(
    document_id: str,
    body: DocumentStatusUpdate,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    doc = await doc_service.review_document(db, document_id, body.status, actor_id=ctx.user_id)
    return document_to_response(doc)


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    return file_response(await doc_service.admin_download_document(db, store, document_id))


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    await doc_service.delete_document(db, store, document_id, actor_id=ctx.user_id)
    return {"success": True}


# ── Activity ─────────────────────────────────────────

@router.get("/activity")
async def activity_log(
    action: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    since: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=500),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    entries = await list_activity(db, action=action, user_id=user_id, since=since, limit=limit)
    return [activity_to_response(e) for e in entries]
