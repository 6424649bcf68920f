from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import RequestContext, require_member
from api.responses import application_to_response, document_to_response
from database import get_db
from schemas.application import ApplicationCreate
from services import applications as app_service
from services.status import APPLICATION_STAGES
from utils.serialize import camelize

router = APIRouter(prefix="/api", tags=["applications"])


@router.get("/applications")
async def list_my_applications(
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    apps = await app_service.list_applications(db, user_id=ctx.user_id)
    return [application_to_response(a) for a in apps]


@router.post("/applications", status_code=201)
async def start_application(
    body: ApplicationCreate,
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.create_application(
        db,
        ctx.user_id,
        loan_type=body.loan_type,
        loan_amount=body.loan_amount,
        purpose=body.purpose,
    )
    return application_to_response(app, include_documents=True)


@router.get("/applications/stages")
async def list_stages():
    return [{"id": s.id, "name": s.name, "description": s.description} for s in APPLICATION_STAGES]


@router.get("/applications/{application_id}")
async def get_my_application(
    application_id: str,
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.get_owned_application(db, application_id, ctx.user_id)
    return application_to_response(app, include_documents=True)


@router.get("/applications/{application_id}/documents")
async def list_my_documents(
    application_id: str,
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    app = await app_service.get_owned_application(db, application_id, ctx.user_id)
    return [document_to_response(d) for d in app.documents]


@router.get("/dashboard")
async def dashboard(
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    apps = await app_service.list_applications(db, user_id=ctx.user_id)
    summary = camelize(app_service.summarize_applications(apps))
    return {
        **summary,
        "applications": [application_to_response(a, include_documents=True) for a in apps],
        "actionItems": camelize(app_service.action_items(apps)),
    }
