from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import RequestContext, get_object_store, require_member
from api.responses import document_to_response
from config import settings
from database import get_db
from services import documents as doc_service
from services.errors import ValidationError
from services.storage import FallbackObjectStore

router = APIRouter(prefix="/api/documents", tags=["documents"])


def file_response(result: doc_service.DownloadResult) -> Response:
    return Response(
        content=result.data,
        media_type=result.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "Content-Length": str(len(result.data)),
        },
    )


@router.post("/upload")
async def upload_document(
    file: Optional[UploadFile] = File(None),
    loan_id: Optional[str] = Form(None, alias="loanId"),
    document_type: Optional[str] = Form(None, alias="documentType"),
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    """Store the file and mark the matching document as processing."""
    if file is None or not loan_id or not document_type:
        raise ValidationError("Missing required fields")
    data = await file.read()
    result = await doc_service.upload_document(
        db,
        store,
        user_id=ctx.user_id,
        loan_id=loan_id,
        document_type=document_type,
        filename=file.filename or "document",
        data=data,
        content_type=file.content_type,
        max_bytes=settings.max_upload_bytes,
    )
    return {
        "success": True,
        "filePath": result.file_path,
        "document": document_to_response(result.document),
    }


@router.get("/download")
async def download_document(
    document_id: Optional[str] = Query(None, alias="documentId"),
    loan_id: Optional[str] = Query(None, alias="loanId"),
    document_type: Optional[str] = Query(None, alias="documentType"),
    ctx: RequestContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    store: FallbackObjectStore = Depends(get_object_store),
):
    result = await doc_service.download_document(
        db,
        store,
        user_id=ctx.user_id,
        document_id=document_id,
        loan_id=loan_id,
        document_type=document_type,
    )
    return file_response(result)
