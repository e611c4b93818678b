"""
Knowledge Scout Backend - Document Routes
=========================================

What:  Upload, list, read, delete and reprocess documents.

Upload Request Flow:
    1. Client sends multipart/form-data with a `document` field
    2. The JSON body parser skips this path, so the stream reaches
       FastAPI's form parser untouched
    3. DocumentService validates and stores the file ('processing')
    4. 201 with the new document; text extraction runs as a background task
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import get_db_session
from scout.dependencies import get_current_user, get_document_service
from scout.models import User
from scout.schemas.common import ErrorResponse, MessageResponse
from scout.schemas.documents import (
    DocumentResponse,
    DocumentsResponse,
    ExtractionResult,
    ReprocessResponse,
)
from scout.services.document_service import DocumentService

logger = logging.getLogger(__name__)

# Exact path the body parser must leave alone (see main.install_middleware)
UPLOAD_PATH = "/api/documents/upload"

router = APIRouter(prefix="/api/documents", tags=["Documents"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Document not found"}}


@router.get("", response_model=DocumentsResponse)
async def list_documents(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
) -> DocumentsResponse:
    return await documents.list_documents(db, user)


@router.post(
    "/upload",
    status_code=201,
    response_model=DocumentResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unsupported or empty file"},
        413: {"model": ErrorResponse, "description": "File too large"},
    },
)
async def upload_document(
    background_tasks: BackgroundTasks,
    document: UploadFile = File(..., description="PDF, TXT, MD, CSV or JSON document"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    try:
        content = await document.read()
        logger.info(
            "Received upload: filename=%s, size=%d bytes",
            document.filename or "unknown",
            len(content),
        )
        record = await documents.upload(
            db,
            user,
            filename=document.filename or "upload.txt",
            content=content,
            declared_type=document.content_type or "",
        )
    finally:
        await document.close()

    background_tasks.add_task(documents.process, record.id)
    return DocumentResponse(document=documents.to_schema(record))


@router.get("/{document_id}", response_model=DocumentResponse, responses=NOT_FOUND)
async def get_document(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    return await documents.get_document(db, user, document_id)


@router.delete("/{document_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_document(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
) -> MessageResponse:
    return await documents.delete(db, user, document_id)


@router.post("/{document_id}/reprocess", response_model=ReprocessResponse, responses=NOT_FOUND)
async def reprocess_document(
    document_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
) -> ReprocessResponse:
    result = await documents.reprocess(db, user, document_id)
    background_tasks.add_task(documents.process, result.document_id)
    return result


@router.get("/{document_id}/test-extraction", response_model=ExtractionResult, responses=NOT_FOUND)
async def test_extraction(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    documents: DocumentService = Depends(get_document_service),
):
    return await documents.test_extraction(db, user, document_id)
