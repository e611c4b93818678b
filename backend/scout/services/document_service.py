"""
Knowledge Scout Backend - Document Service
==========================================

What:  Document records, their files and their extraction state.
Why:   Keeps the document routes thin: they translate HTTP to these calls.
How:   Upload stores the file and a 'processing' row; process() runs after
       the response (FastAPI BackgroundTasks) with its own session and moves
       the row to 'completed' or 'failed'.

Ownership:
    Every lookup is scoped to the requesting user. Another user's document
    is reported as not found.
"""

import logging
from typing import List, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import Database
from scout.exceptions import ExtractionError, FileStorageError, NotFoundError
from scout.models import ChatMessage, ChatSession, Document, User
from scout.schemas.common import MessageResponse
from scout.schemas.documents import (
    DocumentOut,
    DocumentResponse,
    DocumentsResponse,
    ExtractionFailed,
    ExtractionSucceeded,
    ReprocessResponse,
)
from scout.services.extraction import extract_text
from scout.services.file_service import FileService

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 500


class DocumentService:

    def __init__(self, file_service: FileService, database: Database):
        self.file_service = file_service
        self.database = database

    @staticmethod
    def to_schema(document: Document) -> DocumentOut:
        return DocumentOut(
            id=document.id,
            user_id=document.user_id,
            filename=document.filename,
            original_name=document.original_name,
            mime_type=document.mime_type,
            size=document.size,
            status=document.status,
            url=f"/uploads/{document.storage_path}",
            summary=document.summary,
            error_message=document.error_message,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )

    async def get_owned(self, db: AsyncSession, user: User, document_id: str) -> Document:
        document = await db.get(Document, document_id)
        if document is None or document.user_id != user.id:
            raise NotFoundError(resource="document", resource_id=document_id)
        return document

    async def list_documents(self, db: AsyncSession, user: User) -> DocumentsResponse:
        result = await db.execute(
            select(Document)
            .where(Document.user_id == user.id)
            .order_by(Document.created_at.desc())
        )
        documents: List[Document] = list(result.scalars().all())
        return DocumentsResponse(documents=[self.to_schema(d) for d in documents])

    async def get_document(self, db: AsyncSession, user: User, document_id: str) -> DocumentResponse:
        document = await self.get_owned(db, user, document_id)
        return DocumentResponse(document=self.to_schema(document))

    async def upload(
        self,
        db: AsyncSession,
        user: User,
        filename: str,
        content: bytes,
        declared_type: str = "",
    ) -> Document:
        """
        Validate, store, and record a new document in 'processing' state.

        The caller schedules process(document.id) once the response is sent.
        """
        relative_path, mime_type = await self.file_service.validate_and_store(
            filename=filename,
            content=content,
            declared_type=declared_type,
        )

        document = Document(
            user_id=user.id,
            filename=relative_path.rsplit("/", 1)[-1],
            original_name=filename,
            mime_type=mime_type,
            size=len(content),
            storage_path=relative_path,
            status="processing",
        )
        db.add(document)
        try:
            await db.commit()
        except Exception:
            await self.file_service.cleanup_file(relative_path)
            raise

        logger.info("Document %s uploaded by %s (%s, %d bytes)", document.id, user.id, mime_type, len(content))
        return document

    async def process(self, document_id: str) -> None:
        """
        Extract text for a document and record the outcome.

        Runs outside the request, so it opens its own session. Extraction
        and storage failures are recorded on the row; anything else
        propagates to the server's error logging.
        """
        async with self.database.session() as db:
            document = await db.get(Document, document_id)
            if document is None:
                logger.info("Document %s deleted before processing", document_id)
                return

            try:
                content = await self.file_service.read_file(document.storage_path)
                document.content = await extract_text(content, document.mime_type)
                document.status = "completed"
                document.error_message = None
                logger.info("Document %s processed (%d chars)", document_id, len(document.content))
            except (ExtractionError, FileStorageError) as e:
                document.status = "failed"
                document.content = None
                document.error_message = e.message
                logger.warning("Document %s processing failed: %s", document_id, e.message)

    async def reprocess(self, db: AsyncSession, user: User, document_id: str) -> ReprocessResponse:
        document = await self.get_owned(db, user, document_id)
        document.status = "processing"
        document.error_message = None
        await db.commit()
        return ReprocessResponse(
            message="Document reprocessing started",
            document_id=document.id,
            status=document.status,
        )

    async def delete(self, db: AsyncSession, user: User, document_id: str) -> MessageResponse:
        document = await self.get_owned(db, user, document_id)
        storage_path = document.storage_path
        session_ids = select(ChatSession.id).where(ChatSession.document_id == document.id)
        await db.execute(delete(ChatMessage).where(ChatMessage.session_id.in_(session_ids)))
        await db.execute(delete(ChatSession).where(ChatSession.document_id == document.id))
        await db.delete(document)
        await db.commit()
        await self.file_service.cleanup_file(storage_path)
        logger.info("Document %s deleted by %s", document_id, user.id)
        return MessageResponse(message="Document deleted successfully")

    async def test_extraction(self, db: AsyncSession, user: User, document_id: str):
        """
        Run extraction now, without touching the stored row.

        Returns:
            ExtractionSucceeded or ExtractionFailed (never raises for
            extraction problems; that is what the diagnostic reports).
        """
        document = await self.get_owned(db, user, document_id)
        try:
            content = await self.file_service.read_file(document.storage_path)
            text = await extract_text(content, document.mime_type)
        except (ExtractionError, FileStorageError) as e:
            return ExtractionFailed(
                document_id=document.id,
                mime_type=document.mime_type,
                error=e.message,
            )
        return ExtractionSucceeded(
            document_id=document.id,
            mime_type=document.mime_type,
            characters=len(text),
            preview=text[:PREVIEW_CHARS],
        )

    async def require_text(self, db: AsyncSession, user: User, document_id: str) -> Tuple[Document, str]:
        """
        Raises:
            NotFoundError: unknown or foreign document
            ExtractionError: document not processed successfully yet
        """
        document = await self.get_owned(db, user, document_id)
        if document.status != "completed" or not document.content:
            raise ExtractionError(
                f"Document is not ready (status: {document.status})",
                context={"document_id": document.id, "status": document.status},
            )
        return document, document.content
