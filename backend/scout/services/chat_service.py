"""
Knowledge Scout Backend - Chat Service
======================================

What:  Chat sessions over a document and the messages inside them.
How:   send_message() stores the user's message, asks the LLM with the
       document text plus recent history, then stores the reply. If the LLM
       fails, the user message is still kept and the error propagates
       (503 from the global handler).
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from scout.exceptions import NotFoundError
from scout.models import ChatMessage, ChatSession, User
from scout.schemas.chat import (
    ChatMessageOut,
    ChatSessionOut,
    ChatSessionResponse,
    ChatSessionsResponse,
    MessagesResponse,
    SendMessageResponse,
)
from scout.schemas.common import MessageResponse
from scout.services.document_service import DocumentService
from scout.services.llm_base import LLMService

logger = logging.getLogger(__name__)

# Messages of history included in each prompt
HISTORY_WINDOW = 10

# Document characters included in each prompt
CONTEXT_CHARS = 12_000

CHAT_PROMPT = """You are a helpful assistant answering questions about a document.
Answer only from the document. If the answer is not in the document, say so.

Document:
\"\"\"
{document}
\"\"\"

Conversation so far:
{history}

User: {question}
Assistant:"""


class ChatService:

    def __init__(self, documents: DocumentService, llm: LLMService):
        self.documents = documents
        self.llm = llm

    async def get_owned(self, db: AsyncSession, user: User, session_id: str) -> ChatSession:
        session = await db.get(ChatSession, session_id)
        if session is None or session.user_id != user.id:
            raise NotFoundError(resource="chat session", resource_id=session_id)
        return session

    async def create_session(
        self, db: AsyncSession, user: User, document_id: str, title: Optional[str] = None
    ) -> ChatSessionResponse:
        document = await self.documents.get_owned(db, user, document_id)
        session = ChatSession(
            user_id=user.id,
            document_id=document.id,
            title=title or f"Chat about {document.original_name}",
        )
        db.add(session)
        await db.commit()
        logger.info("Chat session %s created for document %s", session.id, document.id)
        return ChatSessionResponse(session=ChatSessionOut.model_validate(session))

    async def list_sessions(self, db: AsyncSession, user: User) -> ChatSessionsResponse:
        result = await db.execute(
            select(ChatSession)
            .where(ChatSession.user_id == user.id)
            .order_by(ChatSession.updated_at.desc())
        )
        return ChatSessionsResponse(
            sessions=[ChatSessionOut.model_validate(s) for s in result.scalars().all()]
        )

    async def _messages(self, db: AsyncSession, session_id: str) -> List[ChatMessage]:
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_messages(self, db: AsyncSession, user: User, session_id: str) -> MessagesResponse:
        session = await self.get_owned(db, user, session_id)
        messages = await self._messages(db, session.id)
        return MessagesResponse(messages=[ChatMessageOut.model_validate(m) for m in messages])

    async def send_message(
        self, db: AsyncSession, user: User, session_id: str, text: str
    ) -> SendMessageResponse:
        session = await self.get_owned(db, user, session_id)
        _, document_text = await self.documents.require_text(db, user, session.document_id)

        history = await self._messages(db, session.id)

        user_message = ChatMessage(session_id=session.id, role="user", content=text)
        db.add(user_message)
        await db.commit()

        prompt = CHAT_PROMPT.format(
            document=document_text[:CONTEXT_CHARS],
            history="\n".join(
                f"{m.role.capitalize()}: {m.content}" for m in history[-HISTORY_WINDOW:]
            ) or "(none)",
            question=text,
        )
        answer = await self.llm.generate(prompt)

        assistant_message = ChatMessage(session_id=session.id, role="assistant", content=answer)
        db.add(assistant_message)
        # Most recently active session sorts first
        session.updated_at = datetime.now(timezone.utc)
        await db.commit()

        return SendMessageResponse(
            user_message=ChatMessageOut.model_validate(user_message),
            assistant_message=ChatMessageOut.model_validate(assistant_message),
        )

    async def delete_session(self, db: AsyncSession, user: User, session_id: str) -> MessageResponse:
        session = await self.get_owned(db, user, session_id)
        await db.execute(delete(ChatMessage).where(ChatMessage.session_id == session.id))
        await db.delete(session)
        await db.commit()
        logger.info("Chat session %s deleted", session_id)
        return MessageResponse(message="Chat session deleted successfully")
