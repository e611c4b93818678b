"""
Knowledge Scout Client - Typed API Methods
==========================================

Thin callers into RequestExecutor: each method builds a RequestDescriptor
and names the envelope it expects. No method handles errors itself.
"""

from typing import Dict, Optional

import httpx

from scout.client.config import ClientSettings
from scout.client.executor import MultipartBody, RequestDescriptor, RequestExecutor
from scout.client.tokens import InMemoryTokenStore
from scout.schemas import (
    AuthResponse,
    ChatSessionResponse,
    ChatSessionsResponse,
    DocumentResponse,
    DocumentsResponse,
    ExtractionResult,
    MessageResponse,
    MessagesResponse,
    QuestionsResponse,
    ReprocessResponse,
    SendMessageResponse,
    SummaryResponse,
    UserOut,
)


class ScoutClient:
    """
    Args:
        executor: The request executor every call goes through
        tokens:   Where login/register store the bearer token (optional)
    """

    def __init__(self, executor: RequestExecutor, tokens: Optional[InMemoryTokenStore] = None):
        self.executor = executor
        self.tokens = tokens

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ScoutClient":
        settings = settings or ClientSettings()
        tokens = InMemoryTokenStore()
        executor = RequestExecutor(
            settings.api_url,
            token_source=tokens.get,
            transport=transport,
            timeout=settings.timeout_seconds,
        )
        return cls(executor, tokens)

    def _remember(self, auth: AuthResponse) -> AuthResponse:
        if self.tokens is not None:
            self.tokens.set(auth.token)
        return auth

    # ── Auth ──────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthResponse:
        auth = await self.executor.execute(
            RequestDescriptor("/auth/login", "POST", body={"email": email, "password": password}),
            AuthResponse,
        )
        return self._remember(auth)

    async def register(self, name: str, email: str, password: str) -> AuthResponse:
        auth = await self.executor.execute(
            RequestDescriptor(
                "/auth/register",
                "POST",
                body={"name": name, "email": email, "password": password},
            ),
            AuthResponse,
        )
        return self._remember(auth)

    async def me(self) -> UserOut:
        return await self.executor.execute(RequestDescriptor("/auth/me"), UserOut)

    # ── Documents ─────────────────────────────────────────────────────────

    async def get_documents(self) -> DocumentsResponse:
        return await self.executor.execute(RequestDescriptor("/documents"), DocumentsResponse)

    async def get_document(self, document_id: str) -> DocumentResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/documents/{document_id}"), DocumentResponse
        )

    async def upload_document(
        self, filename: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> DocumentResponse:
        body = MultipartBody(files={"document": (filename, content, content_type)})
        return await self.executor.execute(
            RequestDescriptor("/documents/upload", "POST", body=body), DocumentResponse
        )

    async def delete_document(self, document_id: str) -> MessageResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/documents/{document_id}", "DELETE"), MessageResponse
        )

    async def reprocess_document(self, document_id: str) -> ReprocessResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/documents/{document_id}/reprocess", "POST"), ReprocessResponse
        )

    async def test_extraction(self, document_id: str) -> ExtractionResult:
        return await self.executor.execute(
            RequestDescriptor(f"/documents/{document_id}/test-extraction"), ExtractionResult
        )

    # ── Chat ──────────────────────────────────────────────────────────────

    async def create_chat_session(
        self, document_id: str, user_id: str, title: Optional[str] = None
    ) -> ChatSessionResponse:
        body: Dict[str, str] = {"documentId": document_id, "userId": user_id}
        if title is not None:
            body["title"] = title
        return await self.executor.execute(
            RequestDescriptor("/chat/sessions", "POST", body=body), ChatSessionResponse
        )

    async def get_chat_sessions(self, user_id: str) -> ChatSessionsResponse:
        return await self.executor.execute(
            RequestDescriptor("/chat/sessions", params={"userId": user_id}), ChatSessionsResponse
        )

    async def get_chat_session(self, session_id: str, user_id: str) -> MessagesResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/chat/sessions/{session_id}", params={"userId": user_id}),
            MessagesResponse,
        )

    async def send_message(self, session_id: str, message: str, user_id: str) -> SendMessageResponse:
        return await self.executor.execute(
            RequestDescriptor(
                f"/chat/sessions/{session_id}/messages",
                "POST",
                body={"message": message, "userId": user_id},
            ),
            SendMessageResponse,
        )

    async def get_messages(self, session_id: str, user_id: str) -> MessagesResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/chat/sessions/{session_id}/messages", params={"userId": user_id}),
            MessagesResponse,
        )

    async def delete_chat_session(self, session_id: str, user_id: str) -> MessageResponse:
        return await self.executor.execute(
            RequestDescriptor(
                f"/chat/sessions/{session_id}", "DELETE", params={"userId": user_id}
            ),
            MessageResponse,
        )

    # ── AI ────────────────────────────────────────────────────────────────

    async def generate_summary(self, document_id: str, user_id: str) -> SummaryResponse:
        return await self.executor.execute(
            RequestDescriptor(f"/documents/{document_id}/summary", "POST", body={"userId": user_id}),
            SummaryResponse,
        )

    async def generate_questions(self, document_id: str, user_id: str) -> QuestionsResponse:
        return await self.executor.execute(
            RequestDescriptor(
                f"/documents/{document_id}/questions", "POST", body={"userId": user_id}
            ),
            QuestionsResponse,
        )
