"""
Knowledge Scout - Typed Client Against the In-Process App
=========================================================

What:  Every ScoutClient method exercised end to end: executor → ASGI app →
       middleware → route → service → envelope back through the executor.
How:   ScoutClient over httpx.ASGITransport; FakeLLM instead of Gemini.
"""

import asyncio

import httpx
import pytest
from httpx import ASGITransport

from scout.client import ApplicationFailure, ClientSettings, ScoutClient
from scout.schemas import ExtractionFailed, ExtractionSucceeded

DOC_TEXT = (
    "Photosynthesis converts light energy into chemical energy.\n"
    "It takes place in the chloroplasts of plant cells."
)


async def seed_demo(app) -> None:
    async with app.state.database.session() as db:
        await app.state.auth_service.ensure_demo_user(db)


async def upload_and_wait(
    scout: ScoutClient,
    filename: str = "biology.txt",
    content: bytes = DOC_TEXT.encode(),
    content_type: str = "text/plain",
):
    uploaded = await scout.upload_document(filename, content, content_type)
    document = (await scout.get_document(uploaded.document.id)).document
    # Extraction runs as a background task after the upload response
    for _ in range(100):
        if document.status != "processing":
            break
        await asyncio.sleep(0.02)
        document = (await scout.get_document(uploaded.document.id)).document
    return uploaded, document


class TestDemoScenario:

    @pytest.mark.asyncio
    async def test_seed_login_list_and_delete_missing(self, app, scout):
        await seed_demo(app)

        auth = await scout.login("admin@mail.com", "admin123")
        assert auth.user.email == "admin@mail.com"
        assert scout.tokens.get() == auth.token

        documents = await scout.get_documents()
        assert documents.documents == []

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.delete_document("nonexistent")

        failure = exc_info.value
        assert failure.status_code == 404
        assert '"error":"not_found"' in failure.body
        assert str(failure).startswith("HTTP error! status: 404 - ")

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, app, scout):
        await seed_demo(app)
        await seed_demo(app)

        auth = await scout.login("admin@mail.com", "admin123")
        assert auth.token


class TestAuth:

    @pytest.mark.asyncio
    async def test_register_then_me(self, scout):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        me = await scout.me()

        assert auth.message
        assert me.id == auth.user.id
        assert me.email == "ada@mail.com"

    @pytest.mark.asyncio
    async def test_duplicate_registration_is_409(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.register("Ada again", "ada@mail.com", "lovelace")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, app, scout):
        await seed_demo(app)

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.login("admin@mail.com", "wrong-password")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_logged_out_client_sends_no_token(self, scout):
        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.get_documents()
        assert exc_info.value.status_code == 401


class TestDocuments:

    @pytest.mark.asyncio
    async def test_upload_extract_and_serve(self, app, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")

        uploaded, document = await upload_and_wait(scout)

        assert uploaded.document.status == "processing"
        assert uploaded.document.original_name == "biology.txt"
        assert uploaded.document.mime_type == "text/plain"
        assert document.status == "completed"

        listed = await scout.get_documents()
        assert [d.id for d in listed.documents] == [document.id]

        diagnostic = await scout.test_extraction(document.id)
        assert isinstance(diagnostic, ExtractionSucceeded)
        assert diagnostic.characters == len(DOC_TEXT)
        assert diagnostic.preview.startswith("Photosynthesis")

        # Stored file is reachable under /uploads
        async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            served = await http.get(document.url)
        assert served.status_code == 200
        assert served.content == DOC_TEXT.encode()

    @pytest.mark.asyncio
    async def test_unsupported_type_is_400(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.upload_document("virus.exe", b"MZ...", "application/octet-stream")
        assert exc_info.value.status_code == 400
        assert "validation_error" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_unreadable_pdf_is_recorded_as_failed(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")

        _, document = await upload_and_wait(scout, "broken.pdf", b"not really a pdf", "application/pdf")

        assert document.status == "failed"
        assert document.error_message

        diagnostic = await scout.test_extraction(document.id)
        assert isinstance(diagnostic, ExtractionFailed)

        user_id = (await scout.me()).id
        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.generate_summary(document.id, user_id)
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_reprocess_and_delete(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)

        reprocess = await scout.reprocess_document(document.id)
        assert reprocess.document_id == document.id
        assert reprocess.status == "processing"

        deleted = await scout.delete_document(document.id)
        assert deleted.message

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.get_document(document.id)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_documents_are_not_found(self, app, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)

        intruder = ScoutClient.from_settings(
            ClientSettings(api_url="http://test/api"), transport=ASGITransport(app=app)
        )
        await intruder.register("Eve", "eve@mail.com", "password1")

        with pytest.raises(ApplicationFailure) as exc_info:
            await intruder.get_document(document.id)
        assert exc_info.value.status_code == 404
        assert (await intruder.get_documents()).documents == []


class TestAI:

    @pytest.mark.asyncio
    async def test_summary_and_questions(self, scout, fake_llm):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)

        fake_llm.reply = "Plants turn light into sugar."
        summary = await scout.generate_summary(document.id, auth.user.id)
        assert summary.summary == "Plants turn light into sugar."
        assert "Photosynthesis" in fake_llm.prompts[-1]
        assert (await scout.get_document(document.id)).document.summary == summary.summary

        fake_llm.reply = "1. What is photosynthesis?\n2) Where does it happen?\n\n- Why is light needed?"
        questions = await scout.generate_questions(document.id, auth.user.id)
        assert questions.questions == [
            "What is photosynthesis?",
            "Where does it happen?",
            "Why is light needed?",
        ]

    @pytest.mark.asyncio
    async def test_llm_outage_is_503(self, scout, fake_llm):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)
        fake_llm.fail = True

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.generate_summary(document.id, auth.user.id)
        assert exc_info.value.status_code == 503
        assert "llm_service_error" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_user_id_must_match_token(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.generate_questions(document.id, "someone-else")
        assert exc_info.value.status_code == 403


class TestChat:

    @pytest.mark.asyncio
    async def test_full_chat_flow(self, scout, fake_llm):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        user_id = auth.user.id
        _, document = await upload_and_wait(scout)

        created = await scout.create_chat_session(document.id, user_id)
        session = created.session
        assert session.title == "Chat about biology.txt"
        assert session.document_id == document.id

        fake_llm.reply = "In the chloroplasts."
        sent = await scout.send_message(session.id, "Where does it happen?", user_id)
        assert sent.user_message.role == "user"
        assert sent.user_message.content == "Where does it happen?"
        assert sent.assistant_message.role == "assistant"
        assert sent.assistant_message.content == "In the chloroplasts."

        second = await scout.send_message(session.id, "Thanks!", user_id)
        assert "Where does it happen?" in fake_llm.prompts[-1]
        assert second.assistant_message.content == "In the chloroplasts."

        messages = await scout.get_messages(session.id, user_id)
        assert [m.role for m in messages.messages] == ["user", "assistant", "user", "assistant"]
        assert (await scout.get_chat_session(session.id, user_id)).messages == messages.messages

        sessions = await scout.get_chat_sessions(user_id)
        assert [s.id for s in sessions.sessions] == [session.id]

        deleted = await scout.delete_chat_session(session.id, user_id)
        assert deleted.message
        assert (await scout.get_chat_sessions(user_id)).sessions == []

    @pytest.mark.asyncio
    async def test_custom_title(self, scout):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)

        created = await scout.create_chat_session(document.id, auth.user.id, title="Revision")

        assert created.session.title == "Revision"

    @pytest.mark.asyncio
    async def test_sessions_of_another_user_id_are_forbidden(self, scout):
        await scout.register("Ada", "ada@mail.com", "lovelace")

        with pytest.raises(ApplicationFailure) as exc_info:
            await scout.get_chat_sessions("not-me")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_deleting_document_removes_its_sessions(self, scout):
        auth = await scout.register("Ada", "ada@mail.com", "lovelace")
        _, document = await upload_and_wait(scout)
        await scout.create_chat_session(document.id, auth.user.id)

        await scout.delete_document(document.id)

        assert (await scout.get_chat_sessions(auth.user.id)).sessions == []
