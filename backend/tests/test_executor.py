"""
Knowledge Scout Client - Request Executor Tests
===============================================

What:  Header injection, body kinds, and failure mapping of RequestExecutor.
How:   httpx.MockTransport captures the outgoing request and scripts the
       response; no server involved.
"""

import asyncio
import json

import httpx
import pytest
from pydantic import BaseModel

from scout.client import (
    ApplicationFailure,
    ClientError,
    DecodeFailure,
    InMemoryTokenStore,
    MultipartBody,
    RequestDescriptor,
    RequestExecutor,
    TransportFailure,
)
from scout.schemas import ExtractionFailed, ExtractionResult, ExtractionSucceeded, MessageResponse

BASE_URL = "http://scout.test/api"


class Echo(BaseModel):
    ok: bool
    value: int = 0


class Recorder:
    """MockTransport handler that records requests and returns a canned response."""

    def __init__(self, status_code: int = 200, json_body=None, text=None):
        self.status_code = status_code
        self.json_body = {"ok": True} if json_body is None and text is None else json_body
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_executor(handler, token=None, timeout=5.0) -> RequestExecutor:
    tokens = InMemoryTokenStore(token)
    return RequestExecutor(BASE_URL, tokens.get, transport=httpx.MockTransport(handler), timeout=timeout)


class TestAuthorizationHeader:

    @pytest.mark.asyncio
    async def test_token_present_adds_exact_bearer_header(self):
        recorder = Recorder()
        executor = make_executor(recorder, token="abc.def.ghi")

        await executor.execute(RequestDescriptor("/documents"), Echo)

        assert recorder.last.headers["Authorization"] == "Bearer abc.def.ghi"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_no_token_means_no_authorization_header(self, token):
        recorder = Recorder()
        executor = make_executor(recorder, token=token)

        await executor.execute(RequestDescriptor("/documents"), Echo)

        assert "authorization" not in recorder.last.headers

    @pytest.mark.asyncio
    async def test_token_is_read_on_every_call(self):
        recorder = Recorder()
        tokens = InMemoryTokenStore()
        executor = RequestExecutor(BASE_URL, tokens.get, transport=httpx.MockTransport(recorder))

        await executor.execute(RequestDescriptor("/auth/me"), Echo)
        tokens.set("fresh")
        await executor.execute(RequestDescriptor("/auth/me"), Echo)
        tokens.clear()
        await executor.execute(RequestDescriptor("/auth/me"), Echo)

        first, second, third = recorder.requests
        assert "authorization" not in first.headers
        assert second.headers["Authorization"] == "Bearer fresh"
        assert "authorization" not in third.headers


class TestBodyKinds:

    @pytest.mark.asyncio
    async def test_json_body_is_serialized_with_json_content_type(self):
        recorder = Recorder()
        executor = make_executor(recorder)
        payload = {"email": "admin@mail.com", "password": "admin123", "nested": [1, 2]}

        await executor.execute(RequestDescriptor("/auth/login", "POST", body=payload), Echo)

        request = recorder.last
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == payload

    @pytest.mark.asyncio
    async def test_bodyless_request_still_declares_json(self):
        recorder = Recorder()
        executor = make_executor(recorder)

        await executor.execute(RequestDescriptor("/documents/1/reprocess", "POST"), Echo)

        assert recorder.last.headers["Content-Type"] == "application/json"
        assert recorder.last.content == b""

    @pytest.mark.asyncio
    async def test_multipart_body_gets_boundary_from_httpx_only(self):
        recorder = Recorder()
        executor = make_executor(recorder, token="t")
        body = MultipartBody(files={"document": ("notes.txt", b"hello world", "text/plain")})

        await executor.execute(RequestDescriptor("/documents/upload", "POST", body=body), Echo)

        request = recorder.last
        content_type = request.headers["Content-Type"]
        assert content_type.startswith("multipart/form-data; boundary=")
        assert "application/json" not in content_type
        assert b'name="document"; filename="notes.txt"' in request.content
        assert b"hello world" in request.content
        assert request.headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_caller_headers_override_defaults(self):
        recorder = Recorder()
        executor = make_executor(recorder, token="default-token")
        descriptor = RequestDescriptor(
            "/documents",
            headers={"Authorization": "Bearer override", "X-Request-ID": "abc123"},
        )

        await executor.execute(descriptor, Echo)

        assert recorder.last.headers["Authorization"] == "Bearer override"
        assert recorder.last.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_target_is_base_url_plus_endpoint_with_params(self):
        recorder = Recorder()
        executor = make_executor(recorder)

        await executor.execute(
            RequestDescriptor("/chat/sessions", params={"userId": "u-1"}), Echo
        )

        url = recorder.last.url
        assert url.host == "scout.test"
        assert url.path == "/api/chat/sessions"
        assert url.params["userId"] == "u-1"


class TestResponses:

    @pytest.mark.asyncio
    async def test_success_is_validated_into_declared_type(self):
        executor = make_executor(Recorder(json_body={"ok": True, "value": 7}))

        result = await executor.execute(RequestDescriptor("/x"), Echo)

        assert result == Echo(ok=True, value=7)

    @pytest.mark.asyncio
    async def test_discriminated_union_picks_the_right_shape(self):
        succeeded = {
            "outcome": "extracted",
            "documentId": "d1",
            "mimeType": "text/plain",
            "characters": 5,
            "preview": "hello",
        }
        failed = {"outcome": "failed", "documentId": "d1", "mimeType": "application/pdf", "error": "x"}

        first = await make_executor(Recorder(json_body=succeeded)).execute(
            RequestDescriptor("/documents/d1/test-extraction"), ExtractionResult
        )
        second = await make_executor(Recorder(json_body=failed)).execute(
            RequestDescriptor("/documents/d1/test-extraction"), ExtractionResult
        )

        assert isinstance(first, ExtractionSucceeded)
        assert first.document_id == "d1"
        assert isinstance(second, ExtractionFailed)

    @pytest.mark.asyncio
    async def test_non_2xx_raises_application_failure_with_status_and_body(self):
        body = '{"error":"not_found","message":"document with ID \'nope\' was not found"}'
        executor = make_executor(Recorder(status_code=404, text=body))

        with pytest.raises(ApplicationFailure) as exc_info:
            await executor.execute(RequestDescriptor("/documents/nope", "DELETE"), MessageResponse)

        failure = exc_info.value
        assert failure.status_code == 404
        assert failure.body == body
        assert str(failure) == f"HTTP error! status: 404 - {body}"

    @pytest.mark.asyncio
    async def test_error_body_is_kept_verbatim_even_when_not_json(self):
        executor = make_executor(Recorder(status_code=502, text="<html>Bad Gateway</html>"))

        with pytest.raises(ApplicationFailure, match=r"status: 502 - <html>Bad Gateway</html>"):
            await executor.execute(RequestDescriptor("/documents"), Echo)

    @pytest.mark.asyncio
    async def test_invalid_json_raises_decode_failure(self):
        executor = make_executor(Recorder(text="definitely not json"))

        with pytest.raises(DecodeFailure) as exc_info:
            await executor.execute(RequestDescriptor("/documents"), Echo)
        assert exc_info.value.body == "definitely not json"

    @pytest.mark.asyncio
    async def test_wrong_shape_raises_decode_failure(self):
        executor = make_executor(Recorder(json_body={"unexpected": "shape"}))

        with pytest.raises(DecodeFailure, match="expected shape"):
            await executor.execute(RequestDescriptor("/documents"), Echo)


class TestTransportFailures:

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailure) as exc_info:
            await make_executor(refuse).execute(RequestDescriptor("/documents"), Echo)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_httpx_timeout_raises_transport_failure(self):
        def time_out(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(TransportFailure):
            await make_executor(time_out).execute(RequestDescriptor("/documents"), Echo)

    @pytest.mark.asyncio
    async def test_deadline_covers_the_whole_request(self):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"ok": True})

        executor = make_executor(slow, timeout=0.05)

        with pytest.raises(TransportFailure, match="timed out"):
            await executor.execute(RequestDescriptor("/documents"), Echo)

    @pytest.mark.asyncio
    async def test_cancellation_propagates_untouched(self):
        entered = asyncio.Event()

        async def hang(request):
            entered.set()
            await asyncio.Event().wait()

        executor = make_executor(hang, timeout=None)
        task = asyncio.create_task(executor.execute(RequestDescriptor("/documents"), Echo))
        await entered.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    def test_failures_share_a_base_but_are_distinct(self):
        for failure in (TransportFailure, ApplicationFailure, DecodeFailure):
            assert issubclass(failure, ClientError)
        assert not issubclass(TransportFailure, ApplicationFailure)
        assert not issubclass(DecodeFailure, ApplicationFailure)
        assert not issubclass(ApplicationFailure, DecodeFailure)


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_calls_do_not_interfere(self):
        def echo_path(request):
            return httpx.Response(200, json={"ok": True, "value": int(request.url.path.rsplit("/", 1)[-1])})

        executor = make_executor(echo_path)
        results = await asyncio.gather(
            *(executor.execute(RequestDescriptor(f"/items/{i}"), Echo) for i in range(20))
        )

        assert [r.value for r in results] == list(range(20))
