"""Tests for the HTTP session client against a local aiohttp server."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from client import (
    ApplicationError,
    ExportResult,
    ResponseFormatError,
    SessionClient,
    TransportError,
)
from config import MESSAGES
from conversation import Sender

SUMMARY_PAYLOAD = {
    "course_design": {"title": "Intro to Data Literacy", "target_audience": "Nurses"},
    "progress": {"completion_percentage": 62.5, "current_step": 5, "total_steps": 8, "status": "in_progress"},
    "quality_metrics": {"total_messages": 12, "completeness_score": 70.0, "average_confidence": 0.85},
    "framework_analysis": {"learning_outcomes": True, "assessment": False},
    "key_insights": ["Learners prefer case studies"],
    "recommendations": ["Add a formative quiz"],
}


def build_app(received):
    async def create_session(request):
        return web.json_response({
            "session_id": "abc",
            "conversation": {"current_step": 1, "total_steps": 5, "completion_percentage": 0},
            "welcome_message": {"id": "w1", "sender": "assistant", "content": "Welcome!",
                                "timestamp": "2024-05-01T10:00:00Z"},
        })

    async def send_message(request):
        body = await request.json()
        received.append((request.match_info["session_id"], body))
        text = body["message"]

        if text == "rate":
            return web.json_response({"error": "rate limited"}, status=500)
        if text == "plain-500":
            return web.Response(status=500, text="Internal Server Error")
        if text == "garbage":
            return web.Response(status=200, text="<html>not json</html>")
        if text == "no-reply":
            return web.json_response({"conversation_update": {}})
        if text == "bad-progress":
            return web.json_response({
                "ai_response": {"sender": "assistant", "content": "ok"},
                "conversation_update": {"completion_percentage": 400},
            })

        return web.json_response({
            "ai_response": {"id": "r1", "sender": "assistant", "content": f"You said: {text}",
                            "timestamp": "2024-05-01T10:01:00Z"},
            "conversation_update": {"current_step": 2, "completion_percentage": 12.5},
            "safety_violation": text == "unsafe",
        })

    async def export(request):
        export_format = request.match_info["export_format"]
        if export_format == "pdf":
            return web.Response(
                body=b"%PDF-1.4 fake",
                content_type="application/pdf",
                headers={"Content-Disposition": 'attachment; filename="course_design_abc.pdf"'},
            )
        if export_format == "csv":
            return web.Response(body=b"step,answer\n1,nurses\n", content_type="text/csv")
        if export_format == "json":
            return web.json_response(SUMMARY_PAYLOAD)
        return web.json_response({"error": f"Unsupported format {export_format}"}, status=400)

    async def summary(request):
        if request.match_info["session_id"] == "missing":
            return web.json_response({"error": "Session not found"}, status=404)
        return web.json_response(SUMMARY_PAYLOAD)

    app = web.Application()
    app.router.add_post("/api/conversations", create_session)
    app.router.add_post("/api/conversations/{session_id}/messages", send_message)
    app.router.add_get("/api/conversations/{session_id}/export/{export_format}", export)
    app.router.add_get("/api/conversations/{session_id}/summary", summary)
    return app


@pytest_asyncio.fixture
async def server_and_requests():
    received = []
    server = test_utils.TestServer(build_app(received))
    await server.start_server()
    yield server, received
    await server.close()


@pytest.fixture
def client(server_and_requests):
    server, _ = server_and_requests
    return SessionClient(base_url=str(server.make_url("")))


class TestCreateSession:

    @pytest.mark.asyncio
    async def test_create_session(self, client):
        created = await client.create_session()

        assert created.session_id == "abc"
        assert created.initial_metadata["total_steps"] == 5
        assert created.welcome_message.content == "Welcome!"
        assert created.welcome_message.sender == Sender.ASSISTANT
        assert client.get_stats()["requests_made"] == 1


class TestSendMessage:

    @pytest.mark.asyncio
    async def test_reply_and_request_body(self, client, server_and_requests):
        _, received = server_and_requests

        reply = await client.send_message("abc", "Design a course on X")

        assert received == [("abc", {"message": "Design a course on X"})]
        assert reply.assistant_message.content == "You said: Design a course on X"
        assert reply.metadata_delta == {"current_step": 2, "completion_percentage": 12.5}
        assert reply.safety_violation is False

    @pytest.mark.asyncio
    async def test_safety_violation_flag(self, client):
        reply = await client.send_message("abc", "unsafe")
        assert reply.safety_violation is True

    @pytest.mark.asyncio
    async def test_server_error_text(self, client):
        with pytest.raises(ApplicationError) as exc_info:
            await client.send_message("abc", "rate")

        error = exc_info.value
        assert error.status == 500
        assert error.server_message == "rate limited"
        assert error.network_failure is False
        assert client.get_stats()["requests_failed"] == 1

    @pytest.mark.asyncio
    async def test_server_error_without_json(self, client):
        with pytest.raises(ApplicationError) as exc_info:
            await client.send_message("abc", "plain-500")

        assert exc_info.value.server_message is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["garbage", "no-reply", "bad-progress"])
    async def test_malformed_success_body(self, client, text):
        with pytest.raises(ResponseFormatError) as exc_info:
            await client.send_message("abc", text)

        assert exc_info.value.network_failure is False
        assert exc_info.value.server_message is None

    @pytest.mark.asyncio
    async def test_session_id_is_quoted(self, client, server_and_requests):
        _, received = server_and_requests

        await client.send_message("abc 1", "hello")

        assert received[0][0] == "abc 1"


class TestTransportFailure:

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        client = SessionClient(base_url=f"http://127.0.0.1:{test_utils.unused_port()}")

        with pytest.raises(TransportError) as exc_info:
            await client.send_message("abc", "hello")

        error = exc_info.value
        assert error.network_failure is True
        assert error.status is None
        assert error.message == MESSAGES["connection_error"]
        assert client.get_stats()["requests_failed"] == 1


class TestRequestExport:

    @pytest.mark.asyncio
    async def test_pdf_download_with_filename(self, client):
        result = await client.request_export("abc", "pdf")

        assert result.kind == ExportResult.DOWNLOAD
        assert result.content == b"%PDF-1.4 fake"
        assert result.suggested_filename == "course_design_abc.pdf"
        assert result.content_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_csv_download_without_filename(self, client):
        result = await client.request_export("abc", "csv")

        assert result.kind == ExportResult.DOWNLOAD
        assert result.suggested_filename is None
        assert result.content.startswith(b"step,answer")

    @pytest.mark.asyncio
    async def test_json_export_is_structured(self, client):
        result = await client.request_export("abc", "json")

        assert result.kind == ExportResult.SUMMARY
        assert result.payload["course_design"]["title"] == "Intro to Data Literacy"

    @pytest.mark.asyncio
    async def test_summary_endpoint(self, client):
        result = await client.request_export("abc")

        assert result.kind == ExportResult.SUMMARY
        assert result.payload["progress"]["completion_percentage"] == 62.5

    @pytest.mark.asyncio
    async def test_summary_rejection(self, client):
        with pytest.raises(ApplicationError) as exc_info:
            await client.request_export("missing")

        assert exc_info.value.status == 404
        assert exc_info.value.server_message == "Session not found"
