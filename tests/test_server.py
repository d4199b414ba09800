"""Tests for the HTTP surface."""
import asyncio
import json

import httpx
import pytest

from conftest import ScriptedCompletionSource
from perspectra.errors import CompletionError
from perspectra.server import create_app

CONVERT_PATH = "/llm/perspective-convert"


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


def _data_lines(body: str) -> list[str]:
    return [line[len("data: "):] for line in body.split("\n") if line.startswith("data: ")]


class TestPerspectiveConvert:
    """Tests for POST /llm/perspective-convert."""

    @pytest.mark.asyncio
    async def test_streams_conversion(self, settings, registry, conversion_deltas):
        """Test the wire format of a successful conversion."""
        source = ScriptedCompletionSource(conversion_deltas)
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "product-manager",
                "targetRole": "developer",
                "content": "我们需要一个智能推荐功能，提升用户停留时长",
            })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        lines = _data_lines(response.text)
        assert [json.loads(line) for line in lines[:-1]] == [{"content": t} for t in conversion_deltas]
        assert lines[-1] == "[DONE]"
        assert source.handles[0].calls == 0

    @pytest.mark.asyncio
    async def test_unknown_role_is_rejected(self, settings, registry):
        """Test that an unknown role is a 400 listing the allowed ids."""
        source = ScriptedCompletionSource(["never"])
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "invalid",
                "targetRole": "developer",
                "content": "x",
            })

        assert response.status_code == 400
        assert not response.headers["content-type"].startswith("text/event-stream")
        body = response.json()
        assert body["statusCode"] == 400
        assert body["error"] == "Bad Request"
        assert body["message"] == "源角色必须是：product-manager, developer, operations, manager 之一"
        assert source.requests == []

    @pytest.mark.asyncio
    async def test_both_roles_unknown(self, settings, registry):
        app = create_app(settings, registry, ScriptedCompletionSource())

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "a",
                "targetRole": "b",
                "content": "x",
            })

        message = response.json()["message"]
        assert response.status_code == 400
        assert "源角色必须是" in message and "目标角色必须是" in message

    @pytest.mark.asyncio
    async def test_missing_fields_are_rejected(self, settings, registry):
        """Test body validation errors map to 400."""
        app = create_app(settings, registry, ScriptedCompletionSource())

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={"targetRole": "developer", "content": ""})

        assert response.status_code == 400
        message = response.json()["message"]
        assert "sourceRole" in message
        assert "manager" in message
        assert "content" in message

    @pytest.mark.asyncio
    async def test_missing_role_configuration(self, settings, empty_registry):
        """Test that an absent role mapping is streamed as one error event."""
        source = ScriptedCompletionSource(["never"])
        app = create_app(settings, empty_registry, source)

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "product-manager",
                "targetRole": "developer",
                "content": "x",
            })

        assert response.status_code == 200
        assert _data_lines(response.text) == ['{"error": "角色配置未找到"}']
        assert source.requests == []

    @pytest.mark.asyncio
    async def test_same_role_is_accepted(self, settings, registry):
        app = create_app(settings, registry, ScriptedCompletionSource(["好"]))

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "developer",
                "targetRole": "developer",
                "content": "x",
            })

        assert response.status_code == 200
        assert _data_lines(response.text)[-1] == "[DONE]"

    @pytest.mark.asyncio
    async def test_upstream_error_is_streamed(self, settings, registry):
        source = ScriptedCompletionSource(["部分"], error=RuntimeError("rate limited"))
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "manager",
                "targetRole": "operations",
                "content": "x",
            })

        assert _data_lines(response.text) == ['{"content": "部分"}', '{"error": "rate limited"}']

    @pytest.mark.asyncio
    async def test_backend_start_failure_is_streamed(self, settings, registry):
        """Test that a backend failing to start answers 200 with one error event."""
        source = ScriptedCompletionSource(start_error=RuntimeError("backend refused"))
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post(CONVERT_PATH, json={
                "sourceRole": "product-manager",
                "targetRole": "developer",
                "content": "x",
            })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert _data_lines(response.text) == ['{"error": "backend refused"}']

    @pytest.mark.asyncio
    async def test_client_disconnect_cancels_upstream(self, settings, registry, conversion_deltas):
        """Test that a disconnect after two deltas cancels once and stops writing."""
        source = ScriptedCompletionSource(conversion_deltas, hold_after=2)
        app = create_app(settings, registry, source)
        body = json.dumps({
            "sourceRole": "product-manager",
            "targetRole": "developer",
            "content": "x",
        }).encode()

        disconnected = asyncio.Event()
        request_sent = False
        sent = []
        sent_after_disconnect = []

        async def receive():
            nonlocal request_sent
            if not request_sent:
                request_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            if disconnected.is_set():
                sent_after_disconnect.append(message)
                return
            sent.append(message)
            chunks = [m for m in sent if m["type"] == "http.response.body" and m.get("body")]
            if len(chunks) == 2:
                disconnected.set()

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "POST",
            "scheme": "http",
            "path": CONVERT_PATH,
            "raw_path": CONVERT_PATH.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": [
                (b"host", b"test"),
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
            ],
            "client": ("127.0.0.1", 50000),
            "server": ("test", 80),
        }

        await asyncio.wait_for(app(scope, receive, send), timeout=5)

        assert sent[0]["type"] == "http.response.start"
        assert sent[0]["status"] == 200
        chunks = [m["body"].decode() for m in sent if m["type"] == "http.response.body"]
        assert chunks == ['data: {"content": "从"}\n\n', 'data: {"content": "技术"}\n\n']
        assert sent_after_disconnect == []
        assert len(source.handles) == 1
        assert source.handles[0].calls == 1
        assert source.handles[0].cancelled


class TestChat:
    """Tests for POST /llm/chat."""

    @pytest.mark.asyncio
    async def test_chat_reply(self, settings, registry):
        source = ScriptedCompletionSource(reply="你好！")
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post("/llm/chat", json={"message": "你好"})

        assert response.status_code == 200
        assert response.json() == {"response": "你好！"}
        assert source.requests[0][0].content == "你好"

    @pytest.mark.asyncio
    async def test_chat_upstream_failure(self, settings, registry):
        """Test that backend failures surface as 502."""
        source = ScriptedCompletionSource(chat_error=CompletionError("No response received from OpenAI"))
        app = create_app(settings, registry, source)

        async with _client(app) as client:
            response = await client.post("/llm/chat", json={"message": "你好"})

        assert response.status_code == 502
        assert response.json() == {
            "statusCode": 502,
            "message": "No response received from OpenAI",
            "error": "Bad Gateway",
        }

    @pytest.mark.asyncio
    async def test_chat_empty_message(self, settings, registry):
        app = create_app(settings, registry, ScriptedCompletionSource())

        async with _client(app) as client:
            response = await client.post("/llm/chat", json={"message": ""})

        assert response.status_code == 400


class TestApp:
    """Tests for health and middleware."""

    @pytest.mark.asyncio
    async def test_health(self, settings, registry, empty_registry):
        async with _client(create_app(settings, registry, ScriptedCompletionSource())) as client:
            assert (await client.get("/health")).json() == {"status": "ok", "roles_loaded": True}

        async with _client(create_app(settings, empty_registry, ScriptedCompletionSource())) as client:
            assert (await client.get("/health")).json() == {"status": "ok", "roles_loaded": False}

    @pytest.mark.asyncio
    async def test_cors_preflight(self, settings, registry):
        """Test that the default dev origins are allowed."""
        app = create_app(settings, registry, ScriptedCompletionSource())

        async with _client(app) as client:
            response = await client.options(CONVERT_PATH, headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    def test_app_builds_components_from_settings(self, settings):
        """Test default wiring from settings alone."""
        app = create_app(settings)

        assert app.state.registry.available
        assert app.state.completion_source.model == "gpt-3.5-turbo"
