import asyncio
import json
from datetime import UTC, datetime

import httpx
import pytest

from design_agent.agent.client import CompletionClient
from design_agent.agent.errors import AuthError, ErrorKind, NetworkError, UpstreamError
from design_agent.agent.tools import GenerateDesignImage
from design_agent.config import Credentials
from design_agent.records import Message
from design_agent.session.cancel import CancelToken


def _history(*texts: str) -> list[Message]:
    now = datetime.now(UTC)
    roles = ["user", "assistant"]
    return [
        Message(id=str(i), role=roles[i % 2], content=text, timestamp=now)
        for i, text in enumerate(texts)
    ]


def _make_client(handler, key: str | None = "test-key") -> CompletionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CompletionClient(Credentials(chat_api_key=key), http_client=http)


def _completion(content: str = "", tool_calls=None) -> dict:
    message = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return {"choices": [{"message": message}]}


@pytest.mark.asyncio
async def test_complete_parses_text_and_tool_call():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["payload"] = json.loads(request.content)
        return httpx.Response(
            200,
            json=_completion(
                "Here is a login page.",
                [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {
                            "name": "generate_design_image",
                            "arguments": json.dumps(
                                {"prompt": "clean login page", "title": "Login", "description": "A form"}
                            ),
                        },
                    }
                ],
            ),
        )

    client = _make_client(handler)
    result = await client.complete(_history("hi", "hello", "design a login page"))

    assert result.cancelled is False
    assert result.text == "Here is a login page."
    assert result.tool_calls == [
        GenerateDesignImage(prompt="clean login page", title="Login", description="A form")
    ]
    assert seen["auth"] == "Bearer test-key"
    messages = seen["payload"]["messages"]
    assert messages[0]["role"] == "system"
    assert [m["content"] for m in messages[1:]] == ["hi", "hello", "design a login page"]
    assert seen["payload"]["tools"][0]["function"]["name"] == "generate_design_image"


@pytest.mark.asyncio
async def test_unknown_tool_calls_are_dropped():
    def handler(request):
        return httpx.Response(
            200,
            json=_completion(
                "ok",
                [{"type": "function", "function": {"name": "delete_everything", "arguments": "{}"}}],
            ),
        )

    result = await _make_client(handler).complete(_history("hello"))
    assert result.text == "ok"
    assert result.tool_calls == []


@pytest.mark.asyncio
async def test_null_content_becomes_empty_text():
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

    result = await _make_client(handler).complete(_history("hello"))
    assert result.text == ""


@pytest.mark.asyncio
async def test_missing_credential_is_auth_error():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=_completion("ok"))

    with pytest.raises(AuthError) as exc_info:
        await _make_client(handler, key=None).complete(_history("hello"))
    assert exc_info.value.kind is ErrorKind.AUTH
    assert calls == []


@pytest.mark.asyncio
async def test_rejected_credential_is_auth_error():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

    with pytest.raises(AuthError) as exc_info:
        await _make_client(handler).complete(_history("hello"))
    assert exc_info.value.message == "Invalid API key"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_upstream_error_message_is_verbatim():
    def handler(request):
        return httpx.Response(503, json={"error": {"message": "Model is overloaded"}})

    with pytest.raises(UpstreamError) as exc_info:
        await _make_client(handler).complete(_history("hello"))
    assert exc_info.value.kind is ErrorKind.UPSTREAM
    assert exc_info.value.message == "Model is overloaded"


@pytest.mark.asyncio
async def test_success_status_without_choices_is_upstream_error():
    def handler(request):
        return httpx.Response(200, json={"error": {"message": "No endpoints found"}})

    with pytest.raises(UpstreamError, match="No endpoints found"):
        await _make_client(handler).complete(_history("hello"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"choices": [None]},
        {"choices": ["text"]},
        {"choices": {"message": {}}},
        {"choices": [{"message": "hello"}]},
    ],
)
async def test_malformed_choices_are_upstream_errors(body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(UpstreamError, match="Malformed response"):
        await _make_client(handler).complete(_history("hello"))


@pytest.mark.asyncio
async def test_updated_credentials_apply_to_next_request():
    seen = []

    def handler(request):
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json=_completion("ok"))

    client = _make_client(handler, key=None)
    with pytest.raises(AuthError):
        await client.complete(_history("hello"))

    client.credentials = Credentials(chat_api_key="fresh-key")
    result = await client.complete(_history("hello"))

    assert result.text == "ok"
    assert seen == ["Bearer fresh-key"]


@pytest.mark.asyncio
async def test_transport_failure_is_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError) as exc_info:
        await _make_client(handler).complete(_history("hello"))
    assert exc_info.value.kind is ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_timeout_is_network_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        await _make_client(handler).complete(_history("hello"))


@pytest.mark.asyncio
async def test_cancelled_before_request_skips_network():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=_completion("ok"))

    token = CancelToken()
    token.cancel()
    result = await _make_client(handler).complete(_history("hello"), token)
    assert result.cancelled is True
    assert calls == []


@pytest.mark.asyncio
async def test_cancel_during_request_returns_cancelled():
    started = asyncio.Event()

    async def handler(request):
        started.set()
        await asyncio.Event().wait()

    client = _make_client(handler)
    token = CancelToken()
    task = asyncio.create_task(client.complete(_history("hello"), token))
    await started.wait()
    token.cancel()

    result = await task
    assert result.cancelled is True
    assert result.text == ""


@pytest.mark.asyncio
async def test_history_must_end_with_user_turn():
    client = _make_client(lambda request: httpx.Response(200, json=_completion("ok")))
    with pytest.raises(ValueError):
        await client.complete([])
    with pytest.raises(ValueError):
        await client.complete(_history("hello", "hi there"))


@pytest.mark.asyncio
async def test_history_is_not_mutated():
    client = _make_client(lambda request: httpx.Response(200, json=_completion("ok")))
    history = _history("hello")
    before = list(history)
    await client.complete(history)
    assert history == before
