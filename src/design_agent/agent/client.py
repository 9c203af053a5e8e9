import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from ..config import (
    APP_REFERER,
    APP_TITLE,
    CHAT_API_BASE,
    MAX_TOKENS,
    MODEL,
    REQUEST_TIMEOUT_SECS,
    TEMPERATURE,
    Credentials,
)
from ..records import Message
from ..session.cancel import CancelToken
from .errors import AuthError, NetworkError, UpstreamError
from .prompts import TOOLS, build_system_prompt
from .tools import ToolCallDirective, parse_tool_calls

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Outcome of one chat completion call that did not fail."""

    text: str = ""
    tool_calls: list[ToolCallDirective] = field(default_factory=list)
    cancelled: bool = False


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    text = response.text.strip()
    if text:
        return text[:500]
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class CompletionClient:
    """Sends a conversation to an OpenAI-compatible chat completions endpoint.

    Stateless apart from the HTTP connection pool. No retries are performed;
    failures are raised as ``CompletionError`` subclasses and a cancelled call
    returns ``CompletionResult(cancelled=True)``.
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
        api_base: str = CHAT_API_BASE,
        model: str = MODEL,
    ) -> None:
        self._credentials = credentials
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECS)
        self._url = f"{api_base.rstrip('/')}/chat/completions"
        self._model = model

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @credentials.setter
    def credentials(self, credentials: Credentials) -> None:
        # Read per request, so the next call picks up the new key.
        self._credentials = credentials

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._credentials.chat_api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": APP_REFERER,
            "X-Title": APP_TITLE,
        }

    def _build_payload(self, history: Sequence[Message]) -> dict:
        messages = [{"role": "system", "content": build_system_prompt()}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        return {
            "model": self._model,
            "messages": messages,
            "tools": TOOLS,
            "tool_choice": "auto",
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }

    async def _post(self, payload: dict) -> httpx.Response:
        try:
            return await self._http.post(self._url, json=payload, headers=self._headers())
        except httpx.TransportError as e:
            raise NetworkError(str(e) or type(e).__name__) from e

    def _parse_response(self, response: httpx.Response) -> CompletionResult:
        if response.status_code in (401, 403):
            raise AuthError(_error_detail(response), status_code=response.status_code)
        if not response.is_success:
            raise UpstreamError(_error_detail(response), status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError("Malformed response from completion service") from e

        choices = body.get("choices") if isinstance(body, dict) else None
        if not choices:
            raise UpstreamError(_error_detail(response), status_code=response.status_code)
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise UpstreamError("Malformed response from completion service")

        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise UpstreamError("Malformed response from completion service")
        content = message.get("content")
        text = content if isinstance(content, str) else ""
        tool_calls = parse_tool_calls(message.get("tool_calls"))
        return CompletionResult(text=text, tool_calls=tool_calls)

    async def complete(
        self, history: Sequence[Message], cancel_token: CancelToken | None = None
    ) -> CompletionResult:
        """Request the assistant reply for ``history``.

        ``history`` must end with the new user turn. The token is checked
        before the request, raced against it, and checked again once it
        resolves, so a cancelled turn never receives a late result.
        """
        if not history or history[-1].role != "user":
            raise ValueError("history must end with a user message")

        token = cancel_token or CancelToken()
        if token.cancelled:
            return CompletionResult(cancelled=True)

        if not self._credentials.chat_api_key:
            raise AuthError("OpenRouter API key is required")

        payload = self._build_payload(history)
        logger.info("Requesting completion (%d messages, model=%s)", len(history), self._model)

        request = asyncio.create_task(self._post(payload))
        waiter = asyncio.create_task(token.wait())
        try:
            await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not request.done():
                request.cancel()

        if token.cancelled:
            await asyncio.gather(request, return_exceptions=True)
            logger.info("Completion cancelled")
            return CompletionResult(cancelled=True)

        result = self._parse_response(request.result())
        logger.info(
            "Completion received (%d chars, %d tool calls)", len(result.text), len(result.tool_calls)
        )
        return result

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()
