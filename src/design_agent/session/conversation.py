import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..agent.client import CompletionClient
from ..agent.errors import CompletionError, ErrorKind
from ..gallery.index import ArtifactIndex
from ..records import Artifact, Message, MessageIdFactory, now_utc
from ..synthesis.synthesizer import ArtifactSynthesizer
from .cancel import CancelToken

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    """Raised for operations that are only permitted while the session is idle."""


class SessionStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class TurnOutcome(str, Enum):
    COMMITTED = "committed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"  # submitted while another turn was pending


@dataclass(frozen=True)
class ErrorDescriptor:
    kind: ErrorKind
    message: str

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class SessionSnapshot:
    messages: tuple[Message, ...] = ()
    pending: bool = False
    last_error: ErrorDescriptor | None = None

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.PENDING if self.pending else SessionStatus.IDLE

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "pending": self.pending,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


@dataclass
class SessionEvent:
    """An event pushed to session subscribers."""

    type: str  # "status", "message", "artifact", "error", "cleared"
    data: dict = field(default_factory=dict)


class ConversationSession:
    """Owns the message log and drives one turn at a time.

    ``submit`` appends the user message before its first suspension point,
    so the log always reflects submission order. While a turn is pending,
    further submits are rejected as no-ops (``TurnOutcome.REJECTED``) unless
    the caller passes ``supersede=True``, which cancels the in-flight turn,
    waits for it to settle, and then starts the new one.
    """

    def __init__(
        self,
        client: CompletionClient,
        synthesizer: ArtifactSynthesizer,
        index: ArtifactIndex,
        clock: Callable[[], datetime] = now_utc,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._client = client
        self._synthesizer = synthesizer
        self._index = index
        self._clock = clock
        self._new_id = id_factory or MessageIdFactory()

        self._messages: list[Message] = []
        self._pending = False
        self._last_error: ErrorDescriptor | None = None
        self._token: CancelToken | None = None
        self._settled = asyncio.Event()
        self._settled.set()
        self._subscribers: list[asyncio.Queue] = []

    # --- State ---

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.PENDING if self._pending else SessionStatus.IDLE

    @property
    def last_error(self) -> ErrorDescriptor | None:
        return self._last_error

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            messages=tuple(self._messages),
            pending=self._pending,
            last_error=self._last_error,
        )

    # --- Events ---

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _emit(self, event_type: str, data: dict) -> None:
        event = SessionEvent(type=event_type, data=data)
        for queue in self._subscribers:
            queue.put_nowait(event)

    # --- Turns ---

    def _append(self, role: str, content: str, artifact_ref: str | None = None) -> Message:
        message = Message(
            id=self._new_id(),
            role=role,
            content=content,
            timestamp=self._clock(),
            artifact_ref=artifact_ref,
        )
        self._messages.append(message)
        return message

    async def submit(self, text: str, supersede: bool = False) -> TurnOutcome:
        if not text or not text.strip():
            raise ValueError("Message text must not be blank")

        if self._pending:
            if not supersede:
                logger.info("Turn already pending, rejecting submit")
                return TurnOutcome.REJECTED
            self.cancel()
            await self._settled.wait()
            if self._pending:
                # Another superseding submit started first.
                return TurnOutcome.REJECTED

        user_message = self._append("user", text)
        self._last_error = None
        self._pending = True
        self._settled.clear()
        token = CancelToken()
        self._token = token
        self._emit("message", user_message.to_dict())
        self._emit("status", {"pending": True})
        logger.info("Turn started for message %s", user_message.id)

        try:
            outcome = await self._run_turn(user_message, token)
        finally:
            self._pending = False
            self._token = None
            self._settled.set()
            self._emit("status", {"pending": False})

        logger.info("Turn for message %s ended: %s", user_message.id, outcome.value)
        return outcome

    async def _run_turn(self, user_message: Message, token: CancelToken) -> TurnOutcome:
        try:
            result = await self._client.complete(list(self._messages), token)
        except CompletionError as e:
            self._last_error = ErrorDescriptor(kind=e.kind, message=e.message)
            logger.warning("Turn failed (%s): %s", e.kind.value, e.message)
            self._emit("error", self._last_error.to_dict())
            return TurnOutcome.FAILED

        if result.cancelled or token.cancelled:
            return TurnOutcome.CANCELLED

        artifact = await self._synthesizer.synthesize(
            user_message.content,
            result.text,
            result.tool_calls,
            artifact_id=f"{user_message.id}-design",
        )
        # Cancelled while the image provider was working: drop the result.
        if token.cancelled:
            return TurnOutcome.CANCELLED

        self._commit(result.text, artifact)
        return TurnOutcome.COMMITTED

    def _commit(self, text: str, artifact: Artifact | None) -> None:
        # No suspension point in here: observers see the artifact and the
        # message referencing it together.
        added = False
        if artifact is not None:
            added = self._index.add(artifact)
        content = text or (artifact.description if artifact else "")
        message = self._append("assistant", content, artifact.id if artifact else None)

        if added:
            self._emit("artifact", artifact.to_dict())
        self._emit("message", message.to_dict())

    def cancel(self) -> bool:
        """Trip the in-flight turn's token. Returns False when idle."""
        if not self._pending or self._token is None:
            return False
        logger.info("Cancelling pending turn")
        self._token.cancel()
        return True

    def clear(self) -> None:
        if self._pending:
            raise SessionBusyError("Cannot clear the conversation while a turn is pending")
        self._messages.clear()
        self._emit("cleared", {})

    def restore(self, messages: Iterable[Message]) -> None:
        """Replace the log with previously persisted messages."""
        if self._pending:
            raise SessionBusyError("Cannot restore the conversation while a turn is pending")
        self._messages = list(messages)
