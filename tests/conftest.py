import asyncio
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from design_agent.agent.client import CompletionResult
from design_agent.config import Credentials
from design_agent.data.sqlite_store import SQLiteStore
from design_agent.gallery.index import ArtifactIndex
from design_agent.records import Artifact
from design_agent.session.conversation import ConversationSession
from design_agent.synthesis.synthesizer import ArtifactSynthesizer

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class ScriptedClient:
    """In-memory stand-in for CompletionClient.

    Replies are taken from ``responses`` in order; an exception instance is
    raised instead of returned. When ``gate`` is set to an Event, each call
    blocks until the gate opens or the call's token is cancelled.
    """

    def __init__(self) -> None:
        self.responses: list = []
        self.calls: list[list] = []
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, history, cancel_token=None):
        self.calls.append(list(history))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                waiters = {asyncio.create_task(self.gate.wait())}
                if cancel_token is not None:
                    waiters.add(asyncio.create_task(cancel_token.wait()))
                _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()

            if cancel_token is not None and cancel_token.cancelled:
                return CompletionResult(cancelled=True)

            reply = self.responses.pop(0) if self.responses else CompletionResult(text="ok")
            if isinstance(reply, Exception):
                raise reply
            return reply
        finally:
            self.in_flight -= 1


async def wait_until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def make_artifact(
    artifact_id: str,
    title: str = "Untitled",
    description: str = "",
    minutes: int = 0,
) -> Artifact:
    return Artifact(
        id=artifact_id,
        title=title,
        description=description,
        image_ref=f"https://img.example/{artifact_id}.png",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def scripted_client():
    return ScriptedClient()


@pytest.fixture
def synthesizer():
    return ArtifactSynthesizer(Credentials(chat_api_key="test-key"))


@pytest.fixture
def index():
    return ArtifactIndex()


@pytest.fixture
def session(scripted_client, synthesizer, index):
    return ConversationSession(scripted_client, synthesizer, index)


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SQLiteStore(str(tmp_path / "test.db"))
    await store.initialize()
    yield store
    await store.close()
