import asyncio
import logging

from ..gallery.index import ArtifactIndex
from ..records import Artifact, Message
from ..session.conversation import ConversationSession
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


async def restore_snapshot(
    store: SQLiteStore, session: ConversationSession, index: ArtifactIndex
) -> None:
    """Load persisted artifacts into the index, then the message log into the session."""
    artifacts = await store.list_artifacts()
    for artifact in artifacts:
        index.add(artifact)
    messages = await store.list_messages()
    session.restore(messages)
    logger.info("Restored %d messages and %d artifacts", len(messages), len(artifacts))


async def apply_event(store: SQLiteStore, event) -> None:
    if event.type == "artifact":
        await store.save_artifact(Artifact.from_dict(event.data))
    elif event.type == "message":
        await store.save_message(Message.from_dict(event.data))
    elif event.type == "cleared":
        await store.clear_messages()


async def persist_events(store: SQLiteStore, queue: asyncio.Queue) -> None:
    """Write session events to the store until cancelled."""
    while True:
        event = await queue.get()
        try:
            await apply_event(store, event)
        except Exception:
            logger.exception("Failed to persist %s event", event.type)
