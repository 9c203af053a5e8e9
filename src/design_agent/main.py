import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .agent.client import CompletionClient
from .api.routes import router
from .config import DATA_DIR, ROOT_PATH, SQLITE_PATH, load_credentials
from .data.persistence import persist_events, restore_snapshot
from .data.sqlite_store import SQLiteStore
from .gallery.index import ArtifactIndex
from .session.conversation import ConversationSession
from .synthesis.synthesizer import ArtifactSynthesizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    credentials = load_credentials()
    logger.info("Loaded %r", credentials)

    logger.info("Initializing SQLite store...")
    sqlite_store = SQLiteStore(str(SQLITE_PATH))
    await sqlite_store.initialize()

    logger.info("Initializing conversation session...")
    completion_client = CompletionClient(credentials)
    synthesizer = ArtifactSynthesizer(credentials)
    index = ArtifactIndex()
    session = ConversationSession(completion_client, synthesizer, index)
    await restore_snapshot(sqlite_store, session, index)

    persist_queue = session.subscribe()
    persist_task = asyncio.create_task(persist_events(sqlite_store, persist_queue))

    app.state.sqlite_store = sqlite_store
    app.state.session = session
    app.state.index = index
    app.state.completion_client = completion_client
    app.state.synthesizer = synthesizer

    logger.info("Startup complete, ready to serve")
    yield

    # Shutdown
    logger.info("Shutting down...")
    session.cancel()
    persist_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await persist_task
    session.unsubscribe(persist_queue)
    await synthesizer.close()
    await completion_client.close()
    await sqlite_store.close()


app = FastAPI(title="Design Agent", root_path=ROOT_PATH, lifespan=lifespan)
app.include_router(router)
