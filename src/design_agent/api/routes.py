import logging
from dataclasses import asdict, replace

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from ..config import DEFAULT_ITEM_HEIGHT, DEFAULT_OVERSCAN
from ..gallery.analytics import summarize
from ..records import Artifact, now_utc
from ..session.conversation import SessionBusyError
from .models import (
    ArtifactListOut,
    ArtifactOut,
    ChatRequest,
    ChatResponse,
    GalleryPageOut,
    SessionOut,
    SettingsIn,
    SettingsOut,
    SuggestionOut,
    TagCountOut,
)
from .sse import sse_from_session_event, sse_init

logger = logging.getLogger(__name__)
router = APIRouter()


def _artifact_out(index, artifact: Artifact) -> dict:
    data = artifact.to_dict()
    data["tags"] = sorted(index.extract_tags(artifact))
    return data


# --- Conversation ---


@router.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(req: ChatRequest, request: Request):
    session = request.app.state.session
    try:
        outcome = await session.submit(req.message, supersede=req.supersede)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"outcome": outcome.value, "session": session.snapshot().to_dict()}


@router.post("/api/chat/cancel")
async def cancel_turn(request: Request):
    session = request.app.state.session
    return {"cancelled": session.cancel()}


@router.get("/api/session", response_model=SessionOut)
async def get_session(request: Request):
    return request.app.state.session.snapshot().to_dict()


@router.delete("/api/messages")
async def clear_messages(request: Request):
    session = request.app.state.session
    try:
        session.clear()
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    logger.info("Conversation cleared")
    return {"cleared": True}


@router.get("/api/events")
async def session_events(request: Request):
    session = request.app.state.session
    queue = session.subscribe()

    async def event_generator():
        try:
            yield sse_init(session.snapshot().to_dict())
            while True:
                event = await queue.get()
                yield sse_from_session_event(event)
        finally:
            session.unsubscribe(queue)

    return EventSourceResponse(event_generator(), ping=15)


# --- Settings ---


def _settings_out(request: Request) -> dict:
    client = request.app.state.completion_client
    return {
        "chat_api_key_set": bool(client.credentials.chat_api_key),
        "image_api_key_set": request.app.state.synthesizer.has_primary_provider,
    }


@router.get("/api/settings", response_model=SettingsOut)
async def get_settings(request: Request):
    return _settings_out(request)


@router.put("/api/settings", response_model=SettingsOut)
async def update_settings(req: SettingsIn, request: Request):
    client = request.app.state.completion_client
    # Omitted fields keep their current value; an empty string clears a key.
    changes = {k: (v or None) for k, v in req.model_dump(exclude_unset=True).items()}
    credentials = replace(client.credentials, **changes)
    client.credentials = credentials
    await request.app.state.synthesizer.set_credentials(credentials)
    logger.info("Credentials updated: %r", credentials)
    return _settings_out(request)


# --- Gallery ---


@router.get("/api/artifacts", response_model=ArtifactListOut)
async def list_artifacts(request: Request, q: str = "", sort: str | None = None):
    index = request.app.state.index
    if sort is not None:
        try:
            index.sort_key = sort
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
    results = index.search(q)
    return {
        "artifacts": [_artifact_out(index, a) for a in results],
        "total_count": len(results),
        "sort": index.sort_key,
    }


@router.get("/api/artifacts/window", response_model=GalleryPageOut)
async def artifact_window(
    request: Request,
    viewport_height: float,
    scroll_offset: float = 0,
    item_height: float = DEFAULT_ITEM_HEIGHT,
    overscan: int = DEFAULT_OVERSCAN,
    q: str = "",
):
    index = request.app.state.index
    try:
        page = index.page(q, scroll_offset, viewport_height, item_height, overscan)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {
        "artifacts": [_artifact_out(index, a) for a in page.artifacts],
        "start": page.start,
        "total_count": page.total_count,
    }


@router.get("/api/artifacts/{artifact_id}", response_model=ArtifactOut)
async def get_artifact(artifact_id: str, request: Request):
    index = request.app.state.index
    artifact = index.get(artifact_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return _artifact_out(index, artifact)


@router.get("/api/tags", response_model=list[TagCountOut])
async def list_tags(request: Request):
    index = request.app.state.index
    return [{"tag": tag, "count": count} for tag, count in index.tag_counts()]


@router.get("/api/searches/recent")
async def recent_searches(request: Request):
    return request.app.state.index.recent_searches


@router.delete("/api/searches/recent")
async def clear_recent_searches(request: Request):
    request.app.state.index.clear_recent_searches()
    return {"cleared": True}


@router.get("/api/searches/suggestions", response_model=list[SuggestionOut])
async def search_suggestions(request: Request, q: str = ""):
    return [asdict(s) for s in request.app.state.index.suggestions(q)]


@router.get("/api/analytics")
async def gallery_analytics(request: Request, range: str = "week"):
    index = request.app.state.index
    try:
        summary = summarize(index.view(), now_utc(), range)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return asdict(summary)
