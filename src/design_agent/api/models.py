from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    supersede: bool = False


class MessageOut(BaseModel):
    id: str
    role: str
    content: str
    timestamp: str
    artifact_ref: str | None = None


class ArtifactOut(BaseModel):
    id: str
    title: str
    description: str
    image_ref: str
    created_at: str
    tags: list[str] = []


class ErrorOut(BaseModel):
    kind: str
    message: str


class SessionOut(BaseModel):
    messages: list[MessageOut]
    pending: bool
    last_error: ErrorOut | None = None


class ChatResponse(BaseModel):
    outcome: str
    session: SessionOut


class ArtifactListOut(BaseModel):
    artifacts: list[ArtifactOut]
    total_count: int
    sort: str


class GalleryPageOut(BaseModel):
    artifacts: list[ArtifactOut]
    start: int
    total_count: int


class TagCountOut(BaseModel):
    tag: str
    count: int


class SuggestionOut(BaseModel):
    kind: str
    text: str
    count: int | None = None


class SettingsIn(BaseModel):
    chat_api_key: str | None = None
    image_api_key: str | None = None


class SettingsOut(BaseModel):
    chat_api_key_set: bool
    image_api_key_set: bool
