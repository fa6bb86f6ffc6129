from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = ""
    session_id: str | None = Field(default=None, alias="sessionId", max_length=128)


class ChatResponse(BaseModel):
    answer: str


class UsedChunk(BaseModel):
    tag: str
    score: float
    preview: str


class DebugChatResponse(ChatResponse):
    tag: str
    stage: str
    style_variant: str | None = None
    used_chunks: list[UsedChunk] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: str
