from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from cvbot.ai.errors import UpstreamError
from cvbot.core.config import settings
from cvbot.core.config.pipeline import get_pipeline_value
from cvbot.core.rate_limit import rate_limit
from cvbot.core.security import check_api_key
from cvbot.schemas.chat import ChatRequest, ChatResponse, DebugChatResponse, ErrorResponse, UsedChunk
from cvbot.services.chat_service import ChatOutcome, ChatPipeline

router = APIRouter()

PREVIEW_MARKER = "…"

_UPSTREAM_ERRORS = {
    "rate_limited": (status.HTTP_429_TOO_MANY_REQUESTS, "quota_exceeded"),
    "timeout": (status.HTTP_504_GATEWAY_TIMEOUT, "upstream_timeout"),
}


def get_chat_pipeline(request: Request) -> ChatPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat pipeline is not ready.",
        )
    return pipeline


def _preview(text: str) -> str:
    limit = int(get_pipeline_value("retrieval.preview_chars", 160))
    if len(text) <= limit:
        return text
    return text[:limit] + PREVIEW_MARKER


def _debug_response(outcome: ChatOutcome) -> DebugChatResponse:
    return DebugChatResponse(
        answer=outcome.answer,
        tag=outcome.tag or "(auto)",
        stage=outcome.stage,
        style_variant=outcome.style.id if outcome.style else None,
        used_chunks=[
            UsedChunk(tag=s.chunk.tag, score=round(s.score, 3), preview=_preview(s.chunk.text))
            for s in outcome.used_chunks
        ],
    )


def upstream_error_response(exc: UpstreamError) -> JSONResponse:
    status_code, error = _UPSTREAM_ERRORS.get(
        exc.code, (status.HTTP_500_INTERNAL_SERVER_ERROR, "chat_failed")
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


@router.post("/chat")
@rate_limit()
async def chat(
    request: Request,
    payload: ChatRequest,
    debug: bool = Query(default=False),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    pipeline: ChatPipeline = Depends(get_chat_pipeline),
):
    check_api_key(x_api_key, request.headers.get("accept-language"))
    try:
        outcome = await pipeline.answer(payload.message, session_id=payload.session_id)
    except UpstreamError as exc:
        return upstream_error_response(exc)

    if debug and settings.debug_enabled:
        return _debug_response(outcome)
    return ChatResponse(answer=outcome.answer)
