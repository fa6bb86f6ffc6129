from __future__ import annotations

import os
from typing import Optional, Sequence

import openai
from openai import AsyncOpenAI

from cvbot.ai.errors import UpstreamError
from cvbot.ai.types import ChatMessage


def _async_client(
    api_key: Optional[str],
    base_url: Optional[str],
    timeout_s: float,
    max_retries: int,
) -> AsyncOpenAI:
    key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
    if not key:
        raise RuntimeError("OPENAI_API_KEY is missing")

    # The SDK retries connection errors, 408/409/429 and 5xx with exponential
    # backoff; other 4xx responses surface immediately.
    return AsyncOpenAI(
        api_key=key,
        base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", str(max_retries))),
    )


def to_upstream_error(exc: Exception, *, service: str) -> UpstreamError:
    if isinstance(exc, openai.RateLimitError):
        return UpstreamError(str(exc), code="rate_limited", service=service, status=429)
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamError(str(exc), code="timeout", service=service)
    if isinstance(exc, openai.APIStatusError):
        return UpstreamError(str(exc), code="failed", service=service, status=exc.status_code)
    return UpstreamError(str(exc), code="failed", service=service)


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
    ):
        self._model = model
        self._client = _async_client(api_key, base_url, timeout_s, max_retries)

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=payload,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as exc:
            raise to_upstream_error(exc, service="generation") from exc

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


class OpenAIEmbedder:
    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
    ):
        self._model = model
        self._client = _async_client(api_key, base_url, timeout_s, max_retries)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_many([text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(model=self._model, input=list(texts))
        except openai.OpenAIError as exc:
            raise to_upstream_error(exc, service="embedding") from exc
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]
