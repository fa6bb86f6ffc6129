from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, Sequence, Sized, TypeVar

from cvbot.ai.errors import UpstreamError
from cvbot.ai.factory import get_ai_client, get_embedder
from cvbot.ai.types import AIClient, Embedder
from cvbot.core.config import settings
from cvbot.core.config.pipeline import get_boundaries_config, get_pipeline_config
from cvbot.rag.boundaries import BoundaryMatcher
from cvbot.rag.finalize import Pronouns, finalize
from cvbot.rag.interview import load_interview_bank
from cvbot.rag.knowledge import load_chunks
from cvbot.rag.lang import (
    BASELINE_LANG,
    Lang,
    LanguageClassifier,
    LexicalLanguageClassifier,
    LLMLanguageClassifier,
)
from cvbot.rag.prompt import build_chat_messages
from cvbot.rag.query import Matcher, Query
from cvbot.rag.retriever import KnowledgeBase, OutOfScopeError, ScoredChunk
from cvbot.rag.styles import StyleDirective, StyleSelector, VariantCounter
from cvbot.rag.tags import TagDetector
from cvbot.rag.text import normalize_text
from cvbot.services.history import SessionHistoryStore

logger = logging.getLogger("cvbot.chat")

T = TypeVar("T")

STAGE_EMPTY = "empty"
STAGE_NO_CONTEXT = "no_context"
STAGE_OUT_OF_SCOPE = "out_of_scope"
STAGE_GENERATED = "generated"


def _short_hash(value: str | None) -> str:
    normalized = (value or "").strip()
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]


def _localized(messages: Mapping[str, Any], key: str, lang: Lang) -> str:
    value = messages.get(key)
    if isinstance(value, Mapping):
        return str(value.get(lang.value) or value.get(BASELINE_LANG.value) or "")
    return str(value or "")


@dataclass(frozen=True)
class ChatOutcome:
    answer: str
    stage: str
    language: Lang | None = None
    tag: str | None = None
    style: StyleDirective | None = None
    used_chunks: tuple[ScoredChunk, ...] = ()


class ChatPipeline:
    """Routes one question through the matcher chain, scoped retrieval and generation.

    `matchers` run in order on every query; the first one returning text ends
    the request. Only questions that pass all of them reach the embedder and
    the chat model, which are the only awaited I/O.
    """

    def __init__(
        self,
        *,
        config: Mapping[str, Any],
        classifier: LanguageClassifier,
        matchers: Sequence[Matcher],
        tag_detector: TagDetector,
        knowledge_base: KnowledgeBase,
        embedder: Embedder,
        ai_client: AIClient,
        styles: StyleSelector,
        history: SessionHistoryStore,
        upstream_timeout_s: float = 30.0,
    ):
        self._classifier = classifier
        self._matchers = tuple(matchers)
        self._tags = tag_detector
        self._kb = knowledge_base
        self._embedder = embedder
        self._ai = ai_client
        self._styles = styles
        self._history = history
        self._timeout_s = upstream_timeout_s

        self._persona: Mapping[str, Any] = config.get("persona") or {}
        self._scope_rules: Mapping[str, Any] = config.get("scope_rules") or {}
        self._messages: Mapping[str, Any] = config.get("messages") or {}
        retrieval = config.get("retrieval") or {}
        generation = config.get("generation") or {}
        self._top_k = int(retrieval.get("top_k", 3))
        self._max_tokens = int(generation.get("max_tokens", 260))
        temperature = generation.get("temperature") or {}
        self._temperature_entity = float(temperature.get("entity", 0.5))
        self._temperature_default = float(temperature.get("default", 0.6))
        max_words = generation.get("max_words") or {}
        self._max_words_section = int(max_words.get("section", 140))
        self._max_words_default = int(max_words.get("default", 90))
        section_style = (config.get("styles") or {}).get("section") or {}
        self._section_style = StyleDirective(
            id=str(section_style.get("id", "sectionList")),
            instructions=str(section_style.get("instructions", "")),
        )
        self._pronouns = Pronouns.from_config(self._persona.get("pronouns"))

    @property
    def history(self) -> SessionHistoryStore:
        return self._history

    def stats(self) -> dict[str, int]:
        counts = {"chunks": len(self._kb)}
        for matcher in self._matchers:
            if isinstance(matcher, Sized):
                counts[matcher.name] = len(matcher)
        return counts

    async def build_query(self, message: str) -> Query:
        language = await self._classifier.classify(message)
        return Query(
            raw_text=message,
            normalized_text=normalize_text(message),
            language=language,
            tag=self._tags.detect(message.lower()),
        )

    async def answer(self, message: str | None, *, session_id: str | None = None) -> ChatOutcome:
        started_at = time.perf_counter()
        user_message = (message or "").strip()
        if not user_message:
            return ChatOutcome(answer=_localized(self._messages, "empty_input", BASELINE_LANG), stage=STAGE_EMPTY)

        try:
            query = await self.build_query(user_message)
            for matcher in self._matchers:
                reply = matcher(query)
                if reply is not None:
                    self._log("chat_short_circuit", query, session_id, started_at, stage=matcher.name)
                    return ChatOutcome(
                        answer=reply, stage=matcher.name, language=query.language, tag=query.tag
                    )
            return await self._retrieve_and_generate(query, session_id, started_at)
        except Exception as ex:
            logger.exception(
                json.dumps(
                    {
                        "event": "chat_error",
                        "error": str(ex),
                        "error_code": getattr(ex, "code", None),
                        "duration_ms": int((time.perf_counter() - started_at) * 1000),
                    }
                )
            )
            raise

    async def _retrieve_and_generate(
        self, query: Query, session_id: str | None, started_at: float
    ) -> ChatOutcome:
        lang = query.language
        if not len(self._kb):
            self._log("chat_short_circuit", query, session_id, started_at, stage=STAGE_NO_CONTEXT)
            return ChatOutcome(
                answer=_localized(self._messages, "no_context", lang),
                stage=STAGE_NO_CONTEXT,
                language=lang,
                tag=query.tag,
            )

        if query.tag is not None and self._kb.count(query.tag) == 0:
            return self._out_of_scope(query, session_id, started_at)

        query_embedding = await self._await_upstream(self._embedder.embed(query.raw_text), "embedding")
        try:
            scored = self._kb.rank(query_embedding, tag=query.tag, k=self._top_k)
        except OutOfScopeError:
            return self._out_of_scope(query, session_id, started_at)
        except ValueError as exc:
            raise UpstreamError(str(exc), code="failed", service="embedding") from exc

        is_entity = self._tags.is_entity(query.tag)
        is_section = self._tags.is_section(query.tag)
        if is_section:
            style = self._section_style
        else:
            style = self._styles.select(query.normalized_text, is_entity)

        history = self._history.get(session_id) if session_id else []
        messages = build_chat_messages(
            query.raw_text,
            scored,
            lang,
            persona=self._persona,
            scope_rules=self._scope_rules,
            tag_kind=self._tags.kind_of(query.tag),
            style=style,
            history=history,
        )
        self._log(
            "chat_request",
            query,
            session_id,
            started_at,
            stage=STAGE_GENERATED,
            style=style.id,
            chunk_ids=[s.chunk.id for s in scored],
            max_score=max((s.score for s in scored), default=0.0),
        )

        raw = await self._await_upstream(
            self._ai.complete(
                messages,
                temperature=(
                    self._temperature_entity if is_entity else self._temperature_default
                ),
                max_tokens=self._max_tokens,
            ),
            "generation",
        )
        reply = finalize(
            raw.strip() or _localized(self._messages, "no_reply", lang),
            self._max_words_section if is_section else self._max_words_default,
            pronouns=self._pronouns,
            full_name=self._persona.get("full_name"),
            short_name=self._persona.get("name"),
        )
        if session_id:
            self._history.append(session_id, query.raw_text, reply)

        logger.info(
            json.dumps(
                {
                    "event": "chat_complete",
                    "duration_ms": int((time.perf_counter() - started_at) * 1000),
                    "answer_words": len(reply.split()),
                }
            )
        )
        return ChatOutcome(
            answer=reply,
            stage=STAGE_GENERATED,
            language=lang,
            tag=query.tag,
            style=style,
            used_chunks=tuple(scored),
        )

    def _out_of_scope(self, query: Query, session_id: str | None, started_at: float) -> ChatOutcome:
        self._log("chat_short_circuit", query, session_id, started_at, stage=STAGE_OUT_OF_SCOPE)
        return ChatOutcome(
            answer=_localized(self._messages, "out_of_scope", query.language),
            stage=STAGE_OUT_OF_SCOPE,
            language=query.language,
            tag=query.tag,
        )

    async def _await_upstream(self, call: Awaitable[T], service: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout_s)
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                f"{service} call timed out after {self._timeout_s:g}s",
                code="timeout",
                service=service,
            ) from exc

    def _log(
        self,
        event: str,
        query: Query,
        session_id: str | None,
        started_at: float,
        **fields: Any,
    ) -> None:
        logger.info(
            json.dumps(
                {
                    "event": event,
                    "lang": query.language.value,
                    "tag": query.tag,
                    "session_hash": _short_hash(session_id),
                    "message_len": len(query.raw_text),
                    "message_hash": _short_hash(query.raw_text),
                    "duration_ms": int((time.perf_counter() - started_at) * 1000),
                    **fields,
                }
            )
        )


def build_chat_pipeline(
    *,
    ai_client: AIClient | None = None,
    embedder: Embedder | None = None,
    rng: random.Random | None = None,
) -> ChatPipeline:
    config = get_pipeline_config()
    rng = rng or random.Random(settings.random_seed)

    tag_detector = TagDetector.from_config(config.get("tags") or {})
    knowledge_base = KnowledgeBase(
        load_chunks(settings.knowledge_base_path, allowed_tags=tag_detector.tags)
    )
    boundaries = BoundaryMatcher.from_config(get_boundaries_config(), rng=rng)
    interview_bank = load_interview_bank(settings.interview_bank_path, rng=rng)

    ai_client = ai_client or get_ai_client()
    embedder = embedder or get_embedder()
    classifier: LanguageClassifier
    if settings.language_classifier == "llm":
        classifier = LLMLanguageClassifier(ai_client, timeout_s=settings.upstream_timeout_s)
    else:
        classifier = LexicalLanguageClassifier()

    return ChatPipeline(
        config=config,
        classifier=classifier,
        matchers=[boundaries, interview_bank],
        tag_detector=tag_detector,
        knowledge_base=knowledge_base,
        embedder=embedder,
        ai_client=ai_client,
        styles=StyleSelector.from_config(
            config.get("styles") or {},
            counter=VariantCounter(settings.variant_counter_max_keys),
        ),
        history=SessionHistoryStore(
            max_entries=settings.history_max_entries,
            max_sessions=settings.history_max_sessions,
        ),
        upstream_timeout_s=settings.upstream_timeout_s,
    )
