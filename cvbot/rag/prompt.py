from typing import Any, Dict, List, Mapping, Sequence

from cvbot.ai.types import ChatMessage
from cvbot.rag.lang import LANGUAGE_NAMES, Lang
from cvbot.rag.retriever import ScoredChunk
from cvbot.rag.styles import StyleDirective
from cvbot.rag.tags import TagKind


def build_context(chunks: Sequence[ScoredChunk]) -> list[str]:
    return [f"[{i} :: {s.chunk.tag}] {s.chunk.text}" for i, s in enumerate(chunks, start=1)]


def build_system_prompt(persona: Mapping[str, Any], lang: Lang) -> str:
    template = str(persona.get("system_prompt") or "")
    name = str(persona.get("name") or "")
    return template.format(
        name=name,
        full_name=str(persona.get("full_name") or name),
        language=LANGUAGE_NAMES[lang],
    ).strip()


def _scope_lines(
    scope_rules: Mapping[str, Any], tag_kind: TagKind | None, style: StyleDirective
) -> list[str]:
    if tag_kind is TagKind.ENTITY:
        return [str(scope_rules.get("entity", "")), f"Style variant: {style.instructions}"]
    if tag_kind is TagKind.SECTION:
        return [
            str(scope_rules.get("section", "")),
            str(scope_rules.get("section_hint", "")),
            style.instructions,
        ]
    return [str(scope_rules.get("open", "")), f"Style variant: {style.instructions}"]


def build_chat_messages(
    question: str,
    chunks: Sequence[ScoredChunk],
    lang: Lang,
    *,
    persona: Mapping[str, Any],
    scope_rules: Mapping[str, Any],
    tag_kind: TagKind | None,
    style: StyleDirective,
    history: List[Dict[str, str]] | None = None,
) -> list[ChatMessage]:
    context_blocks = build_context(chunks)
    history_lines: list[str] = []
    for msg in history or []:
        content = (msg.get("content") or "").strip()
        if not content:
            continue
        label = "User" if msg.get("role", "user") == "user" else "Assistant"
        history_lines.append(f"{label}: {content}")
    history_text = "\n".join(history_lines).strip()

    if context_blocks:
        context = "CONTEXT (top matches):\n" + "\n\n".join(context_blocks)
    else:
        context = "CONTEXT:\n(none)"
    instructions = "\n".join(line for line in _scope_lines(scope_rules, tag_kind, style) if line)

    parts = []
    if history_text:
        parts.append(f"HISTORY:\n{history_text}")
    parts.append(context)
    parts.append(f"QUESTION: {question}")
    parts.append(instructions)
    user = "\n\n".join(parts)

    return [
        ChatMessage(role="system", content=build_system_prompt(persona, lang)),
        ChatMessage(role="user", content=user),
    ]
