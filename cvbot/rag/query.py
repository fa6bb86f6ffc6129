from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from cvbot.rag.lang import Lang


@dataclass(frozen=True)
class Query:
    raw_text: str
    normalized_text: str
    language: Lang
    tag: str | None = None


class Matcher(Protocol):
    """One short-circuit stage: an answer ends the pipeline, None hands over."""

    name: str

    def __call__(self, query: Query) -> str | None: ...
