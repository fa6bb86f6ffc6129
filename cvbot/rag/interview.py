from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError, model_validator

from cvbot.rag.lang import BASELINE_LANG, Lang
from cvbot.rag.query import Query
from cvbot.rag.text import normalize_text

logger = logging.getLogger(__name__)


class InterviewCluster(BaseModel):
    """A canned topic. Accepts `triggers: {en: [...]}` or flat `triggers_en` keys."""

    id: str | None = None
    triggers: dict[Lang, list[str]] = Field(default_factory=dict)
    answers: dict[Lang, list[str]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fold_language_suffixes(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        triggers = dict(data.get("triggers") or {})
        answers = dict(data.get("answers") or {})
        for lang in Lang:
            if f"triggers_{lang.value}" in data:
                triggers[lang.value] = data[f"triggers_{lang.value}"]
            if f"answers_{lang.value}" in data:
                answers[lang.value] = data[f"answers_{lang.value}"]
        return {"id": data.get("id"), "triggers": triggers, "answers": answers}

    @model_validator(mode="after")
    def _check_answerable(self) -> "InterviewCluster":
        for lang, items in self.triggers.items():
            if any(t.strip() for t in items) and not self.answers.get(lang):
                raise ValueError(
                    f"cluster '{self.id or '?'}' has {lang.value} triggers but no {lang.value} answers"
                )
        return self


@dataclass(frozen=True)
class _CompiledCluster:
    id: str
    triggers: Mapping[Lang, tuple[str, ...]]
    answers: Mapping[Lang, tuple[str, ...]]

    def hit(self, normalized_text: str, lang: Lang) -> bool:
        return any(t in normalized_text for t in self.triggers.get(lang, ()))

    def pool(self, lang: Lang) -> tuple[str, ...]:
        return self.answers.get(lang) or self.answers.get(BASELINE_LANG, ())


class InterviewBank:
    """Canned multilingual answers matched by trigger-phrase containment."""

    name = "canned"

    def __init__(self, clusters: Sequence[InterviewCluster], rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._clusters = tuple(
            _CompiledCluster(
                id=cluster.id or f"cluster-{index}",
                triggers={
                    lang: tuple(t for t in (normalize_text(raw) for raw in items) if t)
                    for lang, items in cluster.triggers.items()
                },
                answers={lang: tuple(items) for lang, items in cluster.answers.items() if items},
            )
            for index, cluster in enumerate(clusters)
        )

    def __len__(self) -> int:
        return len(self._clusters)

    def _draw(self, cluster: _CompiledCluster, lang: Lang) -> str | None:
        pool = cluster.pool(lang)
        if not pool:
            return None
        logger.debug("interview_cluster_hit id=%s lang=%s", cluster.id, lang.value)
        return self._rng.choice(pool)

    def match(self, normalized_text: str, lang: Lang) -> str | None:
        if not normalized_text:
            return None
        for cluster in self._clusters:
            if cluster.hit(normalized_text, lang):
                answer = self._draw(cluster, lang)
                if answer is not None:
                    return answer
        if lang == BASELINE_LANG:
            return None
        # Lower-confidence pass: baseline triggers, still answered in `lang` when possible.
        for cluster in self._clusters:
            if cluster.hit(normalized_text, BASELINE_LANG):
                answer = self._draw(cluster, lang)
                if answer is not None:
                    return answer
        return None

    def __call__(self, query: Query) -> str | None:
        return self.match(query.normalized_text, query.language)


def parse_interview_clusters(raw: Mapping[str, Any]) -> list[InterviewCluster]:
    clusters: list[InterviewCluster] = []
    for index, item in enumerate(raw.get("clusters") or []):
        try:
            clusters.append(InterviewCluster.model_validate(item))
        except ValidationError as exc:
            logger.error("Rejected interview cluster #%d: %s", index, exc.errors()[0].get("msg"))
    return clusters


def load_interview_bank(path: str | Path, rng: random.Random | None = None) -> InterviewBank:
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("No interview bank found at %s; canned answers disabled.", p)
        return InterviewBank([], rng=rng)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Interview bank at %s unreadable (%s); canned answers disabled.", p, exc)
        return InterviewBank([], rng=rng)

    clusters = parse_interview_clusters(raw if isinstance(raw, dict) else {})
    logger.info("Loaded interview bank (%d clusters)", len(clusters))
    return InterviewBank(clusters, rng=rng)
