from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field, model_validator

from cvbot.rag.lang import BASELINE_LANG, Lang
from cvbot.rag.query import Query

logger = logging.getLogger(__name__)


class BoundaryRuleConfig(BaseModel):
    id: str
    patterns: dict[Lang, list[str]] = Field(default_factory=dict)
    responses: dict[Lang, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_answerable(self) -> "BoundaryRuleConfig":
        if not any(self.patterns.values()):
            raise ValueError(f"boundary rule '{self.id}' has no patterns")
        if not self.responses.get(BASELINE_LANG):
            raise ValueError(f"boundary rule '{self.id}' needs {BASELINE_LANG.value} responses")
        return self


@dataclass(frozen=True)
class BoundaryRule:
    id: str
    patterns: Mapping[Lang, tuple[re.Pattern[str], ...]]
    responses: Mapping[Lang, tuple[str, ...]]

    @classmethod
    def from_config(cls, config: BoundaryRuleConfig) -> "BoundaryRule":
        return cls(
            id=config.id,
            patterns={
                lang: tuple(re.compile(p) for p in items)
                for lang, items in config.patterns.items()
            },
            responses={lang: tuple(items) for lang, items in config.responses.items() if items},
        )

    def matches(self, normalized_text: str) -> bool:
        # Every language runs: short questions are easily misclassified.
        return any(
            pattern.search(normalized_text)
            for patterns in self.patterns.values()
            for pattern in patterns
        )

    def pool(self, lang: Lang) -> tuple[str, ...]:
        return self.responses.get(lang) or self.responses[BASELINE_LANG]


class BoundaryMatcher:
    """Ordered personal-topic rules; the first match deflects and ends the pipeline."""

    name = "boundary"

    def __init__(self, rules: Sequence[BoundaryRule], rng: random.Random | None = None):
        self._rules = tuple(rules)
        self._rng = rng or random.Random()

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], rng: random.Random | None = None
    ) -> "BoundaryMatcher":
        rules = [
            BoundaryRule.from_config(BoundaryRuleConfig.model_validate(raw))
            for raw in config.get("rules") or []
        ]
        logger.info("Loaded %d boundary rules", len(rules))
        return cls(rules, rng=rng)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple[BoundaryRule, ...]:
        return self._rules

    def matching_rules(self, normalized_text: str) -> list[str]:
        return [rule.id for rule in self._rules if rule.matches(normalized_text)]

    def match(self, normalized_text: str, lang: Lang) -> str | None:
        for rule in self._rules:
            if rule.matches(normalized_text):
                return self._rng.choice(rule.pool(lang))
        return None

    def __call__(self, query: Query) -> str | None:
        return self.match(query.normalized_text, query.language)
