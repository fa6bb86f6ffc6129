from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Sequence


class TagKind(str, Enum):
    ENTITY = "entity"
    SECTION = "section"


@dataclass(frozen=True)
class TagRule:
    tag: str
    kind: TagKind
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, lowered_text: str) -> bool:
        return any(p.search(lowered_text) for p in self.patterns)


class TagDetector:
    """Maps a question to one employer (entity) or CV section tag.

    Rules are evaluated in order and entity rules always precede section
    rules, so "skills at cancom" scopes to the cancom engagement.
    """

    def __init__(self, rules: Sequence[TagRule]):
        entities = [r for r in rules if r.kind is TagKind.ENTITY]
        sections = [r for r in rules if r.kind is TagKind.SECTION]
        self._rules = tuple(entities + sections)
        self._kinds = {r.tag: r.kind for r in self._rules}

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TagDetector":
        rules: list[TagRule] = []
        for kind, key in ((TagKind.ENTITY, "entities"), (TagKind.SECTION, "sections")):
            for item in config.get(key) or []:
                rules.append(
                    TagRule(
                        tag=str(item["tag"]),
                        kind=kind,
                        patterns=tuple(re.compile(p) for p in item.get("patterns") or []),
                    )
                )
        return cls(rules)

    @property
    def tags(self) -> frozenset[str]:
        return frozenset(self._kinds)

    def kind_of(self, tag: str | None) -> TagKind | None:
        if tag is None:
            return None
        return self._kinds.get(tag)

    def is_entity(self, tag: str | None) -> bool:
        return self.kind_of(tag) is TagKind.ENTITY

    def is_section(self, tag: str | None) -> bool:
        return self.kind_of(tag) is TagKind.SECTION

    def detect(self, lowered_text: str) -> str | None:
        for rule in self._rules:
            if rule.matches(lowered_text):
                return rule.tag
        return None
