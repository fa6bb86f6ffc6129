from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class StyleDirective:
    id: str
    instructions: str


class VariantCounter:
    """Per-question occurrence counts, least recently asked keys evicted first."""

    def __init__(self, max_keys: int = 5000):
        if max_keys <= 0:
            raise ValueError("max_keys must be greater than 0")
        self._max_keys = max_keys
        self._counts: OrderedDict[str, int] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._counts)

    def increment(self, key: str) -> int:
        with self._lock:
            count = self._counts.pop(key, 0) + 1
            self._counts[key] = count
            while len(self._counts) > self._max_keys:
                self._counts.popitem(last=False)
            return count


def _directives(items: Sequence[Mapping[str, Any]] | None) -> tuple[StyleDirective, ...]:
    return tuple(
        StyleDirective(id=str(item["id"]), instructions=str(item["instructions"]))
        for item in items or []
    )


class StyleSelector:
    """Round-robin over style directives keyed by the normalized question.

    Asking the same question P times (P = pool size) walks the whole pool
    once; call P + 1 returns the first directive again.
    """

    def __init__(
        self,
        default_pool: Sequence[StyleDirective],
        *,
        entity_pool: Sequence[StyleDirective] = (),
        counter: VariantCounter | None = None,
    ):
        if not default_pool:
            raise ValueError("default style pool must not be empty")
        self._default_pool = tuple(default_pool)
        self._entity_pool = tuple(entity_pool)
        self._counter = counter or VariantCounter()

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], counter: VariantCounter | None = None
    ) -> "StyleSelector":
        return cls(
            _directives(config.get("default")),
            entity_pool=_directives(config.get("entity")),
            counter=counter,
        )

    def pool(self, tag_is_entity: bool = False) -> tuple[StyleDirective, ...]:
        if tag_is_entity and self._entity_pool:
            return self._entity_pool
        return self._default_pool

    def select(self, question_key: str, tag_is_entity: bool = False) -> StyleDirective:
        pool = self.pool(tag_is_entity)
        n = self._counter.increment(question_key)
        return pool[(n - 1) % len(pool)]
