from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

TRUNCATION_MARKER = "…"

_SENTENCE_BREAK = ".!?:-*•"


@dataclass(frozen=True)
class Pronouns:
    subject: str = "she"
    object: str = "her"
    possessive: str = "her"
    possessive_pronoun: str = "hers"
    reflexive: str = "herself"

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "Pronouns":
        return cls(**{k: str(v) for k, v in (config or {}).items() if k in cls.__dataclass_fields__})


# Subject forms: lowercase "i" counts only as a standalone token followed by
# whitespace or an apostrophe, so "i.e." and the like survive.
_SUBJECT_FORMS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b[Ii] am\b"), "{subject} is"),
    (re.compile(r"\b[Ii]['’]m\b"), "{subject} is"),
    (re.compile(r"\b[Ii] was\b"), "{subject} was"),
    (re.compile(r"\b[Ii] have\b"), "{subject} has"),
    (re.compile(r"\b[Ii]['’]ve\b"), "{subject} has"),
    (re.compile(r"\b[Ii]['’]d\b"), "{subject} would"),
    (re.compile(r"\b[Ii]['’]ll\b"), "{subject} will"),
    (re.compile(r"\bI\b|\bi(?=\s|['’])"), "{subject}"),
)
_OTHER_FORMS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bmyself\b", re.IGNORECASE), "{reflexive}"),
    (re.compile(r"\bmine\b", re.IGNORECASE), "{possessive_pronoun}"),
    (re.compile(r"\bmy\b", re.IGNORECASE), "{possessive}"),
    (re.compile(r"\bme\b", re.IGNORECASE), "{object}"),
)


def _starts_sentence(text: str, pos: int) -> bool:
    before = text[:pos]
    stripped = before.rstrip()
    if not stripped or "\n" in before[len(stripped):]:
        return True
    return stripped[-1] in _SENTENCE_BREAK


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def enforce_third_person(text: str, pronouns: Pronouns | None = None) -> str:
    forms = pronouns or Pronouns()
    values = {
        "subject": forms.subject,
        "object": forms.object,
        "possessive": forms.possessive,
        "possessive_pronoun": forms.possessive_pronoun,
        "reflexive": forms.reflexive,
    }

    for pattern, template in _SUBJECT_FORMS:
        replacement = template.format(**values)

        def _subject(match: re.Match[str], replacement: str = replacement) -> str:
            if _starts_sentence(match.string, match.start()):
                return _capitalize(replacement)
            return replacement

        text = pattern.sub(_subject, text)

    for pattern, template in _OTHER_FORMS:
        replacement = template.format(**values)

        def _keep_case(match: re.Match[str], replacement: str = replacement) -> str:
            if match.group(0)[:1].isupper():
                return _capitalize(replacement)
            return replacement

        text = pattern.sub(_keep_case, text)
    return text


def enforce_word_limit(text: str, max_words: int) -> str:
    """Hard cap: at most `max_words` words, with the marker glued to the last one."""
    if max_words <= 0:
        return ""
    words = text.split()
    if len(words) <= max_words:
        return text.strip()
    return " ".join(words[:max_words]) + TRUNCATION_MARKER


def shorten_name(text: str, full_name: str | None, short_name: str | None) -> str:
    if not full_name or not short_name:
        return text
    return re.sub(re.escape(full_name), short_name, text, flags=re.IGNORECASE)


def finalize(
    text: str,
    max_words: int,
    *,
    pronouns: Pronouns | None = None,
    full_name: str | None = None,
    short_name: str | None = None,
) -> str:
    cleaned = shorten_name(text or "", full_name, short_name)
    cleaned = enforce_third_person(cleaned, pronouns)
    return enforce_word_limit(cleaned, max_words)
