"""
Identifier helpers — case conversion, pluralization, slugs.
"""

from __future__ import annotations

import re

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z]|\d|\b|_)|[A-Z]?[a-z]+|[A-Z]+|\d+")
_SLUG_RE = re.compile(r"[^a-z0-9\s]")


def split_words(name: str) -> list[str]:
    """Split an identifier into lowercase words.

    Handles snake_case, kebab-case and camelCase/PascalCase:
    ``coverImage`` → ["cover", "image"], ``HTTPStatus`` → ["http", "status"].
    """
    words: list[str] = []
    for chunk in re.split(r"[\s_\-.]+", name):
        words.extend(w.lower() for w in _WORD_RE.findall(chunk))
    return words


def snake_case(name: str) -> str:
    return "_".join(split_words(name))


def kebab_case(name: str) -> str:
    return "-".join(split_words(name))


def pascal_case(name: str) -> str:
    return "".join(w.capitalize() for w in split_words(name))


def camel_case(name: str) -> str:
    pascal = pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def pluralize(word: str) -> str:
    """Naive English plural, good enough for table and route names."""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def table_name(strand_name: str) -> str:
    """``TaskItem`` → ``task_items``."""
    words = split_words(strand_name) or [strand_name.lower()]
    words[-1] = pluralize(words[-1])
    return "_".join(words)


def project_slug(prompt: str, sep: str = "-", max_words: int = 3, max_len: int = 30) -> str:
    """Derive a project directory name from a free-form prompt."""
    cleaned = _SLUG_RE.sub("", prompt.lower())
    slug = sep.join(cleaned.split()[:max_words])[:max_len].strip(sep)
    return slug or f"helix{sep}app"
