"""
Layout classification — pick the best-fit UI layout for a strand.

The decision is an ordered list of (name, predicate, layout) rules over
the *set* of field names; the first matching rule wins. Field order is
never consulted, and ties resolve by rule order (gallery beats board).

A field name matches a token set when any of its words does:
``cover_image``, ``coverImage`` and ``image`` all match ``image``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from helix.core.models.descriptors import Layout
from helix.core.services.naming import split_words

IMAGE_TOKENS = frozenset({"image", "photo", "avatar", "thumbnail", "cover", "picture", "img"})
STATUS_TOKENS = frozenset({"status", "stage", "phase", "state", "progress"})
TITLE_TOKENS = frozenset({"title", "headline", "heading", "subject", "topic"})
BODY_TOKENS = frozenset({"body", "content", "description", "message", "text", "note"})


@dataclass(frozen=True)
class LayoutRule:
    name: str
    predicate: Callable[[frozenset[str]], bool]
    layout: Layout


def matches(field_name: str, tokens: frozenset[str]) -> bool:
    """Whether any word of ``field_name`` is in ``tokens``."""
    return any(word in tokens for word in split_words(field_name))


def matching_fields(names: Iterable[str], tokens: frozenset[str]) -> set[str]:
    return {n for n in names if matches(n, tokens)}


def _has_image(names: frozenset[str]) -> bool:
    return bool(matching_fields(names, IMAGE_TOKENS))


def _has_status(names: frozenset[str]) -> bool:
    return bool(matching_fields(names, STATUS_TOKENS))


def _has_title_and_body(names: frozenset[str]) -> bool:
    """A title-ish field plus a *different* body-ish field."""
    titles = matching_fields(names, TITLE_TOKENS)
    bodies = matching_fields(names, BODY_TOKENS)
    return any(b != t for t in titles for b in bodies)


LAYOUT_RULES: tuple[LayoutRule, ...] = (
    LayoutRule("image-field", _has_image, Layout.GALLERY),
    LayoutRule("status-field", _has_status, Layout.BOARD),
    LayoutRule("title-and-body", _has_title_and_body, Layout.FEED),
)

DEFAULT_LAYOUT = Layout.GRID


def classify_layout(
    field_names: Iterable[str],
    rules: tuple[LayoutRule, ...] = LAYOUT_RULES,
) -> Layout:
    """Classify a field-name set into a layout, first matching rule wins."""
    names = frozenset(field_names)
    for rule in rules:
        if rule.predicate(names):
            return rule.layout
    return DEFAULT_LAYOUT


def layout_slots(layout: Layout, ordered_names: list[str]) -> dict[str, str]:
    """Map layout roles to concrete fields.

    Roles are filled from the first matching field in declaration order,
    so the rendering is stable for a given blueprint.
    """
    def first(tokens: frozenset[str], exclude: str | None = None) -> str | None:
        for name in ordered_names:
            if name != exclude and matches(name, tokens):
                return name
        return None

    slots: dict[str, str] = {}
    if layout == Layout.GALLERY:
        slots["image"] = first(IMAGE_TOKENS) or ""
        caption = first(TITLE_TOKENS) or next(
            (n for n in ordered_names if n != slots["image"]), None
        )
        if caption:
            slots["caption"] = caption
    elif layout == Layout.BOARD:
        slots["group_by"] = first(STATUS_TOKENS) or ""
        title = first(TITLE_TOKENS)
        if title:
            slots["title"] = title
    elif layout == Layout.FEED:
        # Pick a title/body pair made of two distinct fields
        for title in ordered_names:
            if not matches(title, TITLE_TOKENS):
                continue
            body = first(BODY_TOKENS, exclude=title)
            if body:
                slots["title"] = title
                slots["body"] = body
                break
    return slots
