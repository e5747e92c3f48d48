"""Pure progression queries over resolved katas and the progress pointer.

Progression is strictly sequential: every kata whose ordinal is lower than the
pointer's kata counts as completed. A pointer naming no kata (absent or stale)
means nothing is completed yet, unless the pack is marked finished.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import KataState, ResolvedKata


def find_current(katas: Sequence[ResolvedKata], pointer: str | None) -> ResolvedKata | None:
    """Return the kata named by the pointer, or None for an absent or stale pointer."""
    if pointer is None:
        return None
    for kata in katas:
        if kata.id == pointer:
            return kata
    return None


def find_next(katas: Sequence[ResolvedKata], pointer: str | None, finished: bool = False) -> ResolvedKata | None:
    """Return the first kata after the pointer by ordinal, or None when the pack is done."""
    if finished:
        return None
    ordered = sorted(katas, key=lambda item: item.ordinal)
    current = find_current(ordered, pointer)
    if current is None:
        return ordered[0] if ordered else None
    for kata in ordered:
        if kata.ordinal > current.ordinal:
            return kata
    return None


def find_by_id_or_name(katas: Sequence[ResolvedKata], query: str) -> ResolvedKata | None:
    """Match an exact id first, then a case-insensitive title; first catalog match wins."""
    for kata in katas:
        if kata.id == query:
            return kata
    wanted = query.casefold()
    for kata in sorted(katas, key=lambda item: item.ordinal):
        if kata.title.casefold() == wanted:
            return kata
    return None


def completed_count(katas: Sequence[ResolvedKata], pointer: str | None, finished: bool = False) -> int:
    """Count katas strictly before the pointer's ordinal."""
    if finished:
        return len(katas)
    current = find_current(katas, pointer)
    if current is None:
        return 0
    return len([kata for kata in katas if kata.ordinal < current.ordinal])


def kata_state(ordinal: int, current_ordinal: int | None, finished: bool = False) -> KataState:
    """Classify a catalog position against the pointer's position."""
    if finished:
        return KataState.COMPLETED
    if current_ordinal is None or ordinal > current_ordinal:
        return KataState.UPCOMING
    if ordinal == current_ordinal:
        return KataState.CURRENT
    return KataState.COMPLETED
