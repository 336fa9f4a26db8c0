"""Fuzzy name matching for advisory suggestions.

Suggestions never change behavior; they only decorate error messages and
audit issues with a "did you mean" hint.
"""

from __future__ import annotations

import math
import posixpath
import re
from collections.abc import Iterable

_WORD_SPLIT = re.compile(r"[\s\-_]+")

# Similar-name scoring
_MIN_SUBSTANTIAL_LEN = 4
_MIN_WORD_LEN = 2
_EDIT_RATIO = 0.2
_MIN_SCORE = 10
MAX_SIMILAR = 5


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def suggest_option(value: str, options: Iterable[str]) -> str | None:
    """Suggest the intended option for a mistyped select value.

    Tries, in order: case-insensitive equality, prefix, substring, then the
    closest option within 40% of the longer string's length.
    """
    candidates = list(options)
    if not candidates:
        return None
    lowered = value.lower()

    for option in candidates:
        if option.lower() == lowered:
            return option
    if lowered:
        for option in candidates:
            if option.lower().startswith(lowered):
                return option
        for option in candidates:
            opt = option.lower()
            if lowered in opt or opt in lowered:
                return option

    best: str | None = None
    best_distance = math.inf
    for option in candidates:
        distance = levenshtein(lowered, option.lower())
        limit = math.ceil(max(len(value), len(option)) * 0.4)
        if distance < best_distance and distance <= limit:
            best, best_distance = option, distance
    return best


def suggest_name(name: str, known: Iterable[str]) -> str | None:
    """Suggest a field or type name within a small edit distance."""
    candidates = list(known)
    lowered = name.lower()
    for option in candidates:
        if option.lower() == lowered:
            return option

    best: str | None = None
    best_distance = math.inf
    for option in candidates:
        distance = levenshtein(lowered, option.lower())
        limit = min(2, math.ceil(len(option) * 0.4))
        if distance < best_distance and distance <= limit:
            best, best_distance = option, distance
    return best


def close_matches(name: str, known: Iterable[str], *, limit: int = 3, max_distance: int = 3) -> list[str]:
    """Return up to *limit* names within *max_distance* edits, closest first."""
    lowered = name.lower()
    scored = sorted((levenshtein(lowered, k.lower()), k) for k in known)
    return [k for distance, k in scored if distance <= max_distance][:limit]


def _words(text: str) -> list[str]:
    return [w for w in _WORD_SPLIT.split(text) if len(w) >= _MIN_WORD_LEN]


def _similarity(target: str, candidate: str) -> int:
    base = posixpath.basename(candidate).lower()
    score = 0

    substantial = len(target) >= _MIN_SUBSTANTIAL_LEN and len(base) >= _MIN_SUBSTANTIAL_LEN
    if substantial and (base.startswith(target) or target.startswith(base)):
        score += 50
    if substantial and (target in base or base in target):
        score += 30

    base_words = _words(base)
    for word in _words(target):
        if any(
            fw == word
            or (
                len(word) >= _MIN_SUBSTANTIAL_LEN
                and len(fw) >= _MIN_SUBSTANTIAL_LEN
                and (fw in word or word in fw)
            )
            for fw in base_words
        ):
            score += 10

    if len(target) < 20 and len(base) < 20:
        distance = levenshtein(target, base)
        allowed = max(1, math.floor(min(len(target), len(base)) * _EDIT_RATIO))
        if distance <= allowed:
            score += (allowed + 1 - distance) * 15
    return score


def find_similar_names(target: str, known: Iterable[str], *, limit: int = MAX_SIMILAR) -> list[str]:
    """Rank known document names/paths by similarity to a missing *target*.

    Combines prefix, substring, token-overlap and bounded edit-distance
    scoring; ties are broken alphabetically so output is stable.
    """
    lowered = target.strip().lower()
    if not lowered:
        return []

    scored: list[tuple[int, str]] = []
    for candidate in known:
        if candidate.lower() == lowered:
            continue
        score = _similarity(lowered, candidate)
        if score >= _MIN_SCORE:
            scored.append((score, candidate))
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [name for _, name in scored[:limit]]
