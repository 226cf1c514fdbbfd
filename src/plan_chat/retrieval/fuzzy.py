"""Fuzzy matching of takeoff item text against question targets."""

from __future__ import annotations

import re

# Common construction term synonyms
TERM_SYNONYMS: dict[str, tuple[str, ...]] = {
    "roof": ("roof", "roofing", "shingle", "shingles", "asphalt", "tile", "membrane", "covering"),
    "window": ("window", "windows", "glazing", "fenestration"),
    "door": ("door", "doors", "entry", "entries"),
    "wall": ("wall", "walls", "partition", "partitions"),
    "floor": ("floor", "flooring", "slab", "concrete floor"),
    "foundation": ("foundation", "footing", "footings", "concrete foundation"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_string(text: str | None) -> str:
    if not text:
        return ""
    lowered = text.lower().replace("&", "and")
    return _NON_ALNUM.sub(" ", lowered).strip()


def strip_plural(word: str) -> str:
    if len(word) <= 3:
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("es") and len(word) > 4:
        return word[:-2]
    if word.endswith("s"):
        return word[:-1]
    return word


def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity_score(a: str, b: str) -> float:
    """1.0 for identical strings, 0.0 for completely different ones."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max_len


def expand_targets(targets: list[str]) -> list[str]:
    expanded: dict[str, None] = {}
    for target in targets:
        lowered = target.lower()
        expanded[lowered] = None
        for key, synonyms in TERM_SYNONYMS.items():
            if key in lowered or any(s in lowered for s in synonyms):
                expanded[key] = None
                for s in synonyms:
                    expanded[s] = None
    return list(expanded)


def _significant_words(text: str) -> list[str]:
    return [w for w in text.split() if len(w) > 2]


def score_match(item_text: str | None, targets: list[str], threshold: float = 0.6) -> float:
    """Best match score in [0, 1] of any (synonym-expanded) target against the item text.

    Whole-target substring and exact word matches score 1.0, word containment 0.8,
    otherwise the Levenshtein similarity of the closest word pair if it clears
    ``threshold``.
    """
    if not item_text or not targets:
        return 0.0

    normalized_text = normalize_string(item_text)
    text_words = [strip_plural(w) for w in _significant_words(normalized_text)]
    best = 0.0

    for target in expand_targets(targets):
        normalized_target = normalize_string(target)
        if not normalized_target:
            continue
        if normalized_target in normalized_text:
            return 1.0

        for target_word in _significant_words(normalized_target):
            stripped_target = strip_plural(target_word)
            for text_word in text_words:
                if text_word == stripped_target:
                    return 1.0
                if text_word in stripped_target or stripped_target in text_word:
                    best = max(best, 0.8)
                    continue
                sim = similarity_score(text_word, stripped_target)
                if sim >= threshold:
                    best = max(best, sim)

    return best
