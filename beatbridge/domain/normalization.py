from __future__ import annotations

import re
import unicodedata
from difflib import SequenceMatcher
from typing import Iterable


_FEAT_PATTERN = re.compile(r"\b(feat\.?|ft\.?|featuring)(?=\s|$)", re.IGNORECASE)
_PARENS_CHARS_PATTERN = re.compile(r"[\(\)\[\]\{\}]")
_PARENS_CONTENT_PATTERN = re.compile(r"\s*[\(\[\{][^\(\)\[\]\{\}]*[\)\]\}]\s*")
# Keep all unicode word characters and spaces; strip punctuation/symbols. Then remove underscores separately.
_NON_WORD_SPACE_PATTERN = re.compile(r"[^\w\s]", re.UNICODE)
_MULTISPACE_PATTERN = re.compile(r"\s+")


def _strip_diacritics(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(c for c in normalized if not unicodedata.combining(c))


def normalize_string(value: str) -> str:
    value = value or ""
    value = _strip_diacritics(value)
    value = value.lower()
    value = value.replace("&", " and ")
    # Remove parenthetical/bracketed content entirely
    while True:
        new_value = _PARENS_CONTENT_PATTERN.sub(" ", value)
        if new_value == value:
            break
        value = new_value
    value = _FEAT_PATTERN.sub(" ", value)
    # Remove any leftover bracket characters
    value = _PARENS_CHARS_PATTERN.sub(" ", value)
    value = _NON_WORD_SPACE_PATTERN.sub(" ", value)
    # Replace underscores that \w preserved
    value = value.replace("_", " ")
    value = _MULTISPACE_PATTERN.sub(" ", value).strip()
    return value


def _fold(value: str) -> str:
    """Casefold and collapse whitespace, keeping punctuation."""
    return _MULTISPACE_PATTERN.sub(" ", (value or "").casefold()).strip()


def normalize_artist_names(artists: Iterable[str]) -> set[str]:
    """Normalize artist names into a set, dropping a leading "the".

    Names made only of punctuation ("!!!") keep their casefolded raw form.
    """
    names: set[str] = set()
    for artist in artists or []:
        name = normalize_string(artist) or _fold(artist)
        if name.startswith("the "):
            name = name[4:]
        if name:
            names.add(name)
    return names


def title_similarity(left: str, right: str) -> float:
    """Similarity ratio in [0, 1] between two titles after normalization."""
    left_n = normalize_string(left)
    right_n = normalize_string(right)
    if not left_n or not right_n:
        # Punctuation-only or bracket-only titles, e.g. "!!!" or "(Intro)"
        left_n, right_n = _fold(left), _fold(right)
        if not left_n or not right_n:
            return 0.0
    if left_n == right_n:
        return 1.0
    return SequenceMatcher(None, left_n, right_n).ratio()


def artist_overlap(source: Iterable[str], candidate: Iterable[str]) -> float:
    """Overlap coefficient of normalized artist sets: |S & C| / min(|S|, |C|)."""
    source_names = normalize_artist_names(source)
    candidate_names = normalize_artist_names(candidate)
    if not source_names or not candidate_names:
        return 0.0
    shared = source_names & candidate_names
    return len(shared) / min(len(source_names), len(candidate_names))
