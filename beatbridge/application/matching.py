from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from beatbridge.domain.entities import Track, Candidate
from beatbridge.domain.normalization import artist_overlap, title_similarity

SearchFn = Callable[[str, int], List[Candidate]]

NOT_FOUND = "not_found"
MATCHED = "matched"


@dataclass
class MatchResult:
    """Result of track matching operation."""

    candidate: Optional[Candidate]
    reason: str

    @property
    def found(self) -> bool:
        return self.candidate is not None

    @property
    def score(self) -> float:
        return self.candidate.score if self.candidate else 0.0


class TrackMatcher:
    """Finds the best destination candidate for a source track.

    Each candidate gets a combined score from three signals:
    1. Title similarity over normalized titles (case, diacritics, punctuation and
       bracketed suffixes ignored)
    2. Artist overlap between normalized artist-name sets
    3. Duration closeness: full weight inside the duration window, zero outside

    The highest score wins, ties go to the earlier search result, and nothing is
    returned when the best score is below ``min_score``.
    """

    def __init__(self,
                 search_limit: int = 10,
                 min_score: float = 0.5,
                 duration_window_ms: int = 5000,
                 title_weight: float = 0.5,
                 artist_weight: float = 0.3,
                 duration_weight: float = 0.2):
        """Initialize the matcher with configurable thresholds.

        Args:
            search_limit: Maximum number of search results considered per track
            min_score: Minimum combined score for a candidate to be accepted
            duration_window_ms: Largest duration difference that still counts as close
            title_weight: Relative weight of title similarity
            artist_weight: Relative weight of artist overlap
            duration_weight: Relative weight of duration closeness
        """
        total_weight = title_weight + artist_weight + duration_weight
        if search_limit < 1:
            raise ValueError("search_limit must be positive")
        if total_weight <= 0:
            raise ValueError("At least one matching weight must be positive")
        self.search_limit = search_limit
        self.min_score = min_score
        self.duration_window_ms = duration_window_ms
        self.title_weight = title_weight / total_weight
        self.artist_weight = artist_weight / total_weight
        self.duration_weight = duration_weight / total_weight

    @classmethod
    def from_settings(cls, settings) -> "TrackMatcher":
        return cls(
            search_limit=settings.search_limit,
            min_score=settings.min_score,
            duration_window_ms=settings.duration_window_ms,
        )

    def build_query(self, track: Track) -> str:
        """Search query made of the title and the primary artist."""
        parts = [track.title.strip(), track.primary_artist.strip()]
        return " ".join(p for p in parts if p)

    def _duration_closeness(self, source_ms: int, target_ms: int) -> float:
        if source_ms <= 0 or target_ms <= 0:
            return 0.0
        return 1.0 if abs(source_ms - target_ms) <= self.duration_window_ms else 0.0

    def score(self, track: Track, candidate: Candidate) -> float:
        """Combined similarity score in [0, 1]."""
        combined = (
            self.title_weight * title_similarity(track.title, candidate.title)
            + self.artist_weight * artist_overlap(track.artists, candidate.artists)
            + self.duration_weight * self._duration_closeness(track.duration_ms, candidate.duration_ms)
        )
        return round(max(0.0, min(1.0, combined)), 6)

    def find_best_match(self, source_track: Track, candidates: List[Candidate]) -> MatchResult:
        """Find the best match for a source track among candidates.

        Args:
            source_track: Source track to find match for
            candidates: Candidates in the destination platform's result order

        Returns:
            MatchResult with the best scored candidate, or not_found
        """
        best: Optional[Candidate] = None
        for candidate in (candidates or [])[:self.search_limit]:
            scored = replace(candidate, score=self.score(source_track, candidate))
            # Strictly greater keeps the earlier result on ties
            if best is None or scored.score > best.score:
                best = scored

        if best is None or best.score < self.min_score:
            return MatchResult(candidate=None, reason=NOT_FOUND)
        return MatchResult(candidate=best, reason=MATCHED)

    def match(self, track: Track, search_fn: SearchFn) -> MatchResult:
        """Search the destination for ``track`` and pick the best candidate."""
        query = self.build_query(track)
        if not query:
            return MatchResult(candidate=None, reason=NOT_FOUND)
        candidates = search_fn(query, self.search_limit)
        return self.find_best_match(track, candidates)

