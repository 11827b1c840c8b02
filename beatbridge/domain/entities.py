from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ProviderName(str, Enum):
    """Music services a playlist can live on."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"

    @classmethod
    def from_session_key(cls, key: str) -> "ProviderName":
        """Map a session provider key (``spotify``/``google``) to a provider."""
        normalized = (key or "").strip().lower()
        if normalized in ("google", "youtube", "ytmusic"):
            return cls.YOUTUBE
        if normalized == "spotify":
            return cls.SPOTIFY
        raise ValueError(f"Unknown provider: {key}")

    @property
    def display_name(self) -> str:
        return "Spotify" if self is ProviderName.SPOTIFY else "YouTube"


@dataclass(frozen=True)
class Track:
    """Domain entity representing a music track independent of providers."""

    title: str = ""
    artists: List[str] = None
    duration_ms: int = 0
    source_id: str = ""
    album: Optional[str] = None
    uri: Optional[str] = None

    def __post_init__(self):
        if self.artists is None:
            object.__setattr__(self, 'artists', [])

    @property
    def primary_artist(self) -> str:
        return self.artists[0] if self.artists else ""


@dataclass(frozen=True)
class Playlist:
    """Domain entity representing a playlist."""

    id: str
    name: str
    owner_provider: ProviderName
    track_count: int = 0


@dataclass(frozen=True)
class Candidate:
    """Search result on the destination provider considered as a match."""

    destination_id: str
    title: str = ""
    artists: List[str] = field(default_factory=list)
    duration_ms: int = 0
    score: float = 0.0
    # Position in the platform's own result ordering
    rank: Optional[int] = None


@dataclass(frozen=True)
class FailedTrack:
    """A source track that could not be transferred, with the reason why."""

    track: Track
    reason: str


@dataclass(frozen=True)
class TransferResult:
    """Summary of one playlist transfer."""

    total: int
    success: int
    failed: List[FailedTrack]
    created_playlist_id: str
    source_provider: Optional[ProviderName] = None
    destination_provider: Optional[ProviderName] = None
    playlist_name: str = ""
    duration_ms: int = 0

    @property
    def failed_count(self) -> int:
        return len(self.failed)
