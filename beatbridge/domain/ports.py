from __future__ import annotations

from typing import List, Protocol

from .entities import Candidate, Playlist, ProviderName, Track


class MusicProvider(Protocol):
    """Port defining the minimal contract for music providers.

    Implementations must be pure with respect to the domain and should map provider-specific
    details into domain entities. Platform failures are raised as ``ProviderError``.
    """

    name: ProviderName

    @property
    def has_token(self) -> bool:
        """Whether an access token for the current user is available."""

    def list_playlists(self) -> List[Playlist]:
        """Return the playlists of the current user."""

    def list_tracks(self, playlist_id: str) -> List[Track]:
        """Return every track of the playlist in playlist order, all pages merged."""

    def create_playlist(self, name: str) -> Playlist:
        """Create an empty playlist with exactly the given name."""

    def search(self, query: str, limit: int = 10) -> List[Candidate]:
        """Return up to ``limit`` unscored candidates in the platform's result order."""

    def add_track(self, playlist_id: str, candidate_id: str) -> None:
        """Append one item to the playlist."""
