import os
from typing import List, Optional, Dict, Any
import logging

import spotipy
from spotipy.exceptions import SpotifyException
from requests.exceptions import RequestException
from urllib3.exceptions import ReadTimeoutError

from beatbridge.domain.entities import Track, Playlist, Candidate, ProviderName
from beatbridge.domain.errors import ProviderError, RateLimited

logger = logging.getLogger(__name__)

PLAYLIST_PAGE_SIZE = 50
TRACK_PAGE_SIZE = 100
MAX_SEARCH_LIMIT = 50

API_ERRORS = (SpotifyException, RequestException, ReadTimeoutError)


def _to_provider_error(error: Exception, operation: str) -> ProviderError:
    """Translate spotipy/transport errors into domain errors."""
    if isinstance(error, SpotifyException):
        status = error.http_status
        if status == 429:
            headers = error.headers or {}
            try:
                retry_after = int(headers.get('Retry-After', 1))
            except (TypeError, ValueError):
                retry_after = 1
            return RateLimited(retry_after_ms=retry_after * 1000,
                               message=f"Spotify rate limit hit during {operation}")
        message = error.msg or f"HTTP {status}"
        # spotipy prefixes messages with the request URL
        if ':\n ' in message:
            message = message.split(':\n ', 1)[1].strip()
        return ProviderError(f"Spotify {operation} failed: {message}", status=status, detail=message)
    if isinstance(error, ReadTimeoutError):
        logger.warning(f"Read timeout during Spotify {operation}")
        return ProviderError(f"Spotify {operation} failed: timeout", detail="timeout")
    if isinstance(error, RequestException):
        return ProviderError(f"Spotify {operation} failed: network error", detail="network error")
    return ProviderError(f"Spotify {operation} failed: {error}", detail=str(error))


class SpotifyProvider:
    """Spotify music provider implementation."""

    name = ProviderName.SPOTIFY

    def __init__(self,
                 access_token: Optional[str],
                 client: Optional[spotipy.Spotify] = None,
                 market: Optional[str] = None,
                 requests_timeout: int = 15):
        """Initialize Spotify provider.

        Args:
            access_token: Spotify access token of the current user
            client: Prebuilt spotipy client (tests inject a mock)
            market: Spotify market used for search, e.g. "US"
            requests_timeout: Transport timeout in seconds
        """
        self.access_token = access_token
        self._market = market or os.getenv('BEATBRIDGE_SPOTIFY_MARKET') or None
        if client is not None:
            self._client = client
        elif access_token:
            self._client = spotipy.Spotify(auth=access_token, requests_timeout=requests_timeout, retries=0)
        else:
            self._client = None
        self._user_id: Optional[str] = None

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    def _require_client(self) -> spotipy.Spotify:
        if self._client is None:
            raise ProviderError("Spotify access token is missing", status=401)
        return self._client

    def _current_user_id(self) -> str:
        if self._user_id is None:
            try:
                user = self._require_client().current_user()
            except API_ERRORS as e:
                raise _to_provider_error(e, "profile lookup")
            if not user or not user.get('id'):
                raise ProviderError("Spotify profile lookup failed: no user id returned",
                                    detail="no user id returned")
            self._user_id = user['id']
        return self._user_id

    def _spotify_track_to_domain(self, spotify_track: Dict[str, Any]) -> Optional[Track]:
        """Convert Spotify track to domain Track entity.

        Local files and removed tracks come back without an id and are skipped.
        """
        track_id = spotify_track.get('id')
        if not track_id:
            return None

        artists = spotify_track.get('artists') or []
        artist_names = [artist.get('name', '') for artist in artists if artist.get('name')]
        album = spotify_track.get('album') or {}

        return Track(
            title=spotify_track.get('name', '') or '',
            artists=artist_names,
            duration_ms=int(spotify_track.get('duration_ms') or 0),
            source_id=track_id,
            album=album.get('name') or None,
            uri=spotify_track.get('uri') or f"spotify:track:{track_id}",
        )

    def _spotify_track_to_candidate(self, spotify_track: Dict[str, Any], rank: int) -> Optional[Candidate]:
        track_id = spotify_track.get('id')
        if not track_id:
            return None
        artists = spotify_track.get('artists') or []
        return Candidate(
            destination_id=spotify_track.get('uri') or f"spotify:track:{track_id}",
            title=spotify_track.get('name', '') or '',
            artists=[a.get('name', '') for a in artists if a.get('name')],
            duration_ms=int(spotify_track.get('duration_ms') or 0),
            rank=rank,
        )

    def list_playlists(self) -> List[Playlist]:
        """List playlists of the current user.

        Returns:
            Playlists in the order Spotify returns them
        """
        client = self._require_client()
        playlists = []
        offset = 0

        try:
            while True:
                page = client.current_user_playlists(limit=PLAYLIST_PAGE_SIZE, offset=offset)
                items = (page or {}).get('items') or []

                for playlist in items:
                    if not playlist or not playlist.get('id'):
                        continue
                    playlists.append(Playlist(
                        id=playlist['id'],
                        name=playlist.get('name', ''),
                        owner_provider=self.name,
                        track_count=(playlist.get('tracks') or {}).get('total', 0),
                    ))

                if not page or not page.get('next') or len(items) < PLAYLIST_PAGE_SIZE:
                    break
                offset += PLAYLIST_PAGE_SIZE

        except API_ERRORS as e:
            logger.error(f"Failed to list Spotify playlists: {e}")
            raise _to_provider_error(e, "playlist listing")

        return playlists

    def list_tracks(self, playlist_id: str) -> List[Track]:
        """List tracks in a playlist, all pages merged in playlist order.

        Args:
            playlist_id: Playlist ID

        Returns:
            List of tracks in the playlist
        """
        client = self._require_client()
        tracks = []
        offset = 0

        try:
            while True:
                page = client.playlist_items(
                    playlist_id,
                    limit=TRACK_PAGE_SIZE,
                    offset=offset,
                    additional_types=('track',),
                )
                items = (page or {}).get('items') or []

                for item in items:
                    track_data = (item or {}).get('track')
                    if not track_data:
                        continue
                    domain_track = self._spotify_track_to_domain(track_data)
                    if domain_track:
                        tracks.append(domain_track)

                if not page or not page.get('next') or len(items) < TRACK_PAGE_SIZE:
                    break
                offset += TRACK_PAGE_SIZE

        except API_ERRORS as e:
            logger.error(f"Failed to list tracks for playlist {playlist_id}: {e}")
            raise _to_provider_error(e, "playlist read")

        logger.info(f"Retrieved {len(tracks)} tracks from Spotify playlist {playlist_id}")
        return tracks

    def create_playlist(self, name: str) -> Playlist:
        """Create a private playlist with exactly ``name``."""
        client = self._require_client()
        user_id = self._current_user_id()

        try:
            result = client.user_playlist_create(user_id, name, public=False)
        except API_ERRORS as e:
            raise _to_provider_error(e, "playlist creation")

        if not result or not result.get('id'):
            raise ProviderError("Spotify playlist creation failed: no id returned", detail="no id returned")

        logger.info(f"Created Spotify playlist: {name}")
        return Playlist(
            id=result['id'],
            name=result.get('name', name),
            owner_provider=self.name,
            track_count=0,
        )

    def search(self, query: str, limit: int = 10) -> List[Candidate]:
        """Search tracks, keeping Spotify's result order."""
        client = self._require_client()
        limit = max(1, min(limit, MAX_SEARCH_LIMIT))

        try:
            results = client.search(query, type='track', limit=limit, market=self._market)
        except API_ERRORS as e:
            raise _to_provider_error(e, "search")

        items = ((results or {}).get('tracks') or {}).get('items') or []
        candidates = []
        for rank, item in enumerate(items):
            candidate = self._spotify_track_to_candidate(item or {}, rank)
            if candidate:
                candidates.append(candidate)

        logger.debug(f"Spotify search '{query}' returned {len(candidates)} candidates")
        return candidates[:limit]

    def add_track(self, playlist_id: str, candidate_id: str) -> None:
        """Append one track URI to the playlist."""
        client = self._require_client()
        try:
            result = client.playlist_add_items(playlist_id, [candidate_id])
        except API_ERRORS as e:
            raise _to_provider_error(e, "add")

        if not result or 'snapshot_id' not in result:
            raise ProviderError("Spotify add failed: no snapshot returned", detail="no snapshot returned")
