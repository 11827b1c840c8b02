"""
YouTube Data API v3 provider

Reads and writes YouTube (Music) playlists with the current user's access token.
Track metadata is recovered from video titles ("Artist - Title") and channel
names ("Artist - Topic", "ArtistVEVO"); durations come from videos.list.

Quota costs:
- search.list: 100 units
- playlists.list / playlistItems.list / videos.list: 1 unit
- playlists.insert / playlistItems.insert: 50 units
"""

import html
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from beatbridge.domain.entities import Candidate, Playlist, ProviderName, Track
from beatbridge.domain.errors import ProviderError, RateLimited

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/youtube"]
PAGE_SIZE = 50
MUSIC_CATEGORY_ID = "10"
UNAVAILABLE_TITLES = {"Deleted video", "Private video"}
QUOTA_REASONS = {"quotaExceeded", "rateLimitExceeded", "userRateLimitExceeded"}

API_ERRORS = (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError)

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)
_TITLE_SEPARATOR = re.compile(r"\s+[-–—]\s+")
_TOPIC_SUFFIX = re.compile(r"\s*-\s*topic$", re.IGNORECASE)
_VEVO_SUFFIX = re.compile(r"\s*vevo$", re.IGNORECASE)


def parse_iso_duration(value: str) -> int:
    """Convert an ISO-8601 duration such as ``PT3M42S`` to milliseconds."""
    match = _ISO_DURATION.match(value or "")
    if not match:
        return 0
    parts = match.groupdict()
    seconds = float(parts["seconds"] or 0)
    seconds += int(parts["minutes"] or 0) * 60
    seconds += int(parts["hours"] or 0) * 3600
    seconds += int(parts["days"] or 0) * 86400
    return int(round(seconds * 1000))


def clean_channel_name(channel: str) -> str:
    """Strip auto-generated channel decorations ("X - Topic", "XVEVO")."""
    name = _TOPIC_SUFFIX.sub("", (channel or "").strip())
    name = _VEVO_SUFFIX.sub("", name)
    return name.strip()


def split_video_title(title: str, channel: str = "") -> Tuple[str, List[str]]:
    """Guess (track title, artists) from a video title and its channel."""
    title = html.unescape(title or "").strip()
    artist = clean_channel_name(html.unescape(channel or ""))
    parts = _TITLE_SEPARATOR.split(title, maxsplit=1)
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[1].strip(), [parts[0].strip()]
    return title, [artist] if artist else []


def _error_reason(error: HttpError) -> str:
    details = getattr(error, "error_details", None)
    if isinstance(details, list) and details:
        first = details[0]
        if isinstance(first, dict) and first.get("reason"):
            return first["reason"]
    reason = getattr(error, "reason", None)
    if reason:
        return str(reason)
    return ""


def _to_provider_error(error: Exception, operation: str) -> ProviderError:
    """Translate googleapiclient/transport errors into domain errors."""
    if isinstance(error, HttpError):
        status = error.resp.status if error.resp is not None else None
        reason = _error_reason(error)
        if status == 429 or reason in QUOTA_REASONS:
            return RateLimited(retry_after_ms=60_000,
                               message=f"YouTube quota or rate limit hit during {operation}",
                               status=status)
        detail = reason or f"HTTP {status}"
        return ProviderError(f"YouTube {operation} failed: {detail}", status=status, detail=detail)
    if isinstance(error, GoogleAuthError):
        logger.warning(f"Google credentials rejected during YouTube {operation}: {error}")
        return ProviderError(f"YouTube {operation} failed: authorization expired",
                             status=401, detail="authorization expired")
    return ProviderError(f"YouTube {operation} failed: network error", detail="network error")


class YouTubeProvider:
    """YouTube Data API provider for the current user's playlists."""

    name = ProviderName.YOUTUBE

    def __init__(self, access_token: Optional[str], service: Any = None):
        """Initialize YouTube provider.

        Args:
            access_token: Google OAuth access token with the youtube scope
            service: Prebuilt API resource (tests inject a mock)
        """
        self.access_token = access_token
        self._service = service

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    @property
    def service(self):
        if self._service is None:
            if not self.access_token:
                raise ProviderError("YouTube access token is missing", status=401)
            credentials = Credentials(token=self.access_token, scopes=SCOPES)
            try:
                self._service = build("youtube", "v3", credentials=credentials, cache_discovery=False)
            except API_ERRORS as e:
                raise _to_provider_error(e, "client setup")
            logger.info("YouTube client initialized")
        return self._service

    def _execute(self, request, operation: str) -> Dict[str, Any]:
        try:
            return request.execute() or {}
        except API_ERRORS as e:
            raise _to_provider_error(e, operation)

    def _video_durations(self, video_ids: List[str]) -> Dict[str, int]:
        """Look up video durations, 50 ids per call."""
        durations: Dict[str, int] = {}
        unique_ids = list(dict.fromkeys(v for v in video_ids if v))
        for start in range(0, len(unique_ids), PAGE_SIZE):
            chunk = unique_ids[start:start + PAGE_SIZE]
            response = self._execute(
                self.service.videos().list(part="contentDetails", id=",".join(chunk), maxResults=PAGE_SIZE),
                "video lookup",
            )
            for item in response.get("items", []):
                details = item.get("contentDetails") or {}
                durations[item.get("id", "")] = parse_iso_duration(details.get("duration", ""))
        return durations

    def list_playlists(self) -> List[Playlist]:
        """List playlists owned by the current user."""
        playlists = []
        page_token = None

        while True:
            response = self._execute(
                self.service.playlists().list(
                    part="snippet,contentDetails",
                    mine=True,
                    maxResults=PAGE_SIZE,
                    pageToken=page_token,
                ),
                "playlist listing",
            )

            for item in response.get("items", []):
                if not item.get("id"):
                    continue
                playlists.append(Playlist(
                    id=item["id"],
                    name=(item.get("snippet") or {}).get("title", ""),
                    owner_provider=self.name,
                    track_count=(item.get("contentDetails") or {}).get("itemCount", 0),
                ))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return playlists

    def list_tracks(self, playlist_id: str) -> List[Track]:
        """List all videos of a playlist as tracks, in playlist order."""
        items = []
        page_token = None

        while True:
            response = self._execute(
                self.service.playlistItems().list(
                    part="snippet,contentDetails",
                    playlistId=playlist_id,
                    maxResults=PAGE_SIZE,
                    pageToken=page_token,
                ),
                "playlist read",
            )
            items.extend(response.get("items", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        video_ids = [(i.get("contentDetails") or {}).get("videoId", "") for i in items]
        durations = self._video_durations(video_ids)

        tracks = []
        for item, video_id in zip(items, video_ids):
            snippet = item.get("snippet") or {}
            if not video_id or snippet.get("title") in UNAVAILABLE_TITLES:
                continue
            title, artists = split_video_title(snippet.get("title", ""),
                                               snippet.get("videoOwnerChannelTitle", ""))
            tracks.append(Track(
                title=title,
                artists=artists,
                duration_ms=durations.get(video_id, 0),
                source_id=item.get("id") or video_id,
                uri=f"https://music.youtube.com/watch?v={video_id}",
            ))

        logger.info(f"Retrieved {len(tracks)} items from YouTube playlist {playlist_id}")
        return tracks

    def create_playlist(self, name: str) -> Playlist:
        """Create a private playlist titled exactly ``name``."""
        response = self._execute(
            self.service.playlists().insert(
                part="snippet,status",
                body={
                    "snippet": {"title": name},
                    "status": {"privacyStatus": "private"},
                },
            ),
            "playlist creation",
        )
        logger.info(f"Created YouTube playlist: {name}")
        return Playlist(
            id=response.get("id", ""),
            name=(response.get("snippet") or {}).get("title", name),
            owner_provider=self.name,
            track_count=0,
        )

    def search(self, query: str, limit: int = 10) -> List[Candidate]:
        """Search music videos, keeping YouTube's result order."""
        limit = max(1, min(limit, PAGE_SIZE))
        response = self._execute(
            self.service.search().list(
                part="snippet",
                q=query,
                type="video",
                videoCategoryId=MUSIC_CATEGORY_ID,
                maxResults=limit,
            ),
            "search",
        )

        results = []
        for item in response.get("items", []):
            video_id = (item.get("id") or {}).get("videoId")
            if video_id:
                results.append((video_id, item.get("snippet") or {}))

        if not results:
            logger.debug(f"No results for: {query}")
            return []

        durations = self._video_durations([video_id for video_id, _ in results])
        candidates = []
        for rank, (video_id, snippet) in enumerate(results[:limit]):
            title, artists = split_video_title(snippet.get("title", ""), snippet.get("channelTitle", ""))
            candidates.append(Candidate(
                destination_id=video_id,
                title=title,
                artists=artists,
                duration_ms=durations.get(video_id, 0),
                rank=rank,
            ))
        return candidates

    def add_track(self, playlist_id: str, candidate_id: str) -> None:
        """Append a video to the playlist."""
        self._execute(
            self.service.playlistItems().insert(
                part="snippet",
                body={
                    "snippet": {
                        "playlistId": playlist_id,
                        "resourceId": {"kind": "youtube#video", "videoId": candidate_id},
                    }
                },
            ),
            "add",
        )
