import time
import uuid
from typing import List, Optional
import logging

from beatbridge.application.matching import TrackMatcher, MatchResult
from beatbridge.crosscutting.logging import (
    CorrelationContext, log_transfer_start, log_transfer_complete, log_track_failed
)
from beatbridge.domain.entities import FailedTrack, Playlist, Track, TransferResult
from beatbridge.domain.errors import (
    AuthMissing, DestinationCreateFailed, ProviderError, SourceUnreadable
)
from beatbridge.domain.ports import MusicProvider


logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "no match found"
ADD_FAILED_PREFIX = "add failed: "
SEARCH_FAILED_PREFIX = "search failed: "


class ProgressTracker:
    """Counts per-track outcomes and logs periodic progress."""

    def __init__(self, total_tracks: int, progress_every: int = 10):
        self.total_tracks = total_tracks
        self.progress_every = max(1, progress_every)
        self.processed = 0
        self.success = 0
        self.failed: List[FailedTrack] = []
        self.start_time = time.monotonic()

    def record_success(self) -> None:
        self.processed += 1
        self.success += 1
        self._maybe_log()

    def record_failure(self, track: Track, reason: str) -> None:
        self.processed += 1
        self.failed.append(FailedTrack(track=track, reason=reason))
        log_track_failed(logger, track.title, track.artists, reason, source_id=track.source_id)
        self._maybe_log()

    def _maybe_log(self) -> None:
        if self.processed % self.progress_every == 0 or self.processed == self.total_tracks:
            logger.info(f"Progress: {self.processed}/{self.total_tracks} tracks, "
                        f"added {self.success}, failed {len(self.failed)}")

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)


class TransferPipeline:
    """Copies one playlist from a source provider to a destination provider.

    Runs CreateDestination -> IterateTracks -> Finalize. Creating the destination
    playlist or reading the source aborts the whole transfer on failure; per-track
    search and add failures are recorded in the result and never stop the loop.
    Tracks are processed one at a time in source order so the destination keeps the
    same ordering.
    """

    def __init__(self,
                 source_provider: MusicProvider,
                 target_provider: MusicProvider,
                 matcher: Optional[TrackMatcher] = None):
        """Initialize transfer pipeline.

        Args:
            source_provider: Provider the playlist is read from
            target_provider: Provider the playlist is recreated on
            matcher: Track matching algorithm
        """
        self.source_provider = source_provider
        self.target_provider = target_provider
        self.matcher = matcher or TrackMatcher()

    def _ensure_authenticated(self) -> None:
        for provider in (self.target_provider, self.source_provider):
            if not provider.has_token:
                raise AuthMissing(provider.name)

    def _create_destination(self, name: str) -> Playlist:
        try:
            created = self.target_provider.create_playlist(name)
        except ProviderError as e:
            logger.error(f"Failed to create destination playlist '{name}': {e}")
            raise DestinationCreateFailed(
                f"Could not create {self.target_provider.name.display_name} playlist"
            ) from e
        if not created.id:
            raise DestinationCreateFailed(
                f"{self.target_provider.name.display_name} returned no playlist id"
            )
        logger.info(f"Created destination playlist '{name}' ({created.id})")
        return created

    def _read_source(self, source_playlist: Playlist) -> List[Track]:
        try:
            return list(self.source_provider.list_tracks(source_playlist.id))
        except ProviderError as e:
            logger.error(f"Failed to list tracks for playlist {source_playlist.id}: {e}")
            raise SourceUnreadable(
                f"Could not read {self.source_provider.name.display_name} playlist"
            ) from e

    def _transfer_track(self, track: Track, destination_id: str, progress: ProgressTracker) -> None:
        try:
            match: MatchResult = self.matcher.match(track, self.target_provider.search)
        except ProviderError as e:
            progress.record_failure(track, f"{SEARCH_FAILED_PREFIX}{e.detail}")
            return

        if not match.found:
            progress.record_failure(track, REASON_NOT_FOUND)
            return

        try:
            self.target_provider.add_track(destination_id, match.candidate.destination_id)
        except ProviderError as e:
            progress.record_failure(track, f"{ADD_FAILED_PREFIX}{e.detail}")
            return

        logger.debug(f"Added '{track.title}' as {match.candidate.destination_id} (score={match.score:.3f})")
        progress.record_success()

    def transfer_playlist(self,
                          source_playlist: Playlist,
                          transfer_id: Optional[str] = None) -> TransferResult:
        """Transfer a playlist from source to target provider.

        Args:
            source_playlist: Source playlist reference (id and name)
            transfer_id: Optional identifier used to correlate log lines

        Returns:
            TransferResult where success + len(failed) == total

        Raises:
            AuthMissing: A provider has no access token
            DestinationCreateFailed: The destination playlist could not be created
            SourceUnreadable: The source playlist could not be listed
        """
        transfer_id = transfer_id or uuid.uuid4().hex[:12]
        self._ensure_authenticated()

        log_transfer_start(logger, transfer_id, source_playlist.id,
                           self.source_provider.name.value, self.target_provider.name.value,
                           playlist_name=source_playlist.name)

        with CorrelationContext(transfer_id=transfer_id, playlist_id=source_playlist.id):
            with CorrelationContext(stage='create_destination'):
                destination = self._create_destination(source_playlist.name)

            with CorrelationContext(stage='iterate_tracks'):
                tracks = self._read_source(source_playlist)
                progress = ProgressTracker(total_tracks=len(tracks))
                for track in tracks:
                    self._transfer_track(track, destination.id, progress)

            with CorrelationContext(stage='finalize'):
                result = TransferResult(
                    total=len(tracks),
                    success=progress.success,
                    failed=list(progress.failed),
                    created_playlist_id=destination.id,
                    source_provider=self.source_provider.name,
                    destination_provider=self.target_provider.name,
                    playlist_name=source_playlist.name,
                    duration_ms=progress.elapsed_ms,
                )

        log_transfer_complete(logger, transfer_id, source_playlist.id,
                              total=result.total, success=result.success,
                              failed=result.failed_count, created_playlist_id=result.created_playlist_id)
        return result
