import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

from beatbridge.domain.entities import FailedTrack, Playlist, ProviderName, Track, TransferResult


def track_to_json(track: Track) -> Dict[str, Any]:
    """Serialize a track to JSON."""
    return {
        "title": track.title,
        "artists": list(track.artists),
        "durationMs": track.duration_ms,
        "sourceId": track.source_id,
    }


def track_from_json(data: Dict[str, Any]) -> Track:
    """Deserialize a track from JSON."""
    return Track(
        title=data.get("title", ""),
        artists=list(data.get("artists", [])),
        duration_ms=int(data.get("durationMs", 0)),
        source_id=data.get("sourceId", ""),
    )


def failed_track_to_json(failed: FailedTrack) -> Dict[str, Any]:
    return {"track": track_to_json(failed.track), "reason": failed.reason}


def transfer_result_to_json(result: TransferResult) -> Dict[str, Any]:
    """Response body of a Spotify -> YouTube transfer."""
    return {
        "success": result.success,
        "total": result.total,
        "failed": [failed_track_to_json(f) for f in result.failed],
        "createdPlaylistId": result.created_playlist_id,
    }


def youtube_transfer_to_json(result: TransferResult) -> Dict[str, Any]:
    """Response body of a YouTube -> Spotify transfer."""
    return {
        "added": result.success,
        "totalVideos": result.total,
        "createdPlaylistId": result.created_playlist_id,
        "failed": [failed_track_to_json(f) for f in result.failed],
    }


def playlist_to_json(playlist: Playlist) -> Dict[str, Any]:
    """Serialize a playlist in the shape its provider's own API uses."""
    if playlist.owner_provider is ProviderName.YOUTUBE:
        return {
            "id": playlist.id,
            "snippet": {"title": playlist.name},
            "contentDetails": {"itemCount": playlist.track_count},
        }
    return {
        "id": playlist.id,
        "name": playlist.name,
        "tracks": {"total": playlist.track_count},
    }


@dataclass
class TransferReport:
    """Complete transfer report written by the CLI."""

    transfer_id: str
    source: str
    target: str
    playlist_name: str
    total: int
    success: int
    created_playlist_id: str
    duration_ms: int = 0
    failures: List[FailedTrack] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    @classmethod
    def from_result(cls, transfer_id: str, result: TransferResult) -> "TransferReport":
        return cls(
            transfer_id=transfer_id,
            source=result.source_provider.value if result.source_provider else "",
            target=result.destination_provider.value if result.destination_provider else "",
            playlist_name=result.playlist_name,
            total=result.total,
            success=result.success,
            created_playlist_id=result.created_playlist_id,
            duration_ms=result.duration_ms,
            failures=list(result.failed),
            finished_at=datetime.now(timezone.utc),
        )

    @property
    def match_rate(self) -> float:
        return self.success / self.total if self.total else 0.0

    def to_json(self) -> Dict[str, Any]:
        """Serialize report to JSON."""
        return {
            "transferId": self.transfer_id,
            "source": self.source,
            "target": self.target,
            "playlistName": self.playlist_name,
            "createdPlaylistId": self.created_playlist_id,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "durationMs": self.duration_ms,
            "totals": {
                "total": self.total,
                "success": self.success,
                "failed": len(self.failures),
                "matchRate": round(self.match_rate, 4),
            },
            "failed": [failed_track_to_json(f) for f in self.failures],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TransferReport":
        """Deserialize report from JSON."""
        totals = data.get("totals", {})
        return cls(
            transfer_id=data["transferId"],
            source=data.get("source", ""),
            target=data.get("target", ""),
            playlist_name=data.get("playlistName", ""),
            total=totals.get("total", 0),
            success=totals.get("success", 0),
            created_playlist_id=data.get("createdPlaylistId", ""),
            duration_ms=data.get("durationMs", 0),
            failures=[
                FailedTrack(track=track_from_json(f["track"]), reason=f["reason"])
                for f in data.get("failed", [])
            ],
            finished_at=datetime.fromisoformat(data["finishedAt"]) if data.get("finishedAt") else None,
        )


def write_report(report: TransferReport, report_dir: str) -> str:
    """Write the report as JSON into ``report_dir`` and return the file path."""
    os.makedirs(report_dir, exist_ok=True)
    report_file = os.path.join(report_dir, f"transfer_report_{report.transfer_id}.json")
    with open(report_file, 'w', encoding='utf-8') as f:
        json.dump(report.to_json(), f, indent=2, ensure_ascii=False)
    return report_file
