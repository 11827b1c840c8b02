from typing import Dict, List

import pytest

from beatbridge.application.pipeline import TransferPipeline, REASON_NOT_FOUND
from beatbridge.domain.entities import Candidate, Playlist, ProviderName, Track
from beatbridge.domain.errors import ProviderError
from beatbridge.domain.ports import MusicProvider


class FakeProvider(MusicProvider):
    """In-memory provider following the MusicProvider contract."""

    def __init__(self, name: ProviderName, catalog: List[Track] = None, has_token: bool = True) -> None:
        self.name = name
        self._has_token = has_token
        self._catalog = list(catalog or [])
        self._playlists: Dict[str, Playlist] = {}
        self._items: Dict[str, List[str]] = {}

    @property
    def has_token(self) -> bool:
        return self._has_token

    def seed_playlist(self, playlist_id: str, name: str, tracks: List[Track]) -> Playlist:
        playlist = Playlist(id=playlist_id, name=name, owner_provider=self.name, track_count=len(tracks))
        self._playlists[playlist_id] = playlist
        self._items[playlist_id] = [t.source_id for t in tracks]
        self._catalog.extend(tracks)
        return playlist

    def list_playlists(self) -> List[Playlist]:
        return list(self._playlists.values())

    def list_tracks(self, playlist_id: str) -> List[Track]:
        if playlist_id not in self._items:
            raise ProviderError("playlist not found", status=404)
        by_id = {t.source_id: t for t in self._catalog}
        return [by_id[i] for i in self._items[playlist_id]]

    def create_playlist(self, name: str) -> Playlist:
        playlist_id = f"{self.name.value}_{len(self._playlists) + 1}"
        playlist = Playlist(id=playlist_id, name=name, owner_provider=self.name)
        self._playlists[playlist_id] = playlist
        self._items[playlist_id] = []
        return playlist

    def search(self, query: str, limit: int = 10) -> List[Candidate]:
        words = query.lower().split()
        results = []
        for track in self._catalog:
            text = f"{track.title} {' '.join(track.artists)}".lower()
            if all(w in text for w in words):
                results.append(Candidate(
                    destination_id=track.source_id,
                    title=track.title,
                    artists=list(track.artists),
                    duration_ms=track.duration_ms,
                    rank=len(results),
                ))
        return results[:limit]

    def add_track(self, playlist_id: str, candidate_id: str) -> None:
        if playlist_id not in self._items:
            raise ProviderError("playlist not found", status=404)
        self._items[playlist_id].append(candidate_id)


def test_contract_list_and_read_semantics():
    provider = FakeProvider(ProviderName.SPOTIFY)
    tracks = [Track(source_id="t1", title="Song A", artists=["A"], duration_ms=2000)]
    provider.seed_playlist("p1", "My Fav", tracks)

    playlists = provider.list_playlists()
    assert [p.id for p in playlists] == ["p1"]
    assert all(p.owner_provider is ProviderName.SPOTIFY for p in playlists)
    assert provider.list_tracks("p1") == tracks

    with pytest.raises(ProviderError):
        provider.list_tracks("missing")


def test_contract_create_then_add_keeps_order():
    provider = FakeProvider(ProviderName.YOUTUBE)

    created = provider.create_playlist("Exact Name")
    provider.add_track(created.id, "v2")
    provider.add_track(created.id, "v1")

    assert created.name == "Exact Name"
    assert provider._items[created.id] == ["v2", "v1"]


def test_transfer_between_fake_providers():
    source = FakeProvider(ProviderName.SPOTIFY)
    tracks = [
        Track(source_id="s1", title="Hey Jude", artists=["The Beatles"], duration_ms=431000),
        Track(source_id="s2", title="Let It Be", artists=["The Beatles"], duration_ms=243000),
        Track(source_id="s3", title="Unreleased Demo", artists=["Nobody"], duration_ms=100000),
    ]
    playlist = source.seed_playlist("p1", "Beatles", tracks)
    target = FakeProvider(ProviderName.YOUTUBE, catalog=[
        Track(source_id="v-jude", title="Hey Jude", artists=["The Beatles"], duration_ms=431500),
        Track(source_id="v-letitbe", title="Let It Be (Remastered 2009)", artists=["The Beatles"],
              duration_ms=243000),
    ])

    result = TransferPipeline(source, target).transfer_playlist(playlist)

    assert result.total == 3
    assert result.success == 2
    assert [(f.track.source_id, f.reason) for f in result.failed] == [("s3", REASON_NOT_FOUND)]
    assert target.list_playlists()[0].name == "Beatles"
    assert target._items[result.created_playlist_id] == ["v-jude", "v-letitbe"]
