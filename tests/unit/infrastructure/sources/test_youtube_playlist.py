"""Tests for the local playlist store and YouTubePlaylistService."""

# Hey future me - these tests use a REAL store in tmp_path and a mocked yt-dlp client,
# so the JSON layout on disk is exercised exactly as users will see it.

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from tunesource.domain.exceptions import ValidationException
from tunesource.domain.models import AudioStreamInfo, PlaybackState, Playlist, Song
from tunesource.infrastructure.integrations.youtube_data_client import YouTubeDataClient
from tunesource.infrastructure.integrations.ytdlp_client import YtDlpClient
from tunesource.infrastructure.sources.playlist_store import LocalPlaylistStore
from tunesource.infrastructure.sources.youtube.playlist import (
    YouTubePlaylistService,
    is_youtube_playlist_id,
)
from tunesource.infrastructure.sources.youtube.settings import YouTubeSourceSettings

REMOTE_PLAYLIST = {
    "id": "PLremote123",
    "title": "Discovery",
    "channel": "Daft Punk",
    "playlist_count": 2,
    "entries": [
        {"id": "aaaaaaaaaaa", "title": "One More Time", "channel": "Daft Punk"},
        None,
        {"id": "bbbbbbbbbbb", "title": "Aerodynamic", "channel": "Daft Punk"},
    ],
}


@pytest.fixture
def store(tmp_path: Path) -> LocalPlaylistStore:
    return LocalPlaylistStore(tmp_path / "Playlists" / "YouTube")


class TestLocalPlaylistStore:
    """Test LocalPlaylistStore."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, store: LocalPlaylistStore) -> None:
        """Nested songs, streams and enums survive the JSON round trip."""
        playlist = Playlist(
            id="mix",
            name="Mix",
            songs=[
                Song(
                    id="aaaaaaaaaaa",
                    title="One More Time",
                    state=PlaybackState.PAUSED,
                    selected_stream=AudioStreamInfo(url="https://x", bitrate=128, extension="m4a"),
                )
            ],
        )

        path = await store.save(playlist)
        loaded = await store.load("mix")

        assert path == store.directory / "mix.json"
        assert json.loads(path.read_text(encoding="utf-8"))["name"] == "Mix"
        assert loaded == playlist

    @pytest.mark.asyncio
    async def test_load_missing(self, store: LocalPlaylistStore) -> None:
        assert await store.load("nope") is None

    @pytest.mark.asyncio
    async def test_load_corrupt(self, store: LocalPlaylistStore) -> None:
        """Unreadable files are reported as missing."""
        store.directory.mkdir(parents=True)
        (store.directory / "broken.json").write_text("[1, 2", encoding="utf-8")

        assert await store.load("broken") is None
        assert await store.load_all() == []

    @pytest.mark.asyncio
    async def test_load_all_sorted_by_name(self, store: LocalPlaylistStore) -> None:
        await store.save(Playlist(id="2", name="zebra"))
        await store.save(Playlist(id="1", name="Alpha"))

        assert [p.name for p in await store.load_all()] == ["Alpha", "zebra"]

    @pytest.mark.asyncio
    async def test_delete(self, store: LocalPlaylistStore) -> None:
        await store.save(Playlist(id="gone", name="Gone"))

        assert await store.delete("gone") is True
        assert await store.delete("gone") is False

    @pytest.mark.parametrize("playlist_id", ["", "..", "../escape", "a/b"])
    def test_rejects_path_like_ids(self, store: LocalPlaylistStore, playlist_id: str) -> None:
        with pytest.raises(ValidationException):
            store.path_for(playlist_id)


class TestIsYouTubePlaylistId:
    """Test is_youtube_playlist_id."""

    @pytest.mark.parametrize(
        ("playlist_id", "expected"),
        [
            ("PLrAXtmErZgOeiKm4sgNOknGvNjby9efdf", True),
            ("FLabc", True),
            ("OLAK5uy_" + "x" * 26, True),
            ("0f8fad5bd9cb469fa16570867728950e", False),
        ],
    )
    def test_shapes(self, playlist_id: str, expected: bool) -> None:
        assert is_youtube_playlist_id(playlist_id) is expected


class TestYouTubePlaylistService:
    """Test YouTubePlaylistService."""

    @pytest.fixture
    def ytdlp(self) -> AsyncMock:
        client = AsyncMock(spec=YtDlpClient)
        client.get_playlist.return_value = REMOTE_PLAYLIST
        client.search_playlists.return_value = []
        return client

    @pytest.fixture
    def settings(self, tmp_path: Path) -> YouTubeSourceSettings:
        return YouTubeSourceSettings(settings_dir=tmp_path)

    @pytest.fixture
    def service(
        self, settings: YouTubeSourceSettings, store: LocalPlaylistStore, ytdlp: AsyncMock
    ) -> YouTubePlaylistService:
        return YouTubePlaylistService(settings, store, ytdlp)

    @pytest.mark.asyncio
    async def test_save_assigns_id(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore
    ) -> None:
        """New playlists get a uuid and are tagged as YouTube."""
        playlist = Playlist(
            id="", name="Road trip", songs=[Song(id="aaaaaaaaaaa", title="One More Time")]
        )

        saved = await service.save_playlist(playlist)

        assert saved is not None
        assert len(saved.id) == 32
        assert saved.source == "YouTube"
        assert saved.song_count == 1
        assert await store.load(saved.id) == saved

    @pytest.mark.asyncio
    async def test_load_prefers_local(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore, ytdlp: AsyncMock
    ) -> None:
        await store.save(Playlist(id="PLremote123", name="Edited locally"))

        playlist = await service.load_playlist("PLremote123")

        assert playlist is not None
        assert playlist.name == "Edited locally"
        ytdlp.get_playlist.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_load_remote_is_cached(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore, ytdlp: AsyncMock
    ) -> None:
        """Remote playlists are fetched once and then served locally."""
        playlist = await service.load_playlist("PLremote123")

        assert playlist is not None
        assert playlist.name == "Discovery"
        assert [s.id for s in playlist.songs] == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        assert all(s.playlist_name == "Discovery" for s in playlist.songs)
        assert await store.load("PLremote123") == playlist

        await service.load_playlist("PLremote123")
        ytdlp.get_playlist.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_load_unknown_returns_none(
        self, service: YouTubePlaylistService, ytdlp: AsyncMock
    ) -> None:
        ytdlp.get_playlist.return_value = None
        assert await service.load_playlist("PLmissing") is None

    @pytest.mark.asyncio
    async def test_data_api_preferred_when_configured(
        self, settings: YouTubeSourceSettings, store: LocalPlaylistStore, ytdlp: AsyncMock
    ) -> None:
        """With an API key the Data API serves playlists, yt-dlp is not used."""
        settings.youtube_api_key = "key"
        data_api = AsyncMock(spec=YouTubeDataClient)
        data_api.get_playlist.return_value = {
            "snippet": {"title": "API list", "channelTitle": "Owner"},
            "contentDetails": {"itemCount": 1},
        }
        data_api.get_playlist_items.return_value = [
            {
                "snippet": {"title": "Song", "videoOwnerChannelTitle": "Artist"},
                "contentDetails": {"videoId": "ccccccccccc"},
            },
            {"snippet": {"title": "Deleted video"}, "contentDetails": {}},
        ]
        service = YouTubePlaylistService(settings, store, ytdlp, data_api=data_api)

        playlist = await service.load_playlist("PLapi")

        assert playlist is not None
        assert playlist.name == "API list"
        assert playlist.author == "Owner"
        assert [s.id for s in playlist.songs] == ["ccccccccccc"]
        ytdlp.get_playlist.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_playlists_are_local(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore
    ) -> None:
        await store.save(Playlist(id="mine", name="Mine"))

        assert [p.id for p in await service.load_user_playlists()] == ["mine"]

    @pytest.mark.asyncio
    async def test_delete(self, service: YouTubePlaylistService, store: LocalPlaylistStore) -> None:
        await store.save(Playlist(id="mine", name="Mine"))

        assert await service.delete_playlist("mine") is True
        assert await service.delete_playlist("mine") is False

    @pytest.mark.asyncio
    async def test_add_and_remove_song(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore
    ) -> None:
        await store.save(Playlist(id="mine", name="Mine"))
        song = Song(id="aaaaaaaaaaa", title="One More Time")

        assert await service.add_song_to_playlist("mine", song) is True
        assert await service.add_song_to_playlist("mine", song) is True
        stored = await store.load("mine")
        assert stored is not None
        assert [s.id for s in stored.songs] == ["aaaaaaaaaaa"]

        assert await service.remove_song_from_playlist("mine", "aaaaaaaaaaa") is True
        assert await service.remove_song_from_playlist("mine", "aaaaaaaaaaa") is False

    @pytest.mark.asyncio
    async def test_add_to_unknown_playlist(
        self, service: YouTubePlaylistService, ytdlp: AsyncMock
    ) -> None:
        ytdlp.get_playlist.return_value = None
        assert await service.add_song_to_playlist("missing", Song(id="a", title="t")) is False

    @pytest.mark.asyncio
    async def test_search_merges_local_and_remote(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore, ytdlp: AsyncMock
    ) -> None:
        await store.save(Playlist(id="mine", name="Daft Punk favourites"))
        await store.save(Playlist(id="other", name="Jazz"))
        ytdlp.search_playlists.return_value = [
            {"id": "PLremote123", "title": "Daft Punk - Discovery"},
            {"id": "mine", "title": "duplicate id"},
        ]

        playlists = await service.search_playlists("daft punk")

        assert [p.id for p in playlists] == ["mine", "PLremote123"]

    @pytest.mark.asyncio
    async def test_get_playlist_songs_refreshes_empty_remote_playlist(
        self, service: YouTubePlaylistService, store: LocalPlaylistStore
    ) -> None:
        """A cached YouTube playlist without songs is filled from YouTube."""
        await store.save(Playlist(id="PLremote123", name="Discovery"))

        songs = await service.get_playlist_songs("PLremote123")

        assert [s.id for s in songs] == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        cached = await store.load("PLremote123")
        assert cached is not None
        assert cached.song_count == 2
