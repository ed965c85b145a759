"""Convert Spotify Web API objects into domain records."""

from typing import Any

from tunesource.domain.models import Playlist, Song
from tunesource.infrastructure.sources.record_mapping import map_records, to_int
from tunesource.infrastructure.sources.spotify.settings import SPOTIFY_SOURCE_NAME

SPOTIFY_TRACK_URI = "spotify:track:{track_id}"
SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"


def _first_image(images: list[dict[str, Any]] | None) -> str | None:
    # Spotify lists images widest first
    for image in images or []:
        if image.get("url"):
            return str(image["url"])
    return None


def track_to_song(track: dict[str, Any], playlist_name: str | None = None) -> Song | None:
    """Build a Song from a track object, None for local files / removed tracks."""
    track_id = track.get("id")
    if not track_id:
        return None
    artists = track.get("artists") or []
    album = track.get("album") or {}
    duration_ms = to_int(track.get("duration_ms"))
    return Song(
        id=str(track_id),
        title=str(track.get("name") or "Unknown Title"),
        artist=str(artists[0].get("name") or "Unknown Artist") if artists else "Unknown Artist",
        album=album.get("name"),
        duration_seconds=duration_ms / 1000 if duration_ms > 0 else None,
        thumbnail_url=_first_image(album.get("images")),
        url=(track.get("external_urls") or {}).get("spotify")
        or SPOTIFY_TRACK_URL.format(track_id=track_id),
        source=SPOTIFY_SOURCE_NAME,
        playlist_name=playlist_name,
    )


def playlist_to_model(playlist: dict[str, Any]) -> Playlist | None:
    """Build a Playlist (without songs) from a simplified or full playlist object."""
    playlist_id = playlist.get("id")
    if not playlist_id:
        return None
    owner = playlist.get("owner") or {}
    return Playlist(
        id=str(playlist_id),
        name=str(playlist.get("name") or "Unknown Playlist"),
        description=str(playlist.get("description") or ""),
        thumbnail_url=_first_image(playlist.get("images")),
        song_count=to_int((playlist.get("tracks") or {}).get("total")),
        source=SPOTIFY_SOURCE_NAME,
        author=owner.get("display_name") or owner.get("id"),
        is_public=bool(playlist.get("public", True)),
    )


def songs_from_playlist_items(items: list[dict[str, Any]], playlist_name: str | None) -> list[Song]:
    """Songs of playlist items, skipping episodes, unavailable and malformed tracks."""

    def item_to_song(item: dict[str, Any]) -> Song | None:
        track = item.get("track") or {}
        if track.get("type", "track") != "track":
            return None
        return track_to_song(track, playlist_name=playlist_name)

    return map_records(items, item_to_song, "Spotify playlist item")


def tracks_to_songs(tracks: Any, playlist_name: str | None = None) -> list[Song]:
    """Songs of a list of track objects, skipping local files and malformed entries."""
    return map_records(
        tracks, lambda track: track_to_song(track, playlist_name=playlist_name), "Spotify track"
    )


def playlists_to_models(playlists: Any) -> list[Playlist]:
    """Playlists of a list of playlist objects, skipping null and malformed entries."""
    return map_records(playlists, playlist_to_model, "Spotify playlist")
