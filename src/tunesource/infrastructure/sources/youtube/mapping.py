"""Convert yt-dlp info dicts into domain records.

yt-dlp's info dicts are loose: flat search entries carry id/title/channel and a
thumbnail list, full extractions add formats, description, artist/album for
YouTube Music uploads. Missing keys are normal, never an error.
"""

from typing import Any

from tunesource.domain.models import AudioStreamInfo, Playlist, Song
from tunesource.infrastructure.integrations.ytdlp_client import YOUTUBE_WATCH_URL
from tunesource.infrastructure.sources.record_mapping import to_float, to_int
from tunesource.infrastructure.sources.youtube.settings import YOUTUBE_SOURCE_NAME


def _thumbnail(info: dict[str, Any]) -> str | None:
    if info.get("thumbnail"):
        return str(info["thumbnail"])
    thumbnails = info.get("thumbnails") or []
    # yt-dlp sorts thumbnails worst -> best
    for thumb in reversed(thumbnails):
        if thumb.get("url"):
            return str(thumb["url"])
    return None


def _artist(info: dict[str, Any]) -> str:
    for key in ("artist", "creator", "channel", "uploader"):
        value = info.get(key)
        if value:
            return str(value)
    return ""


def entry_to_song(info: dict[str, Any], playlist_name: str | None = None) -> Song | None:
    """Build a Song from a flat or full yt-dlp entry, None if it has no id."""
    video_id = info.get("id")
    if not video_id:
        return None
    return Song(
        id=str(video_id),
        title=str(info.get("track") or info.get("title") or video_id),
        artist=_artist(info),
        album=info.get("album"),
        duration_seconds=to_float(info.get("duration")),
        thumbnail_url=_thumbnail(info),
        url=info.get("webpage_url") or YOUTUBE_WATCH_URL.format(video_id=video_id),
        description=str(info.get("description") or ""),
        source=YOUTUBE_SOURCE_NAME,
        playlist_name=playlist_name,
    )


def entry_to_playlist(info: dict[str, Any]) -> Playlist | None:
    """Build a Playlist (without songs) from a yt-dlp playlist entry."""
    playlist_id = info.get("id")
    if not playlist_id:
        return None
    return Playlist(
        id=str(playlist_id),
        name=str(info.get("title") or playlist_id),
        description=str(info.get("description") or ""),
        thumbnail_url=_thumbnail(info),
        song_count=to_int(info.get("playlist_count")),
        source=YOUTUBE_SOURCE_NAME,
        author=info.get("channel") or info.get("uploader") or "Unknown",
        is_public=True,
    )


def format_to_stream(fmt: dict[str, Any]) -> AudioStreamInfo | None:
    """Build an AudioStreamInfo from a yt-dlp format, None if it carries no audio."""
    acodec = fmt.get("acodec")
    url = fmt.get("url")
    if not acodec or acodec == "none" or not url:
        return None
    return AudioStreamInfo(
        url=str(url),
        bitrate=to_int(fmt.get("abr") or fmt.get("tbr")),
        extension=str(fmt.get("ext") or ""),
        codec=str(acodec),
        container=str(fmt.get("container") or ""),
        format_id=str(fmt.get("format_id") or ""),
        video_codec=fmt.get("vcodec"),
        file_size=to_int(fmt.get("filesize") or fmt.get("filesize_approx")) or None,
    )


def pick_best_stream(streams: list[AudioStreamInfo]) -> AudioStreamInfo | None:
    """Highest bitrate audio-only stream, else highest bitrate of any stream.

    max() keeps the first of equal elements, so ties go to list order.
    """
    if not streams:
        return None
    audio_only = [s for s in streams if s.is_audio_only]
    candidates = audio_only or streams
    return max(candidates, key=lambda s: s.bitrate)
