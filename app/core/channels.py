from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional

from loguru import logger

from app.core.cache import ResultCache
from app.core.playlist import (
    ChannelEntry,
    DirectoryFilters,
    DirectorySnapshot,
    ResolvedPlaylist,
    absolutize_playlist,
    parse_directory,
    resolve_variants,
)
from app.utils.http_client import FetchError, fetch_text

DIRECTORY_KEY = "directory"
VARIANT_KEY_PREFIX = "variant:"

Fetcher = Callable[[str], Awaitable[str]]


def variant_key(channel_id: str) -> str:
    return f"{VARIANT_KEY_PREFIX}{channel_id}"


@dataclass(frozen=True)
class ResolvedStream:
    """
    What the stream endpoint needs to deliver one channel.

    `playlist` is None when the stream document could not be fetched; the
    caller then hands out `upstream_url` as is.
    """

    channel: ChannelEntry
    upstream_url: str
    playlist: Optional[ResolvedPlaylist] = None

    @property
    def should_inline(self) -> bool:
        """True when the served playlist differs from the upstream one."""
        return self.playlist is not None and self.playlist.status == "resolved"


class ChannelService:
    """
    Fetch, parse and resolve channels through a shared `ResultCache`.

    Upstream failures are contained here: the directory degrades to an empty
    snapshot and a stream degrades to its unmodified upstream URL. Neither
    failure is cached.
    """

    def __init__(
        self,
        cache: ResultCache,
        *,
        playlist_url: str,
        filters: Optional[DirectoryFilters] = None,
        fetch: Fetcher = fetch_text,
    ) -> None:
        self.cache = cache
        self.playlist_url = playlist_url
        self.filters = filters or DirectoryFilters()
        self._fetch = fetch

    async def _load_directory(self) -> DirectorySnapshot:
        text = await self._fetch(self.playlist_url)
        snapshot = parse_directory(text, self.filters)
        logger.info("Loaded channel directory: {} channels", len(snapshot))
        return snapshot

    async def get_directory(self) -> DirectorySnapshot:
        try:
            return await self.cache.get_or_compute(DIRECTORY_KEY, self._load_directory)
        except FetchError as e:
            logger.warning(f"Channel directory unavailable: {e}")
        except Exception as e:
            logger.exception(f"Channel directory build failed: {e}")
        return DirectorySnapshot()

    async def get_channel(self, channel_id: str) -> Optional[ChannelEntry]:
        directory = await self.get_directory()
        return directory.get(channel_id)

    async def _resolve(self, channel: ChannelEntry) -> ResolvedPlaylist:
        text = await self._fetch(channel.stream_url)
        resolved = resolve_variants(text)
        if resolved.status == "resolved":
            resolved = replace(
                resolved,
                text=absolutize_playlist(resolved.text, base_url=channel.stream_url),
            )
        logger.debug(
            "Resolved stream for {}: status={} resolution={}",
            channel.id,
            resolved.status,
            resolved.resolution_label or "-",
        )
        return resolved

    async def get_resolved_stream(self, channel_id: str) -> Optional[ResolvedStream]:
        """
        Resolve the best variant of a channel's stream.

        Returns:
            ResolvedStream | None: None when the channel is not in the
            directory; otherwise the stream, with `playlist` None if the
            stream document could not be fetched.
        """
        channel = await self.get_channel(channel_id)
        if channel is None:
            logger.debug("Unknown channel {}", channel_id)
            return None
        playlist: Optional[ResolvedPlaylist] = None
        try:
            playlist = await self.cache.get_or_compute(
                variant_key(channel.id), lambda: self._resolve(channel)
            )
        except FetchError as e:
            logger.warning(f"Stream document unavailable for {channel.id}: {e}")
        except Exception as e:
            logger.exception(f"Variant resolution failed for {channel.id}: {e}")
        return ResolvedStream(
            channel=channel, upstream_url=channel.stream_url, playlist=playlist
        )

    async def refresh_directory(self) -> Optional[DirectorySnapshot]:
        """
        Drop resolved streams and eagerly rebuild the directory.

        On failure the directory stays uncached and is rebuilt lazily.
        """
        self.cache.invalidate_prefix(VARIANT_KEY_PREFIX)
        snapshot = await self.cache.refresh(DIRECTORY_KEY, self._load_directory)
        if snapshot is not None:
            logger.success(f"Directory refreshed: {len(snapshot)} channels")
        return snapshot
