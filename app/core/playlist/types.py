from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

_RESOLUTION_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


def channel_slug(name: str) -> str:
    """
    Derive the directory id of a channel from its display name.

    The name is lowercased and every whitespace run becomes a single "-", so
    "France 2" maps to "france-2".
    """
    return "-".join(name.lower().split())


def _lookup(attributes: dict[str, str], key: str) -> Optional[str]:
    wanted = key.lower()
    for k, v in attributes.items():
        if k.lower() == wanted:
            return v
    return None


@dataclass(frozen=True)
class ChannelDeclaration:
    """
    One `#EXTINF` block of a channel listing together with its resource URL.
    """

    name: str
    url: str
    attributes: dict[str, str] = field(default_factory=dict)
    line_no: int = 0
    resource_line_no: int = 0
    options: tuple[str, ...] = ()

    def attr(self, key: str) -> Optional[str]:
        return _lookup(self.attributes, key)


@dataclass(frozen=True)
class VariantEntry:
    """
    One `#EXT-X-STREAM-INF` block of a master playlist.

    Attributes keep their declaration order; quoted values are unquoted.
    """

    attributes: dict[str, str]
    url: str
    line_no: int = 0
    resource_line_no: int = 0

    def attr(self, key: str) -> Optional[str]:
        return _lookup(self.attributes, key)

    @property
    def resolution(self) -> Optional[tuple[int, int]]:
        raw = self.attr("RESOLUTION")
        if raw is None:
            return None
        match = _RESOLUTION_RE.match(raw)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    @property
    def area(self) -> Optional[int]:
        res = self.resolution
        if res is None:
            return None
        return res[0] * res[1]

    @property
    def bandwidth(self) -> Optional[int]:
        raw = self.attr("BANDWIDTH")
        if raw is None:
            return None
        try:
            return int(raw.strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class ChannelEntry:
    id: str
    name: str
    stream_url: str
    logo_url: Optional[str] = None
    group: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPlaylist:
    """
    Outcome of variant resolution for one stream document.

    status:
        "passthrough" when the document has no variants (media playlist),
        "resolved" when a single resolution was selected,
        "unranked" when variants exist but none has a parseable resolution.
    """

    text: str
    status: str
    selected_resolution: Optional[tuple[int, int]] = None
    variant_count: int = 0
    retained_count: int = 0

    @property
    def resolution_label(self) -> Optional[str]:
        if self.selected_resolution is None:
            return None
        width, height = self.selected_resolution
        return f"{width}x{height}"


class DirectorySnapshot:
    """
    Ordered, id-unique sequence of channels produced by one parse pass.

    Callers must treat snapshots as read-only; they are shared by the cache.
    """

    def __init__(self, entries: Iterable[ChannelEntry] = ()) -> None:
        self._entries: tuple[ChannelEntry, ...] = tuple(entries)
        self._index: dict[str, ChannelEntry] = {}
        for entry in self._entries:
            if entry.id in self._index:
                raise ValueError(f"duplicate channel id {entry.id!r}")
            self._index[entry.id] = entry

    @property
    def entries(self) -> tuple[ChannelEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChannelEntry]:
        return iter(self._entries)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._index

    def get(self, channel_id: str) -> Optional[ChannelEntry]:
        return self._index.get(channel_id)

    def ids(self) -> list[str]:
        return [e.id for e in self._entries]

    def search(self, query: str) -> list[ChannelEntry]:
        """Case-insensitive substring match on channel names, in listing order."""
        needle = query.strip().lower()
        if not needle:
            return list(self._entries)
        return [e for e in self._entries if needle in e.name.lower()]

    def __repr__(self) -> str:
        return f"DirectorySnapshot({len(self._entries)} channels)"
