from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlsplit

from loguru import logger

from .parser import Record, has_media_suffix, iter_channels
from .types import ChannelDeclaration, ChannelEntry, DirectorySnapshot, channel_slug

_CHANNEL_NUMBER_RE = re.compile(r"^\s*(\d+)\s*\.")


@dataclass(frozen=True)
class DirectoryFilters:
    """Inclusion rules applied while building a channel directory.

    Attributes:
        include_pattern: Regex a channel name must match (case-insensitive).
        exclude_pattern: Regex that drops matching channel names.
        media_suffixes: Allowed stream URL path suffixes; empty allows any.
        number_range: Inclusive (min, max) bounds on a leading "N." channel
            number; either bound may be None. Unnumbered names are dropped
            when a range is set.
        max_size: Keep only the first N valid channels (0 = unlimited).
        include_countries / exclude_countries: `tvg-country` codes.
        include_languages / exclude_languages: `tvg-language` names.
        exclude_categories: `group-title` values.
    """

    include_pattern: Optional[str] = None
    exclude_pattern: Optional[str] = None
    media_suffixes: tuple[str, ...] = (".m3u8",)
    number_range: Optional[tuple[Optional[int], Optional[int]]] = None
    max_size: int = 0
    include_countries: tuple[str, ...] = ()
    exclude_countries: tuple[str, ...] = ()
    include_languages: tuple[str, ...] = ()
    exclude_languages: tuple[str, ...] = ()
    exclude_categories: tuple[str, ...] = ()

    @classmethod
    def from_config(cls) -> "DirectoryFilters":
        from app import config

        number_range = None
        if config.CHANNEL_NUMBER_MIN is not None or config.CHANNEL_NUMBER_MAX is not None:
            number_range = (config.CHANNEL_NUMBER_MIN, config.CHANNEL_NUMBER_MAX)
        return cls(
            include_pattern=config.CHANNEL_INCLUDE_PATTERN,
            exclude_pattern=config.CHANNEL_EXCLUDE_PATTERN,
            media_suffixes=tuple(config.STREAM_SUFFIXES),
            number_range=number_range,
            max_size=config.DIRECTORY_MAX_SIZE,
            include_countries=tuple(config.INCLUDE_COUNTRIES),
            exclude_countries=tuple(config.EXCLUDE_COUNTRIES),
            include_languages=tuple(config.INCLUDE_LANGUAGES),
            exclude_languages=tuple(config.EXCLUDE_LANGUAGES),
            exclude_categories=tuple(config.EXCLUDE_CATEGORIES),
        )


def _compile(pattern: Optional[str], label: str) -> Optional[re.Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Ignoring invalid {label} {pattern!r}: {e}")
        return None


def _values(raw: Optional[str]) -> set[str]:
    if not raw:
        return set()
    return {v.strip().lower() for v in raw.split(";") if v.strip()}


def _norm(items: tuple[str, ...]) -> set[str]:
    return {i.strip().lower() for i in items if i.strip()}


def channel_number(name: str) -> Optional[int]:
    """Return the leading "N." listing number of a channel name, if any."""
    match = _CHANNEL_NUMBER_RE.match(name)
    return int(match.group(1)) if match else None


def is_valid_stream_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class _Rules:
    """Precompiled form of `DirectoryFilters`."""

    def __init__(self, filters: DirectoryFilters) -> None:
        self.filters = filters
        self.include = _compile(filters.include_pattern, "include pattern")
        self.exclude = _compile(filters.exclude_pattern, "exclude pattern")
        self.include_countries = _norm(filters.include_countries)
        self.exclude_countries = _norm(filters.exclude_countries)
        self.include_languages = _norm(filters.include_languages)
        self.exclude_languages = _norm(filters.exclude_languages)
        self.exclude_categories = _norm(filters.exclude_categories)

    def rejection(self, decl: ChannelDeclaration) -> Optional[str]:
        """Return why a declaration is filtered out, or None to keep it."""
        f = self.filters
        if not is_valid_stream_url(decl.url):
            return "invalid stream url"
        if f.media_suffixes and not has_media_suffix(decl.url, f.media_suffixes):
            return "stream suffix"
        if self.include and not self.include.search(decl.name):
            return "include pattern"
        if self.exclude and self.exclude.search(decl.name):
            return "exclude pattern"
        if f.number_range is not None:
            number = channel_number(decl.name)
            low, high = f.number_range
            if number is None:
                return "unnumbered"
            if (low is not None and number < low) or (high is not None and number > high):
                return "number range"

        countries = _values(decl.attr("tvg-country"))
        if self.include_countries and not countries & self.include_countries:
            return "country not included"
        if countries & self.exclude_countries:
            return "country excluded"

        languages = _values(decl.attr("tvg-language"))
        if self.include_languages and not languages & self.include_languages:
            return "language not included"
        if languages & self.exclude_languages:
            return "language excluded"

        categories = _values(decl.attr("group-title"))
        if categories & self.exclude_categories:
            return "category excluded"
        return None


def to_channel_entry(decl: ChannelDeclaration) -> ChannelEntry:
    logo = decl.attr("tvg-logo") or decl.attr("logo") or None
    group = decl.attr("group-title") or None
    return ChannelEntry(
        id=channel_slug(decl.name),
        name=decl.name,
        stream_url=decl.url,
        logo_url=logo,
        group=group,
    )


def build_directory(
    records: Iterable[Record], filters: Optional[DirectoryFilters] = None
) -> DirectorySnapshot:
    """
    Build the channel directory from parsed records.

    Listing order is kept, the first channel with a given id wins and later
    duplicates are dropped. With `max_size` set, consumption stops once that
    many channels were accepted.
    """
    rules = _Rules(filters or DirectoryFilters())
    max_size = rules.filters.max_size
    entries: list[ChannelEntry] = []
    seen: set[str] = set()
    skipped = 0

    for record in records:
        if not isinstance(record, ChannelDeclaration):
            continue
        reason = rules.rejection(record)
        if reason:
            skipped += 1
            logger.trace("Filtered channel {!r}: {}", record.name, reason)
            continue
        entry = to_channel_entry(record)
        if not entry.id:
            skipped += 1
            continue
        if entry.id in seen:
            skipped += 1
            logger.debug("Dropping duplicate channel id {!r} ({})", entry.id, record.name)
            continue
        seen.add(entry.id)
        entries.append(entry)
        if max_size and len(entries) >= max_size:
            logger.debug("Directory capped at {} channels", max_size)
            break

    logger.debug("Built directory: {} channels, {} skipped", len(entries), skipped)
    return DirectorySnapshot(entries)


def parse_directory(
    text: str, filters: Optional[DirectoryFilters] = None
) -> DirectorySnapshot:
    """Parse a channel listing and build its directory in one pass."""
    filters = filters or DirectoryFilters()
    return build_directory(
        iter_channels(text, media_suffixes=filters.media_suffixes), filters
    )
