from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Sequence, Union
from urllib.parse import urlsplit

from loguru import logger

from .errors import MalformedEntry
from .types import ChannelDeclaration, VariantEntry

CHANNEL_DIRECTIVE = "#EXTINF:"
VARIANT_DIRECTIVE = "#EXT-X-STREAM-INF:"

# Player hints that may sit between an #EXTINF line and its URL.
_OPTION_PREFIXES = ("#EXTVLCOPT:", "#KODIPROP:", "#EXTGRP:")

_QUOTED_ATTR_RE = re.compile(r'([A-Za-z0-9_-]+)="([^"]*)"')

Record = Union[ChannelDeclaration, VariantEntry]


class ScanState(Enum):
    AWAITING_DECLARATION = "awaiting-declaration"
    AWAITING_RESOURCE = "awaiting-resource"


@dataclass
class _Pending:
    kind: str
    line_no: int
    line: str
    attributes: dict[str, str]
    name: str = ""
    options: list[str] = field(default_factory=list)


def _split_hls_attrs(raw: str) -> list[str]:
    """
    Split an HLS attribute list by commas while respecting quoted values.
    """
    parts: list[str] = []
    buf: list[str] = []
    in_quotes = False
    for ch in raw:
        if ch == '"':
            in_quotes = not in_quotes
        if ch == "," and not in_quotes:
            part = "".join(buf).strip()
            if part:
                parts.append(part)
            buf = []
            continue
        buf.append(ch)
    tail = "".join(buf).strip()
    if tail:
        parts.append(tail)
    return parts


def parse_variant_attributes(raw: str) -> dict[str, str]:
    """
    Parse the attribute list of an `#EXT-X-STREAM-INF` line.

    Values are unquoted; a value whose opening quote is never closed is
    treated as absent.
    """
    attributes: dict[str, str] = {}
    for part in _split_hls_attrs(raw):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if value.startswith('"'):
            if len(value) < 2 or not value.endswith('"'):
                logger.trace("Dropping unterminated attribute {}", key)
                continue
            value = value[1:-1]
        attributes[key] = value
    return attributes


def parse_channel_directive(line: str, line_no: int = 0) -> tuple[str, dict[str, str]]:
    """
    Extract the display name and quoted attributes of an `#EXTINF` line.

    The name is whatever follows the first comma once the `key="value"`
    pairs are removed, so commas inside quoted values do not split it.

    Raises:
        MalformedEntry: when the line has no (or an empty) name segment.
    """
    body = line.strip()[len(CHANNEL_DIRECTIVE) :]
    attributes = {m.group(1): m.group(2) for m in _QUOTED_ATTR_RE.finditer(body)}
    remainder = _QUOTED_ATTR_RE.sub("", body)
    if "," not in remainder:
        raise MalformedEntry(line_no, "missing name segment", line)
    name = remainder.split(",", 1)[1].strip()
    if not name:
        raise MalformedEntry(line_no, "empty name segment", line)
    return name, attributes


def has_media_suffix(url: str, suffixes: Sequence[str]) -> bool:
    """Check the URL path (query string ignored) against allowed suffixes."""
    path = urlsplit(url).path.lower()
    return any(path.endswith(s.lower()) for s in suffixes)


def _discard(pending: _Pending, reason: str) -> None:
    err = MalformedEntry(pending.line_no, reason, pending.line)
    logger.debug("Skipping {} entry: {}", pending.kind, err)


def _open(line: str, line_no: int, *, channels: bool, variants: bool) -> Optional[_Pending]:
    upper = line.upper()
    if upper.startswith(CHANNEL_DIRECTIVE):
        if not channels:
            return None
        try:
            name, attributes = parse_channel_directive(line, line_no)
        except MalformedEntry as err:
            logger.debug("Skipping channel entry: {}", err)
            return None
        return _Pending("channel", line_no, line, attributes, name=name)
    if variants:
        attributes = parse_variant_attributes(line[len(VARIANT_DIRECTIVE) :])
        return _Pending("variant", line_no, line, attributes)
    return None


def _close(
    pending: _Pending,
    url: str,
    line_no: int,
    media_suffixes: Optional[Sequence[str]],
) -> Optional[Record]:
    if pending.kind == "variant":
        return VariantEntry(
            attributes=pending.attributes,
            url=url,
            line_no=pending.line_no,
            resource_line_no=line_no,
        )
    if media_suffixes and not has_media_suffix(url, media_suffixes):
        _discard(pending, f"resource {url!r} lacks a media suffix")
        return None
    return ChannelDeclaration(
        name=pending.name,
        url=url,
        attributes=pending.attributes,
        line_no=pending.line_no,
        resource_line_no=line_no,
        options=tuple(pending.options),
    )


def iter_records(
    text: str,
    *,
    media_suffixes: Optional[Sequence[str]] = None,
    channels: bool = True,
    variants: bool = True,
) -> Iterator[Record]:
    """
    Lazily scan playlist text into channel and variant records.

    The scanner alternates between two states. While awaiting a declaration
    it looks for `#EXTINF:` / `#EXT-X-STREAM-INF:` lines; once one is seen it
    awaits the resource line, i.e. the next non-blank line not starting with
    "#". Another directive in that state drops the pending declaration (the
    player option lines in `_OPTION_PREFIXES` are tolerated). A declaration
    still pending at end of input is dropped. Malformed entries are logged
    and skipped, never raised.

    Parameters:
        text (str): Raw playlist text, `\\n` or `\\r\\n` terminated.
        media_suffixes (Sequence[str] | None): When set, channel resources
            whose URL path does not end with one of these are dropped.
        channels (bool): Emit `ChannelDeclaration` records.
        variants (bool): Emit `VariantEntry` records.
    """
    state = ScanState.AWAITING_DECLARATION
    pending: Optional[_Pending] = None

    for line_no, raw_line in enumerate(text.splitlines()):
        line = raw_line.strip()
        if not line:
            continue
        upper = line.upper()

        if upper.startswith(CHANNEL_DIRECTIVE) or upper.startswith(VARIANT_DIRECTIVE):
            if state is ScanState.AWAITING_RESOURCE and pending is not None:
                _discard(pending, "declaration without resource line")
            pending = _open(line, line_no, channels=channels, variants=variants)
            state = (
                ScanState.AWAITING_RESOURCE
                if pending is not None
                else ScanState.AWAITING_DECLARATION
            )
            continue

        if line.startswith("#"):
            if state is ScanState.AWAITING_RESOURCE and pending is not None:
                if pending.kind == "channel" and upper.startswith(_OPTION_PREFIXES):
                    pending.options.append(line)
                    continue
                _discard(pending, "declaration without resource line")
                pending = None
                state = ScanState.AWAITING_DECLARATION
            continue

        if state is ScanState.AWAITING_DECLARATION or pending is None:
            logger.trace("Ignoring resource line {} with no declaration", line_no + 1)
            continue

        record = _close(pending, line, line_no, media_suffixes)
        pending = None
        state = ScanState.AWAITING_DECLARATION
        if record is not None:
            yield record

    if state is ScanState.AWAITING_RESOURCE and pending is not None:
        _discard(pending, "end of input before resource line")


def iter_channels(
    text: str, *, media_suffixes: Optional[Sequence[str]] = None
) -> Iterator[ChannelDeclaration]:
    for record in iter_records(text, media_suffixes=media_suffixes, variants=False):
        if isinstance(record, ChannelDeclaration):
            yield record


def iter_variants(text: str) -> Iterator[VariantEntry]:
    for record in iter_records(text, channels=False):
        if isinstance(record, VariantEntry):
            yield record
