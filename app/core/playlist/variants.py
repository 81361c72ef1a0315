from __future__ import annotations

import re
from urllib.parse import urljoin

from loguru import logger

from .errors import NoRankableVariant
from .parser import VARIANT_DIRECTIVE, iter_variants, parse_variant_attributes
from .types import ResolvedPlaylist, VariantEntry

_URI_TAG_PREFIXES = (
    "#EXT-X-KEY",
    "#EXT-X-MAP",
    "#EXT-X-MEDIA",
    "#EXT-X-I-FRAME-STREAM-INF",
    "#EXT-X-SESSION-KEY",
    "#EXT-X-PRELOAD-HINT",
    "#EXT-X-RENDITION-REPORT",
    "#EXT-X-SESSION-DATA",
)

_URI_ATTR_RE = re.compile(r'URI=(?:"(?P<uri_quoted>[^"]*)"|(?P<uri_unquoted>[^,]*))')


def _join_lines(lines: list[str], original: str) -> str:
    result = "\n".join(lines)
    if original.endswith("\n"):
        result += "\n"
    return result


def rank_variants(variants: list[VariantEntry]) -> list[VariantEntry]:
    """
    Order variants with a parseable resolution by pixel area, largest first.

    The sort is stable, so among equal areas the first declared comes first.
    Variants without a resolution are left out.
    """
    rankable = [v for v in variants if v.area is not None]
    return sorted(rankable, key=lambda v: v.area or 0, reverse=True)


def _orphaned_declarations(
    lines: list[str], variants: list[VariantEntry], selected: tuple[int, int] | None
) -> set[int]:
    """Indexes of URI-less `#EXT-X-STREAM-INF` lines not at `selected`."""
    claimed = {v.line_no for v in variants}
    orphans: set[int] = set()
    for idx, line in enumerate(lines):
        stripped = line.strip()
        if idx in claimed or not stripped.upper().startswith(VARIANT_DIRECTIVE):
            continue
        attributes = parse_variant_attributes(stripped[len(VARIANT_DIRECTIVE) :])
        if VariantEntry(attributes=attributes, url="").resolution != selected:
            logger.debug("Dropping variant declaration without URI at line {}", idx + 1)
            orphans.add(idx)
    return orphans


def resolve_variants(playlist_text: str) -> ResolvedPlaylist:
    """
    Reduce a master playlist to its highest-resolution variant(s).

    Every line is kept except the variant blocks (declaration through media
    URL) whose resolution differs from the selected one; all blocks at the
    selected resolution are kept verbatim, in order. A document without
    variants is returned untouched, and so is one whose variants all lack a
    parseable RESOLUTION (logged as a warning). The result is a fixed point:
    resolving it again yields the same text.
    """
    variants = list(iter_variants(playlist_text))
    if not variants:
        logger.trace("No variants found; passing playlist through")
        return ResolvedPlaylist(text=playlist_text, status="passthrough")

    ranked = rank_variants(variants)
    if not ranked:
        err = NoRankableVariant(len(variants))
        logger.warning("Keeping playlist unmodified: {}", err)
        return ResolvedPlaylist(
            text=playlist_text,
            status="unranked",
            variant_count=len(variants),
            retained_count=len(variants),
        )

    selected = ranked[0].resolution
    dropped: set[int] = set()
    retained = 0
    for variant in variants:
        if variant.resolution == selected:
            retained += 1
            continue
        dropped.update(range(variant.line_no, variant.resource_line_no + 1))

    lines = playlist_text.splitlines()
    dropped.update(_orphaned_declarations(lines, variants, selected))
    out_lines = [line for idx, line in enumerate(lines) if idx not in dropped]
    result = ResolvedPlaylist(
        text=_join_lines(out_lines, playlist_text),
        status="resolved",
        selected_resolution=selected,
        variant_count=len(variants),
        retained_count=retained,
    )
    logger.debug(
        "Selected {} ({} of {} variants kept)",
        result.resolution_label,
        retained,
        len(variants),
    )
    return result


def _absolutize_uri_attr(line: str, base_url: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        raw_uri = match.group("uri_quoted") or match.group("uri_unquoted") or ""
        abs_uri = urljoin(base_url, raw_uri)
        if match.group("uri_quoted") is not None:
            return f'URI="{abs_uri}"'
        return f"URI={abs_uri}"

    return _URI_ATTR_RE.sub(_replace, line)


def absolutize_playlist(playlist_text: str, *, base_url: str) -> str:
    """
    Resolve every relative URI of a playlist against the URL it came from.

    Needed when a playlist is served from another origin than its own.
    Absolute URIs, tag formatting and the trailing newline are preserved.
    """
    if not playlist_text:
        return playlist_text

    out_lines: list[str] = []
    for line in playlist_text.splitlines():
        stripped = line.strip()
        if not stripped:
            out_lines.append(line)
            continue
        if stripped.startswith("#"):
            if stripped.startswith(_URI_TAG_PREFIXES):
                out_lines.append(_absolutize_uri_attr(line, base_url))
            else:
                out_lines.append(line)
            continue
        out_lines.append(urljoin(base_url, stripped))

    logger.trace("Absolutized playlist against {}", base_url)
    return _join_lines(out_lines, playlist_text)
