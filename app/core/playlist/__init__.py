from .types import (
    ChannelDeclaration,
    ChannelEntry,
    DirectorySnapshot,
    ResolvedPlaylist,
    VariantEntry,
    channel_slug,
)
from .errors import MalformedEntry, NoRankableVariant, PlaylistError
from .parser import iter_channels, iter_records, iter_variants
from .directory import DirectoryFilters, build_directory, parse_directory
from .variants import absolutize_playlist, rank_variants, resolve_variants

__all__ = [
    "ChannelDeclaration",
    "ChannelEntry",
    "DirectorySnapshot",
    "ResolvedPlaylist",
    "VariantEntry",
    "channel_slug",
    "MalformedEntry",
    "NoRankableVariant",
    "PlaylistError",
    "iter_records",
    "iter_channels",
    "iter_variants",
    "DirectoryFilters",
    "build_directory",
    "parse_directory",
    "resolve_variants",
    "rank_variants",
    "absolutize_playlist",
]
