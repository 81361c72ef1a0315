from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from loguru import logger

from app.core.channels import ChannelService, ResolvedStream

from . import router
from .common import CONTENT_TYPE, channel_id_from_addon_id, get_channel_service, public_base_url

_HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"


def _quality_label(resolved: ResolvedStream) -> str:
    playlist = resolved.playlist
    if playlist is not None and playlist.selected_resolution is not None:
        return f"{playlist.selected_resolution[1]}p"
    return "HD"


def to_stream(resolved: ResolvedStream, base_url: str) -> dict[str, Any]:
    """
    Map a resolved channel to a stream descriptor.

    Resolved variant playlists are served by this service; everything else
    points straight at the upstream URL.
    """
    if resolved.should_inline:
        url = f"{base_url}/playlist/{quote(resolved.channel.id, safe='')}.m3u8"
    else:
        url = resolved.upstream_url
    return {
        "title": resolved.channel.name,
        "url": url,
        "quality": _quality_label(resolved),
        "isM3U8": True,
    }


@router.get("/stream/{type_}/{addon_id:path}.json")
async def stream(
    type_: str,
    addon_id: str,
    request: Request,
    service: ChannelService = Depends(get_channel_service),
):
    channel_id = channel_id_from_addon_id(addon_id)
    if type_ != CONTENT_TYPE or channel_id is None:
        return {"streams": []}
    resolved = await service.get_resolved_stream(channel_id)
    if resolved is None:
        return {"streams": []}
    logger.info(
        "Stream {} inline={} quality={}",
        channel_id,
        resolved.should_inline,
        _quality_label(resolved),
    )
    return {"streams": [to_stream(resolved, public_base_url(request))]}


@router.get("/playlist/{channel_id:path}.m3u8")
async def resolved_playlist(
    channel_id: str, service: ChannelService = Depends(get_channel_service)
):
    resolved = await service.get_resolved_stream(channel_id)
    if resolved is None or not resolved.should_inline:
        raise HTTPException(status_code=404, detail="playlist not available")
    return Response(content=resolved.playlist.text, media_type=_HLS_MEDIA_TYPE)
