from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qs

from fastapi import Depends
from loguru import logger

from app.config import ADDON_CATALOG_ID
from app.core.channels import ChannelService

from . import router
from .common import CONTENT_TYPE, channel_id_from_addon_id, get_channel_service, to_meta


def _parse_extra(extra: Optional[str]) -> dict[str, str]:
    """Decode the "search=foo&skip=0" path segment of catalog requests."""
    if not extra:
        return {}
    parsed = parse_qs(extra, keep_blank_values=True)
    return {k: v[0] for k, v in parsed.items() if v}


async def _catalog(
    type_: str, catalog_id: str, extra: Optional[str], service: ChannelService
) -> dict:
    if type_ != CONTENT_TYPE or catalog_id != ADDON_CATALOG_ID:
        logger.debug("Unknown catalog {}/{}", type_, catalog_id)
        return {"metas": []}
    directory = await service.get_directory()
    search = _parse_extra(extra).get("search", "")
    channels = directory.search(search) if search else list(directory)
    logger.debug("Catalog request search={!r}: {} channels", search, len(channels))
    return {"metas": [to_meta(c) for c in channels]}


@router.get("/catalog/{type_}/{catalog_id}.json")
async def catalog(
    type_: str, catalog_id: str, service: ChannelService = Depends(get_channel_service)
):
    return await _catalog(type_, catalog_id, None, service)


@router.get("/catalog/{type_}/{catalog_id}/{extra:path}.json")
async def catalog_with_extra(
    type_: str,
    catalog_id: str,
    extra: str,
    service: ChannelService = Depends(get_channel_service),
):
    return await _catalog(type_, catalog_id, extra, service)


@router.get("/meta/{type_}/{addon_id:path}.json")
async def meta(
    type_: str, addon_id: str, service: ChannelService = Depends(get_channel_service)
):
    channel_id = channel_id_from_addon_id(addon_id)
    if type_ != CONTENT_TYPE or channel_id is None:
        return {"meta": {}}
    channel = await service.get_channel(channel_id)
    if channel is None:
        logger.debug("Meta requested for unknown channel {}", channel_id)
        return {"meta": {}}
    return {"meta": to_meta(channel)}
