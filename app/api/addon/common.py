from __future__ import annotations

from typing import Any, Optional

from fastapi import Request

from app.config import ADDON_ID_PREFIX, PUBLIC_BASE_URL
from app.core.channels import ChannelService
from app.core.playlist import ChannelEntry

CONTENT_TYPE = "tv"


def get_channel_service(request: Request) -> ChannelService:
    """FastAPI dependency returning the service owned by the app lifespan."""
    return request.app.state.channels


def public_base_url(request: Request) -> str:
    if PUBLIC_BASE_URL:
        return PUBLIC_BASE_URL
    return str(request.base_url).rstrip("/")


def channel_id_from_addon_id(addon_id: str) -> Optional[str]:
    """
    Strip the add-on prefix ("iptv-france-2" -> "france-2").

    Ids may contain "/", "?" or "#" (the slug keeps them). Clients send them
    percent-encoded; routes capture them with the `path` converter, so
    `addon_id` arrives here already decoded.
    """
    if not addon_id.startswith(ADDON_ID_PREFIX):
        return None
    channel_id = addon_id[len(ADDON_ID_PREFIX) :]
    return channel_id or None


def to_meta(channel: ChannelEntry) -> dict[str, Any]:
    return {
        "id": f"{ADDON_ID_PREFIX}{channel.id}",
        "name": channel.name,
        "type": CONTENT_TYPE,
        "genres": [channel.group or "general"],
        "poster": channel.logo_url,
        "posterShape": "square",
        "background": channel.logo_url or None,
        "logo": channel.logo_url or None,
        "description": f"Live channel: {channel.name}",
    }
