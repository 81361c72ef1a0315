from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from loguru import logger

from app._version import __version__
from app.config import ADDON_CATALOG_ID, ADDON_ID, ADDON_ID_PREFIX, ADDON_NAME

from . import router
from .common import CONTENT_TYPE


def build_manifest() -> dict[str, Any]:
    return {
        "id": ADDON_ID,
        "name": ADDON_NAME,
        "version": __version__,
        "description": "Watch live TV channels from an IPTV playlist",
        "resources": ["catalog", "meta", "stream"],
        "types": [CONTENT_TYPE],
        "catalogs": [
            {
                "type": CONTENT_TYPE,
                "id": ADDON_CATALOG_ID,
                "name": "IPTV",
                "extra": [{"name": "search"}],
            }
        ],
        "idPrefixes": [ADDON_ID_PREFIX],
        "behaviorHints": {"configurable": True, "configurationRequired": False},
        "logo": "https://dl.strem.io/addon-logo.png",
        "icon": "https://dl.strem.io/addon-logo.png",
        "background": "https://dl.strem.io/addon-background.jpg",
    }


@router.get("/manifest.json")
def manifest():
    logger.debug("Manifest requested.")
    return JSONResponse(build_manifest())
