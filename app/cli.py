from __future__ import annotations

import sys
from loguru import logger

from app.config import ADDON_HOST, ADDON_PORT, ADDON_RELOAD


def is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False) or hasattr(sys, "_MEIPASS"))


def run_server(app_obj):
    """Run the Uvicorn server.

    - Reload is off unless ADDON_RELOAD is set
    - Packaged (frozen) runs never reload
    """
    import uvicorn

    reload_flag = ADDON_RELOAD and not is_frozen()

    logger.info(f"Add-on listening on http://{ADDON_HOST}:{ADDON_PORT}/manifest.json")
    if reload_flag:
        logger.info("Uvicorn reload enabled (development mode).")
        uvicorn.run(
            "app.main:app",
            host=ADDON_HOST,
            port=ADDON_PORT,
            reload=True,
        )
    else:
        uvicorn.run(
            app_obj,
            host=ADDON_HOST,
            port=ADDON_PORT,
            reload=False,
        )
