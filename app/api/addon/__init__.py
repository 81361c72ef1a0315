from __future__ import annotations

from fastapi import APIRouter

from app.utils.logger import config as configure_logger

# Ensure log configuration once
configure_logger()

# Shared router for the add-on endpoints (manifest, catalog, meta, stream)
router = APIRouter()

# Import submodules to register routes on the shared router
from . import manifest  # noqa: F401,E402
from . import catalog  # noqa: F401,E402
from . import stream  # noqa: F401,E402

__all__ = ["router"]
