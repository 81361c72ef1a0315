from __future__ import annotations

from contextlib import asynccontextmanager

from loguru import logger
from fastapi import FastAPI

from app.config import DIRECTORY_REFRESH_INTERVAL_MIN, PLAYLIST_URL
from app.core.cache import ResultCache
from app.core.channels import ChannelService
from app.core.playlist import DirectoryFilters
from app.core.scheduler import DirectoryRefresher
from app.utils import http_client


def build_channel_service(cache: ResultCache) -> ChannelService:
    return ChannelService(
        cache,
        playlist_url=PLAYLIST_URL,
        filters=DirectoryFilters.from_config(),
        fetch=http_client.fetch_text,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: creating result cache and channel service.")
    cache = ResultCache()
    service = build_channel_service(cache)
    app.state.cache = cache
    app.state.channels = service

    refresher = DirectoryRefresher(
        service.refresh_directory, DIRECTORY_REFRESH_INTERVAL_MIN * 60
    )
    app.state.refresher = refresher
    try:
        refresher.start()
    except Exception as e:
        logger.warning(f"directory refresher start failed: {e}")

    try:
        yield
    finally:
        logger.info("Application shutdown: stopping refresh task and clearing cache.")
        await refresher.stop()
        await cache.close()
