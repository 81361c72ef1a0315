from loguru import logger
from fastapi import FastAPI

from app._version import __version__
from app.config import CORS_ALLOW_CREDENTIALS, CORS_ORIGINS
from app.cors import apply_cors_middleware
from app.core.lifespan import lifespan
from app.api.addon import router as addon_router

app = FastAPI(title="IPTV Addon", version=__version__, lifespan=lifespan)
apply_cors_middleware(
    app, origins=CORS_ORIGINS, allow_credentials=CORS_ALLOW_CREDENTIALS
)
app.include_router(addon_router)  # manifest, catalog, meta, stream


# Healthcheck endpoint for CI/CD and monitoring
@app.get("/health")
async def healthcheck():
    return {"status": "ok"}


def main() -> None:
    from app.cli import run_server

    logger.info("Starting IPTV add-on server...")
    run_server(app)


if __name__ == "__main__":
    main()
