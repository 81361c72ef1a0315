from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware


def apply_cors_middleware(
    app: FastAPI,
    *,
    origins: list[str],
    allow_credentials: bool,
) -> None:
    """Allow add-on clients on other origins to call the API.

    - No middleware if origins is empty.
    - Wildcard origins ("*") always disable credentials.
    - Only read methods are exposed; the add-on API has no write endpoints.
    """

    if not origins:
        return

    is_wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if is_wildcard else origins,
        allow_credentials=False if is_wildcard else allow_credentials,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )
