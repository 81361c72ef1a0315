from __future__ import annotations

from urllib.parse import urlsplit

import httpx
from loguru import logger

from app.config import HTTP_TIMEOUT_SECONDS, HTTP_USER_AGENT, PROXY_URL


class FetchError(Exception):
    """Upstream document could not be fetched (transport error or non-2xx)."""

    def __init__(self, url: str, status_code: int | None = None, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP {status_code}" if status_code is not None else reason or "request failed"
        super().__init__(f"Fetch failed for {_redact(url)}: {detail}")


def _redact(url: str) -> str:
    """
    Produce a short identifier for logging upstream URLs without tokens.
    """
    try:
        parsed = urlsplit(url)
        return f"{parsed.netloc}{parsed.path or '/'}"
    except Exception:
        return "<redacted>"


def _build_async_client() -> httpx.AsyncClient:
    """
    Build an AsyncClient for upstream playlist fetches.
    """
    logger.trace("Building upstream AsyncClient")
    timeout = httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=10.0)
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": HTTP_USER_AGENT, "Accept": "*/*"},
        proxy=PROXY_URL,
    )


async def fetch_text(url: str) -> str:
    """
    Fetch an upstream playlist document and return its decoded text.

    No retries are attempted; callers decide whether to try again.

    Raises:
        FetchError: on transport errors, invalid schemes or non-2xx responses.
    """
    scheme = urlsplit(url).scheme
    if scheme not in ("http", "https"):
        raise FetchError(url, reason=f"unsupported scheme {scheme!r}")
    logger.debug("Fetching {}", _redact(url))
    async with _build_async_client() as client:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Upstream request error for {}: {}", _redact(url), exc)
            raise FetchError(url, reason=str(exc) or type(exc).__name__) from exc
    if not response.is_success:
        logger.warning(
            "Upstream returned HTTP {} for {}", response.status_code, _redact(url)
        )
        raise FetchError(url, status_code=response.status_code)
    logger.trace("Fetched {} bytes from {}", len(response.content), _redact(url))
    return response.text
