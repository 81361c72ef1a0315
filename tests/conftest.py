import sys
from collections import Counter
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

CHANNEL_LIST = (
    "#EXTM3U\n"
    '#EXTINF:-1 tvg-id="TF1.fr" tvg-logo="https://logos.example/tf1.png" group-title="General",TF1\n'
    "http://upstream/tf1/index.m3u8\n"
    '#EXTINF:-1 tvg-logo="https://logos.example/fr2.png",France 2\n'
    "http://upstream/fr2/master.m3u8\n"
    "#EXTINF:-1,Radio Only\n"
    "http://upstream/radio.mp3\n"
    "#EXTINF:-1,Broken\n"
    "#EXTINF:-1,Arte\n"
    "http://upstream/arte/master.m3u8\n"
    "#EXTINF:-1,Gone\n"
    "http://upstream/gone/master.m3u8\n"
)

FR2_MASTER = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360\n"
    "low/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080\n"
    "hd/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=2500000,RESOLUTION=1280x720\n"
    "mid/index.m3u8\n"
)

TF1_MEDIA = (
    "#EXTM3U\n"
    "#EXT-X-TARGETDURATION:6\n"
    "#EXTINF:6.0,\n"
    "segment-001.ts\n"
)

ARTE_MASTER = (
    "#EXTM3U\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=800000\n"
    "a/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=1600000\n"
    "b/index.m3u8\n"
)


class Upstream:
    """In-memory upstream serving playlists and counting requests per path."""

    def __init__(self):
        self.documents = {
            "/channels.m3u": CHANNEL_LIST,
            "/tf1/index.m3u8": TF1_MEDIA,
            "/fr2/master.m3u8": FR2_MASTER,
            "/arte/master.m3u8": ARTE_MASTER,
        }
        self.hits = Counter()
        self.app = self._build_app()

    def _build_app(self):
        app = FastAPI()

        @app.get("/{path:path}")
        async def serve(path: str):
            key = "/" + path
            self.hits[key] += 1
            body = self.documents.get(key)
            if body is None:
                return Response(content=b"not found", status_code=404)
            return Response(
                content=body.encode("utf-8"),
                media_type="application/vnd.apple.mpegurl",
            )

        return app

    def client_factory(self):
        def _factory():
            transport = httpx.ASGITransport(app=self.app)
            return httpx.AsyncClient(
                transport=transport,
                base_url="http://upstream",
                follow_redirects=True,
                trust_env=False,
            )

        return _factory


def _purge_app_modules():
    for name in list(sys.modules):
        if name == "app" or name.startswith("app."):
            del sys.modules[name]


@pytest.fixture
def upstream():
    return Upstream()


def _start_app(upstream, monkeypatch, refresh_interval_min="0"):
    monkeypatch.setenv("PLAYLIST_URL", "http://upstream/channels.m3u")
    monkeypatch.setenv("DIRECTORY_REFRESH_INTERVAL_MIN", refresh_interval_min)
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://addon.test")
    monkeypatch.setenv("CORS_ORIGINS", "*")
    for var in ("CHANNEL_INCLUDE_PATTERN", "CHANNEL_EXCLUDE_PATTERN", "DIRECTORY_MAX_SIZE"):
        monkeypatch.delenv(var, raising=False)

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    _purge_app_modules()

    from app.main import app

    monkeypatch.setattr(
        "app.utils.http_client._build_async_client", upstream.client_factory()
    )

    return TestClient(app)


@pytest.fixture
def client(upstream, monkeypatch):
    with _start_app(upstream, monkeypatch) as c:
        yield c


@pytest.fixture
def refreshing_client(upstream, monkeypatch):
    # 0.002 min = 120 ms between eager refreshes
    with _start_app(upstream, monkeypatch, refresh_interval_min="0.002") as c:
        yield c
