"""Pytest configuration and fixtures."""

import io
import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from PIL import Image

from selfiegram.config.models import GallerySettings, OverlaySettings
from selfiegram.storage.selfie_store import SelfieStore

BASE_URL = "https://overlays.test/Data/"

SAMPLE_MANIFEST = [
    {"icon": "eyebrow-1-icon.png", "leftImage": "eyebrow-1-left.png", "rightImage": "eyebrow-1-right.png"},
    {"icon": "eyebrow-2-icon.png", "leftImage": "eyebrow-2-left.png", "rightImage": "eyebrow-2-right.png"},
]


def make_image(color: tuple[int, int, int] = (200, 40, 40), size: tuple[int, int] = (64, 48)) -> Image.Image:
    """Solid color RGB image."""
    return Image.new("RGB", size, color)


def png_bytes(color: tuple[int, int, int] = (10, 120, 200), size: tuple[int, int] = (16, 16)) -> bytes:
    """Encoded PNG of a solid color."""
    buffer = io.BytesIO()
    Image.new("RGBA", size, (*color, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def remote_files(manifest: list[dict] | None = None) -> dict[str, bytes]:
    """Files served by the fake overlay server, keyed by URL path."""
    manifest = SAMPLE_MANIFEST if manifest is None else manifest
    files = {"/Data/overlays.json": json.dumps(manifest).encode("utf-8")}
    for entry in manifest:
        for name in entry.values():
            files[f"/Data/{name}"] = png_bytes()
    return files


def make_transport(
    files: dict[str, bytes],
    requests: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Mock transport serving files by path, 404 for anything else."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        body = files.get(request.url.path)
        if body is None:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    """Empty documents directory."""
    path = tmp_path / "documents"
    path.mkdir()
    return path


@pytest.fixture
def store(documents_dir: Path) -> SelfieStore:
    """Selfie store on a temporary directory."""
    return SelfieStore(documents_dir)


@pytest.fixture
def gallery_settings() -> GallerySettings:
    """Gallery settings with location saving on."""
    return GallerySettings(save_location=True, default_title="New Selfie!")


@pytest.fixture
def overlay_settings(tmp_path: Path) -> OverlaySettings:
    """Overlay settings pointing at the fake server and a temporary cache."""
    return OverlaySettings(
        base_url=BASE_URL,
        cache_dir=tmp_path / "cache",
        max_concurrent_downloads=4,
        timeout=5.0,
    )


@pytest.fixture
def client_factory() -> Callable[..., httpx.AsyncClient]:
    """Build AsyncClients over a mock transport."""

    def factory(
        files: dict[str, bytes] | None = None,
        requests: list[httpx.Request] | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=make_transport(remote_files() if files is None else files, requests))

    return factory
