"""Unit tests for OverlayManager."""

import asyncio
import json
from pathlib import Path

import httpx
import pytest
from PIL import Image

from conftest import SAMPLE_MANIFEST, make_transport, png_bytes, remote_files
from selfiegram.config.models import OverlaySettings
from selfiegram.infrastructure.overlay_manager import DownloadReport, OverlayManager
from selfiegram.models.errors import (
    ManifestCacheWriteError,
    ManifestDownloadError,
    ManifestParseError,
    NoDataLoadedError,
)
from selfiegram.models.overlay import OverlayInformation


def _asset_names(manifest: list[dict]) -> set[str]:
    return {name for entry in manifest for name in entry.values()}


class TestOverlayManagerBootstrap:
    """Tests for reading the cached manifest at construction."""

    def test_no_cache_means_no_overlays(self, overlay_settings: OverlaySettings) -> None:
        """A fresh cache directory yields an empty manifest."""
        manager = OverlayManager(overlay_settings)

        assert manager.overlay_info == []
        assert manager.available_overlays() == []

    def test_reads_cached_manifest(self, overlay_settings: OverlaySettings) -> None:
        """A cached manifest is loaded on construction."""
        overlay_settings.cache_dir.mkdir(parents=True)
        (overlay_settings.cache_dir / "overlays.json").write_text(json.dumps(SAMPLE_MANIFEST))

        manager = OverlayManager(overlay_settings)

        assert [info.icon for info in manager.overlay_info] == [
            "eyebrow-1-icon.png",
            "eyebrow-2-icon.png",
        ]
        # Assets are not cached yet
        assert manager.available_overlays() == []

    def test_corrupt_cached_manifest_is_ignored(self, overlay_settings: OverlaySettings) -> None:
        """A corrupt cache file is treated as no manifest."""
        overlay_settings.cache_dir.mkdir(parents=True)
        (overlay_settings.cache_dir / "overlays.json").write_text("[{\"icon\": ")

        manager = OverlayManager(overlay_settings)

        assert manager.overlay_info == []

    def test_url_and_path_helpers(self, overlay_settings: OverlaySettings) -> None:
        """Asset names resolve against the base URL and the cache directory."""
        manager = OverlayManager(overlay_settings)

        assert manager.manifest_url == "https://overlays.test/Data/overlays.json"
        assert manager.url_for_asset("eyebrow-1-icon.png") == (
            "https://overlays.test/Data/eyebrow-1-icon.png"
        )
        assert manager.cached_path_for_asset("eyebrow-1-icon.png") == (
            overlay_settings.cache_dir / "eyebrow-1-icon.png"
        )
        assert manager.cached_path_for_asset("../escape.png") is None

    def test_overlay_info_is_a_copy(self, overlay_settings: OverlaySettings) -> None:
        """Mutating the returned list does not change the manager."""
        manager = OverlayManager(overlay_settings)

        manager.overlay_info.append(
            OverlayInformation(icon="a.png", left_image="b.png", right_image="c.png")
        )

        assert manager.overlay_info == []


class TestRefreshOverlays:
    """Tests for downloading the manifest."""

    @pytest.mark.asyncio
    async def test_refresh_writes_cache_and_updates_memory(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """A successful refresh caches the exact bytes and replaces the manifest."""
        files = remote_files()
        async with client_factory(files) as client:
            manager = OverlayManager(overlay_settings, client=client)
            manifest = await manager.refresh_overlays()

        assert len(manifest) == 2
        assert manager.overlay_info == manifest
        cached = overlay_settings.cache_dir / "overlays.json"
        assert cached.read_bytes() == files["/Data/overlays.json"]
        assert len(OverlayManager(overlay_settings).overlay_info) == 2

    @pytest.mark.asyncio
    async def test_refresh_not_found(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """A non-2xx response raises ManifestDownloadError."""
        async with client_factory(files={}) as client:
            manager = OverlayManager(overlay_settings, client=client)
            with pytest.raises(ManifestDownloadError) as exc_info:
                await manager.refresh_overlays()

        assert exc_info.value.details == {"url": "https://overlays.test/Data/overlays.json"}
        assert manager.overlay_info == []
        assert not (overlay_settings.cache_dir / "overlays.json").exists()

    @pytest.mark.asyncio
    async def test_refresh_transport_error(self, overlay_settings: OverlaySettings) -> None:
        """A connection failure raises ManifestDownloadError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            manager = OverlayManager(overlay_settings, client=client)
            with pytest.raises(ManifestDownloadError):
                await manager.refresh_overlays()

    @pytest.mark.asyncio
    async def test_refresh_empty_body(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """An empty response raises NoDataLoadedError."""
        async with client_factory({"/Data/overlays.json": b""}) as client:
            manager = OverlayManager(overlay_settings, client=client)
            with pytest.raises(NoDataLoadedError):
                await manager.refresh_overlays()

        assert not (overlay_settings.cache_dir / "overlays.json").exists()

    @pytest.mark.asyncio
    async def test_refresh_unparseable_body_keeps_state(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """Invalid JSON raises ManifestParseError and leaves cache and memory alone."""
        overlay_settings.cache_dir.mkdir(parents=True)
        cached = overlay_settings.cache_dir / "overlays.json"
        cached.write_text(json.dumps(SAMPLE_MANIFEST))

        async with client_factory({"/Data/overlays.json": b"{not json"}) as client:
            manager = OverlayManager(overlay_settings, client=client)
            with pytest.raises(ManifestParseError):
                await manager.refresh_overlays()

        assert len(manager.overlay_info) == 2
        assert json.loads(cached.read_text()) == SAMPLE_MANIFEST

    @pytest.mark.asyncio
    async def test_refresh_wrong_shape(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """Entries missing required keys are a parse error."""
        body = json.dumps([{"icon": "only-icon.png"}]).encode()
        async with client_factory({"/Data/overlays.json": body}) as client:
            manager = OverlayManager(overlay_settings, client=client)
            with pytest.raises(ManifestParseError):
                await manager.refresh_overlays()

    @pytest.mark.asyncio
    async def test_refresh_cache_write_failure(
        self,
        overlay_settings: OverlaySettings,
        client_factory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A cache write failure raises and keeps the previous manifest in memory."""
        async with client_factory() as client:
            manager = OverlayManager(overlay_settings, client=client)
            await manager.refresh_overlays()

        smaller = SAMPLE_MANIFEST[:1]

        def failing_write(self: Path, data: bytes) -> int:
            raise OSError("disk full")

        monkeypatch.setattr(Path, "write_bytes", failing_write)

        async with client_factory(remote_files(smaller)) as client:
            manager._client = client
            with pytest.raises(ManifestCacheWriteError):
                await manager.refresh_overlays()

        assert len(manager.overlay_info) == 2

    @pytest.mark.asyncio
    async def test_refresh_cache_dir_is_a_file(self, tmp_path: Path, client_factory) -> None:
        """An unusable cache directory raises ManifestCacheWriteError."""
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory")
        settings = OverlaySettings(base_url="https://overlays.test/Data/", cache_dir=blocker)

        async with client_factory() as client:
            manager = OverlayManager(settings, client=client)
            assert manager.overlay_info == []
            with pytest.raises(ManifestCacheWriteError):
                await manager.refresh_overlays()

        assert manager.overlay_info == []


class TestLoadOverlayAssets:
    """Tests for downloading overlay assets."""

    @pytest.mark.asyncio
    async def test_download_all_assets(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """After a full download every manifest entry is available."""
        async with client_factory() as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert isinstance(report, DownloadReport)
        assert report.complete
        assert report.requested == 6
        assert set(report.downloaded) == _asset_names(SAMPLE_MANIFEST)

        available = manager.available_overlays()
        assert len(available) == len(manager.overlay_info) == 2
        overlay = available[0]
        assert overlay.info.icon == "eyebrow-1-icon.png"
        assert overlay.preview_icon.size == (16, 16)

    @pytest.mark.asyncio
    async def test_new_manager_sees_cached_assets(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """A second manager on the same cache sees the same overlays without network."""
        async with client_factory() as client:
            manager = OverlayManager(overlay_settings, client=client)
            await manager.load_overlay_assets(refresh=True)

        fresh = OverlayManager(overlay_settings)

        assert len(fresh.available_overlays()) == len(manager.available_overlays()) == 2

    @pytest.mark.asyncio
    async def test_missing_asset_excludes_one_overlay(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """A failed download removes only the affected overlay."""
        files = remote_files()
        del files["/Data/eyebrow-2-left.png"]

        async with client_factory(files) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert not report.complete
        assert report.failed == ["eyebrow-2-left.png"]
        assert [o.info.icon for o in manager.available_overlays()] == ["eyebrow-1-icon.png"]

    @pytest.mark.asyncio
    async def test_undecodable_asset_excludes_overlay(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """An asset that downloads but is not an image makes the overlay unavailable."""
        files = remote_files()
        files["/Data/eyebrow-1-right.png"] = b"not a png"

        async with client_factory(files) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert report.complete
        assert [o.info.icon for o in manager.available_overlays()] == ["eyebrow-2-icon.png"]

    @pytest.mark.asyncio
    async def test_empty_manifest_completes_immediately(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """No entries means nothing to download."""
        requests: list[httpx.Request] = []
        async with client_factory(remote_files([]), requests) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert report.requested == 0
        assert report.complete
        assert [r.url.path for r in requests] == ["/Data/overlays.json"]
        assert manager.available_overlays() == []

    @pytest.mark.asyncio
    async def test_shared_assets_downloaded_once(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """Files referenced by several entries are fetched once."""
        manifest = [
            {"icon": "shared-icon.png", "leftImage": "a-left.png", "rightImage": "a-right.png"},
            {"icon": "shared-icon.png", "leftImage": "b-left.png", "rightImage": "a-right.png"},
        ]
        requests: list[httpx.Request] = []
        async with client_factory(remote_files(manifest), requests) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        asset_paths = [r.url.path for r in requests if r.url.path != "/Data/overlays.json"]
        assert sorted(asset_paths) == sorted(f"/Data/{n}" for n in _asset_names(manifest))
        assert report.requested == 4
        assert len(manager.available_overlays()) == 2

    @pytest.mark.asyncio
    async def test_invalid_asset_names_are_skipped(
        self, overlay_settings: OverlaySettings, client_factory, tmp_path: Path
    ) -> None:
        """Names that would escape the cache directory are never fetched or written."""
        manifest = [
            {"icon": "../evil-icon.png", "leftImage": "x-left.png", "rightImage": "x-right.png"},
            *SAMPLE_MANIFEST,
        ]
        requests: list[httpx.Request] = []
        async with client_factory(remote_files(manifest), requests) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert "../evil-icon.png" not in report.downloaded
        assert "../evil-icon.png" not in report.failed
        assert report.requested == 8
        assert not (tmp_path / "evil-icon.png").exists()
        assert all("evil" not in r.url.path for r in requests)
        assert len(manager.available_overlays()) == 2

    @pytest.mark.asyncio
    async def test_unrequestable_asset_names_are_skipped(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """Names that cannot form a URL are skipped and the report is still returned."""
        manifest = [
            {"icon": "bad\tname.png", "leftImage": "c-left.png", "rightImage": "c-right.png"},
            *SAMPLE_MANIFEST,
        ]
        requests: list[httpx.Request] = []
        async with client_factory(remote_files(manifest), requests) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert report.complete
        assert report.requested == 8
        assert "bad\tname.png" not in report.downloaded
        assert not (overlay_settings.cache_dir / "bad\tname.png").exists()
        assert [o.info.icon for o in manager.available_overlays()] == [
            "eyebrow-1-icon.png",
            "eyebrow-2-icon.png",
        ]
        assert manager.cancel_downloads() == 0

    @pytest.mark.asyncio
    async def test_oversized_asset_excludes_overlay(
        self,
        overlay_settings: OverlaySettings,
        client_factory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Assets Pillow refuses as too large make their overlay unavailable."""
        async with client_factory() as client:
            manager = OverlayManager(overlay_settings, client=client)
            await manager.load_overlay_assets(refresh=True)
        assert len(manager.available_overlays()) == 2

        # 16x16 assets exceed twice this limit
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

        assert OverlayManager(overlay_settings).available_overlays() == []

    @pytest.mark.asyncio
    async def test_refresh_failure_uses_current_manifest(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """With refresh=True a failed refresh falls back to the cached manifest."""
        overlay_settings.cache_dir.mkdir(parents=True)
        (overlay_settings.cache_dir / "overlays.json").write_text(json.dumps(SAMPLE_MANIFEST))
        files = remote_files()
        del files["/Data/overlays.json"]

        async with client_factory(files) as client:
            manager = OverlayManager(overlay_settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert report.complete
        assert len(manager.available_overlays()) == 2

    @pytest.mark.asyncio
    async def test_without_refresh_uses_memory_manifest(
        self, overlay_settings: OverlaySettings, client_factory
    ) -> None:
        """refresh=False does not fetch the manifest."""
        overlay_settings.cache_dir.mkdir(parents=True)
        (overlay_settings.cache_dir / "overlays.json").write_text(json.dumps(SAMPLE_MANIFEST))
        requests: list[httpx.Request] = []

        async with client_factory(remote_files(), requests) as client:
            manager = OverlayManager(overlay_settings, client=client)
            await manager.load_overlay_assets()

        assert "/Data/overlays.json" not in [r.url.path for r in requests]
        assert len(manager.available_overlays()) == 2

    @pytest.mark.asyncio
    async def test_concurrency_is_capped(self, overlay_settings: OverlaySettings) -> None:
        """No more than max_concurrent_downloads requests run at once."""
        settings = overlay_settings.model_copy(update={"max_concurrent_downloads": 2})
        files = remote_files()
        in_flight = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, content=files[request.url.path])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            manager = OverlayManager(settings, client=client)
            report = await manager.load_overlay_assets(refresh=True)

        assert report.complete
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_cancel_downloads(self, overlay_settings: OverlaySettings) -> None:
        """cancel_downloads stops in-flight downloads."""
        overlay_settings.cache_dir.mkdir(parents=True)
        (overlay_settings.cache_dir / "overlays.json").write_text(json.dumps(SAMPLE_MANIFEST))
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await release.wait()
            return httpx.Response(200, content=png_bytes())

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            manager = OverlayManager(overlay_settings, client=client)
            task = asyncio.create_task(manager.load_overlay_assets())
            await asyncio.wait_for(started.wait(), timeout=5)

            assert manager.cancel_downloads() > 0
            with pytest.raises(asyncio.CancelledError):
                await task

        assert manager.cancel_downloads() == 0
        assert manager.available_overlays() == []

    def test_cancel_without_downloads(self, overlay_settings: OverlaySettings) -> None:
        """Cancelling with nothing in flight is a no-op."""
        assert OverlayManager(overlay_settings).cancel_downloads() == 0

    @pytest.mark.asyncio
    async def test_uses_own_client_when_none_injected(
        self, overlay_settings: OverlaySettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without an injected client a per-call client with the configured timeout is used."""
        created: list[httpx.AsyncClient] = []
        real_client = httpx.AsyncClient

        def factory(**kwargs) -> httpx.AsyncClient:
            client = real_client(transport=make_transport(remote_files()), **kwargs)
            created.append(client)
            return client

        monkeypatch.setattr(httpx, "AsyncClient", factory)

        manager = OverlayManager(overlay_settings)
        await manager.refresh_overlays()

        assert len(created) == 1
        assert created[0].timeout.read == overlay_settings.timeout
        assert created[0].is_closed
