import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from selfiegram.config.models import OverlaySettings
from selfiegram.models.errors import (
    ManifestCacheWriteError,
    ManifestDownloadError,
    ManifestParseError,
    NoDataLoadedError,
    SelfiegramError,
)
from selfiegram.models.overlay import Overlay, OverlayInformation, parse_manifest
from selfiegram.utils.logging import get_logger
from selfiegram.utils.paths import resolve_within

logger = get_logger(__name__)


@dataclass
class DownloadReport:
    """资源下载结果"""

    requested: int = 0
    downloaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """所有资源都已下载"""
        return not self.failed


class OverlayManager:
    """叠加层缓存管理器

    职责:
    - 启动时从缓存文件读取清单
    - 从远端刷新清单并写入缓存
    - 并发下载清单引用的资源文件到缓存目录
    - 返回所有资源均已缓存的叠加层

    内存中的清单不加锁，调用方需保证同一时刻只有一个上下文在使用。
    """

    def __init__(
        self,
        settings: OverlaySettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """初始化管理器

        Args:
            settings: 叠加层配置
            client: 注入的 HTTP 客户端；为 None 时每次调用创建一个
        """
        self.settings = settings
        self.cache_dir = Path(settings.cache_dir)
        self._base_url = httpx.URL(settings.base_url)
        self._client = client
        self._download_tasks: set[asyncio.Task[bool]] = set()
        self._logger = logger
        self._overlay_info: list[OverlayInformation] = self._load_cached_manifest()

    @property
    def manifest_url(self) -> str:
        """远端清单地址"""
        return self.url_for_asset(self.settings.manifest_name)

    @property
    def cached_manifest_path(self) -> Path:
        """缓存目录中的清单文件"""
        return self.cache_dir / self.settings.manifest_name

    @property
    def overlay_info(self) -> list[OverlayInformation]:
        """当前内存中的清单"""
        return list(self._overlay_info)

    def url_for_asset(self, asset_name: str) -> str:
        """返回用来下载指定资源的 URL"""
        return str(self._base_url.join(asset_name))

    def cached_path_for_asset(self, asset_name: str) -> Path | None:
        """返回缓存目录中资源文件的路径，名称非法时返回 None"""
        return resolve_within(self.cache_dir, asset_name)

    def _load_cached_manifest(self) -> list[OverlayInformation]:
        """从缓存读取清单，缺失或损坏时返回空列表"""
        path = self.cached_manifest_path
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            self._logger.warning("Cannot read cached overlay manifest", path=str(path), error=str(e))
            return []

        try:
            overlays = parse_manifest(data)
        except ManifestParseError as e:
            self._logger.warning("Cached overlay manifest is corrupt", path=str(path), error=e.message)
            return []

        self._logger.debug("Loaded cached overlay manifest", entries=len(overlays))
        return overlays

    def available_overlays(self) -> list[Overlay]:
        """返回所有资源均已缓存的叠加层"""
        overlays = []
        for info in self._overlay_info:
            overlay = Overlay.from_cache(info, self.cached_path_for_asset)
            if overlay is not None:
                overlays.append(overlay)
        return overlays

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
            yield client

    async def refresh_overlays(self) -> list[OverlayInformation]:
        """从服务器下载清单，解析后写入缓存并替换内存中的清单

        任何失败都不会修改内存中的清单。

        Returns:
            新的清单

        Raises:
            ManifestDownloadError: 网络错误或非 2xx 响应
            NoDataLoadedError: 响应为空
            ManifestParseError: 响应无法解析
            ManifestCacheWriteError: 无法写入缓存文件
        """
        url = self.manifest_url
        async with self._http_client() as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                self._logger.error("Failed to download overlay manifest", url=url, error=str(e))
                raise ManifestDownloadError(url, str(e)) from e

        data = response.content
        if not data:
            raise NoDataLoadedError(url)

        overlays = parse_manifest(data)

        path = self.cached_manifest_path
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            self._logger.error("Failed to write overlay manifest", path=str(path), error=str(e))
            raise ManifestCacheWriteError(path, str(e)) from e

        self._overlay_info = overlays
        self._logger.info("Overlay manifest refreshed", entries=len(overlays))
        return list(overlays)

    async def load_overlay_assets(self, refresh: bool = False) -> DownloadReport:
        """下载清单中所有叠加层用到的资源

        Args:
            refresh: 先刷新清单；刷新失败时记录日志并使用当前清单

        Returns:
            下载结果，单个文件失败只记录不抛出

        Raises:
            asyncio.CancelledError: 下载被 cancel_downloads() 取消
        """
        if refresh:
            try:
                await self.refresh_overlays()
            except SelfiegramError as e:
                self._logger.warning("Overlay refresh failed, using current manifest", error=e.message)

        # 每个资源只下载一次，即使多个叠加层引用同一个文件
        jobs: dict[str, tuple[httpx.URL, Path]] = {}
        for info in self._overlay_info:
            for name in info.asset_names:
                if name in jobs:
                    continue
                destination = self.cached_path_for_asset(name)
                if destination is None:
                    self._logger.warning("Ignoring invalid overlay asset name", asset=name)
                    continue
                try:
                    source = httpx.URL(self.url_for_asset(name))
                except httpx.InvalidURL as e:
                    self._logger.warning("Ignoring invalid overlay asset URL", asset=name, error=str(e))
                    continue
                jobs[name] = (source, destination)

        report = DownloadReport(requested=len(jobs))
        if not jobs:
            return report

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_downloads)
        async with self._http_client() as client:
            tasks = {
                name: asyncio.create_task(self._download_asset(client, semaphore, source, destination))
                for name, (source, destination) in jobs.items()
            }
            self._download_tasks.update(tasks.values())
            try:
                results = await asyncio.gather(*tasks.values())
            finally:
                self._download_tasks.difference_update(tasks.values())

        for name, ok in zip(tasks, results, strict=True):
            (report.downloaded if ok else report.failed).append(name)

        self._logger.info(
            "Overlay assets downloaded",
            requested=report.requested,
            downloaded=len(report.downloaded),
            failed=len(report.failed),
        )
        return report

    async def _download_asset(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        source: httpx.URL,
        destination: Path,
    ) -> bool:
        """下载单个资源并写入缓存，失败时只记录日志"""
        async with semaphore:
            try:
                response = await client.get(source)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                self._logger.warning("Failed to download overlay asset", url=str(source), error=str(e))
                return False

            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(response.content)
            except OSError as e:
                self._logger.warning(
                    "Failed to write overlay asset", path=str(destination), error=str(e)
                )
                return False

        return True

    def cancel_downloads(self) -> int:
        """取消正在进行的下载

        Returns:
            被取消的任务数
        """
        cancelled = 0
        for task in list(self._download_tasks):
            if not task.done() and task.cancel():
                cancelled += 1
        if cancelled:
            self._logger.info("Overlay downloads cancelled", tasks=cancelled)
        return cancelled
