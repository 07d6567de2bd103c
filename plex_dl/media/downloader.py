"""
Hands resolved Plex file parts off for download: streamed to disk, opened in
the browser, or just recorded for a dry run.
"""

import asyncio
import logging
import os
import webbrowser
from pathlib import Path
from typing import Callable, List, Optional

import aiofiles
import aiohttp

from plex_dl.cli.progress_manager import ProgressManager
from plex_dl.models.stats import DownloadStats
from plex_dl.utils.formatting import mask_url
from plex_dl.utils.path import create_dir, part_filename

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


def build_download_url(base_uri: str, part_key: str, token: str) -> str:
    """Direct, authenticated download address of one file part."""
    return f"{base_uri}{part_key}?download=1&X-Plex-Token={token}"


async def get_connection_pool() -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=4,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug("Created download connection pool")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class Downloader:
    """Streams each part to a file in the output directory. No retries."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        output_dir: Path,
        stats: DownloadStats | None = None,
        progress_manager: ProgressManager | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.output_dir = Path(output_dir)
        self.stats = stats or DownloadStats()
        self.progress_manager = progress_manager
        self._session = session

    async def trigger(self, base_uri: str, part_key: str, token: str) -> None:
        url = build_download_url(base_uri, part_key, token)
        await self.download_file(url, part_key)

    async def download_file(self, url: str, part_key: str) -> Optional[Path]:
        """
        Downloads one part into the output directory.

        Returns:
            The written path, or None when a file of that name already exists.
        """
        await asyncio.to_thread(create_dir, self.output_dir)
        session = self._session or await get_connection_pool()

        async with session.get(url, allow_redirects=True) as response:
            response.raise_for_status()

            disposition = response.content_disposition
            filename = part_filename(
                part_key, disposition.filename if disposition else None
            )
            destination = self.output_dir / filename

            if await asyncio.to_thread(os.path.isfile, destination):
                log.info(f"[yellow]Skipping existing file:[/yellow] {filename}")
                self.stats.parts_skipped_exists += 1
                return None

            total_size = int(response.headers.get("Content-Length", 0))
            task_id = None
            if self.progress_manager:
                task_id = self.progress_manager.add_part_task(filename, total_size)

            log.debug(f"Downloading {mask_url(url)} -> {destination}")
            bytes_downloaded = 0
            try:
                async with aiofiles.open(destination, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
                        await self.stats.update_speed_stats(
                            self.stats.total_size_downloaded + bytes_downloaded
                        )
                        if self.progress_manager:
                            self.progress_manager.update_task_progress(
                                task_id, completed=bytes_downloaded
                            )
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError):
                if self.progress_manager:
                    self.progress_manager.finish_task(task_id, success=False)
                await asyncio.to_thread(_remove_partial, destination)
                raise

        self.stats.parts_downloaded += 1
        self.stats.total_size_downloaded += bytes_downloaded
        if self.progress_manager:
            self.progress_manager.finish_task(task_id, success=True)
        log.info(f"[green]✓[/green] {filename}")
        return destination


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class BrowserTrigger:
    """Opens each part's download URL in a new browser tab."""

    def __init__(
        self,
        stats: DownloadStats | None = None,
        opener: Callable[[str], bool] = webbrowser.open_new_tab,
    ):
        self.stats = stats or DownloadStats()
        self._opener = opener

    async def trigger(self, base_uri: str, part_key: str, token: str) -> None:
        url = build_download_url(base_uri, part_key, token)
        log.debug(f"Opening {mask_url(url)} in browser")
        opened = await asyncio.to_thread(self._opener, url)
        if not opened:
            log.warning(
                f"[yellow]No browser accepted the download for {part_key}[/yellow]"
            )
        self.stats.parts_downloaded += 1


class DryRunTrigger:
    """Records the download URLs without transferring anything."""

    def __init__(self, stats: DownloadStats | None = None):
        self.stats = stats or DownloadStats(dry_run=True)
        self.urls: List[str] = []

    async def trigger(self, base_uri: str, part_key: str, token: str) -> None:
        url = build_download_url(base_uri, part_key, token)
        self.urls.append(url)
        log.info(f"[cyan]Would download:[/cyan] {mask_url(url)}")
