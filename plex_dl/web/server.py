"""
Local companion service the injected "Descargar" button talks to.

The button posts the page address and the browser's account token; the
service runs the download pipeline and answers with the message to alert.
"""

import json
import logging
from pathlib import Path
from typing import Callable

from aiohttp import web

from plex_dl import __version__
from plex_dl.api.client import PlexAPIClient
from plex_dl.core.messages import describe
from plex_dl.core.pipeline import DownloadPipeline, FailureReason, PartTrigger
from plex_dl.media.downloader import (
    BrowserTrigger,
    Downloader,
    DryRunTrigger,
    close_connection_pool,
)
from plex_dl.models.config import DownloaderConfig
from plex_dl.models.stats import DownloadStats

log = logging.getLogger(__name__)

PLEX_WEB_ORIGIN = "https://app.plex.tv"

CORS_HEADERS = {
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Vary": "Origin",
}

CONFIG_KEY = web.AppKey("config", DownloaderConfig)
TRIGGER_FACTORY_KEY = web.AppKey("trigger_factory", Callable)
CLIENT_FACTORY_KEY = web.AppKey("client_factory", Callable)
ALLOWED_ORIGINS_KEY = web.AppKey("allowed_origins", frozenset)


def default_trigger_factory(
    config: DownloaderConfig, stats: DownloadStats
) -> PartTrigger:
    """Builds the part trigger configured for this service."""
    if config.dry_run:
        return DryRunTrigger(stats)
    if config.trigger == "browser":
        return BrowserTrigger(stats)
    return Downloader(Path(config.output_dir), stats)


def default_client_factory(config: DownloaderConfig) -> PlexAPIClient:
    return PlexAPIClient(config.account_url, config.timeout)


@web.middleware
async def origin_guard(request: web.Request, handler) -> web.StreamResponse:
    """
    Turns away pages other than Plex Web and adds CORS headers for the
    allowed ones. Requests without an Origin header come from local tools.
    """
    origin = request.headers.get("Origin")
    if origin is not None and origin not in request.app[ALLOWED_ORIGINS_KEY]:
        log.warning(f"[yellow]Rejected request from origin {origin}[/yellow]")
        return web.json_response(
            {"ok": False, "message": "Error: origin not allowed"}, status=403
        )
    response = await handler(request)
    if origin is not None:
        response.headers.update(CORS_HEADERS)
        response.headers["Access-Control-Allow-Origin"] = origin
    return response


def _json(data: dict, status: int = 200) -> web.Response:
    return web.json_response(data, status=status)


async def health(request: web.Request) -> web.Response:
    return _json({"status": "ok", "version": __version__})


async def preflight(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def download(request: web.Request) -> web.Response:
    config: DownloaderConfig = request.app[CONFIG_KEY]
    try:
        payload = json.loads(await request.text())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _json({"ok": False, "message": "Error: invalid request body"}, 400)
    if not isinstance(payload, dict) or not payload.get("page_url"):
        return _json({"ok": False, "message": "Error: page_url is required"}, 400)

    account_token = payload.get("account_token")
    # The configured token is only lent to local callers, never to a page.
    if not account_token and "Origin" not in request.headers:
        account_token = config.token
    stats = DownloadStats(dry_run=config.dry_run)
    trigger = request.app[TRIGGER_FACTORY_KEY](config, stats)

    async with request.app[CLIENT_FACTORY_KEY](config) as api_client:
        pipeline = DownloadPipeline(api_client, trigger, stats)
        result = await pipeline.run(payload["page_url"], account_token)

    status = 502 if result.reason is FailureReason.UNEXPECTED else 200
    return _json(
        {
            "ok": result.ok,
            "reason": result.reason.value if result.reason else None,
            "message": describe(result),
            "parts": result.parts,
            "failed": stats.parts_failed,
        },
        status,
    )


async def _close_pool(app: web.Application) -> None:
    await close_connection_pool()


def create_app(
    config: DownloaderConfig,
    trigger_factory: Callable[[DownloaderConfig, DownloadStats], PartTrigger]
    | None = None,
    client_factory: Callable[[DownloaderConfig], PlexAPIClient] | None = None,
    allowed_origins: tuple[str, ...] = (PLEX_WEB_ORIGIN,),
) -> web.Application:
    app = web.Application(middlewares=[origin_guard])
    app[ALLOWED_ORIGINS_KEY] = frozenset(allowed_origins)
    app[CONFIG_KEY] = config
    app[TRIGGER_FACTORY_KEY] = trigger_factory or default_trigger_factory
    app[CLIENT_FACTORY_KEY] = client_factory or default_client_factory
    app.router.add_get("/health", health)
    app.router.add_post("/download", download)
    app.router.add_route("OPTIONS", "/download", preflight)
    app.on_cleanup.append(_close_pool)
    return app


def run_server(
    config: DownloaderConfig, extra_origins: tuple[str, ...] = ()
) -> None:
    """Serves the companion until interrupted."""
    app = create_app(config, allowed_origins=(PLEX_WEB_ORIGIN, *extra_origins))
    log.info(
        f"Companion listening on [cyan]http://{config.host}:{config.port}[/cyan]"
    )
    web.run_app(app, host=config.host, port=config.port, print=None)
