import asyncio
import json

from aiohttp import test_utils

from conftest import PAGE_URL, FakeSession
from plex_dl import __version__
from plex_dl.api.client import PlexAPIClient
from plex_dl.media.downloader import DryRunTrigger
from plex_dl.models.config import DownloaderConfig
from plex_dl.web.server import create_app


def _serve(session, config=None, triggers=None):
    config = config or DownloaderConfig()

    def trigger_factory(cfg, stats):
        trigger = DryRunTrigger(stats)
        if triggers is not None:
            triggers.append(trigger)
        return trigger

    return create_app(
        config,
        trigger_factory=trigger_factory,
        client_factory=lambda cfg: PlexAPIClient(session=session),
    )


def _request(app, method, path, **kwargs):
    async def scenario():
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.request(method, path, **kwargs)
            body = await resp.text()
            return resp.status, resp.headers, body

    return asyncio.run(scenario())


def test_health():
    status, headers, body = _request(_serve(FakeSession({})), "GET", "/health")

    assert status == 200
    assert json.loads(body) == {"status": "ok", "version": __version__}


def test_download_runs_pipeline_with_browser_token(plex_session):
    triggers = []
    app = _serve(plex_session, triggers=triggers)

    status, headers, body = _request(
        app,
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL, "account_token": "tok123"}),
        headers={"Origin": "https://app.plex.tv"},
    )

    payload = json.loads(body)
    assert status == 200
    assert payload["ok"] is True
    assert payload["message"] == "Descarga iniciada."
    assert payload["parts"] == ["/library/parts/1", "/library/parts/2"]
    assert headers["Access-Control-Allow-Origin"] == "https://app.plex.tv"
    assert len(triggers[0].urls) == 2


def test_local_request_falls_back_to_configured_token(plex_session):
    app = _serve(plex_session, config=DownloaderConfig(token="tok123"))

    status, _, body = _request(
        app, "POST", "/download", data=json.dumps({"page_url": PAGE_URL})
    )

    assert status == 200
    assert json.loads(body)["ok"] is True
    assert plex_session.calls[0][1]["X-Plex-Token"] == "tok123"


def test_download_without_any_token_reports_missing_token(plex_session):
    status, _, body = _request(
        _serve(plex_session),
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL, "account_token": ""}),
    )

    payload = json.loads(body)
    assert status == 200
    assert payload["ok"] is False
    assert payload["reason"] == "missing_token"
    assert payload["message"].startswith("No se encontró myPlexAccessToken")
    assert plex_session.calls == []


def test_download_remote_failure_is_bad_gateway():
    status, _, body = _request(
        _serve(FakeSession({})),
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL, "account_token": "tok123"}),
    )

    assert status == 502
    assert json.loads(body)["message"].startswith("Error: ")


def test_download_rejects_bad_body():
    status, _, body = _request(
        _serve(FakeSession({})), "POST", "/download", data="not json"
    )

    assert status == 400
    assert json.loads(body)["ok"] is False


def test_preflight_allows_plex_web():
    status, headers, _ = _request(
        _serve(FakeSession({})),
        "OPTIONS",
        "/download",
        headers={"Origin": "https://app.plex.tv"},
    )

    assert status == 204
    assert headers["Access-Control-Allow-Origin"] == "https://app.plex.tv"
    assert "POST" in headers["Access-Control-Allow-Methods"]


def test_download_rejects_undecodable_body():
    status, _, body = _request(
        _serve(FakeSession({})), "POST", "/download", data=b"\xff\xfe{\xff"
    )

    assert status == 400
    assert json.loads(body)["ok"] is False


def test_foreign_origin_is_refused_before_any_lookup(plex_session):
    triggers = []
    app = _serve(
        plex_session, config=DownloaderConfig(token="tok123"), triggers=triggers
    )

    status, headers, body = _request(
        app,
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL}),
        headers={"Origin": "https://evil.example", "Content-Type": "text/plain"},
    )

    assert status == 403
    assert json.loads(body)["ok"] is False
    assert "Access-Control-Allow-Origin" not in headers
    assert plex_session.calls == []
    assert triggers == []


def test_foreign_origin_preflight_is_refused():
    status, headers, _ = _request(
        _serve(FakeSession({})),
        "OPTIONS",
        "/download",
        headers={"Origin": "https://evil.example"},
    )

    assert status == 403
    assert "Access-Control-Allow-Origin" not in headers


def test_page_request_never_borrows_configured_token(plex_session):
    app = _serve(plex_session, config=DownloaderConfig(token="tok123"))

    status, _, body = _request(
        app,
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL, "account_token": ""}),
        headers={"Origin": "https://app.plex.tv"},
    )

    payload = json.loads(body)
    assert status == 200
    assert payload["reason"] == "missing_token"
    assert plex_session.calls == []


def test_extra_origin_can_be_allowed(plex_session):
    app = create_app(
        DownloaderConfig(),
        trigger_factory=lambda cfg, stats: DryRunTrigger(stats),
        client_factory=lambda cfg: PlexAPIClient(session=plex_session),
        allowed_origins=("https://app.plex.tv", "http://localhost:8000"),
    )

    status, headers, body = _request(
        app,
        "POST",
        "/download",
        data=json.dumps({"page_url": PAGE_URL, "account_token": "tok123"}),
        headers={"Origin": "http://localhost:8000"},
    )

    assert status == 200
    assert json.loads(body)["ok"] is True
    assert headers["Access-Control-Allow-Origin"] == "http://localhost:8000"
