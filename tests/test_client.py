import asyncio

import pytest

from conftest import (
    BASE_URI,
    METADATA_URL,
    RESOURCES_URL,
    SERVER_ID,
    FakeResponse,
    FakeSession,
)
from plex_dl.api.client import PlexAPIClient
from plex_dl.exceptions import MalformedResponseError


def test_resolve_server_access_picks_matching_device(plex_session):
    client = PlexAPIClient(session=plex_session)

    access = asyncio.run(client.resolve_server_access("tok123", SERVER_ID))

    assert access.access_token == "srvTok"
    assert access.base_uri == BASE_URI
    assert access.is_complete
    assert plex_session.calls == [
        (RESOURCES_URL, {"includeHttps": "1", "X-Plex-Token": "tok123"})
    ]


def test_resolve_server_access_without_matching_device_returns_empty():
    session = FakeSession(
        {
            RESOURCES_URL: FakeResponse(
                '<MediaContainer><Device clientIdentifier="other" accessToken="x">'
                '<Connection uri="https://5.5.5.5:32400" local="0"/></Device>'
                "</MediaContainer>"
            )
        }
    )
    client = PlexAPIClient(session=session)

    access = asyncio.run(client.resolve_server_access("tok123", SERVER_ID))

    assert access.access_token is None
    assert access.base_uri is None
    assert not access.is_complete


def test_resolve_server_access_ignores_local_only_connections():
    session = FakeSession(
        {
            RESOURCES_URL: FakeResponse(
                f'<MediaContainer><Device clientIdentifier="{SERVER_ID}" '
                'accessToken="srvTok"><Connection uri="http://10.0.0.2:32400" '
                'local="1"/></Device></MediaContainer>'
            )
        }
    )
    access = asyncio.run(
        PlexAPIClient(session=session).resolve_server_access("tok", SERVER_ID)
    )

    assert access.access_token == "srvTok"
    assert access.base_uri is None


def test_resolve_file_parts_keeps_document_order(plex_session):
    client = PlexAPIClient(session=plex_session)

    parts = asyncio.run(client.resolve_file_parts(BASE_URI, "srvTok", "12345"))

    assert parts == ["/library/parts/1", "/library/parts/2"]
    assert plex_session.calls == [(METADATA_URL, {"X-Plex-Token": "srvTok"})]


def test_resolve_file_parts_handles_many_episodes():
    episodes = "".join(
        f'<Video><Media><Part key="/library/parts/{n}"/></Media></Video>'
        for n in (5, 3, 9)
    )
    session = FakeSession(
        {METADATA_URL: FakeResponse(f"<MediaContainer>{episodes}</MediaContainer>")}
    )

    parts = asyncio.run(
        PlexAPIClient(session=session).resolve_file_parts(BASE_URI, "t", "12345")
    )

    assert parts == ["/library/parts/5", "/library/parts/3", "/library/parts/9"]


def test_resolve_file_parts_empty_document():
    session = FakeSession({METADATA_URL: FakeResponse("<MediaContainer/>")})

    parts = asyncio.run(
        PlexAPIClient(session=session).resolve_file_parts(BASE_URI, "t", "12345")
    )

    assert parts == []


def test_malformed_xml_raises():
    session = FakeSession({RESOURCES_URL: FakeResponse("<html><body>oops")})

    with pytest.raises(MalformedResponseError):
        asyncio.run(PlexAPIClient(session=session).resolve_server_access("t", SERVER_ID))


def test_external_session_is_not_closed(plex_session):
    async def scenario():
        async with PlexAPIClient(session=plex_session) as client:
            await client.resolve_server_access("tok", SERVER_ID)

    asyncio.run(scenario())

    assert plex_session.closed is False


def test_resolve_file_parts_follows_document_order_across_nested_media():
    xml = (
        "<MediaContainer><Video><Media>"
        '<Part key="/library/parts/1">'
        '<Media><Part key="/library/parts/2"/></Media>'
        "</Part>"
        '<Part key="/library/parts/3"/>'
        "</Media>"
        '<Extras><Part key="/library/parts/99"/></Extras>'
        "</Video></MediaContainer>"
    )
    session = FakeSession({METADATA_URL: FakeResponse(xml)})

    parts = asyncio.run(
        PlexAPIClient(session=session).resolve_file_parts(BASE_URI, "t", "12345")
    )

    assert parts == ["/library/parts/1", "/library/parts/2", "/library/parts/3"]


def test_resolve_server_access_stops_at_first_remote_connection():
    session = FakeSession(
        {
            RESOURCES_URL: FakeResponse(
                f'<MediaContainer><Device clientIdentifier="{SERVER_ID}" '
                'accessToken="srvTok"><Connection uri="" local="0"/>'
                '<Connection uri="https://5.6.7.8:32400" local="0"/>'
                "</Device></MediaContainer>"
            )
        }
    )
    access = asyncio.run(
        PlexAPIClient(session=session).resolve_server_access("tok", SERVER_ID)
    )

    assert access.base_uri == ""
    assert not access.is_complete
