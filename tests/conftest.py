import types

import aiohttp
import pytest

SERVER_ID = "0123456789abcdef0123456789abcdef01234567"
PAGE_URL = f"https://app.plex.tv/desktop#!/server/{SERVER_ID}/details/12345"
RESOURCES_URL = "https://plex.tv/api/resources"
BASE_URI = "https://1.2.3.4:32400"
METADATA_URL = f"{BASE_URI}/library/metadata/12345"

RESOURCES_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<MediaContainer size="2">
  <Device name="Elsewhere" clientIdentifier="{'f' * 40}" accessToken="otherTok">
    <Connection protocol="https" uri="https://9.9.9.9:32400" local="0"/>
  </Device>
  <Device name="Home" clientIdentifier="{SERVER_ID}" accessToken="srvTok">
    <Connection protocol="http" uri="http://192.168.1.2:32400" local="1"/>
    <Connection protocol="https" uri="{BASE_URI}" local="0"/>
  </Device>
</MediaContainer>
"""

METADATA_XML = """<?xml version="1.0" encoding="UTF-8"?>
<MediaContainer size="1">
  <Video ratingKey="12345" title="Some Movie">
    <Media id="10">
      <Part id="1" key="/library/parts/1" file="/media/movie-cd1.mkv"/>
    </Media>
    <Media id="11">
      <Part id="2" key="/library/parts/2" file="/media/movie-cd2.mkv"/>
    </Media>
  </Video>
</MediaContainer>
"""


class _FakeContent:
    def __init__(self, data: bytes):
        self._data = data

    async def iter_chunked(self, size):
        for i in range(0, len(self._data), size):
            yield self._data[i : i + size]


class FakeResponse:
    def __init__(self, body="", status=200, headers=None, filename=None):
        self.status = status
        self._body = body
        data = body.encode() if isinstance(body, str) else body
        self.headers = headers if headers is not None else {"Content-Length": str(len(data))}
        self.content = _FakeContent(data)
        self.content_disposition = (
            types.SimpleNamespace(filename=filename) if filename else None
        )

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def text(self):
        return self._body if isinstance(self._body, str) else self._body.decode()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Answers GETs from a url -> FakeResponse (or exception) table."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False

    def get(self, url, params=None, **kwargs):
        self.calls.append((url, params))
        answer = self.routes.get(url)
        if answer is None:
            raise aiohttp.ClientError(f"no route for {url}")
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def close(self):
        self.closed = True


@pytest.fixture
def plex_session():
    return FakeSession(
        {
            RESOURCES_URL: FakeResponse(RESOURCES_XML),
            METADATA_URL: FakeResponse(METADATA_XML),
        }
    )
