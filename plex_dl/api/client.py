"""
Async client for the two Plex lookups needed to address a catalog item:
the account-level resources list and a server's metadata endpoint.
"""

import logging
import time
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

import aiohttp

from plex_dl import __version__
from plex_dl.exceptions import MalformedResponseError
from plex_dl.models.access import ServerAccess
from plex_dl.models.config import DEFAULT_ACCOUNT_URL
from plex_dl.utils.formatting import mask_token

log = logging.getLogger(__name__)


class PlexAPIClient:
    """
    Minimal async client for the Plex XML APIs.

    Requests are issued once; network errors and HTTP error statuses are
    raised to the caller as-is.
    """

    PRODUCT = "plex-dl"

    def __init__(
        self,
        account_url: str = DEFAULT_ACCOUNT_URL,
        timeout: int = 60,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initializes the API client.

        Args:
            account_url: Base URL of the Plex account service.
            timeout: Total timeout in seconds for a single lookup.
            session: An existing session to reuse. It is not closed by `close()`.
        """
        self.account_url = account_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "Accept": "application/xml",
                    "X-Plex-Product": self.PRODUCT,
                    "X-Plex-Version": __version__,
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout, connect=15),
            )
            self._owns_session = True

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "PlexAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch_xml(self, url: str, params: Dict[str, Any]) -> ET.Element:
        """GETs a URL and parses the body as an XML document."""
        await self._initialize_session()

        start_time = time.monotonic()
        async with self._session.get(url, params=params) as r:
            duration_ms = (time.monotonic() - start_time) * 1000
            log.debug(f"GET {url} -> {r.status} ({duration_ms:.0f} ms)")
            r.raise_for_status()
            body = await r.text()

        try:
            return ET.fromstring(body)
        except ET.ParseError as e:
            raise MalformedResponseError(f"Invalid XML from {url}: {e}") from e

    async def resolve_server_access(
        self, account_token: str, server_instance_id: str
    ) -> ServerAccess:
        """
        Looks up the scoped token and remote address of one server.

        Args:
            account_token: The account-wide token (myPlexAccessToken).
            server_instance_id: The server's 40-character machine identifier.

        Returns:
            A ServerAccess whose fields are None when the account has no
            matching device or the device has no non-local connection.
        """
        log.debug(
            f"Resolving server {server_instance_id[:8]}… with account token "
            f"{mask_token(account_token)}"
        )
        root = await self.fetch_xml(
            f"{self.account_url}/api/resources",
            {"includeHttps": "1", "X-Plex-Token": account_token},
        )
        return find_server_access(root, server_instance_id)

    async def resolve_file_parts(
        self, base_uri: str, scoped_token: str, content_id: str
    ) -> List[str]:
        """
        Lists the download keys of every file part of a catalog item.

        Returns:
            `Media/Part@key` values in document order; empty if none.
        """
        root = await self.fetch_xml(
            f"{base_uri.rstrip('/')}/library/metadata/{content_id}",
            {"X-Plex-Token": scoped_token},
        )
        parts = find_part_keys(root)
        log.debug(f"Metadata {content_id} has {len(parts)} part(s)")
        return parts


def find_server_access(root: ET.Element, server_instance_id: str) -> ServerAccess:
    """Picks the first accessToken and first non-local connection URI of a device."""
    access_token = None
    base_uri = None
    for device in root.iter("Device"):
        if device.get("clientIdentifier") != server_instance_id:
            continue
        if access_token is None:
            access_token = device.get("accessToken")
        if base_uri is None:
            for connection in device.iterfind("Connection"):
                if connection.get("local") == "0":
                    base_uri = connection.get("uri", "")
                    break
    return ServerAccess(access_token=access_token, base_uri=base_uri)


def find_part_keys(root: ET.Element) -> List[str]:
    """Keys of every Part directly under a Media element, in document order."""
    parents = {child: parent for parent in root.iter() for child in parent}
    keys = []
    for part in root.iter("Part"):
        parent = parents.get(part)
        if parent is None or parent.tag != "Media":
            continue
        key = part.get("key")
        if key is not None:
            keys.append(key)
    return keys
