"""
Data structures describing what the Plex API lookups resolve to.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ServerAccess:
    """Scoped token and remote base address for one Plex Media Server."""

    access_token: Optional[str] = None
    base_uri: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.access_token) and bool(self.base_uri)
