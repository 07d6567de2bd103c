"""
Utilities for pulling Plex identifiers out of Plex Web page addresses.
"""

import re
from dataclasses import dataclass
from typing import Optional

SERVER_ID_PATTERN = re.compile(r"server/([a-f0-9]{40})/")

# Checked in order, first match wins.
CONTENT_ID_PATTERNS = (
    re.compile(r"key=%2Flibrary%2Fmetadata%2F(\d+)"),
    re.compile(r"/details/(\d+)"),
    re.compile(r"/item/(\d+)"),
)


@dataclass(frozen=True)
class PageContext:
    """Identifiers found in a Plex Web address."""

    server_instance_id: Optional[str]
    content_id: Optional[str]


def extract_server_instance_id(address: str) -> Optional[str]:
    """Returns the 40-character server machine identifier, if present."""
    match = SERVER_ID_PATTERN.search(address)
    return match.group(1) if match else None


def extract_content_id(address: str) -> Optional[str]:
    """
    Returns the numeric metadata key of the item being viewed.

    Handles the encoded `key=/library/metadata/<id>` query form, then
    `/details/<id>`, then `/item/<id>`.
    """
    for pattern in CONTENT_ID_PATTERNS:
        match = pattern.search(address)
        if match:
            return match.group(1)
    return None


def parse_page_context(address: str) -> PageContext:
    return PageContext(
        server_instance_id=extract_server_instance_id(address),
        content_id=extract_content_id(address),
    )
