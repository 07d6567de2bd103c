"""
Plex API Layer.

This package handles all communication with plex.tv and Plex Media Servers.
"""

from .client import PlexAPIClient

__all__ = ["PlexAPIClient"]
