"""
Data Models Layer.

This package contains the data structures used throughout the application,
such as configuration, resolved server access and statistics.
"""

from .access import ServerAccess
from .config import DownloaderConfig
from .stats import DownloadStats

__all__ = ["DownloaderConfig", "DownloadStats", "ServerAccess"]
