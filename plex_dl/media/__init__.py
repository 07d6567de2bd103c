"""
Media Transfer Layer.

This package turns resolved part keys into downloads.
"""

from .downloader import BrowserTrigger, Downloader, DryRunTrigger, build_download_url

__all__ = ["BrowserTrigger", "Downloader", "DryRunTrigger", "build_download_url"]
