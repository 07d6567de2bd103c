"""
Browser-facing pieces: the page button injector and its companion service.
"""

from .injector import inject_download_button, inject_into_html
from .server import create_app, run_server

__all__ = ["create_app", "inject_download_button", "inject_into_html", "run_server"]
