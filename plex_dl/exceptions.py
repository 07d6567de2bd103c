"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class PlexDlError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(PlexDlError):
    """Raised for issues related to configuration loading or validation."""


class MalformedResponseError(PlexDlError):
    """Raised when a Plex API response cannot be parsed as XML."""
