"""
Helper functions for formatting data into human-readable strings.
"""

import re


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


_TOKEN_PATTERN = re.compile(r"(X-Plex-Token=)[^&\s]+")


def mask_token(token: str | None) -> str:
    """Shortens a token to something safe to print (e.g., 'abcd…')."""
    if not token:
        return "<none>"
    return f"{token[:4]}…" if len(token) > 4 else "…"


def mask_url(url: str) -> str:
    """Hides the value of any X-Plex-Token query parameter in a URL."""
    return _TOKEN_PATTERN.sub(r"\1…", url)
