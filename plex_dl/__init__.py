"""
plex-dl: resolve and download the file parts of a Plex catalog item.
"""

__version__ = "0.3.0"
