"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration and torrent requests.
"""

from .config import ClientConfig
from .torrent import (
    TorrentAddRequest,
    TorrentFile,
    TorrentFilter,
    TorrentInfo,
    TorrentInfoQuery,
)

__all__ = [
    "ClientConfig",
    "TorrentAddRequest",
    "TorrentFile",
    "TorrentFilter",
    "TorrentInfo",
    "TorrentInfoQuery",
]
