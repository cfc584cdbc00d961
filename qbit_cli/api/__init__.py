"""
qBittorrent Web API Layer.

This package handles all communication with the qBittorrent Web API.
"""

from .auth import QBittorrentAuthenticator
from .client import QBittorrentClient

__all__ = ["QBittorrentAuthenticator", "QBittorrentClient"]
