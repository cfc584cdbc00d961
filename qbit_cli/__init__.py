"""
qbit-cli: an async client and command line for the qBittorrent Web API.
"""

from .api import QBittorrentClient
from .models import ClientConfig, TorrentAddRequest, TorrentFile, TorrentInfoQuery

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "QBittorrentClient",
    "TorrentAddRequest",
    "TorrentFile",
    "TorrentInfoQuery",
    "__version__",
]
