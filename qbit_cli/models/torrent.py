"""
Models describing torrent requests sent to, and listings received from, the Web API.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TORRENT_CONTENT_TYPE = "application/x-bittorrent"


class TorrentFilter(str, Enum):
    """State filters accepted by the torrent listing endpoint."""

    ALL = "all"
    DOWNLOADING = "downloading"
    SEEDING = "seeding"
    COMPLETED = "completed"
    PAUSED = "paused"
    ACTIVE = "active"
    INACTIVE = "inactive"


class TorrentFile(BaseModel):
    """
    A single .torrent upload.

    ``buffer`` may be text, ``bytes``, ``bytearray`` or a shared buffer
    (``memoryview``, ``mmap.mmap`` or ``SharedMemory``). It is kept as given;
    the payload encoder decides whether it can be sent.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    buffer: Any
    filename: str | None = None
    content_type: str = DEFAULT_TORRENT_CONTENT_TYPE


class TorrentAddRequest(BaseModel):
    """Parameters for the torrents/add endpoint. ``None`` means "not set"."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    urls: str | list[str] | None = None
    torrents: TorrentFile | list[TorrentFile] | None = None
    savepath: str | None = None
    category: str | None = None
    paused: bool | None = None
    skip_checking: bool | None = None
    rename: str | None = None
    up_limit: int | None = Field(default=None, alias="upLimit")
    dl_limit: int | None = Field(default=None, alias="dlLimit")

    @property
    def url_list(self) -> list[str]:
        if self.urls is None:
            return []
        if isinstance(self.urls, str):
            return [self.urls] if self.urls else []
        return list(self.urls)

    @property
    def torrent_list(self) -> list[TorrentFile]:
        if self.torrents is None:
            return []
        if isinstance(self.torrents, TorrentFile):
            return [self.torrents]
        return list(self.torrents)


class TorrentInfoQuery(BaseModel):
    """Filters for the torrents/info endpoint. Unset fields are never sent."""

    model_config = ConfigDict(extra="forbid")

    filter: TorrentFilter | None = None
    category: str | None = None
    sort: str | None = None
    reverse: bool | None = None
    limit: int | None = None
    offset: int | None = None
    hashes: str | list[str] | None = None


class TorrentInfo(BaseModel):
    """One entry of a torrents/info listing. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    hash: str
    name: str
    size: int = 0
    progress: float = 0.0
    state: str = "unknown"
    category: str = ""
    dlspeed: int = 0
    upspeed: int = 0
