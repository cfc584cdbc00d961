"""
Builds the multipart body for the torrents/add endpoint.

Torrent files may arrive as text, ``bytes``, ``bytearray`` or a shared memory
buffer; each is normalized to an independent ``bytes`` copy before it becomes a
``torrents`` part.
"""

import logging
import mmap
from multiprocessing.shared_memory import SharedMemory
from typing import NamedTuple, Union

import aiohttp

from qbit_cli.exceptions import InvalidRequestError, UnsupportedPayloadError
from qbit_cli.models.torrent import TorrentAddRequest

from .codec import format_value

log = logging.getLogger(__name__)

TorrentBuffer = Union[str, bytes, bytearray, memoryview, mmap.mmap, SharedMemory]

# Optional scalar fields in wire order: (attribute, form field name)
_SCALAR_FIELDS = (
    ("savepath", "savepath"),
    ("category", "category"),
    ("paused", "paused"),
    ("skip_checking", "skip_checking"),
    ("rename", "rename"),
    ("up_limit", "upLimit"),
    ("dl_limit", "dlLimit"),
)


class FormField(NamedTuple):
    """One part of the multipart body."""

    name: str
    value: str | bytes
    filename: str | None = None
    content_type: str | None = None


def normalize_buffer(buffer: TorrentBuffer) -> bytes:
    """
    Copies a torrent buffer into ``bytes``.

    Raises:
        UnsupportedPayloadError: If the buffer is none of the supported kinds.
    """
    match buffer:
        case str():
            return buffer.encode("utf-8")
        case bytes():
            return bytes(buffer)
        case bytearray():
            return bytes(buffer)
        case memoryview() | mmap.mmap():
            return bytes(buffer)
        case SharedMemory():
            return bytes(buffer.buf)
        case _:
            kind = type(buffer).__name__
            raise UnsupportedPayloadError(
                f"Cannot upload torrent: unsupported buffer type {kind!r}"
            )


def fallback_filename(index: int) -> str:
    return f"torrent_{index}.torrent"


def build_add_fields(request: TorrentAddRequest) -> list[FormField]:
    """
    Lays out every part of a torrents/add body.

    Raises:
        InvalidRequestError: If the request carries neither URLs nor files.
        UnsupportedPayloadError: If a torrent file buffer cannot be normalized.
    """
    urls = request.url_list
    torrents = request.torrent_list
    if not urls and not torrents:
        raise InvalidRequestError("At least one torrent or URL must be provided.")

    fields: list[FormField] = []
    if urls:
        fields.append(FormField("urls", "\n".join(urls)))

    for index, torrent in enumerate(torrents):
        fields.append(
            FormField(
                "torrents",
                normalize_buffer(torrent.buffer),
                filename=torrent.filename or fallback_filename(index),
                content_type=torrent.content_type,
            )
        )

    for attribute, name in _SCALAR_FIELDS:
        value = getattr(request, attribute)
        if value is not None:
            fields.append(FormField(name, format_value(value)))

    log.debug(
        f"Prepared torrents/add body: {len(urls)} URL(s), {len(torrents)} file(s)"
    )
    return fields


def build_add_form(request: TorrentAddRequest) -> aiohttp.FormData:
    """Encodes a torrents/add request as a multipart ``aiohttp.FormData``."""
    form = aiohttp.FormData(default_to_multipart=True)
    for field in build_add_fields(request):
        if field.filename is not None:
            form.add_field(
                field.name,
                field.value,
                filename=field.filename,
                content_type=field.content_type,
            )
        else:
            form.add_field(field.name, field.value)
    return form
