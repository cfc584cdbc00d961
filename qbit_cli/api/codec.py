"""
Translates between Web API wire text and Python values: response bodies in,
query parameters out.
"""

import json
from typing import Any

from qbit_cli.models.torrent import TorrentInfoQuery

SUCCESS_SENTINEL = "Ok."
FAILURE_SENTINEL = "Fails."
HASH_SEPARATOR = "|"


def decode_response(text: str) -> Any:
    """
    Decodes a raw response body.

    ``Ok.`` becomes ``True``, an empty body becomes ``None`` and anything else
    is parsed as JSON. Malformed JSON raises ``json.JSONDecodeError``.
    """
    if text == SUCCESS_SENTINEL:
        return True
    if not text:
        return None
    return json.loads(text)


def format_value(value: Any) -> str:
    """Stringifies a scalar the way the Web API expects (lowercase booleans)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def join_hashes(hashes: str | list[str]) -> str:
    """Joins a list of torrent hashes with ``|``; a single hash is returned as-is."""
    if isinstance(hashes, str):
        return hashes
    return HASH_SEPARATOR.join(hashes)


def encode_torrent_query(query: TorrentInfoQuery) -> dict[str, str]:
    """Builds torrents/info query parameters, omitting every unset field."""
    params: dict[str, str] = {}
    if query.filter is not None:
        params["filter"] = query.filter.value
    for key in ("category", "sort", "reverse", "limit", "offset"):
        value = getattr(query, key)
        if value is not None:
            params[key] = format_value(value)
    if query.hashes is not None:
        params["hashes"] = join_hashes(query.hashes)
    return params
