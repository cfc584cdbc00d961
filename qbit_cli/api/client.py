"""
Async client for the qBittorrent Web API (v2) with lazy cookie authentication.
"""

import asyncio
import logging
from typing import Any

import aiohttp
from multidict import CIMultiDictProxy
from pydantic import ValidationError

from qbit_cli.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    RequestFailedError,
    UnexpectedResponseError,
)
from qbit_cli.models.config import DEFAULT_TIMEOUT, ClientConfig
from qbit_cli.models.torrent import TorrentAddRequest, TorrentInfoQuery

from .auth import QBittorrentAuthenticator
from .codec import decode_response, encode_torrent_query, format_value, join_hashes
from .payload import build_add_form

log = logging.getLogger(__name__)


class QBittorrentClient:
    """
    Async client for one qBittorrent instance.

    Features:
    - Lazy login on the first call when credentials are configured
    - Single-flight authentication under concurrent use
    - Uniform wrapping of transport errors in RequestFailedError
    - Multipart torrent uploads from text, bytes or shared buffers
    """

    API_PATH = "/api/v2/"

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initializes the API client. No request is made until the first call.

        Args:
            base_url: Web UI address, e.g. ``http://localhost:8080``.
            username: Web UI username.
            password: Web UI password.
            timeout: Total timeout in seconds for each HTTP request.

        Raises:
            ConfigurationError: If the connection settings are invalid.
        """
        try:
            self.config = ClientConfig(
                base_url=base_url, username=username, password=password, timeout=timeout
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid client settings:\n{e}") from e

        # State set by the authenticator
        self.sid: str | None = None

        self._session: aiohttp.ClientSession | None = None
        self._authenticator = QBittorrentAuthenticator(self)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "QBittorrentClient":
        return cls(
            config.base_url,
            username=config.username,
            password=config.password,
            timeout=config.timeout,
        )

    @property
    def authenticator(self) -> QBittorrentAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    async def __aenter__(self) -> "QBittorrentClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                # The SID is sent explicitly, never from a cookie jar.
                cookie_jar=aiohttp.DummyCookieJar(),
                headers={"Referer": self.config.base_url},
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def build_url(self, endpoint: str) -> str:
        return self.config.base_url + self.API_PATH + endpoint

    async def send_request(
        self,
        method: str,
        endpoint: str,
        *,
        data: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        with_session: bool = True,
    ) -> tuple[str, CIMultiDictProxy[str]]:
        """
        Issues one HTTP request without authenticating first.

        Returns:
            The raw response text and the response headers.

        Raises:
            RequestFailedError: On connection errors, timeouts and non-2xx statuses.
        """
        await self._initialize_session()

        request_headers = dict(headers or {})
        if with_session and self.sid:
            request_headers["Cookie"] = f"SID={self.sid}"

        log.debug(f"{method} {endpoint} params={params or {}}")
        try:
            async with self._session.request(
                method,
                self.build_url(endpoint),
                data=data,
                params=params,
                headers=request_headers,
            ) as r:
                r.raise_for_status()
                text = await r.text(errors="replace")
                return text, r.headers
        except aiohttp.ClientResponseError as e:
            log.debug(f"{method} {endpoint} failed with HTTP {e.status}")
            raise RequestFailedError(f"Request failed: {e}", status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"{method} {endpoint} failed: {e!r}")
            raise RequestFailedError(f"Request failed: {e!r}") from e

    async def api_call(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: dict[str, str] | None = None,
        decode: bool = True,
    ) -> Any:
        """
        Makes an authenticated API call and decodes the reply.

        Logs in first when credentials are configured and no session is held.
        With ``decode`` the body goes through ``decode_response``; otherwise the
        raw text is returned.
        """
        await self._authenticator.ensure_authenticated()
        text, _ = await self.send_request(method, endpoint, data=data, params=params)
        return decode_response(text) if decode else text

    # Public API Methods
    async def login(self) -> None:
        await self._authenticator.login()

    async def logout(self) -> None:
        await self._authenticator.logout()

    async def get_api_version(self) -> str:
        """Returns the application version string, e.g. ``v4.6.2``."""
        return await self.api_call("GET", "app/version", decode=False)

    async def get_preferences(self) -> dict[str, Any]:
        response = await self.api_call("GET", "app/preferences")
        if not response:
            raise UnexpectedResponseError("Failed to retrieve preferences.")
        return response

    async def get_all_data(self) -> list[dict[str, Any]]:
        """Lists every torrent without any filter."""
        return await self.api_call("GET", "torrents/info")

    async def get_torrent_info(
        self, query: TorrentInfoQuery | None = None, **fields: Any
    ) -> list[dict[str, Any]]:
        """
        Lists torrents matching a query.

        Args:
            query: A prepared query. Mutually exclusive with ``fields``.
            **fields: TorrentInfoQuery fields, used when ``query`` is omitted.

        Raises:
            InvalidRequestError: If a field is unknown or has an invalid value.
        """
        if query is None:
            try:
                query = TorrentInfoQuery(**fields)
            except ValidationError as e:
                raise InvalidRequestError(f"Invalid torrent query:\n{e}") from e
        return await self.api_call(
            "GET", "torrents/info", params=encode_torrent_query(query)
        )

    async def add_torrent(
        self, request: TorrentAddRequest | None = None, **fields: Any
    ) -> Any:
        """
        Adds torrents from URLs and/or uploaded .torrent files.

        The body is built, and validated, before any network call.

        Raises:
            InvalidRequestError: If neither URLs nor files are given, or a field
                is unknown or has an invalid value.
            UnsupportedPayloadError: If a file buffer has an unsupported type.
        """
        if request is None:
            try:
                request = TorrentAddRequest(**fields)
            except ValidationError as e:
                raise InvalidRequestError(f"Invalid add request:\n{e}") from e
        form = build_add_form(request)
        return await self.api_call("POST", "torrents/add", data=form)

    async def pause_torrent(self, torrent_hash: str | list[str]) -> Any:
        return await self.api_call(
            "POST", "torrents/pause", data={"hashes": join_hashes(torrent_hash)}
        )

    async def resume_torrent(self, torrent_hash: str | list[str]) -> Any:
        return await self.api_call(
            "POST", "torrents/resume", data={"hashes": join_hashes(torrent_hash)}
        )

    async def remove_torrent(
        self, torrent_hash: str | list[str], delete_files: bool = False
    ) -> Any:
        return await self.api_call(
            "POST",
            "torrents/delete",
            data={
                "hashes": join_hashes(torrent_hash),
                "deleteFiles": format_value(delete_files),
            },
        )

    async def set_category(self, torrent_hash: str | list[str], category: str) -> None:
        response = await self.api_call(
            "POST",
            "torrents/setCategory",
            data={"hashes": join_hashes(torrent_hash), "category": category},
        )
        if response is not True:
            raise UnexpectedResponseError("Failed to set category.")

    async def get_torrent_peers(self, torrent_hash: str) -> dict[str, Any]:
        response = await self.api_call(
            "GET", "torrents/peers", params={"hash": torrent_hash}
        )
        if not response:
            raise UnexpectedResponseError("Failed to retrieve torrent peers.")
        return response
