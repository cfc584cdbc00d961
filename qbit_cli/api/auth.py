"""
Handles authentication with the qBittorrent Web API: cookie login, logout and
the on-demand login performed before the first authenticated call.
"""

import asyncio
import logging
import re
from typing import TYPE_CHECKING

from qbit_cli.exceptions import AuthenticationError

from .codec import FAILURE_SENTINEL

if TYPE_CHECKING:
    from .client import QBittorrentClient

log = logging.getLogger(__name__)

SID_PATTERN = re.compile(r"\bSID=([^;]+)")


def extract_sid(set_cookie_values: list[str]) -> str | None:
    """Returns the first ``SID`` cookie value found in ``Set-Cookie`` headers."""
    for value in set_cookie_values:
        if match := SID_PATTERN.search(value):
            return match.group(1).strip() or None
    return None


class QBittorrentAuthenticator:
    """
    Manages the session identifier of one QBittorrentClient.

    Every change to the identifier happens under a single lock, so concurrent
    first calls result in exactly one login request.
    """

    def __init__(self, api_client: "QBittorrentClient"):
        """
        Initializes the authenticator.

        Args:
            api_client: A reference to the main QBittorrentClient instance.
        """
        self._api_client = api_client
        self._lock = asyncio.Lock()

    async def ensure_authenticated(self) -> None:
        """Logs in if credentials are configured and no session is held yet."""
        if self._api_client.sid or not self._api_client.config.has_credentials:
            return
        async with self._lock:
            # Another task may have logged in while this one waited.
            if self._api_client.sid is None:
                await self._login()

    async def login(self) -> None:
        """
        Logs in with the configured credentials and stores the session identifier.

        Raises:
            AuthenticationError: If the server answers ``Fails.`` or sets no SID.
            RequestFailedError: On any transport-level fault.
        """
        async with self._lock:
            await self._login()

    async def logout(self) -> None:
        """
        Ends the session. The local identifier is cleared even if the call fails.

        No login is attempted first: on a client that never logged in the
        request goes out without a cookie, and a daemon that requires
        authentication answers 403, raised as RequestFailedError.
        """
        async with self._lock:
            try:
                await self._api_client.send_request("POST", "auth/logout")
            finally:
                self._api_client.sid = None
                log.debug("Session identifier cleared.")

    async def _login(self) -> None:
        config = self._api_client.config
        log.debug(f"Logging in to {config.base_url} as {config.username!r}")

        text, headers = await self._api_client.send_request(
            "POST",
            "auth/login",
            data={
                "username": config.username or "",
                "password": config.password or "",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            with_session=False,
        )

        if text == FAILURE_SENTINEL:
            self._api_client.sid = None
            log.warning("[yellow]Login rejected by qBittorrent.[/yellow]")
            raise AuthenticationError("Login failed: invalid username or password.")

        set_cookie = headers.getall("Set-Cookie", [])
        sid = extract_sid(set_cookie)
        if not sid:
            self._api_client.sid = None
            log.error(f"SID extraction failed. Set-Cookie headers: {set_cookie}")
            raise AuthenticationError(
                "Login failed: failed to extract session identifier (SID)."
            )

        self._api_client.sid = sid
        log.info(f"Authenticated with qBittorrent at {config.base_url}")
