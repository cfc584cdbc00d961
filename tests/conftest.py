"""Shared fixtures: an in-process fake of the qBittorrent Web API."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest_asyncio
from aiohttp import test_utils, web

from qbit_cli.api.client import QBittorrentClient

USERNAME = "admin"
PASSWORD = "adminadmin"
SID = "uZ8dQ1kq0pXb2zVn"

TORRENTS = [
    {
        "hash": "8c212779b4abde7c6bc608063a0d008b7e40ce32",
        "name": "debian-12.6.0-amd64-netinst.iso",
        "size": 661651456,
        "progress": 1.0,
        "state": "uploading",
        "category": "linux",
    },
    {
        "hash": "dd8255ecdc7ca55fb0bbf81323d87062db1f6d1c",
        "name": "Big Buck Bunny",
        "size": 276445467,
        "progress": 0.42,
        "state": "downloading",
        "category": "",
    },
]


@dataclass
class RecordedRequest:
    method: str
    endpoint: str
    query: dict[str, str]
    cookie: str | None
    content_type: str
    form: list[tuple[str, Any]] = field(default_factory=list)


class FakeQBittorrent:
    """Answers like qBittorrent and records every request it receives."""

    def __init__(self):
        self.base_url = ""
        self.requests: list[RecordedRequest] = []
        self.login_count = 0
        self.login_delay = 0.0
        self.reject_login = False
        self.omit_sid = False
        self.fail_with: dict[str, int] = {}
        self.fail_body = b"Forbidden"
        self.replies: dict[str, Any] = {
            "app/version": "v4.6.2",
            "app/preferences": {"save_path": "/downloads", "web_ui_port": 8080},
            "torrents/info": TORRENTS,
            "torrents/peers": {
                "peers": {"10.0.0.2:51413": {"client": "Transmission 4.0"}}
            },
            "auth/logout": "",
        }

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/api/v2/{endpoint:.*}", self.handle)
        return app

    def requests_to(self, endpoint: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.endpoint == endpoint]

    async def handle(self, request: web.Request) -> web.Response:
        endpoint = request.match_info["endpoint"]
        form = await self._read_form(request) if request.method == "POST" else []
        self.requests.append(
            RecordedRequest(
                method=request.method,
                endpoint=endpoint,
                query=dict(request.query),
                cookie=request.headers.get("Cookie"),
                content_type=request.content_type,
                form=form,
            )
        )

        if endpoint == "auth/login":
            return await self._login(dict(form))
        if endpoint in self.fail_with:
            return web.Response(
                status=self.fail_with[endpoint],
                body=self.fail_body,
                content_type="text/html",
                charset="utf-8",
            )

        reply = self.replies.get(endpoint, "Ok.")
        if isinstance(reply, bytes):
            return web.Response(body=reply, content_type="text/plain", charset="utf-8")
        if isinstance(reply, str):
            return web.Response(text=reply)
        return web.json_response(reply)

    async def _login(self, form: dict[str, Any]) -> web.Response:
        self.login_count += 1
        if self.login_delay:
            await asyncio.sleep(self.login_delay)
        if (
            self.reject_login
            or form.get("username") != USERNAME
            or form.get("password") != PASSWORD
        ):
            return web.Response(text="Fails.")
        response = web.Response(text="Ok.")
        if not self.omit_sid:
            response.set_cookie("SID", SID, httponly=True, path="/")
        return response

    @staticmethod
    async def _read_form(request: web.Request) -> list[tuple[str, Any]]:
        data = await request.post()
        form = []
        for key, value in data.items():
            if isinstance(value, web.FileField):
                value = {
                    "filename": value.filename,
                    "content_type": value.content_type,
                    "body": value.file.read(),
                }
            form.append((key, value))
        return form


@pytest_asyncio.fixture
async def fake_qbt():
    fake = FakeQBittorrent()
    server = test_utils.TestServer(fake.app())
    await server.start_server()
    fake.base_url = str(server.make_url("/"))
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def client(fake_qbt):
    async with QBittorrentClient(fake_qbt.base_url, USERNAME, PASSWORD) as qbt:
        yield qbt


@pytest_asyncio.fixture
async def anonymous_client(fake_qbt):
    async with QBittorrentClient(fake_qbt.base_url) as qbt:
        yield qbt
