"""Tests for QBittorrentClient against the in-process fake Web API."""

import asyncio
import json

import pytest

from qbit_cli.api.client import QBittorrentClient
from qbit_cli.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidRequestError,
    RequestFailedError,
    UnexpectedResponseError,
    UnsupportedPayloadError,
)
from qbit_cli.models.torrent import TorrentAddRequest, TorrentFile, TorrentInfoQuery

from .conftest import PASSWORD, SID, TORRENTS, USERNAME


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_login_stores_sid_and_sends_it_as_cookie(self, client, fake_qbt):
        await client.login()
        assert client.sid == SID

        await client.get_api_version()
        (version_request,) = fake_qbt.requests_to("app/version")
        assert version_request.cookie == f"SID={SID}"

    @pytest.mark.asyncio
    async def test_login_posts_urlencoded_credentials(self, client, fake_qbt):
        await client.login()
        (login_request,) = fake_qbt.requests_to("auth/login")
        assert login_request.method == "POST"
        assert login_request.content_type == "application/x-www-form-urlencoded"
        assert dict(login_request.form) == {"username": USERNAME, "password": PASSWORD}
        assert login_request.cookie is None

    @pytest.mark.asyncio
    async def test_first_call_logs_in_lazily(self, client, fake_qbt):
        assert client.sid is None
        assert fake_qbt.requests == []

        await client.get_all_data()

        assert [r.endpoint for r in fake_qbt.requests] == ["auth/login", "torrents/info"]
        assert fake_qbt.requests[1].cookie == f"SID={SID}"

    @pytest.mark.asyncio
    async def test_session_is_reused(self, client, fake_qbt):
        await client.get_all_data()
        await client.get_preferences()
        assert fake_qbt.login_count == 1

    @pytest.mark.asyncio
    async def test_without_credentials_no_login_and_no_cookie(
        self, anonymous_client, fake_qbt
    ):
        await anonymous_client.get_all_data()
        assert fake_qbt.login_count == 0
        assert fake_qbt.requests_to("torrents/info")[0].cookie is None

    @pytest.mark.asyncio
    async def test_rejected_login(self, client, fake_qbt):
        fake_qbt.reject_login = True
        with pytest.raises(AuthenticationError):
            await client.login()
        assert client.sid is None

    @pytest.mark.asyncio
    async def test_wrong_password(self, fake_qbt):
        async with QBittorrentClient(fake_qbt.base_url, USERNAME, "wrong") as qbt:
            with pytest.raises(AuthenticationError):
                await qbt.get_all_data()
            assert qbt.sid is None
        assert fake_qbt.requests_to("torrents/info") == []

    @pytest.mark.asyncio
    async def test_missing_sid_cookie(self, client, fake_qbt):
        fake_qbt.omit_sid = True
        with pytest.raises(
            AuthenticationError, match="failed to extract session identifier"
        ):
            await client.login()
        assert client.sid is None

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_log_in_once(self, client, fake_qbt):
        fake_qbt.login_delay = 0.05
        await asyncio.gather(
            client.get_all_data(),
            client.get_preferences(),
            client.get_api_version(),
        )
        assert fake_qbt.login_count == 1
        assert all(
            r.cookie == f"SID={SID}"
            for r in fake_qbt.requests
            if r.endpoint != "auth/login"
        )

    @pytest.mark.asyncio
    async def test_logout_clears_sid(self, client, fake_qbt):
        await client.login()
        await client.logout()
        assert client.sid is None
        (logout_request,) = fake_qbt.requests_to("auth/logout")
        assert logout_request.cookie == f"SID={SID}"

    @pytest.mark.asyncio
    async def test_logout_clears_sid_on_failure_body(self, client, fake_qbt):
        await client.login()
        fake_qbt.replies["auth/logout"] = "Fails."
        await client.logout()
        assert client.sid is None

    @pytest.mark.asyncio
    async def test_logout_clears_sid_on_http_error(self, client, fake_qbt):
        await client.login()
        fake_qbt.fail_with["auth/logout"] = 500
        with pytest.raises(RequestFailedError):
            await client.logout()
        assert client.sid is None

    @pytest.mark.asyncio
    async def test_logout_does_not_log_in(self, client, fake_qbt):
        await client.logout()
        assert fake_qbt.login_count == 0

    @pytest.mark.asyncio
    async def test_logout_without_session_surfaces_forbidden(self, client, fake_qbt):
        fake_qbt.fail_with["auth/logout"] = 403
        with pytest.raises(RequestFailedError) as excinfo:
            await client.logout()
        assert excinfo.value.status == 403
        assert fake_qbt.login_count == 0
        assert client.sid is None

    @pytest.mark.asyncio
    async def test_call_after_logout_logs_in_again(self, client, fake_qbt):
        await client.get_all_data()
        await client.logout()
        await client.get_all_data()
        assert fake_qbt.login_count == 2


class TestRequestDispatch:
    @pytest.mark.asyncio
    async def test_trailing_slash_is_stripped(self, client, fake_qbt):
        assert fake_qbt.base_url.endswith("/")
        assert not client.config.base_url.endswith("/")
        assert client.build_url("app/version") == (
            client.config.base_url + "/api/v2/app/version"
        )

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self):
        async with QBittorrentClient("http://127.0.0.1:1", timeout=5) as qbt:
            with pytest.raises(RequestFailedError, match="Request failed") as excinfo:
                await qbt.get_all_data()
        assert excinfo.value.status is None
        assert excinfo.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_login_connection_error_is_wrapped(self):
        async with QBittorrentClient("http://127.0.0.1:1", "a", "b", timeout=5) as qbt:
            with pytest.raises(RequestFailedError):
                await qbt.get_all_data()
            assert qbt.sid is None

    @pytest.mark.asyncio
    async def test_http_error_is_wrapped_with_status(self, client, fake_qbt):
        fake_qbt.fail_with["torrents/info"] = 403
        with pytest.raises(RequestFailedError) as excinfo:
            await client.get_all_data()
        assert excinfo.value.status == 403

    @pytest.mark.asyncio
    async def test_undecodable_error_page_is_wrapped(self, client, fake_qbt):
        fake_qbt.fail_with["torrents/info"] = 500
        fake_qbt.fail_body = b"<html>\xff\xfe internal error</html>"
        with pytest.raises(RequestFailedError) as excinfo:
            await client.get_all_data()
        assert excinfo.value.status == 500

    @pytest.mark.asyncio
    async def test_undecodable_bytes_in_reply_are_replaced(self, client, fake_qbt):
        fake_qbt.replies["app/version"] = b"v4.6.2\xff"
        assert await client.get_api_version() == "v4.6.2\ufffd"

    def test_invalid_base_url_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError, match="Invalid client settings"):
            QBittorrentClient("localhost:8080")

    def test_invalid_timeout_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            QBittorrentClient("http://localhost:8080", timeout=-1)

    @pytest.mark.asyncio
    async def test_malformed_json_propagates(self, client, fake_qbt):
        fake_qbt.replies["torrents/info"] = "<html>not json</html>"
        with pytest.raises(json.JSONDecodeError):
            await client.get_all_data()

    @pytest.mark.asyncio
    async def test_ok_reply_decodes_to_true(self, client):
        assert await client.pause_torrent("abc") is True


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_api_version_is_plain_text(self, client):
        assert await client.get_api_version() == "v4.6.2"

    @pytest.mark.asyncio
    async def test_preferences(self, client):
        prefs = await client.get_preferences()
        assert prefs["save_path"] == "/downloads"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["", "{}"])
    async def test_empty_preferences_is_an_error(self, client, fake_qbt, reply):
        fake_qbt.replies["app/preferences"] = reply
        with pytest.raises(UnexpectedResponseError, match="preferences"):
            await client.get_preferences()

    @pytest.mark.asyncio
    async def test_get_all_data_sends_no_query(self, client, fake_qbt):
        assert await client.get_all_data() == TORRENTS
        assert fake_qbt.requests_to("torrents/info")[0].query == {}

    @pytest.mark.asyncio
    async def test_torrent_info_query(self, client, fake_qbt):
        await client.get_torrent_info(filter="downloading", hashes=["a", "b"])
        (request,) = fake_qbt.requests_to("torrents/info")
        assert request.method == "GET"
        assert request.query == {"filter": "downloading", "hashes": "a|b"}

    @pytest.mark.asyncio
    async def test_torrent_info_with_query_object(self, client, fake_qbt):
        query = TorrentInfoQuery(category="linux", sort="name", reverse=True, limit=5)
        await client.get_torrent_info(query)
        (request,) = fake_qbt.requests_to("torrents/info")
        assert request.query == {
            "category": "linux",
            "sort": "name",
            "reverse": "true",
            "limit": "5",
        }

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, client, fake_qbt):
        await client.pause_torrent("abc")
        await client.resume_torrent(["abc", "def"])
        (pause,) = fake_qbt.requests_to("torrents/pause")
        (resume,) = fake_qbt.requests_to("torrents/resume")
        assert pause.form == [("hashes", "abc")]
        assert resume.form == [("hashes", "abc|def")]

    @pytest.mark.asyncio
    async def test_remove_torrent(self, client, fake_qbt):
        await client.remove_torrent("abc")
        await client.remove_torrent("def", delete_files=True)
        first, second = fake_qbt.requests_to("torrents/delete")
        assert dict(first.form) == {"hashes": "abc", "deleteFiles": "false"}
        assert dict(second.form) == {"hashes": "def", "deleteFiles": "true"}

    @pytest.mark.asyncio
    async def test_set_category(self, client, fake_qbt):
        assert await client.set_category("abc", "linux") is None
        (request,) = fake_qbt.requests_to("torrents/setCategory")
        assert dict(request.form) == {"hashes": "abc", "category": "linux"}

    @pytest.mark.asyncio
    async def test_set_category_requires_ok(self, client, fake_qbt):
        fake_qbt.replies["torrents/setCategory"] = "[]"
        with pytest.raises(UnexpectedResponseError, match="category"):
            await client.set_category("abc", "linux")

    @pytest.mark.asyncio
    async def test_peers(self, client, fake_qbt):
        peers = await client.get_torrent_peers("abc")
        assert "10.0.0.2:51413" in peers["peers"]
        (request,) = fake_qbt.requests_to("torrents/peers")
        assert request.query == {"hash": "abc"}

    @pytest.mark.asyncio
    async def test_empty_peers_is_an_error(self, client, fake_qbt):
        fake_qbt.replies["torrents/peers"] = ""
        with pytest.raises(UnexpectedResponseError, match="peers"):
            await client.get_torrent_peers("abc")


class TestAddTorrent:
    @pytest.mark.asyncio
    async def test_urls_and_files_are_sent_as_multipart(self, client, fake_qbt):
        result = await client.add_torrent(
            urls=["https://example.org/a.torrent", "magnet:?xt=urn:btih:abc"],
            torrents=[
                TorrentFile(buffer=b"d4:infod4:name1:aee", filename="a.torrent"),
                TorrentFile(buffer=bytearray(b"d4:infod4:name1:bee")),
            ],
            category="linux",
            paused=True,
            up_limit=2048,
        )
        assert result is True

        (request,) = fake_qbt.requests_to("torrents/add")
        assert request.content_type == "multipart/form-data"
        assert request.cookie == f"SID={SID}"

        names = [name for name, _ in request.form]
        assert names == ["urls", "torrents", "torrents", "category", "paused", "upLimit"]
        form = request.form
        assert form[0][1] == "https://example.org/a.torrent\nmagnet:?xt=urn:btih:abc"
        assert form[1][1] == {
            "filename": "a.torrent",
            "content_type": "application/x-bittorrent",
            "body": b"d4:infod4:name1:aee",
        }
        assert form[2][1]["filename"] == "torrent_1.torrent"
        assert form[2][1]["body"] == b"d4:infod4:name1:bee"
        assert dict(form[3:]) == {"category": "linux", "paused": "true", "upLimit": "2048"}

    @pytest.mark.asyncio
    async def test_url_only_request_is_still_multipart(self, client, fake_qbt):
        await client.add_torrent(TorrentAddRequest(urls="magnet:?xt=urn:btih:abc"))
        (request,) = fake_qbt.requests_to("torrents/add")
        assert request.content_type == "multipart/form-data"
        assert request.form == [("urls", "magnet:?xt=urn:btih:abc")]

    @pytest.mark.asyncio
    async def test_empty_request_makes_no_network_call(self, client, fake_qbt):
        with pytest.raises(InvalidRequestError):
            await client.add_torrent()
        assert fake_qbt.requests == []

    @pytest.mark.asyncio
    async def test_unsupported_buffer_makes_no_network_call(self, client, fake_qbt):
        with pytest.raises(UnsupportedPayloadError):
            await client.add_torrent(torrents=TorrentFile(buffer=3.14))
        assert fake_qbt.requests == []

    @pytest.mark.asyncio
    async def test_misspelled_field_is_rejected(self, client, fake_qbt):
        with pytest.raises(InvalidRequestError, match="Invalid add request"):
            await client.add_torrent(urls="magnet:?xt=urn:btih:abc", save_path="/data")
        assert fake_qbt.requests == []

    @pytest.mark.asyncio
    async def test_invalid_field_value_is_rejected(self, client, fake_qbt):
        with pytest.raises(InvalidRequestError):
            await client.add_torrent(urls="magnet:?xt=urn:btih:abc", up_limit="fast")
        assert fake_qbt.requests == []


class TestQueryValidation:
    @pytest.mark.asyncio
    async def test_unknown_filter_value(self, client, fake_qbt):
        with pytest.raises(InvalidRequestError, match="Invalid torrent query"):
            await client.get_torrent_info(filter="stalled")
        assert fake_qbt.requests == []

    @pytest.mark.asyncio
    async def test_misspelled_query_field(self, client, fake_qbt):
        with pytest.raises(InvalidRequestError):
            await client.get_torrent_info(hash="abc")
        assert fake_qbt.requests == []
