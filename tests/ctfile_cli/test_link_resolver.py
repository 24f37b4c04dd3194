"""
Tests for LinkResolver.
"""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests

from ctfile_cli import cli
from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.ctfile_exceptions import APIError, BadInputError, NotFoundError
from ctfile_cli.ctfile_logger import CtfileLogger
from ctfile_cli.link_resolver import LinkResolver
from tests.test_utils import FakeResponse, FakeSession, json_response

API_URL = "https://api.example.test"
INFO_URL = f"{API_URL}/download_info?xtlink=abc123"
DOWNLOAD_URL = f"{API_URL}/download?xtlink=abc123&file_id=k1"


@pytest.fixture
def config():
    return CtfileConfig(api_url=API_URL)


def make_resolver(config, routes=None):
    session = FakeSession(routes)
    return LinkResolver(config, session, CtfileLogger()), session


class TestParseLink:
    """Tests for link argument validation."""

    @pytest.mark.parametrize(
        "raw_link",
        ["abc123", "https://ctfile.com/f/abc123", "CTFILE://abc123", "ctfile:/abc123", "ctfile://", ""],
    )
    def test_rejects_malformed_links_without_network(self, config, raw_link):
        resolver, session = make_resolver(config)

        with pytest.raises(BadInputError):
            resolver.resolve(raw_link)

        assert session.calls == []

    def test_strips_scheme(self, config):
        resolver, _ = make_resolver(config)
        assert resolver.parse_link("ctfile://abc123") == "abc123"


class TestResolve:
    """Tests for the API round trip and the redirect probe."""

    def test_resolves_link(self, config):
        resolver, session = make_resolver(config, {
            INFO_URL: json_response([{"key": "k1", "name": "report"}]),
            DOWNLOAD_URL: FakeResponse(url="https://cdn.example.test/file?downname=report.pdf"),
        })

        link = resolver.resolve("ctfile://abc123")

        assert link.link_id == "abc123"
        assert link.file_key == "k1"
        assert link.download_url == DOWNLOAD_URL
        assert link.filename == "report.pdf"
        assert session.urls == [INFO_URL, DOWNLOAD_URL]

    def test_sends_user_agent_to_api(self, config):
        resolver, session = make_resolver(config, {
            INFO_URL: json_response([{"key": "k1"}]),
            DOWNLOAD_URL: FakeResponse(),
        })

        resolver.resolve("ctfile://abc123")

        _, kwargs = session.calls[0]
        assert kwargs["headers"]["User-Agent"] == config.user_agent

    @pytest.mark.parametrize(
        "payload",
        [[], [{"key": ""}], [{"name": "no key"}], [{"key": "", "name": "f"}, {"key": "k2"}]],
    )
    def test_no_download_available(self, config, payload):
        resolver, session = make_resolver(config, {INFO_URL: json_response(payload)})

        with pytest.raises(NotFoundError):
            resolver.resolve("ctfile://abc123")

        assert session.urls == [INFO_URL]

    @pytest.mark.parametrize(
        "body",
        [b"<html>502 Bad Gateway</html>", b'{"key": "k1"}', b'["k1"]', b'[{"key": 1}]'],
    )
    def test_unparseable_api_response(self, config, body):
        resolver, _ = make_resolver(config, {INFO_URL: FakeResponse(body=body)})

        with pytest.raises(APIError):
            resolver.resolve("ctfile://abc123")

    def test_api_unreachable(self, config):
        resolver, _ = make_resolver(config, {INFO_URL: requests.ConnectionError("refused")})

        with pytest.raises(APIError):
            resolver.resolve("ctfile://abc123")

    def test_probe_failure(self, config):
        resolver, _ = make_resolver(config, {
            INFO_URL: json_response([{"key": "k1"}]),
            DOWNLOAD_URL: requests.Timeout("timed out"),
        })

        with pytest.raises(APIError):
            resolver.resolve("ctfile://abc123")


class TestProbeRedirects:
    """Tests for the ranged redirect probe."""

    def test_requests_a_single_byte_without_reading_the_body(self, config):
        response = FakeResponse(url="https://cdn.example.test/file?downname=a.zip")
        resolver, session = make_resolver(config, {DOWNLOAD_URL: response})

        final_url = resolver.probe_redirects(DOWNLOAD_URL)

        assert final_url == "https://cdn.example.test/file?downname=a.zip"
        _, kwargs = session.calls[0]
        assert kwargs["headers"]["Range"] == "bytes=0-0"
        assert kwargs["stream"] is True
        assert kwargs["allow_redirects"] is True
        assert response.closed

    def test_resolver_leaves_session_settings_alone(self, config):
        _, session = make_resolver(config)
        assert session.max_redirects == 30

    def test_too_many_redirects_uses_last_response(self, config):
        last = FakeResponse(status_code=302, url="https://hop5.example.test/file?downname=deep.bin")
        resolver, _ = make_resolver(config, {
            DOWNLOAD_URL: requests.TooManyRedirects("Exceeded 5 redirects.", response=last),
        })

        assert resolver.probe_redirects(DOWNLOAD_URL) == "https://hop5.example.test/file?downname=deep.bin"


class TestExtractFilename:
    """Tests for reading the file name off the final URL."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://cdn.test/file?downname=My%20File.zip", "My File.zip"),
            ("https://cdn.test/file?id=1&downname=report.pdf&sig=x", "report.pdf"),
            ("https://cdn.test/file?downname=My+File.zip", "My File.zip"),
            ("https://cdn.test/file?downname=%E6%8A%A5%E5%91%8A.pdf", "报告.pdf"),
            ("https://cdn.test/file?downname=a%26b%3Dc.txt&x=1", "a&b=c.txt"),
            ("https://cdn.test/file?downname=%FF%FE.bin", "%FF%FE.bin"),
            ("https://cdn.test/file?downname=My%20File%zz.zip", "My%20File%zz.zip"),
            ("https://cdn.test/file?downname=report%2.pdf", "report%2.pdf"),
            ("https://cdn.test/file?downname=..%2F..%2Fetc%2Fpasswd", "passwd"),
            ("https://cdn.test/file", "download_file"),
            ("https://cdn.test/file?name=report.pdf", "download_file"),
            ("https://cdn.test/file?downname=", "download_file"),
            ("https://cdn.test/file?xdownname=report.pdf", "download_file"),
        ],
    )
    def test_extract_filename(self, url, expected):
        assert LinkResolver.extract_filename(url) == expected


class RedirectChainHandler(BaseHTTPRequestHandler):
    """
    ``/hop/<n>`` redirects to ``/hop/<n-1>``; ``/hop/1`` redirects to the
    file, which answers ranged requests with a single byte.
    """

    ranges = []

    def do_GET(self):
        if self.path.startswith("/hop/"):
            remaining = int(self.path.rsplit("/", 1)[1])
            location = f"/hop/{remaining - 1}" if remaining > 1 else "/file?downname=My%20File.zip"
            self.send_response(302)
            self.send_header("Location", location)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        RedirectChainHandler.ranges.append(self.headers.get("Range"))
        self.send_response(206)
        self.send_header("Content-Range", "bytes 0-0/1048576")
        self.send_header("Content-Length", "1")
        self.end_headers()
        self.wfile.write(b"M")

    def log_message(self, format, *args):
        pass


@pytest.fixture
def redirect_server():
    RedirectChainHandler.ranges = []
    server = ThreadingHTTPServer(("127.0.0.1", 0), RedirectChainHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
    thread.join()


class TestRedirectChain:
    """Redirect probe against a local HTTP server."""

    @pytest.fixture
    def resolver(self):
        config = CtfileConfig()
        with cli.build_session(config) as session:
            session.trust_env = False
            yield LinkResolver(config, session, CtfileLogger())

    def test_follows_short_chain_to_file(self, resolver, redirect_server):
        final_url = resolver.probe_redirects(f"{redirect_server}/hop/2")

        assert final_url == f"{redirect_server}/file?downname=My%20File.zip"
        assert LinkResolver.extract_filename(final_url) == "My File.zip"
        assert RedirectChainHandler.ranges == ["bytes=0-0"]

    def test_stops_after_five_hops(self, resolver, redirect_server):
        final_url = resolver.probe_redirects(f"{redirect_server}/hop/10")

        assert final_url == f"{redirect_server}/hop/5"
        assert LinkResolver.extract_filename(final_url) == "download_file"
        assert RedirectChainHandler.ranges == []

    def test_session_redirect_cap_comes_from_config(self):
        with cli.build_session(CtfileConfig(max_redirects=2)) as session:
            assert session.max_redirects == 2
