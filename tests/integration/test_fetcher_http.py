"""ResourceFetcher against a local HTTP server: redirects and timing."""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from synapse_compare.api.fetcher import TIMEOUT_MESSAGE, ResourceFetcher

pytestmark = pytest.mark.integration


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/old":
            self.send_response(302)
            self.send_header("Location", "/new")
            self.send_header("Content-Length", "0")
            self.end_headers()
        elif self.path == "/new":
            self._send_body(b"ok")
        elif self.path == "/slow-body":
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", "4")
            self.end_headers()
            self.wfile.write(b"ab")
            self.wfile.flush()
            time.sleep(0.6)
            self.wfile.write(b"cd")
        elif self.path == "/slow-headers":
            time.sleep(0.6)
            self._send_body(b"late")
        else:
            self.send_error(404)

    def _send_body(self, body):
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture(scope="module")
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def fetcher():
    fetcher = ResourceFetcher()
    yield fetcher
    fetcher.close()


def test_redirect_is_reported_not_followed(server, fetcher):
    outcome = fetcher.fetch(f"{server}/old", 2000)

    assert outcome.ok is False
    assert outcome.status_code == 302
    assert outcome.error_message == "HTTP 302"
    assert outcome.body is None


def test_slow_body_after_headers_is_read_to_the_end(server, fetcher):
    outcome = fetcher.fetch(f"{server}/slow-body", 300)

    assert outcome.ok is True
    assert outcome.status_code == 200
    assert outcome.body == b"abcd"


def test_headers_later_than_deadline_time_out(server, fetcher):
    outcome = fetcher.fetch(f"{server}/slow-headers", 300)

    assert outcome.ok is False
    assert outcome.status_code == 0
    assert outcome.error_message == TIMEOUT_MESSAGE
