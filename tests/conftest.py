"""Shared fixtures: in-memory images, canned HTTP responses, scripted fetchers."""

import io
import threading
import time
from typing import Dict, Iterable, Optional, Tuple

import pytest
import requests
from PIL import Image
from requests.structures import CaseInsensitiveDict

from synapse_compare.domain.records import FetchOutcome

Pixel = Tuple[int, int]
Colour = Tuple[int, int, int, int]


def build_image(
    width: int,
    height: int,
    colour: Colour = (255, 255, 255, 255),
    changes: Iterable[Tuple[Pixel, Colour]] = (),
    fmt: str = "PNG",
) -> bytes:
    """Encode a flat-colour image with selected pixels repainted."""
    mode = "RGBA" if fmt.upper() in ("PNG", "WEBP") else "RGB"
    img = Image.new("RGBA", (width, height), colour)
    for (x, y), value in changes:
        img.putpixel((x, y), value)
    options = {"lossless": True} if fmt.upper() == "WEBP" else {}
    buffer = io.BytesIO()
    img.convert(mode).save(buffer, format=fmt, **options)
    return buffer.getvalue()


def build_response(
    status: int = 200, body: bytes = b"", content_type: Optional[str] = "image/png"
) -> requests.Response:
    """A real requests.Response backed by an in-memory body."""
    response = requests.Response()
    response.status_code = status
    response.headers = CaseInsensitiveDict()
    if content_type is not None:
        response.headers["Content-Type"] = content_type
    response.raw = io.BytesIO(body)
    response.url = "http://test.local/"
    return response


class ScriptedFetcher:
    """
    Fetcher double returning canned outcomes per URL.

    delays maps url -> seconds to sleep before answering, to simulate slow
    servers and check concurrency.
    """

    def __init__(
        self,
        outcomes: Dict[str, FetchOutcome],
        delays: Optional[Dict[str, float]] = None,
    ):
        self.outcomes = outcomes
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, url, timeout_ms, expect_image=False):
        with self._lock:
            self.calls.append((url, timeout_ms, expect_image))
        delay = self.delays.get(url)
        if delay:
            time.sleep(delay)
        outcome = self.outcomes.get(url)
        if outcome is None:
            return FetchOutcome.failure(0, f"No route to {url}")
        return outcome

    def close(self):
        pass


def ok_image(body: bytes) -> FetchOutcome:
    return FetchOutcome.success(200, body, "image/png")


def ok_text(body: bytes) -> FetchOutcome:
    return FetchOutcome.success(200, body, "text/plain; charset=utf-8")


@pytest.fixture
def image_factory():
    return build_image


@pytest.fixture
def response_factory():
    return build_response


@pytest.fixture
def fetcher_factory():
    return ScriptedFetcher


@pytest.fixture
def ok_image_outcome():
    return ok_image


@pytest.fixture
def ok_text_outcome():
    return ok_text
