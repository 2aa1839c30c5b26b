"""Tests for the source fetcher."""

import io

import pytest
import requests
from PIL import Image

from raster_proxy.infrastructure.network import SourceFetchError, SourceFetcher


class FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"status {self.status}")


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append((url, timeout))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _png_bytes():
    out = io.BytesIO()
    Image.new("RGB", (3, 2), (1, 2, 3)).save(out, "PNG")
    return out.getvalue()


def test_fetch_buffer_decodes_the_image():
    session = FakeSession([FakeResponse(_png_bytes())])
    fetcher = SourceFetcher(lambda: session, retries=0, timeout=1.5)

    buffer = fetcher.fetch_buffer("http://example.com/a.png")

    assert buffer.size == (3, 2)
    assert buffer.pixel(2, 1) == (1, 2, 3, 255)
    assert session.requested == [("http://example.com/a.png", 1.5)]
    assert session.headers["User-Agent"].startswith("raster-proxy/")


def test_fetch_retries_then_succeeds():
    session = FakeSession([requests.ConnectionError("down"), FakeResponse(_png_bytes())])
    fetcher = SourceFetcher(lambda: session, retries=1, backoff=0)

    assert fetcher.fetch_buffer("http://example.com/a.png").size == (3, 2)
    assert len(session.requested) == 2


def test_fetch_gives_up_after_retries():
    session = FakeSession([FakeResponse(status=500), FakeResponse(status=503)])
    fetcher = SourceFetcher(lambda: session, retries=1, backoff=0)

    with pytest.raises(SourceFetchError):
        fetcher.fetch_bytes("http://example.com/a.png")


def test_undecodable_payload_is_a_fetch_error():
    session = FakeSession([FakeResponse(b"<html>")])
    fetcher = SourceFetcher(lambda: session, retries=0)

    with pytest.raises(SourceFetchError):
        fetcher.fetch_buffer("http://example.com/a.png")


def test_missing_url_is_rejected():
    fetcher = SourceFetcher(lambda: FakeSession([]), retries=0)

    with pytest.raises(SourceFetchError):
        fetcher.fetch_bytes("")


def test_per_call_limits_override_constructor():
    session = FakeSession([FakeResponse(status=500), FakeResponse(_png_bytes())])
    fetcher = SourceFetcher(lambda: session, retries=0, timeout=9, backoff=0)

    buffer = fetcher.fetch_buffer("http://example.com/a.png", timeout=1, retries=1)

    assert buffer.size == (3, 2)
    assert session.requested == [("http://example.com/a.png", 1), ("http://example.com/a.png", 1)]
