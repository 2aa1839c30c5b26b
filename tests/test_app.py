import importlib
import io
from dataclasses import replace

import pytest
from PIL import Image

from raster_proxy.config import SETTINGS
from raster_proxy.infrastructure.cache import CACHE
from raster_proxy.infrastructure.network import SourceFetchError
from raster_proxy.processing.codec import decode_bytes

app_module = importlib.import_module("raster_proxy.app")


def _png(color=(200, 40, 40, 255), size=(4, 4)) -> bytes:
    out = io.BytesIO()
    Image.new("RGBA", size, color).save(out, "PNG")
    return out.getvalue()


@pytest.fixture
def client():
    CACHE.clear()
    flask_app = app_module.create_app()
    flask_app.config["TESTING"] = True
    return flask_app.test_client()


class FakeFetcher:
    def __init__(self, payloads):
        self.payloads = payloads
        self.calls = []
        self.limits = []

    def fetch_buffer(self, url=None, timeout=None, retries=None):
        self.calls.append(url)
        self.limits.append((timeout, retries))
        payload = self.payloads.get(url)
        if payload is None:
            raise SourceFetchError(f"{url}: unreachable")
        return decode_bytes(payload)


def test_upload_is_processed(client):
    response = client.post(
        "/process/dither_threshold",
        data={"image": (io.BytesIO(_png()), "in.png")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.mimetype == "image/png"
    with Image.open(io.BytesIO(response.data)) as img:
        assert img.getpixel((0, 0)) == (0, 0, 0)


def test_compositing_upload_needs_both_images(client):
    missing = client.post(
        "/process/comp_over",
        data={"image": (io.BytesIO(_png()), "a.png")},
        content_type="multipart/form-data",
    )
    both = client.post(
        "/process/difference",
        data={
            "image": (io.BytesIO(_png()), "a.png"),
            "other": (io.BytesIO(_png()), "b.png"),
        },
        content_type="multipart/form-data",
    )

    assert missing.status_code == 400
    assert missing.get_json()["ok"] is False
    assert both.status_code == 200


def test_missing_or_broken_upload_is_a_bad_request(client):
    assert client.post("/process/grayscale").status_code == 400
    broken = client.post(
        "/process/grayscale",
        data={"image": (io.BytesIO(b"nope"), "in.png")},
        content_type="multipart/form-data",
    )
    assert broken.status_code == 400


def test_unknown_and_unsupported_operations(client):
    assert client.get("/process/sepia").status_code == 404
    unsupported = client.get("/process/rotate")
    assert unsupported.status_code == 501
    assert "not supported" in unsupported.get_json()["error"]


def test_invalid_gaussian_size(client):
    response = client.post(
        "/process/filter_gaussian_n?size=4",
        data={"image": (io.BytesIO(_png()), "in.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400

    response = client.get("/process/filter_gaussian_n?size=abc")
    assert response.status_code == 400


def test_source_url_is_fetched_and_cached(client, monkeypatch):
    fake = FakeFetcher({"http://img/a.png": _png()})
    monkeypatch.setattr(app_module, "FETCHER", fake)

    first = client.get("/process/quant_uniform?source_url=http://img/a.png")
    second = client.get("/process/quant_uniform?source_url=http://img/a.png")

    assert first.status_code == 200
    assert second.data == first.data
    assert fake.calls == ["http://img/a.png"]


def test_fetch_failure_is_a_bad_gateway(client, monkeypatch):
    monkeypatch.setattr(app_module, "FETCHER", FakeFetcher({}))

    response = client.get("/process/grayscale?source_url=http://img/missing.png")

    assert response.status_code == 502
    assert "Source Error" in response.get_json()["error"]


def test_operations_listing(client):
    payload = client.get("/operations").get_json()

    names = {entry["name"] for entry in payload["supported"]}
    assert "quant_populosity" in names
    assert "npr_paint" in payload["unsupported"]


def test_settings_patch_updates_runtime_copy(client):
    response = client.patch("/settings", json={"gaussian_size": "7", "flatten_output": "false"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["settings"]["gaussian_size"] == 7
    assert body["settings"]["flatten_output"] is False
    assert client.get("/health").get_json()["gaussian_size"] == 7


def test_settings_patch_reports_bad_values(client):
    response = client.patch("/settings", json={"port": "not-a-port"})

    assert response.status_code == 400
    assert "port" in response.get_json()["errors"]


def test_index_lists_endpoints(client):
    payload = client.get("/").get_json()

    assert payload["name"] == "raster-proxy"
    assert "/process/<operation>" in payload["endpoints"]


def test_patched_cache_ttl_applies_to_later_requests(client, monkeypatch):
    fake = FakeFetcher({"http://img/a.png": _png()})
    monkeypatch.setattr(app_module, "FETCHER", fake)

    assert client.patch("/settings", json={"cache_ttl": 0}).status_code == 200
    client.get("/process/grayscale?source_url=http://img/a.png")
    client.get("/process/grayscale?source_url=http://img/a.png")

    assert fake.calls == ["http://img/a.png", "http://img/a.png"]
    assert len(CACHE) == 0


def test_patched_fetch_limits_reach_the_fetcher(client, monkeypatch):
    fake = FakeFetcher({"http://img/a.png": _png()})
    monkeypatch.setattr(app_module, "FETCHER", fake)

    client.patch("/settings", json={"timeout": "2.5", "retries": "0"})
    client.get("/process/grayscale?source_url=http://img/a.png")

    assert fake.limits == [(2.5, 0)]


def test_missing_source_url_is_a_bad_request(monkeypatch):
    CACHE.clear()
    fake = FakeFetcher({})
    monkeypatch.setattr(app_module, "FETCHER", fake)
    flask_app = app_module.create_app(replace(SETTINGS, source_url=""))
    flask_app.config["TESTING"] = True

    response = flask_app.test_client().get("/process/grayscale")

    assert response.status_code == 400
    assert "source_url" in response.get_json()["error"]
    assert fake.calls == []
