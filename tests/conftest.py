from io import BytesIO

import pytest
import requests
from fastapi.testclient import TestClient
from PIL import Image

from bgcrop_service.api import create_app
from bgcrop_service.config import Settings


def make_png(size=(100, 100), color=(255, 0, 0)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def fake_response(status_code=200, content=b"", reason="OK", content_type="image/png"):
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.reason = reason
    response.headers["Content-Type"] = content_type
    return response


@pytest.fixture
def settings(tmp_path):
    return Settings(
        remove_bg_api_key="test-key",
        uploads_dir=tmp_path / "uploads",
        outputs_dir=tmp_path / "outputs",
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def png_bytes():
    return make_png()


class FakeUpstream:
    """Stands in for requests.post and records what was sent."""

    def __init__(self):
        self.calls = []
        self.response = fake_response(content=b"\x89PNG-processed")
        self.error = None

    def __call__(self, url, data=None, headers=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(requests, "post", fake)
    return fake
