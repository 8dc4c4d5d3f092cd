import base64
import json
import struct
import zlib
from io import BytesIO

import httpx
import pytest
from PIL import Image

from dealerpost.config import Settings

GATEWAY_URL = "https://gateway.test/v1/chat/completions"
GENERATED_URL = "data:image/png;base64,R0VORVJBVEVE"


def png_data_url(width: int, height: int, color: str = "navy") -> str:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def header_only_png_data_url(width: int, height: int) -> str:
    """A tiny PNG whose IHDR declares width x height; no pixel data follows."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    raw = b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IEND", b"")
    return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


def gateway_reply(image_url: str = GENERATED_URL) -> dict:
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": "Here is your post.",
                    "images": [{"type": "image_url", "image_url": {"url": image_url}}],
                }
            }
        ]
    }


class FakeGateway:
    """Stands in for the AI gateway; records every request it receives."""

    def __init__(self, status_code=200, json_body=None, text=None, error=None):
        self.status_code = status_code
        self.json_body = gateway_reply() if json_body is None and text is None else json_body
        self.text = text
        self.error = error
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"simulated {self.error.__name__}", request=request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings():
    return Settings(_env_file=None, api_key="test-key", gateway_url=GATEWAY_URL, request_timeout=5)


@pytest.fixture
def template_ref():
    return png_data_url(1080, 1350)


@pytest.fixture
def vehicle_ref():
    return png_data_url(64, 48, color="red")
