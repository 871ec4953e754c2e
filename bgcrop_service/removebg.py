"""
remove.bg client and the background-removal orchestration around it.

The image is sent base64-encoded in an urlencoded form together with an
optional background color or background image URL. Failures are surfaced
as exceptions so the HTTP layer can map them to status codes.
"""

from __future__ import annotations

import base64
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Dict, List, Optional

import requests

from .uploads import UploadedFile

logger = logging.getLogger(__name__)

# Upstream calls run here so the caller can wait on a total deadline.
_EXECUTOR = ThreadPoolExecutor(thread_name_prefix="removebg")


class UpstreamError(Exception):
    """remove.bg answered with a non-200 status."""

    def __init__(self, status_code: int, body: bytes, content_type: Optional[str] = None):
        super().__init__(f"remove.bg API error: {status_code}")
        self.status_code = status_code
        self.body = body
        self.content_type = content_type


class UpstreamTimeout(Exception):
    """The remove.bg call exceeded the configured timeout."""


class UpstreamUnavailable(Exception):
    """The remove.bg call failed before any response was received."""


@dataclass
class RemovalRequest:
    image_b64: str
    bg_color: Optional[str] = None
    bg_image_url: Optional[str] = None

    @classmethod
    def from_file(
        cls,
        path: Path,
        bg_color: Optional[str] = None,
        background_design: Optional[str] = None,
    ) -> "RemovalRequest":
        image_b64 = base64.b64encode(path.read_bytes()).decode("ascii")
        return cls(image_b64=image_b64, bg_color=bg_color or None, bg_image_url=background_design or None)

    def to_form(self) -> Dict[str, str]:
        form = {"size": "auto", "image_file_b64": self.image_b64}
        # Only one background option is forwarded; color wins.
        if self.bg_color:
            form["bg_color"] = self.bg_color
        elif self.bg_image_url:
            form["bg_image_url"] = self.bg_image_url
        return form


class RemoveBgClient:
    """Thin wrapper over the remove.bg HTTP API."""

    def __init__(self, api_key: Optional[str], url: str, timeout: float = 60.0):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    def remove_background(self, request: RemovalRequest) -> bytes:
        """
        Send one removal request and return the processed image bytes.

        `timeout` bounds the whole exchange, body download included, not
        just each socket operation.

        Raises:
            UpstreamError: non-200 response from remove.bg.
            UpstreamTimeout: no complete answer within `timeout` seconds.
            UpstreamUnavailable: connection-level failure.
        """
        opened: List[requests.Response] = []
        future = _EXECUTOR.submit(self._send, request, opened)
        try:
            response = future.result(timeout=self.timeout)
        except FutureTimeout as exc:
            future.cancel()
            for pending in opened:
                pending.close()
            raise UpstreamTimeout(f"remove.bg did not answer within {self.timeout}s") from exc
        except requests.Timeout as exc:
            raise UpstreamTimeout(f"remove.bg did not answer within {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailable(str(exc)) from exc

        if response.status_code != 200:
            body = response.content or (response.reason or "").encode("utf-8")
            logger.error("remove.bg error: %s %s", response.status_code, response.reason)
            raise UpstreamError(response.status_code, body, response.headers.get("Content-Type"))
        return response.content

    def _send(self, request: RemovalRequest, opened: List[requests.Response]) -> requests.Response:
        response = requests.post(
            self.url,
            data=request.to_form(),
            headers={"X-Api-Key": self.api_key or "", "Accept": "image/*"},
            timeout=self.timeout,
            stream=True,
        )
        # Exposed so a caller past its deadline can close the connection.
        opened.append(response)
        response.content  # noqa: B018
        return response


def remove_background_to_file(
    uploaded: UploadedFile,
    outputs_dir: Path,
    client: RemoveBgClient,
    bg_color: Optional[str] = None,
    background_design: Optional[str] = None,
) -> Path:
    """Run background removal on a stored upload and write `<base>_no_bg.png`."""
    request = RemovalRequest.from_file(uploaded.path, bg_color, background_design)
    png_bytes = client.remove_background(request)

    output_path = outputs_dir / f"{uploaded.path.stem}_no_bg.png"
    output_path.write_bytes(png_bytes)
    logger.info("Background removed: %s -> %s", uploaded.original_filename, output_path)
    return output_path
