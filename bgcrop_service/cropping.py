"""Local image cropping with geometry clamped to the source image bounds."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

from PIL import Image

from .uploads import UploadedFile

logger = logging.getLogger(__name__)

# Modes Pillow can write to PNG as-is; anything else is converted to RGBA.
PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


class CropError(Exception):
    """Cropping failed: unreadable image, extraction or save error."""


def parse_int(value: Optional[str], default: int) -> int:
    """Parse an untrusted form value; fractions are truncated toward zero."""
    if value is None:
        return default
    raw = str(value).strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


@dataclass
class CropRequest:
    width: int = 1
    height: int = 1
    x: int = 0
    y: int = 0

    @classmethod
    def from_form(
        cls,
        width: Optional[str] = None,
        height: Optional[str] = None,
        x: Optional[str] = None,
        y: Optional[str] = None,
    ) -> "CropRequest":
        return cls(
            width=parse_int(width, 1),
            height=parse_int(height, 1),
            x=parse_int(x, 0),
            y=parse_int(y, 0),
        )


class CropBox(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    def as_pil_box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def normalize(request: CropRequest, image_width: int, image_height: int) -> CropBox:
    """
    Fit the requested rectangle inside a `image_width` x `image_height` image.

    Width and height are clamped to [1, image size]; offsets are then clamped
    so the rectangle never leaves the image.
    """
    width = _clamp(request.width, 1, image_width)
    height = _clamp(request.height, 1, image_height)
    x = _clamp(request.x, 0, image_width - width)
    y = _clamp(request.y, 0, image_height - height)
    return CropBox(x=x, y=y, width=width, height=height)


def crop_to_file(uploaded: UploadedFile, request: CropRequest, outputs_dir: Path) -> Path:
    """Crop a stored upload and write `<filename>_cropped.png`."""
    output_path = outputs_dir / f"{uploaded.filename}_cropped.png"
    try:
        with Image.open(uploaded.path) as image:
            box = normalize(request, *image.size)
            logger.debug("Cropping %s %s with %s", uploaded.path, image.size, box)
            cropped = image.crop(box.as_pil_box())
            if cropped.mode not in PNG_MODES:
                cropped = cropped.convert("RGBA")
            cropped.save(output_path, format="PNG")
    except Exception as exc:  # noqa: BLE001
        raise CropError(str(exc)) from exc

    logger.info("Cropped %s -> %s", uploaded.original_filename, output_path)
    return output_path
