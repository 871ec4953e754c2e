"""
Command-line check of the two image operations without starting the server.

Usage (after `pip install -e .`):
    python scripts/local_test.py --input in.jpg --output out.png crop --width 200 --height 100
    python scripts/local_test.py --input in.jpg --output out.png remove-bg --bg-color 81d4fa
"""

from __future__ import annotations

import argparse
from pathlib import Path

from PIL import Image

from bgcrop_service.config import get_settings
from bgcrop_service.cropping import CropRequest, normalize
from bgcrop_service.removebg import RemovalRequest, RemoveBgClient


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crop or remove the background of a local image")
    parser.add_argument("--input", required=True, help="Path to the input image")
    parser.add_argument("--output", required=True, help="Path to write the PNG")
    sub = parser.add_subparsers(dest="command", required=True)

    crop = sub.add_parser("crop", help="Crop locally")
    crop.add_argument("--width")
    crop.add_argument("--height")
    crop.add_argument("--x")
    crop.add_argument("--y")

    remove = sub.add_parser("remove-bg", help="Call remove.bg with REMOVE_BG_API_KEY")
    remove.add_argument("--bg-color")
    remove.add_argument("--background-design")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    input_path = Path(args.input)
    output_path = Path(args.output)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if args.command == "crop":
        request = CropRequest.from_form(args.width, args.height, args.x, args.y)
        with Image.open(input_path) as image:
            box = normalize(request, *image.size)
            image.crop(box.as_pil_box()).save(output_path, format="PNG")
        print(f"Cropped {box} to {output_path}")
    else:
        settings = get_settings()
        client = RemoveBgClient(
            settings.remove_bg_api_key, settings.remove_bg_url, settings.request_timeout_seconds
        )
        request = RemovalRequest.from_file(input_path, args.bg_color, args.background_design)
        output_path.write_bytes(client.remove_background(request))
        print(f"Wrote background-removed output to {output_path}")


if __name__ == "__main__":
    main()
