"""Sprite composition using Pillow."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from PIL import Image

from . import SpriteLayout

logger = logging.getLogger(__name__)
TRANSPARENT = (0, 0, 0, 0)


def composite(layout: SpriteLayout, images: Mapping[Path, Image.Image]) -> Image.Image:
    """Paste every image at its placement on a transparent RGBA canvas."""

    if not layout.placements:
        raise ValueError("No images provided to composite.")

    sheet = Image.new("RGBA", (layout.canvas_width, layout.canvas_height), TRANSPARENT)
    for ref in layout.placements:
        image = images[ref.source_path]
        if image.size != (ref.width, ref.height):
            raise ValueError(f"Image {ref.url} is {image.size}, layout expects {(ref.width, ref.height)}")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        # No mask: pixels, alpha included, are copied as-is.
        sheet.paste(image, (ref.x, ref.y))

    logger.info("Composited %s images into %sx%s sprite", len(layout.placements), *sheet.size)
    return sheet
