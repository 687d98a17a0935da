"""Shelf-based bin packing of images into a single sprite canvas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Iterable, Optional

from . import ImageRef, SpriteLayout
from .errors import LayoutError

logger = logging.getLogger(__name__)
DEFAULT_PADDING = 1


@dataclass
class _Shelf:
    y: int
    height: int
    cursor: int = 0


def sort_key(ref: ImageRef) -> tuple[int, int, int]:
    """Tallest first, then widest, then discovery order."""

    return (-ref.height, -ref.width, ref.order)


def pack(
    refs: Iterable[ImageRef],
    padding: int = DEFAULT_PADDING,
    max_width: Optional[int] = None,
) -> SpriteLayout:
    """Place every image on horizontal shelves and return the resulting layout.

    Each image reserves ``padding`` pixels to its right and below it. The
    canvas is as wide as the widest image unless ``max_width`` is given, and
    as tall as the shelves need; trailing padding is not part of the canvas.
    """

    if padding < 0:
        raise LayoutError(f"Padding must be zero or greater (got {padding})")
    if max_width is not None and max_width <= 0:
        raise LayoutError(f"Maximum canvas width must be positive (got {max_width})")

    ordered = sorted(refs, key=sort_key)
    if not ordered:
        return SpriteLayout(canvas_width=0, canvas_height=0, placements=(), padding=padding)

    limit = max_width or max(ref.width for ref in ordered)
    shelves: list[_Shelf] = []
    placements: list[ImageRef] = []
    for ref in ordered:
        if ref.width > limit:
            raise LayoutError(
                f"Image {ref.url} ({ref.source_path}) is {ref.width}px wide, "
                f"exceeding the maximum canvas width of {limit}px"
            )
        shelf = next((s for s in shelves if s.cursor + ref.width <= limit), None)
        if shelf is None:
            y = shelves[-1].y + shelves[-1].height + padding if shelves else 0
            shelf = _Shelf(y=y, height=ref.height)
            shelves.append(shelf)
        placements.append(replace(ref, x=shelf.cursor, y=shelf.y))
        shelf.cursor += ref.width + padding

    canvas_width = max(ref.x + ref.width for ref in placements)
    canvas_height = max(ref.y + ref.height for ref in placements)
    logger.info(
        "Packed %s images on %s shelves into %sx%s",
        len(placements),
        len(shelves),
        canvas_width,
        canvas_height,
    )
    return SpriteLayout(
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        placements=tuple(placements),
        padding=padding,
    )


def verify_layout(layout: SpriteLayout) -> SpriteLayout:
    """Check the containment and no-overlap invariants of a layout."""

    for ref in layout.placements:
        if not ref.is_placed:
            raise LayoutError(f"Image {ref.url} has no placement")
        if ref.x < 0 or ref.y < 0 or ref.x + ref.width > layout.canvas_width or ref.y + ref.height > layout.canvas_height:
            raise LayoutError(f"Image {ref.url} at ({ref.x}, {ref.y}) lies outside the canvas")

    for first, second in combinations(layout.placements, 2):
        a = layout.padded_box(first)
        b = layout.padded_box(second)
        if a[0] < b[2] and b[0] < a[2] and a[1] < b[3] and b[1] < a[3]:
            raise LayoutError(f"Images {first.url} and {second.url} overlap")
    return layout
