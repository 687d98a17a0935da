"""Image decoding and dimension discovery."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from . import ImageRef
from .errors import ImageLoadError, ValidationError
from ..utils import validators

logger = logging.getLogger(__name__)


def load_image(ref: ImageRef) -> tuple[ImageRef, Image.Image]:
    """Decode one image and return the ref with its dimensions filled in."""

    try:
        path = validators.validate_image_path(ref.source_path)
    except ValidationError as exc:
        raise ImageLoadError(ref.url, ref.source_path, reason=str(exc)) from exc

    try:
        with Image.open(path) as handle:
            handle.load()
            image = handle.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise ImageLoadError(ref.url, path, reason="Unsupported or corrupt image data") from exc
    except OSError as exc:
        raise ImageLoadError(ref.url, path, reason=f"Could not decode image: {exc}") from exc

    width, height = image.size
    logger.debug("Loaded %s -> %sx%s", path, width, height)
    return replace(ref, width=width, height=height), image


def load_images(
    refs: Iterable[ImageRef], workers: int | None = None
) -> tuple[list[ImageRef], dict]:
    """Decode every image concurrently.

    Results keep discovery order. The first failure in that order is raised
    once the pool has drained, so no stage downstream ever sees a partial set.
    """

    ordered = sorted(refs, key=lambda ref: ref.order)
    if not ordered:
        return [], {}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shalam-load") as pool:
        futures = [pool.submit(load_image, ref) for ref in ordered]

    loaded: list[ImageRef] = []
    images: dict = {}
    for future in futures:
        ref, image = future.result()
        loaded.append(ref)
        images[ref.source_path] = image
    logger.info("Loaded %s images", len(loaded))
    return loaded, images
