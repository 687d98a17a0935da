"""Single-instruction pipeline: scan, load, pack, composite, rewrite, emit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from . import SpriteLayout, SpriteResult, SpriteSettings
from . import compositor, emitter, image_loader, packer, rewriter, scanner
from .errors import ParseError
from ..utils import validators

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def run(
    css_path: PathLike,
    image_dir: PathLike,
    sprite_path: PathLike,
    output_path: Optional[PathLike] = None,
    manifest_path: Optional[PathLike] = None,
    settings: Optional[SpriteSettings] = None,
) -> SpriteResult:
    """Build the sprite for one stylesheet and write the rewritten CSS.

    ``output_path`` defaults to ``css_path``, i.e. the stylesheet is rewritten
    in place. Nothing is written when any stage fails, or when the stylesheet
    has no sprite candidates.
    """

    settings = settings or SpriteSettings()
    css_path = validators.validate_stylesheet_path(Path(css_path))
    image_dir = validators.validate_image_directory(Path(image_dir))
    sprite_path = validators.validate_sprite_path(Path(sprite_path))
    validators.validate_padding(settings.padding)
    validators.validate_max_width(settings.max_width)
    output_path = Path(output_path) if output_path else css_path
    manifest_path = Path(manifest_path) if manifest_path else None

    text = read_stylesheet(css_path)
    scan_result = scanner.scan(text, css_path, image_dir, exclude=[sprite_path])
    if not scan_result.images:
        logger.warning("No sprite candidates in %s; nothing written", css_path)
        return SpriteResult(
            css_path=output_path,
            sprite_path=None,
            css_text=text,
            layout=SpriteLayout(canvas_width=0, canvas_height=0, padding=settings.padding),
        )

    refs, images = image_loader.load_images(scan_result.images.values(), workers=settings.workers)
    layout = packer.verify_layout(packer.pack(refs, padding=settings.padding, max_width=settings.max_width))
    sprite = compositor.composite(layout, images)
    sprite_url = rewriter.sprite_url_for(sprite_path, output_path)
    css_text = rewriter.rewrite(scan_result.stylesheet, scan_result.rules, layout, sprite_url)

    emitter.emit(sprite, css_text, sprite_path, output_path, manifest_path=manifest_path, layout=layout)
    logger.info("Sprite %s written for %s (%sx%s)", sprite_path, css_path, layout.canvas_width, layout.canvas_height)
    return SpriteResult(
        css_path=output_path,
        sprite_path=sprite_path,
        css_text=css_text,
        layout=layout,
        rewritten_rules=len(scan_result.candidates),
        manifest_path=manifest_path,
    )


def read_stylesheet(css_path: Path) -> str:
    data = css_path.read_bytes()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("Stylesheet is not valid UTF-8", exc.start, source=css_path) from exc
    return text[1:] if text.startswith("\ufeff") else text
