"""Writing of the sprite image, the rewritten stylesheet and the optional manifest."""

from __future__ import annotations

import io
import json
import logging
import os
from pathlib import Path
from typing import Optional

from PIL import Image

from . import SpriteLayout
from .errors import OutputWriteError
from ..utils import file_tools

logger = logging.getLogger(__name__)


def build_manifest(layout: SpriteLayout, sprite_path: Path, css_path: Path) -> dict:
    """Describe the sprite layout in a JSON-serialisable form."""

    return {
        "sprite": sprite_path.name,
        "stylesheet": css_path.name,
        "meta": {
            "width": layout.canvas_width,
            "height": layout.canvas_height,
            "padding": layout.padding,
        },
        "images": [
            {
                "url": ref.url,
                "x": ref.x,
                "y": ref.y,
                "width": ref.width,
                "height": ref.height,
            }
            for ref in layout.placements
        ],
    }


def encode_png(sprite: Image.Image) -> bytes:
    buffer = io.BytesIO()
    sprite.save(buffer, format="PNG")
    return buffer.getvalue()


def emit(
    sprite: Image.Image,
    css_text: str,
    sprite_path: Path,
    css_path: Path,
    manifest_path: Optional[Path] = None,
    layout: Optional[SpriteLayout] = None,
) -> None:
    """Persist every output of an instruction, or none of them.

    All payloads are rendered in memory and written to temporary siblings
    first. Destinations are then replaced one by one, each existing file being
    copied aside beforehand; if any replacement fails, the outputs already
    moved into place are rolled back to their previous contents.
    """

    try:
        payloads = [(sprite_path, encode_png(sprite))]
    except (OSError, ValueError) as exc:
        raise OutputWriteError(sprite_path, reason=f"PNG encoding failed: {exc}") from exc
    payloads.append((css_path, css_text.encode("utf-8")))
    if manifest_path is not None:
        if layout is None:
            raise ValueError("Manifest output requested without a layout.")
        manifest = build_manifest(layout, sprite_path, css_path)
        payloads.append((manifest_path, json.dumps(manifest, indent=2).encode("utf-8") + b"\n"))

    staged: list[tuple[Path, Path]] = []
    committed: list[tuple[Path, Optional[Path]]] = []
    try:
        for destination, payload in payloads:
            staged.append((_stage(destination, payload), destination))
        for temp_path, destination in staged:
            committed.append((destination, _commit(temp_path, destination)))
            logger.info("Wrote %s", destination)
    except Exception:
        _roll_back(committed)
        raise
    finally:
        for temp_path, _ in staged:
            file_tools.remove_quietly(temp_path)
        for _, backup_path in committed:
            if backup_path is not None:
                file_tools.remove_quietly(backup_path)


def _stage(destination: Path, payload: bytes) -> Path:
    if destination.is_dir():
        raise OutputWriteError(destination, reason="destination is a directory")
    try:
        return file_tools.write_temporary_sibling(destination, payload)
    except OSError as exc:
        raise OutputWriteError(destination, reason=str(exc)) from exc


def _commit(temp_path: Path, destination: Path) -> Optional[Path]:
    """Move a staged file into place and return the backup of what it replaced."""

    try:
        backup_path = file_tools.backup_existing(destination)
    except OSError as exc:
        raise OutputWriteError(destination, reason=f"cannot back up existing file: {exc}") from exc
    try:
        os.replace(temp_path, destination)
    except OSError as exc:
        if backup_path is not None:
            file_tools.remove_quietly(backup_path)
        raise OutputWriteError(destination, reason=str(exc)) from exc
    return backup_path


def _roll_back(committed: list[tuple[Path, Optional[Path]]]) -> None:
    for destination, backup_path in reversed(committed):
        try:
            if backup_path is None:
                destination.unlink(missing_ok=True)
            else:
                os.replace(backup_path, destination)
        except OSError as exc:
            logger.error("Could not restore %s after a failed write: %s", destination, exc)
        else:
            logger.warning("Rolled back %s", destination)
