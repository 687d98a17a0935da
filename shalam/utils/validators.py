"""Validation helpers for user inputs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core.errors import ValidationError


ALLOWED_IMAGE_EXTENSIONS = {".png", ".gif", ".jpg", ".jpeg", ".bmp", ".webp", ".tif", ".tiff"}
SPRITE_EXTENSIONS = {".png"}


def validate_image_path(path: Path) -> Path:
    """Ensure the image path exists and appears to be a supported format."""

    if not path.exists():
        raise ValidationError("File not found")
    if not path.is_file():
        raise ValidationError("Not a regular file")
    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(f"Unsupported format '{path.suffix}'")
    return path


def validate_stylesheet_path(path: Path) -> Path:
    """Ensure the stylesheet exists."""

    if not path.is_file():
        raise ValidationError(f"Stylesheet not found: {path}")
    return path


def validate_image_directory(path: Path) -> Path:
    """Ensure the image source directory exists."""

    if not path.is_dir():
        raise ValidationError(f"Image directory not found: {path}")
    return path


def validate_sprite_path(path: Path) -> Path:
    """Ensure the sprite destination uses a lossless, alpha-capable format."""

    if path.suffix.lower() not in SPRITE_EXTENSIONS:
        raise ValidationError(f"Sprite output must be a PNG file: {path}")
    return path


def parse_optional_int(value: str | None, field: str) -> Optional[int]:
    """Parse a positive integer from a string value, if provided."""

    if value is None or value == "":
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if parsed <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return parsed


def parse_optional_non_negative_int(value: str | None, field: str) -> Optional[int]:
    """Parse a non-negative integer (0 allowed) from a string value."""

    if value is None or value == "":
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if parsed < 0:
        raise ValidationError(f"{field} must be zero or greater")
    return parsed


def validate_padding(value: int) -> None:
    if value < 0:
        raise ValidationError("Padding must be zero or greater")


def validate_max_width(value: Optional[int]) -> None:
    if value is not None and value <= 0:
        raise ValidationError("Maximum sprite width must be greater than zero")
