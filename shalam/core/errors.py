"""Domain-specific exceptions for the sprite packer."""

from __future__ import annotations

from pathlib import Path


class SpriteError(RuntimeError):
    """Base class for failures that abort a single instruction."""


class ParseError(SpriteError):
    """Raised when a stylesheet cannot be parsed."""

    def __init__(
        self,
        message: str,
        offset: int,
        line: int | None = None,
        column: int | None = None,
        source: Path | None = None,
    ):
        self.reason = message
        self.offset = offset
        self.source = source
        self.line = line
        self.column = column
        location = f"offset {offset}"
        if line is not None:
            location = f"{location} (line {line}, column {column})"
        where = f"{source}: " if source else ""
        super().__init__(f"{where}{message} at {location}")


class ImageLoadError(SpriteError):
    """Raised when a referenced image is missing, unsupported or corrupt."""

    def __init__(self, url: str, path: Path, reason: str | None = None):
        self.url = url
        self.path = path
        self.reason = reason
        message = f"Cannot load image {url} ({path})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LayoutError(SpriteError):
    """Raised when images cannot be arranged within the canvas constraints."""


class UnsupportedBackgroundError(SpriteError):
    """Raised when a sprite-eligible rule uses background features a shared sprite cannot honour."""

    def __init__(self, selector: str, reason: str):
        self.selector = selector
        self.reason = reason
        super().__init__(f"Rule '{selector}': {reason}")


class UnsupportedRepeatError(UnsupportedBackgroundError):
    """Raised when a sprite-eligible rule asks for a tiled background."""

    def __init__(self, selector: str, value: str):
        self.value = value
        super().__init__(selector, f"background-repeat '{value}' cannot be served from a shared sprite")


class OutputWriteError(SpriteError):
    """Raised when the sprite or stylesheet cannot be written."""

    def __init__(self, path: Path, reason: str | None = None):
        self.path = path
        message = f"Failed to write {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationError(ValueError):
    """Raised when user-provided settings or instructions fail validation."""
