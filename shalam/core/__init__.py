"""Core data model shared by the sprite pipeline stages."""

__all__ = [
    "ImageRef",
    "StyleRule",
    "SpriteLayout",
    "SpriteSettings",
    "SpriteResult",
]

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class ImageRef:
    """A local image referenced by the stylesheet.

    Identity is the resolved ``source_path``; the loader fills in the size and
    the packer fills in the placement, each returning a new instance.
    """

    source_path: Path
    url: str
    order: int
    width: int = 0
    height: int = 0
    x: Optional[int] = None
    y: Optional[int] = None

    @property
    def is_placed(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass
class StyleRule:
    """A parsed rule plus the sprite information extracted from it."""

    rule: Any
    image: Optional[Path] = None
    url: Optional[str] = None
    offset_x: int = 0
    offset_y: int = 0
    declares_repeat: bool = False

    @property
    def selector(self) -> str:
        return self.rule.selector

    @property
    def is_sprite_candidate(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class SpriteLayout:
    """Placement of every image inside the sprite canvas."""

    canvas_width: int
    canvas_height: int
    placements: tuple[ImageRef, ...] = ()
    padding: int = 0

    def placement_for(self, source_path: Path) -> ImageRef:
        for ref in self.placements:
            if ref.source_path == source_path:
                return ref
        raise KeyError(source_path)

    def padded_box(self, ref: ImageRef) -> tuple[int, int, int, int]:
        """Return ``(left, top, right, bottom)`` including the padding margin."""

        return (ref.x, ref.y, ref.x + ref.width + self.padding, ref.y + ref.height + self.padding)


@dataclass
class SpriteSettings:
    """User-configurable settings used for sprite generation."""

    padding: int = 1
    max_width: Optional[int] = None
    workers: Optional[int] = None


@dataclass
class SpriteResult:
    """Result of running one instruction."""

    css_path: Path
    sprite_path: Optional[Path]
    css_text: str
    layout: SpriteLayout
    rewritten_rules: int = 0
    manifest_path: Optional[Path] = None
