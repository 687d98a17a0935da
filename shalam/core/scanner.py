"""Discovery of sprite-eligible background images in a stylesheet.

Property values are inspected as tinycss2 component values, so ``url()``
tokens are recognised even when nothing separates them from their neighbours.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, urlsplit

from . import ImageRef, StyleRule
from .css_parser import Rule, Stylesheet, parse_stylesheet, significant_tokens
from .errors import UnsupportedBackgroundError, UnsupportedRepeatError

logger = logging.getLogger(__name__)

REPEAT_KEYWORDS = {"repeat", "repeat-x", "repeat-y", "no-repeat", "space", "round"}
POSITION_KEYWORDS = {"left", "right", "center", "top", "bottom"}
SIZE_KEYWORDS = {"auto", "cover", "contain"}
GLOBAL_KEYWORDS = {"inherit", "initial", "unset", "revert", "revert-layer"}
ALLOWED_REPEAT_VALUES = {"no-repeat", "no-repeat no-repeat"}
NUMERIC_TYPES = {"number", "dimension", "percentage"}


@dataclass
class BackgroundLayer:
    """Components of a single-layer ``background`` shorthand value."""

    url: Optional[str] = None
    position: list = field(default_factory=list)
    repeat: list = field(default_factory=list)
    size: list = field(default_factory=list)
    other: list = field(default_factory=list)
    components: list = field(default_factory=list)

    def add(self, kind: str, token) -> None:
        getattr(self, kind).append(token)
        self.components.append((kind, token))


@dataclass
class ScanResult:
    stylesheet: Stylesheet
    rules: list[StyleRule]
    images: dict[Path, ImageRef]

    @property
    def candidates(self) -> list[StyleRule]:
        return [rule for rule in self.rules if rule.is_sprite_candidate]


def extract_url(token) -> Optional[str]:
    """Return the reference held by a ``url(...)`` component value, or ``None``."""

    if token.type == "url":
        return token.value
    if token.type == "function" and token.lower_name == "url":
        arguments = significant_tokens(token.arguments)
        if len(arguments) == 1 and arguments[0].type == "string":
            return arguments[0].value
    return None


def resolve_reference(url: str, css_dir: Path, image_dir: Path) -> Optional[Path]:
    """Resolve a CSS url to a file path inside ``image_dir``.

    Remote, absolute and fragment-only references, and anything that resolves
    outside the image directory, are not sprite candidates.
    """

    if not url or url.startswith(("/", "#")):
        return None
    parts = urlsplit(url)
    if parts.scheme or parts.netloc:
        return None
    relative = unquote(parts.path)
    if not relative:
        return None
    candidate = (css_dir / relative).resolve()
    if not candidate.is_relative_to(image_dir.resolve()):
        return None
    return candidate


def _keyword(token) -> Optional[str]:
    return token.lower_value if token.type == "ident" else None


def _text(tokens) -> str:
    return " ".join(token.serialize() for token in tokens)


def parse_background(tokens) -> BackgroundLayer:
    """Classify the significant component values of a single-layer ``background`` shorthand."""

    layer = BackgroundLayer()
    after_slash = False
    for token in tokens:
        if token == "/":
            after_slash = True
            continue
        keyword = _keyword(token)
        if after_slash and (keyword in SIZE_KEYWORDS or token.type in NUMERIC_TYPES):
            layer.add("size", token)
            continue
        after_slash = False
        url = extract_url(token)
        if url is not None:
            layer.url = url
            layer.components.append(("url", token))
        elif keyword in REPEAT_KEYWORDS:
            layer.add("repeat", token)
        elif keyword in POSITION_KEYWORDS or token.type in NUMERIC_TYPES:
            layer.add("position", token)
        else:
            layer.add("other", token)
    return layer


def parse_position(tokens, selector: str) -> tuple[int, int]:
    """Convert background-position components into pixel offsets from the top-left corner."""

    tokens = significant_tokens(tokens)
    if not tokens:
        return 0, 0
    keywords = [_keyword(token) for token in tokens]
    if len(tokens) == 2:
        first, second = tokens
        if keywords[0] in ("top", "bottom") or keywords[1] in ("left", "right"):
            first, second = second, first
        return _pixel_offset(first, selector), _pixel_offset(second, selector)
    if len(tokens) == 4 and {keywords[0], keywords[2]} == {"left", "top"} and not (keywords[1] or keywords[3]):
        offsets = {keywords[0]: tokens[1], keywords[2]: tokens[3]}
        return _pixel_offset(offsets["left"], selector), _pixel_offset(offsets["top"], selector)
    raise UnsupportedBackgroundError(selector, f"background-position '{_text(tokens)}' is not supported")


def _pixel_offset(token, selector: str) -> int:
    if _keyword(token) in ("left", "top"):
        return 0
    if token.type in ("number", "percentage") and token.value == 0:
        return 0
    if token.type == "dimension" and token.lower_unit == "px" and token.value == int(token.value):
        return int(token.value)
    raise UnsupportedBackgroundError(
        selector, f"background-position component '{token.serialize()}' cannot be mapped onto a sprite"
    )


def scan(text: str, css_path: Path, image_dir: Path, exclude: Iterable[Path] = ()) -> ScanResult:
    """Parse a stylesheet and collect the rules and images to sprite."""

    stylesheet = parse_stylesheet(text, source=css_path)
    css_dir = css_path.resolve().parent
    image_root = image_dir.resolve()
    excluded = {Path(path).resolve() for path in exclude}

    rules: list[StyleRule] = []
    images: dict[Path, ImageRef] = {}
    for rule in stylesheet.iter_rules():
        style_rule = analyse_rule(rule, css_dir, image_root, excluded)
        if style_rule.image is not None and style_rule.image not in images:
            images[style_rule.image] = ImageRef(source_path=style_rule.image, url=style_rule.url, order=len(images))
            logger.debug("Discovered %s -> %s", style_rule.url, style_rule.image)
        rules.append(style_rule)

    logger.info(
        "Found %s sprite candidates referencing %s images in %s",
        sum(1 for rule in rules if rule.is_sprite_candidate),
        len(images),
        css_path,
    )
    return ScanResult(stylesheet=stylesheet, rules=rules, images=images)


def analyse_rule(rule: Rule, css_dir: Path, image_dir: Path, excluded: set[Path] | None = None) -> StyleRule:
    """Evaluate a rule's background declarations in cascade order."""

    url: Optional[str] = None
    multi_layer = False
    position: list = []
    position_layers = 1
    axis_position = False
    repeat: Optional[str] = None
    size: list = []

    for decl in rule.declarations:
        prop = decl.property_name
        tokens = significant_tokens(decl.value)
        if prop == "background":
            multi_layer = _is_multi_layer(tokens)
            if multi_layer or (len(tokens) == 1 and _keyword(tokens[0]) in GLOBAL_KEYWORDS):
                url, position, repeat, size = None, [], None, []
                continue
            layer = parse_background(tokens)
            url = layer.url
            position = layer.position
            position_layers = 1
            repeat = " ".join(token.lower_value for token in layer.repeat) or None
            size = layer.size
        elif prop == "background-image":
            multi_layer = _is_multi_layer(tokens)
            url = extract_url(tokens[0]) if len(tokens) == 1 else None
        elif prop == "background-position":
            position_layers = 1 + sum(1 for token in tokens if token == ",")
            position = tokens
        elif prop in ("background-position-x", "background-position-y"):
            axis_position = True
        elif prop == "background-repeat":
            repeat = _text(tokens).lower()
        elif prop == "background-size":
            size = tokens

    if multi_layer:
        logger.warning("Skipping multi-layer background in '%s'", rule.selector)
    if url is None:
        return StyleRule(rule=rule)
    source = resolve_reference(url, css_dir, image_dir)
    if source is None or source in (excluded or ()):
        return StyleRule(rule=rule)

    selector = rule.selector
    if repeat is not None and repeat not in ALLOWED_REPEAT_VALUES:
        raise UnsupportedRepeatError(selector, repeat)
    if any(_keyword(token) != "auto" for token in size):
        raise UnsupportedBackgroundError(selector, f"background-size '{_text(size)}' would rescale the sprite")
    if axis_position:
        raise UnsupportedBackgroundError(selector, "background-position-x/-y are not supported")
    if position_layers > 1:
        raise UnsupportedBackgroundError(selector, "multiple background positions are not supported")
    offset_x, offset_y = parse_position(position, selector)

    return StyleRule(
        rule=rule,
        image=source,
        url=url,
        offset_x=offset_x,
        offset_y=offset_y,
        declares_repeat=repeat is not None,
    )


def _is_multi_layer(tokens) -> bool:
    return any(token == "," for token in tokens) and any(extract_url(token) is not None for token in tokens)
