"""Rewriting of sprite-eligible rules so they draw from the composite sprite."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from . import ImageRef, SpriteLayout, StyleRule
from .css_parser import Declaration, Rule, Stylesheet, Trivia, significant_tokens
from .scanner import parse_background

logger = logging.getLogger(__name__)

IMAGE_PROPERTIES = ("background", "background-image")
_NEEDS_QUOTES = re.compile(r"[\s()'\"\\]")


def sprite_url_for(sprite_path: Path, css_path: Path) -> str:
    """Return the sprite's url relative to the directory of the stylesheet that references it."""

    relative = os.path.relpath(sprite_path.resolve(), css_path.resolve().parent)
    return Path(relative).as_posix()


def format_url(url: str) -> str:
    if _NEEDS_QUOTES.search(url):
        escaped = url.replace("\\", "\\\\").replace('"', '\\"')
        return f'url("{escaped}")'
    return f"url({url})"


def format_offset(value: int) -> str:
    return "0" if value == 0 else f"{value}px"


def sprite_position(style_rule: StyleRule, placement: ImageRef) -> tuple[int, int]:
    """Background position that shows ``placement`` where the original image used to be drawn."""

    return style_rule.offset_x - placement.x, style_rule.offset_y - placement.y


def rewrite(
    stylesheet: Stylesheet,
    style_rules: Iterable[StyleRule],
    layout: SpriteLayout,
    sprite_url: str,
) -> str:
    """Return the stylesheet text with every sprite candidate pointing at the sprite."""

    replacements: dict[int, Rule] = {}
    for style_rule in style_rules:
        if not style_rule.is_sprite_candidate:
            continue
        placement = layout.placement_for(style_rule.image)
        replacements[style_rule.rule.start] = rewrite_rule(style_rule, placement, sprite_url)

    logger.info("Rewrote %s rules to use %s", len(replacements), sprite_url)
    return stylesheet.render(replacements)


def rewrite_rule(style_rule: StyleRule, placement: ImageRef, sprite_url: str) -> Rule:
    rule = style_rule.rule
    declarations = rule.declarations
    consumed = [decl for decl in declarations if decl.property_name in IMAGE_PROPERTIES][-1]
    removed = {id(decl) for decl in declarations if decl.property_name == "background-position"}
    anchor = [decl for decl in declarations if decl.property_name.startswith("background")][-1]
    important = consumed.important or any(decl.important for decl in declarations if id(decl) in removed)

    x, y = sprite_position(style_rule, placement)
    inserted = [_make_declaration(consumed, "background-position", f"{format_offset(x)} {format_offset(y)}", important)]
    if consumed.property_name == "background-image" and not style_rule.declares_repeat:
        inserted.append(_make_declaration(consumed, "background-repeat", "no-repeat", False))
    indent = _indent_before(rule.items, consumed)

    items: list = []
    for item in rule.items:
        if id(item) in removed:
            if items and isinstance(items[-1], Trivia) and items[-1].raw.isspace():
                items.pop()
        elif item is consumed:
            items.append(_rewrite_image_declaration(consumed, sprite_url))
        else:
            items.append(item)

        if item is anchor:
            if items and isinstance(items[-1], Declaration) and not items[-1].raw.endswith(";"):
                items[-1] = replace(items[-1], raw=items[-1].raw + ";")
            for decl in inserted:
                if indent:
                    items.append(Trivia(indent, anchor.end, anchor.end))
                items.append(decl)

    logger.debug(
        "Rule '%s': %s at (%s, %s) -> background-position %s %s",
        rule.selector,
        placement.url,
        placement.x,
        placement.y,
        x,
        y,
    )
    return replace(rule, items=items)


def _rewrite_image_declaration(decl: Declaration, sprite_url: str) -> Declaration:
    url_token = format_url(sprite_url)
    if decl.property_name == "background-image":
        value = url_token
    else:
        parts: list[str] = []
        for kind, token in parse_background(significant_tokens(decl.value)).components:
            if kind == "url":
                parts.append(url_token)
                parts.append("no-repeat")
            elif kind == "other":
                parts.append(token.serialize())
        value = " ".join(parts)
    return Declaration.build(
        decl.name,
        decl.separator,
        value,
        important=decl.important,
        terminated=decl.raw.endswith(";"),
        offset=decl.start,
    )


def _make_declaration(template: Declaration, name: str, value: str, important: bool) -> Declaration:
    return Declaration.build(name, template.separator, value, important=important, offset=template.end)


def _indent_before(items: list, decl: Declaration) -> str:
    index = next(i for i, item in enumerate(items) if item is decl)
    if index and isinstance(items[index - 1], Trivia) and items[index - 1].raw.isspace():
        return items[index - 1].raw
    return ""
