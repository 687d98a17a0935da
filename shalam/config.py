"""Instruction files and runtime settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .core import SpriteSettings
from .core.errors import ValidationError
from .utils import validators

logger = logging.getLogger(__name__)

CONFIG_KEY = "shalam"
ENV_PADDING = "SHALAM_PADDING"
ENV_MAX_WIDTH = "SHALAM_MAX_WIDTH"
ENV_WORKERS = "SHALAM_WORKERS"


class Instruction(BaseModel):
    """One packing job: a stylesheet, its image source and the sprite to produce."""

    name: str = Field(min_length=1)
    css: str = Field(min_length=1)
    img: str = Field(min_length=1)
    sprite: str = Field(min_length=1)
    output: Optional[str] = None
    manifest: Optional[str] = None

    @field_validator("name", "css", "img", "sprite", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("sprite")
    @classmethod
    def _png_only(cls, value: str) -> str:
        if not value.lower().endswith(".png"):
            raise ValueError("sprite must be a .png path")
        return value

    @field_validator("output", "manifest", mode="before")
    @classmethod
    def _empty_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value


def parse_instructions(payload: Any) -> list[Instruction]:
    """Validate a decoded instruction payload.

    Accepts either the bare array or an object holding it under ``"shalam"``
    (the shape used inside ``package.json``).
    """

    if isinstance(payload, Mapping):
        if CONFIG_KEY not in payload:
            raise ValidationError(f"Configuration has no '{CONFIG_KEY}' entry")
        payload = payload[CONFIG_KEY]
    if not isinstance(payload, list):
        raise ValidationError("Instructions must be a JSON array")

    instructions: list[Instruction] = []
    for index, entry in enumerate(payload):
        try:
            instructions.append(Instruction.model_validate(entry))
        except PydanticValidationError as exc:
            label = entry.get("name") if isinstance(entry, Mapping) else None
            raise ValidationError(f"Invalid instruction #{index} ({label or 'unnamed'}): {exc}") from exc

    names = [instruction.name for instruction in instructions]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate instruction names: {', '.join(duplicates)}")
    return instructions


def load_instructions(path: Path) -> list[Instruction]:
    """Read and validate an instruction file."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise ValidationError(f"Configuration file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Configuration file {path} is not valid JSON: {exc}") from exc
    instructions = parse_instructions(payload)
    logger.debug("Loaded %s instructions from %s", len(instructions), path)
    return instructions


def filter_instructions(instructions: Iterable[Instruction], names: Optional[Iterable[str]]) -> list[Instruction]:
    """Keep only the named instructions, preserving configuration order."""

    instructions = list(instructions)
    if not names:
        return instructions
    wanted = list(dict.fromkeys(names))
    known = {instruction.name for instruction in instructions}
    unknown = [name for name in wanted if name not in known]
    if unknown:
        raise ValidationError(f"Unknown instruction(s): {', '.join(unknown)}")
    return [instruction for instruction in instructions if instruction.name in wanted]


def settings_from_env(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> SpriteSettings:
    """Build settings from ``SHALAM_*`` environment variables, then apply explicit overrides."""

    environ = os.environ if environ is None else environ
    settings = SpriteSettings()
    padding = validators.parse_optional_non_negative_int(environ.get(ENV_PADDING), ENV_PADDING)
    if padding is not None:
        settings.padding = padding
    settings.max_width = validators.parse_optional_int(environ.get(ENV_MAX_WIDTH), ENV_MAX_WIDTH)
    settings.workers = validators.parse_optional_int(environ.get(ENV_WORKERS), ENV_WORKERS)

    settings = replace(settings, **{key: value for key, value in overrides.items() if value is not None})
    validators.validate_padding(settings.padding)
    validators.validate_max_width(settings.max_width)
    return settings
