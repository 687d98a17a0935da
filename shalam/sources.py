"""Resolution of instruction image sources to local directories."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable

from .core.errors import ValidationError

SourceResolver = Callable[[str, Path], Path]

_REMOTE_SOURCE = re.compile(r"^(git\+|git@|[A-Za-z][A-Za-z0-9+.\-]*://)")


def is_remote(source: str) -> bool:
    return bool(_REMOTE_SOURCE.match(source))


def resolve_local(source: str, base_dir: Path) -> Path:
    """Resolve ``source`` relative to ``base_dir``.

    Remote references must be materialised by a resolver supplied by the
    caller; this default never touches the network.
    """

    if is_remote(source):
        raise ValidationError(f"Remote image source '{source}' needs a resolver that fetches it locally")
    path = Path(source).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path
