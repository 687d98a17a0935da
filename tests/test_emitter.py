import json
import os
from pathlib import Path

import pytest
from PIL import Image

from shalam.core import ImageRef, SpriteLayout
from shalam.core.emitter import build_manifest, emit
from shalam.core.errors import OutputWriteError


def _layout():
    ref = ImageRef(source_path=Path("/icons/a.png"), url="icons/a.png", order=0, width=2, height=3, x=0, y=0)
    return SpriteLayout(canvas_width=2, canvas_height=3, placements=(ref,), padding=1)


def test_emit_writes_all_outputs(tmp_path):
    sprite = Image.new("RGBA", (2, 3), (255, 0, 0, 128))
    sprite_path = tmp_path / "img" / "sprite.png"
    css_path = tmp_path / "site.css"
    manifest_path = tmp_path / "sprite.json"

    emit(sprite, ".a{}\n", sprite_path, css_path, manifest_path=manifest_path, layout=_layout())

    with Image.open(sprite_path) as written:
        assert written.size == (2, 3)
        assert written.getpixel((1, 2)) == (255, 0, 0, 128)
    assert css_path.read_text(encoding="utf-8") == ".a{}\n"
    assert json.loads(manifest_path.read_text(encoding="utf-8"))["sprite"] == "sprite.png"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["img", "site.css", "sprite.json"]


def test_failed_write_leaves_no_outputs(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory is expected")
    sprite_path = tmp_path / "sprite.png"
    css_path = blocker / "site.css"

    with pytest.raises(OutputWriteError) as excinfo:
        emit(Image.new("RGBA", (1, 1)), ".a{}", sprite_path, css_path)

    assert excinfo.value.path == css_path
    assert not sprite_path.exists()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["blocker"]


def test_existing_outputs_survive_a_failed_write(tmp_path):
    sprite_path = tmp_path / "sprite.png"
    sprite_path.write_bytes(b"previous")
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(OutputWriteError):
        emit(Image.new("RGBA", (1, 1)), ".a{}", sprite_path, blocker / "site.css")

    assert sprite_path.read_bytes() == b"previous"


def test_directory_at_destination_keeps_previous_outputs(tmp_path):
    sprite_path = tmp_path / "sprite.png"
    sprite_path.write_bytes(b"previous")
    css_path = tmp_path / "site.css"
    css_path.mkdir()

    with pytest.raises(OutputWriteError) as excinfo:
        emit(Image.new("RGBA", (1, 1)), ".a{}", sprite_path, css_path)

    assert excinfo.value.path == css_path
    assert sprite_path.read_bytes() == b"previous"
    assert css_path.is_dir()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["site.css", "sprite.png"]


def test_failed_replace_rolls_back_committed_outputs(tmp_path, monkeypatch):
    sprite_path = tmp_path / "sprite.png"
    sprite_path.write_bytes(b"previous")
    css_path = tmp_path / "site.css"
    css_path.write_text(".old{}", encoding="utf-8")
    manifest_path = tmp_path / "sprite.json"
    real_replace = os.replace

    def replace_failing_on_manifest(src, dst):
        if Path(dst) == manifest_path:
            raise PermissionError("read-only destination")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace_failing_on_manifest)
    with pytest.raises(OutputWriteError) as excinfo:
        emit(Image.new("RGBA", (1, 1)), ".a{}", sprite_path, css_path, manifest_path=manifest_path, layout=_layout())

    assert excinfo.value.path == manifest_path
    assert sprite_path.read_bytes() == b"previous"
    assert css_path.read_text(encoding="utf-8") == ".old{}"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["site.css", "sprite.png"]


def test_failed_replace_removes_outputs_that_did_not_exist(tmp_path, monkeypatch):
    sprite_path = tmp_path / "sprite.png"
    css_path = tmp_path / "site.css"
    real_replace = os.replace

    def replace_failing_on_css(src, dst):
        if Path(dst) == css_path:
            raise PermissionError("read-only destination")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace_failing_on_css)
    with pytest.raises(OutputWriteError):
        emit(Image.new("RGBA", (1, 1)), ".a{}", sprite_path, css_path)

    assert list(tmp_path.iterdir()) == []


def test_manifest_requires_layout(tmp_path):
    with pytest.raises(ValueError):
        emit(Image.new("RGBA", (1, 1)), "", tmp_path / "s.png", tmp_path / "s.css", manifest_path=tmp_path / "m.json")


def test_build_manifest():
    manifest = build_manifest(_layout(), Path("out/sprite.png"), Path("out/site.css"))
    assert manifest == {
        "sprite": "sprite.png",
        "stylesheet": "site.css",
        "meta": {"width": 2, "height": 3, "padding": 1},
        "images": [{"url": "icons/a.png", "x": 0, "y": 0, "width": 2, "height": 3}],
    }
