from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image

SCENARIO_CSS = ".a{background:url(icons/x.png) no-repeat}\n.b{background:url(icons/y.png) no-repeat}\n"


def write_image(path: Path, size: tuple[int, int], seed: int = 0) -> np.ndarray:
    """Write a PNG of random RGBA noise and return its pixels."""

    width, height = size
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(pixels).save(path)
    return pixels


@pytest.fixture
def make_image():
    return write_image


@pytest.fixture
def scenario(tmp_path):
    css_dir = tmp_path / "css"
    icons = css_dir / "icons"
    x_pixels = write_image(icons / "x.png", (10, 10), seed=1)
    y_pixels = write_image(icons / "y.png", (20, 5), seed=2)
    css_path = css_dir / "site.css"
    css_path.write_text(SCENARIO_CSS, encoding="utf-8")
    return SimpleNamespace(
        root=tmp_path,
        css_path=css_path,
        image_dir=icons,
        sprite_path=css_dir / "sprite.png",
        pixels={"x.png": x_pixels, "y.png": y_pixels},
    )
