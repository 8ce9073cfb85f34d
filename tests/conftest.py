import json

import numpy as np
import pytest
from PIL import Image

from resize_images import Settings


def make_image(path, width, height, fmt=None):
    """Write a noisy RGB image so every file encodes to distinct bytes."""
    rng = np.random.default_rng(width * 7919 + height)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(pixels).save(path, format=fmt)
    return path


def image_size(path):
    with Image.open(path) as img:
        return img.size


@pytest.fixture
def settings():
    return Settings(
        max_width=800,
        max_height=600,
        supported_extensions=frozenset({".jpg"}),
        subfolder_name="resized",
        overwrite_existing=True,
    )


@pytest.fixture
def image_root(tmp_path):
    root = tmp_path / "images"
    root.mkdir()
    return root


@pytest.fixture
def write_config(tmp_path):
    def _write(**overrides):
        raw = {
            "TargetDimensions": {"Width": 100, "Height": 100},
            "SupportedFileTypes": [".jpg"],
            "SubfolderName": "resized",
            "OverwriteExisting": True,
            "LogFilePath": "",
            "MaxWidth": 800,
            "MaxHeight": 600,
        }
        raw.update(overrides)
        config_path = tmp_path / "appsettings.json"
        config_path.write_text(json.dumps(raw), encoding="utf-8")
        return config_path
    return _write
