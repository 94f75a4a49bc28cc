import io

import pytest
from PIL import Image

from qr_poster.config import default_config
from qr_poster.export import export_poster, mime_type, poster_bytes


def test_png_export_keeps_transparency(loader):
    img = Image.open(io.BytesIO(poster_bytes(default_config(), "png", scale=0.5, background_loader=loader)))
    assert img.format == "PNG"
    assert img.size == (300, 400)
    assert img.mode == "RGBA"


def test_jpeg_export_is_flattened(loader):
    img = Image.open(io.BytesIO(poster_bytes(default_config(), "jpeg", scale=0.5, background_loader=loader)))
    assert img.format == "JPEG"
    assert img.mode == "RGB"


def test_default_export_scale_is_double(loader):
    img = Image.open(io.BytesIO(poster_bytes(default_config(), background_loader=loader)))
    assert img.size == (1200, 1600)


def test_unsupported_format(loader):
    with pytest.raises(ValueError, match="Unsupported"):
        poster_bytes(default_config(), "gif", background_loader=loader)


def test_mime_type():
    assert mime_type("jpg") == "image/jpeg"
    assert mime_type(".PNG") == "image/png"


def test_export_poster_writes_file(tmp_path, loader):
    target = tmp_path / "out" / "poster.webp"
    path = export_poster(default_config(), str(target), scale=0.5, background_loader=loader)
    assert path == str(target)
    with Image.open(target) as img:
        assert img.format == "WEBP"
        assert img.size == (300, 400)


def test_export_poster_needs_extension(tmp_path, loader):
    with pytest.raises(ValueError, match="extension"):
        export_poster(default_config(), str(tmp_path / "poster"), background_loader=loader)
