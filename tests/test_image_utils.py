import pytest
from PIL import Image

from qr_poster.config import default_config, merge_config
from qr_poster.image_utils import (
    _center_crop_aspect,
    bytes_to_data_uri,
    fit_cover,
    load_background_image,
    load_remote_image,
)
from qr_poster.preview import PANEL_COLOR, render_poster
from tests.fakes import png_data_uri, solid_loader


def test_load_data_uri():
    img = load_background_image(png_data_uri("#ff00ff", size=(30, 40)))
    assert img.mode == "RGB"
    assert img.size == (30, 40)
    assert img.getpixel((15, 20)) == (255, 0, 255)


def test_loaded_image_is_a_fresh_copy():
    reference = png_data_uri("#00ff00")
    first = load_background_image(reference)
    first.putpixel((0, 0), (0, 0, 0))
    assert load_background_image(reference).getpixel((0, 0)) == (0, 255, 0)


def test_malformed_base64_raises():
    with pytest.raises(ValueError, match="Malformed"):
        load_background_image("data:image/png;base64,not*base64!")


def test_non_base64_data_uri_rejected():
    with pytest.raises(ValueError, match="base64"):
        load_background_image("data:text/plain,hello")


def test_data_uri_that_is_not_an_image():
    with pytest.raises(ValueError, match="decode"):
        load_background_image(bytes_to_data_uri(b"plain text", "image/png"))


def test_local_path(tmp_path):
    path = tmp_path / "bg.png"
    Image.new("RGB", (20, 20), "#123456").save(path)
    assert load_background_image(str(path)).getpixel((5, 5)) == (0x12, 0x34, 0x56)


def test_missing_local_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_background_image(str(tmp_path / "missing.png"))


def test_remote_loader_rejects_local_paths(tmp_path):
    path = tmp_path / "bg.png"
    Image.new("RGB", (20, 20), "#123456").save(path)
    with pytest.raises(ValueError, match="http"):
        load_remote_image(str(path))


def test_remote_loader_accepts_data_uri():
    assert load_remote_image(png_data_uri("#ff00ff")).getpixel((0, 0)) == (255, 0, 255)


@pytest.mark.parametrize("size, expected", [
    ((400, 100), (75, 100)),   # wide: crop the sides
    ((100, 400), (100, 133)),  # tall: crop top and bottom
    ((300, 400), (300, 400)),  # already 3:4
])
def test_center_crop_aspect(size, expected):
    assert _center_crop_aspect(Image.new("RGB", size), 3 / 4).size == expected


def test_center_crop_keeps_the_middle():
    img = Image.new("RGB", (400, 100), "#0000ff")
    img.paste((255, 0, 0), (150, 0, 250, 100))
    cropped = _center_crop_aspect(img, 1.0)
    assert cropped.size == (100, 100)
    assert cropped.getcolors() == [(10000, (255, 0, 0))]


@pytest.mark.parametrize("source", [(1000, 200), (200, 1000), (30, 40)])
def test_fit_cover_fills_target(source):
    assert fit_cover(Image.new("RGB", source, "#808080"), (600, 800)).size == (600, 800)


def test_generated_data_uri_renders_through_real_loader():
    config = merge_config(default_config(), {"background_image_url": png_data_uri("#ff00ff")})
    rendered = render_poster(config)
    expected = render_poster(config, background_loader=solid_loader("#ff00ff"))
    for point in [(100, 300), (500, 600), (300, 700)]:
        for actual, wanted in zip(rendered.getpixel(point), expected.getpixel(point)):
            assert abs(actual - wanted) <= 2


def test_directory_background_renders_panel_color(tmp_path):
    config = merge_config(default_config(), {"background_image_url": str(tmp_path)})
    broken = render_poster(config, background_loader=load_background_image)
    panel = render_poster(config, background_loader=solid_loader(PANEL_COLOR))
    assert broken.tobytes() == panel.tobytes()
