import pytest

from qr_poster.config import (
    ConfigError,
    Position,
    PosterConfig,
    Theme,
    default_config,
    merge_config,
)


def test_default_config():
    config = default_config()
    assert config.theme is Theme.CYBERPUNK
    assert config.qr_position is Position.CENTER
    assert config.title == "SCAN ME"
    assert config.subtitle == "Discover the future"
    assert config.url == "https://github.com"
    assert config.qr_size == 180
    assert config.qr_opacity == 1.0
    assert config.background_image_url == "https://picsum.photos/800/1200"


def test_merge_returns_new_config():
    config = default_config()
    merged = merge_config(config, {"title": "Hello", "url": ""})
    assert merged.title == "Hello"
    assert merged.url == ""
    assert merged.subtitle == config.subtitle
    assert config.title == "SCAN ME"


def test_merge_accepts_any_url_text():
    merged = merge_config(default_config(), {"url": "not a url at all"})
    assert merged.url == "not a url at all"


@pytest.mark.parametrize("value, expected", [(500, 400), (400, 400), (99, 100), (250.6, 251)])
def test_qr_size_is_clamped(value, expected):
    assert merge_config(default_config(), {"qr_size": value}).qr_size == expected


@pytest.mark.parametrize("value, expected", [(1.5, 1.0), (-0.2, 0.0), (0.35, 0.35), (1, 1.0)])
def test_qr_opacity_is_clamped(value, expected):
    assert merge_config(default_config(), {"qr_opacity": value}).qr_opacity == expected


def test_enum_fields_accept_strings():
    merged = merge_config(default_config(), {"qr_position": "top-right", "theme": "vintage"})
    assert merged.qr_position is Position.TOP_RIGHT
    assert merged.theme is Theme.VINTAGE


@pytest.mark.parametrize("changes", [
    {"qr_position": "middle"},
    {"theme": "gothic"},
    {"qr_color": "red"},
    {"qr_bg_color": "#12345"},
    {"qr_size": "big"},
    {"qr_size": True},
    {"qr_opacity": None},
    {"title": 42},
    {"background_image_url": 7},
])
def test_invalid_values_are_rejected(changes):
    with pytest.raises(ConfigError):
        merge_config(default_config(), changes)


def test_unknown_field_is_rejected():
    with pytest.raises(ConfigError, match="qrColor"):
        merge_config(default_config(), {"qrColor": "#ffffff"})


def test_colors_are_normalized():
    merged = merge_config(default_config(), {"qr_color": "#ABC", "qr_bg_color": "#FF00AA"})
    assert merged.qr_color == "#aabbcc"
    assert merged.qr_bg_color == "#ff00aa"


def test_empty_background_becomes_none():
    assert merge_config(default_config(), {"background_image_url": ""}).background_image_url is None
    assert merge_config(default_config(), {"background_image_url": None}).background_image_url is None


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_to_dict_flattens_enums():
    data = PosterConfig(theme=Theme.NATURE, qr_position=Position.BOTTOM_LEFT).to_dict()
    assert data["theme"] == "nature"
    assert data["qr_position"] == "bottom-left"
    assert data["qr_size"] == 180
