"""Poster configuration record and its merge-based update."""

import math
import re
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping

from qr_poster import QR_SIZE_MAX, QR_SIZE_MIN


class Position(str, Enum):
    """Alignment slots for the QR code inside the poster."""

    CENTER = "center"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


class Theme(str, Enum):
    """Cosmetic presets for the poster text."""

    MINIMAL = "minimal"
    CYBERPUNK = "cyberpunk"
    VINTAGE = "vintage"
    NATURE = "nature"
    ABSTRACT = "abstract"


class ConfigError(ValueError):
    """Raised when a configuration change is rejected."""


@dataclass(frozen=True)
class PosterConfig:
    """Every editable field of the poster."""

    url: str = "https://github.com"
    qr_color: str = "#000000"
    qr_bg_color: str = "#ffffff"
    qr_size: int = 180
    qr_opacity: float = 1.0
    qr_position: Position = Position.CENTER
    background_prompt: str = "A futuristic city at night with neon lights"
    background_image_url: str | None = "https://picsum.photos/800/1200"
    theme: Theme = Theme.CYBERPUNK
    title: str = "SCAN ME"
    subtitle: str = "Discover the future"

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view with enums flattened to their values."""
        data = asdict(self)
        data["qr_position"] = self.qr_position.value
        data["theme"] = self.theme.value
        return data


FIELD_NAMES = frozenset(f.name for f in fields(PosterConfig))

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")
_TEXT_FIELDS = ("url", "background_prompt", "title", "subtitle")


def default_config() -> PosterConfig:
    """Return the configuration every new session starts from."""
    return PosterConfig()


def merge_config(config: PosterConfig, changes: Mapping[str, Any]) -> PosterConfig:
    """Return a new configuration with ``changes`` merged over ``config``.

    Changes are validated here rather than trusted from the editing controls:
    ``qr_size`` is clamped to [100, 400], ``qr_opacity`` to [0, 1], enum
    fields accept members or their string values, and colors must be
    ``#rgb``/``#rrggbb`` hex strings.

    Raises:
        ConfigError: On an unknown field or a value of the wrong kind.
    """
    unknown = set(changes) - FIELD_NAMES
    if unknown:
        raise ConfigError(f"Unknown configuration field(s): {', '.join(sorted(unknown))}")

    cleaned = {name: _clean(name, value) for name, value in changes.items()}
    return replace(config, **cleaned)


def _clean(name: str, value: Any) -> Any:
    if name in _TEXT_FIELDS:
        if not isinstance(value, str):
            raise ConfigError(f"'{name}' must be a string")
        return value

    if name in ("qr_color", "qr_bg_color"):
        return normalize_color(name, value)

    if name == "qr_size":
        _require_number(name, value)
        return max(QR_SIZE_MIN, min(QR_SIZE_MAX, int(round(value))))

    if name == "qr_opacity":
        _require_number(name, value)
        return max(0.0, min(1.0, float(value)))

    if name == "qr_position":
        return _coerce_enum(Position, name, value)

    if name == "theme":
        return _coerce_enum(Theme, name, value)

    # background_image_url
    if value is not None and not isinstance(value, str):
        raise ConfigError("'background_image_url' must be a string or null")
    return value or None


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigError(f"'{name}' must be a finite number")


def normalize_color(name: str, value: Any) -> str:
    """Validate a hex color and expand it to lower-case ``#rrggbb``."""
    if not isinstance(value, str) or not _HEX_COLOR.fullmatch(value):
        raise ConfigError(f"'{name}' must be a hex color like #1a2b3c, got {value!r}")
    value = value.lower()
    if len(value) == 4:
        value = "#" + "".join(ch * 2 for ch in value[1:])
    return value


def _coerce_enum(enum_cls, name: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"'{name}' must be one of: {choices}")
