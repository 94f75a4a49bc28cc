"""Per-theme text presets for the poster title and subtitle."""

from dataclasses import dataclass

from qr_poster.config import Theme


@dataclass(frozen=True)
class ThemeStyle:
    """How the poster text is drawn for one theme.

    An instance with every field unset is the empty style used for unknown
    themes; the preview then falls back to plain white sans-serif text.
    """

    font_family: str | None = None  # "sans", "serif" or "mono"
    weight: str | None = None       # "light", "bold" or "black"
    color: str | None = None
    uppercase: bool = False
    italic: bool = False
    letter_spacing: float = 0.0     # em

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_STYLE


EMPTY_STYLE = ThemeStyle()

THEME_STYLES = {
    Theme.CYBERPUNK: ThemeStyle(
        font_family="mono", color="#22d3ee", uppercase=True, letter_spacing=0.1,
    ),
    Theme.VINTAGE: ThemeStyle(font_family="serif", color="#78350f", italic=True),
    Theme.MINIMAL: ThemeStyle(
        font_family="sans", weight="light", color="#1e293b", letter_spacing=-0.025,
    ),
    Theme.NATURE: ThemeStyle(font_family="serif", color="#064e3b"),
    Theme.ABSTRACT: ThemeStyle(
        font_family="sans", weight="black", color="#ffffff", italic=True,
    ),
}


def theme_style(theme) -> ThemeStyle:
    """Look up the text preset for a theme or theme name.

    Unknown themes get ``EMPTY_STYLE`` rather than an error.
    """
    try:
        return THEME_STYLES[Theme(theme)]
    except ValueError:
        return EMPTY_STYLE
