"""Compose the poster preview from a configuration.

The poster is a 3:4 canvas built from back to front:

1. Background image (cover-fitted), or a gradient when none is set
2. A fixed 10% darkening layer
3. Title and subtitle styled by the theme preset
4. The QR code inside a translucent, blurred container
5. Static framing: vignette, thin ring and a footer divider

``render_poster`` never mutates the configuration, so the same
configuration always renders the same image.
"""

import logging
import math
from functools import lru_cache

from PIL import Image, ImageChops, ImageDraw, ImageFilter, ImageFont, ImageOps

from qr_poster import CANVAS_HEIGHT, CANVAS_WIDTH
from qr_poster.config import Position, PosterConfig
from qr_poster.image_utils import fit_cover, load_background_image, parse_color
from qr_poster.qr_generator import generate_qr_code
from qr_poster.themes import ThemeStyle, theme_style

logger = logging.getLogger(__name__)

GRADIENT_FROM = "#0f172a"  # slate-900, bottom-left
GRADIENT_TO = "#312e81"    # indigo-900, top-right
PANEL_COLOR = "#1e293b"    # slate-800, behind a background that failed to load
DEFAULT_TEXT_COLOR = "#ffffff"
DARKEN_ALPHA = 26          # black at 10%

PADDING = 48
CORNER_RADIUS = 16
QR_PADDING = 16
TITLE_SIZE, TITLE_LINE_HEIGHT = 36, 40
SUBTITLE_SIZE, SUBTITLE_LINE_HEIGHT = 18, 28
TITLE_GAP = 8
SUBTITLE_OPACITY = 0.8
FOOTER_GAP = 32
FOOTER_BAR = (96, 4)
FOOTER_ALPHA = 31          # white/40 inside a 30% opacity group
VIGNETTE_DEPTH = 100
VIGNETTE_ALPHA = 0.4

# (vertical, horizontal) alignment of the QR container
_ALIGNMENTS = {
    Position.CENTER: ("center", "center"),
    Position.TOP_RIGHT: ("start", "end"),
    Position.BOTTOM_LEFT: ("end", "start"),
    Position.BOTTOM_RIGHT: ("end", "end"),
}

_FONT_BASES = {
    "sans": "DejaVuSans",
    "serif": "DejaVuSerif",
    "mono": "DejaVuSansMono",
}


def alpha_suffix(opacity: float) -> str:
    """Two-digit hex alpha for an opacity in [0, 1] (1 -> "ff", 0.5 -> "80")."""
    value = int(math.floor(opacity * 255 + 0.5))
    return format(max(0, min(255, value)), "02x")


def with_alpha(color: str, opacity: float) -> str:
    """Append the opacity as an alpha suffix to a ``#rrggbb`` color."""
    return color + alpha_suffix(opacity)


def canvas_size(scale: float = 1.0) -> tuple[int, int]:
    return round(CANVAS_WIDTH * scale), round(CANVAS_HEIGHT * scale)


def render_poster(
    config: PosterConfig,
    scale: float = 1.0,
    background_loader=load_background_image,
) -> Image.Image:
    """Render the poster for a configuration.

    Args:
        config: The poster configuration.
        scale: Multiplier applied to the 600x800 base canvas and every
            measurement on it. Export uses 2.0 for a sharper file.
        background_loader: Callable turning ``background_image_url`` into a
            PIL Image. Raising ValueError or OSError renders the plain
            panel color instead.

    Returns:
        RGBA PIL Image with transparent rounded corners.
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")

    size = canvas_size(scale)
    width, height = size

    def px(value: float) -> int:
        return max(1, round(value * scale))

    canvas = _background_layer(config.background_image_url, size, background_loader)
    canvas = Image.alpha_composite(canvas, Image.new("RGBA", size, (0, 0, 0, DARKEN_ALPHA)))

    header_bottom = _draw_header(canvas, config, px)

    footer_top = height - px(PADDING) - px(FOOTER_BAR[1])
    _place_qr(
        canvas,
        config,
        px,
        area=(px(PADDING), header_bottom, width - px(PADDING), footer_top - px(FOOTER_GAP)),
    )
    _draw_footer(canvas, px, footer_top)

    canvas = _apply_frame(canvas, px)
    return canvas


# ---------------------------------------------------------------------------
# Background
# ---------------------------------------------------------------------------

def _background_layer(reference: str | None, size: tuple[int, int], loader) -> Image.Image:
    if reference is None:
        return _gradient(size)
    try:
        img = loader(reference)
    except (ValueError, OSError, Image.DecompressionBombError) as e:
        logger.warning("Background %s could not be loaded: %s", _short(reference), e)
        return Image.new("RGBA", size, parse_color(PANEL_COLOR))
    return fit_cover(img.convert("RGB"), size).convert("RGBA")


def _gradient(size: tuple[int, int]) -> Image.Image:
    """Diagonal gradient from bottom-left to top-right."""
    horizontal = Image.linear_gradient("L").rotate(90).resize(size, Image.BILINEAR)
    upward = ImageOps.invert(Image.linear_gradient("L")).resize(size, Image.BILINEAR)
    mask = ImageChops.add(horizontal, upward, scale=2.0)
    start = Image.new("RGBA", size, parse_color(GRADIENT_FROM))
    end = Image.new("RGBA", size, parse_color(GRADIENT_TO))
    return Image.composite(end, start, mask)


def _short(reference: str) -> str:
    return reference if len(reference) <= 60 else reference[:57] + "..."


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

@lru_cache(maxsize=32)
def _load_font(family: str | None, weight: str | None, italic: bool, size: int):
    base = _FONT_BASES.get(family or "sans", "DejaVuSans")
    italic_suffix = "Italic" if base == "DejaVuSerif" else "Oblique"
    bold = weight in ("bold", "black")

    names = []
    if weight == "light" and base == "DejaVuSans":
        names.append("DejaVuSans-ExtraLight.ttf")
    if bold and italic:
        names.append(f"{base}-Bold{italic_suffix}.ttf")
    elif italic:
        names.append(f"{base}-{italic_suffix}.ttf")
    if bold:
        names.append(f"{base}-Bold.ttf")
    names.append(f"{base}.ttf")

    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _text_width(text: str, font, spacing: float) -> float:
    if not spacing:
        return font.getlength(text)
    return sum(font.getlength(ch) for ch in text) + spacing * max(len(text) - 1, 0)


def _wrap(text: str, font, spacing: float, max_width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and _text_width(candidate, font, spacing) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def _draw_lines(
    layer: Image.Image,
    lines: list[str],
    font,
    fill: tuple[int, int, int, int],
    spacing: float,
    top: int,
    line_height: int,
    font_size: int,
) -> int:
    draw = ImageDraw.Draw(layer)
    width = layer.size[0]
    y = top
    for line in lines:
        x = (width - _text_width(line, font, spacing)) / 2
        text_y = y + (line_height - font_size) / 2
        if not spacing:
            draw.text((x, text_y), line, font=font, fill=fill)
        else:
            for ch in line:
                draw.text((x, text_y), ch, font=font, fill=fill)
                x += font.getlength(ch) + spacing
        y += line_height
    return y


def _fade(layer: Image.Image, opacity: float) -> Image.Image:
    alpha = layer.getchannel("A").point(lambda v: round(v * opacity))
    faded = layer.copy()
    faded.putalpha(alpha)
    return faded


def _drop_shadow(layer: Image.Image, offset: int, radius: int, opacity: float) -> Image.Image:
    shadow = Image.new("RGBA", layer.size, (0, 0, 0, 255))
    shadow.putalpha(layer.getchannel("A").point(lambda v: round(v * opacity)))
    shadow = shadow.filter(ImageFilter.GaussianBlur(radius))
    shifted = Image.new("RGBA", layer.size, (0, 0, 0, 0))
    shifted.paste(shadow, (0, offset))
    return shifted


def _draw_header(canvas: Image.Image, config: PosterConfig, px) -> int:
    style: ThemeStyle = theme_style(config.theme)
    color = parse_color(style.color or DEFAULT_TEXT_COLOR)
    max_width = canvas.size[0] - 2 * px(PADDING)

    title = config.title.upper() if style.uppercase else config.title
    subtitle = config.subtitle.upper() if style.uppercase else config.subtitle

    title_size = px(TITLE_SIZE)
    title_font = _load_font(style.font_family, style.weight or "bold", style.italic, title_size)
    title_spacing = style.letter_spacing * title_size
    title_layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    bottom = _draw_lines(
        title_layer, _wrap(title, title_font, title_spacing, max_width), title_font, color,
        title_spacing, px(PADDING), px(TITLE_LINE_HEIGHT), title_size,
    )
    canvas.alpha_composite(_drop_shadow(title_layer, px(3), px(3), 0.12))
    canvas.alpha_composite(title_layer)

    sub_size = px(SUBTITLE_SIZE)
    sub_font = _load_font(style.font_family, style.weight, style.italic, sub_size)
    sub_spacing = style.letter_spacing * sub_size
    sub_layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    bottom = _draw_lines(
        sub_layer, _wrap(subtitle, sub_font, sub_spacing, max_width), sub_font, color,
        sub_spacing, bottom + px(TITLE_GAP), px(SUBTITLE_LINE_HEIGHT), sub_size,
    )
    canvas.alpha_composite(_fade(sub_layer, SUBTITLE_OPACITY))
    return bottom


# ---------------------------------------------------------------------------
# QR container
# ---------------------------------------------------------------------------

def qr_origin(
    position: Position,
    box: int,
    area: tuple[int, int, int, int],
) -> tuple[int, int]:
    """Top-left corner of a ``box``-sized container aligned inside ``area``."""
    left, top, right, bottom = area
    vertical, horizontal = _ALIGNMENTS[Position(position)]
    return _align(horizontal, left, right, box), _align(vertical, top, bottom, box)


def _align(mode: str, start: int, end: int, length: int) -> int:
    if mode == "start":
        return start
    if mode == "end":
        return end - length
    return start + (end - start - length) // 2


def _place_qr(canvas: Image.Image, config: PosterConfig, px, area) -> None:
    qr_px = px(config.qr_size)
    pad = px(QR_PADDING)
    box = qr_px + 2 * pad
    radius = px(CORNER_RADIUS)
    x, y = qr_origin(config.qr_position, box, area)

    mask = Image.new("L", (box, box), 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, box - 1, box - 1), radius=radius, fill=255)

    silhouette = Image.new("RGBA", (box, box), (0, 0, 0, 0))
    silhouette.putalpha(mask)
    canvas.alpha_composite(_drop_shadow(_pad(silhouette, canvas.size, (x, y)), px(25), px(25), 0.25))

    # backdrop blur behind the translucent container
    region = (x, y, x + box, y + box)
    blurred = canvas.crop(region).filter(ImageFilter.GaussianBlur(px(4)))
    canvas.paste(blurred, (x, y), mask)

    container = Image.new("RGBA", (box, box), (0, 0, 0, 0))
    fill = parse_color(config.qr_bg_color, alpha=int(alpha_suffix(config.qr_opacity), 16))
    draw = ImageDraw.Draw(container)
    draw.rounded_rectangle(
        (0, 0, box - 1, box - 1), radius=radius, fill=fill,
        outline=(255, 255, 255, 51), width=px(1),
    )

    try:
        qr = generate_qr_code(
            config.url, qr_px, fg_color=config.qr_color, bg_color="transparent", include_margin=True,
        )
    except ValueError as e:
        logger.warning("QR code omitted from the poster: %s", e)
    else:
        container.alpha_composite(_fade(qr, config.qr_opacity), (pad, pad))
    canvas.alpha_composite(_pad(container, canvas.size, (x, y)))


def _pad(layer: Image.Image, size: tuple[int, int], origin: tuple[int, int]) -> Image.Image:
    """Place ``layer`` on a transparent canvas; offsets may be negative."""
    full = Image.new("RGBA", size, (0, 0, 0, 0))
    full.paste(layer, origin)
    return full


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

def _draw_footer(canvas: Image.Image, px, top: int) -> None:
    bar_w, bar_h = px(FOOTER_BAR[0]), px(FOOTER_BAR[1])
    left = (canvas.size[0] - bar_w) // 2
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).rounded_rectangle(
        (left, top, left + bar_w, top + bar_h), radius=bar_h // 2, fill=(255, 255, 255, FOOTER_ALPHA),
    )
    canvas.alpha_composite(layer)


def _apply_frame(canvas: Image.Image, px) -> Image.Image:
    width, height = canvas.size
    depth = px(VIGNETTE_DEPTH)
    radius = px(CORNER_RADIUS)

    edge = Image.new("L", canvas.size, 255)
    ImageDraw.Draw(edge).rectangle((depth // 2, depth // 2, width - depth // 2, height - depth // 2), fill=0)
    edge = edge.filter(ImageFilter.GaussianBlur(depth / 3))
    vignette = Image.new("RGBA", canvas.size, (0, 0, 0, 255))
    vignette.putalpha(edge.point(lambda v: round(v * VIGNETTE_ALPHA)))
    canvas = Image.alpha_composite(canvas, vignette)

    ring = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(ring).rounded_rectangle(
        (0, 0, width - 1, height - 1), radius=radius, outline=(255, 255, 255, 26), width=px(1),
    )
    canvas = Image.alpha_composite(canvas, ring)

    corners = Image.new("L", canvas.size, 0)
    ImageDraw.Draw(corners).rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=255)
    canvas.putalpha(ImageChops.multiply(canvas.getchannel("A"), corners))
    return canvas
