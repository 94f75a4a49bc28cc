"""Export the rendered poster to an image file."""

import io
import os

from PIL import Image

from qr_poster.config import PosterConfig
from qr_poster.image_utils import load_background_image, parse_color
from qr_poster.preview import render_poster

EXPORT_SCALE = 2.0
PAGE_COLOR = "#020617"  # slate-950, behind the rounded corners in opaque formats

FORMATS = {
    "png": ("PNG", "image/png"),
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "webp": ("WEBP", "image/webp"),
}


def _resolve_format(fmt: str) -> tuple[str, str]:
    try:
        return FORMATS[fmt.lower().lstrip(".")]
    except KeyError:
        raise ValueError(f"Unsupported export format '{fmt}'. Choose from: png, jpeg, webp")


def mime_type(fmt: str) -> str:
    return _resolve_format(fmt)[1]


def _prepare(img: Image.Image, pil_format: str) -> Image.Image:
    if pil_format == "JPEG":
        page = Image.new("RGBA", img.size, parse_color(PAGE_COLOR))
        return Image.alpha_composite(page, img).convert("RGB")
    return img


def poster_bytes(
    config: PosterConfig,
    fmt: str = "png",
    scale: float = EXPORT_SCALE,
    background_loader=load_background_image,
) -> bytes:
    """Render the poster and encode it in memory.

    Args:
        config: The poster configuration.
        fmt: "png", "jpeg" or "webp".
        scale: Render scale relative to the 600x800 preview.
        background_loader: Passed through to ``render_poster``.

    Returns:
        Encoded image bytes.

    Raises:
        ValueError: If the format is not supported.
    """
    pil_format, _ = _resolve_format(fmt)
    img = render_poster(config, scale=scale, background_loader=background_loader)
    buffer = io.BytesIO()
    _prepare(img, pil_format).save(buffer, format=pil_format)
    return buffer.getvalue()


def export_poster(
    config: PosterConfig,
    output_path: str,
    scale: float = EXPORT_SCALE,
    background_loader=load_background_image,
) -> str:
    """Render the poster and save it, picking the format from the extension.

    Returns:
        The output path where the image was saved.

    Raises:
        ValueError: If the extension is not a supported format.
    """
    ext = os.path.splitext(output_path)[1]
    if not ext:
        raise ValueError(f"Output path '{output_path}' needs an extension (.png, .jpg, .webp)")
    data = poster_bytes(config, ext, scale=scale, background_loader=background_loader)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(data)
    return output_path
