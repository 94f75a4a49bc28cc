"""Image helpers for poster composition."""

import base64
import binascii
import io
import os
import urllib.error
import urllib.request
from functools import lru_cache

from PIL import Image, ImageColor, UnidentifiedImageError

DEFAULT_FETCH_TIMEOUT = 15  # seconds
_USER_AGENT = "qr-poster/1.0"
REMOTE_PREFIXES = ("data:", "http://", "https://")


def load_background_image(
    reference: str,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    allow_local: bool = True,
) -> Image.Image:
    """Load a background image from a URL, a ``data:`` URI or a local path.

    Recently used references are cached, so re-rendering the preview after
    every edit does not download the same image again.

    Args:
        reference: http(s) URL, ``data:image/...;base64,...`` URI or file path.
        timeout: Network timeout in seconds for URL references.
        allow_local: Accept file paths. The editor server passes False.

    Returns:
        A fresh RGB PIL Image the caller may modify.

    Raises:
        FileNotFoundError: If a local path does not exist.
        ValueError: If the reference cannot be fetched or decoded as an
            image, or is a file path while ``allow_local`` is False.
    """
    if not allow_local and not reference.startswith(REMOTE_PREFIXES):
        raise ValueError("Background must be an http(s) URL or a data: URI.")
    return _load_cached(reference, timeout).copy()


def load_remote_image(reference: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> Image.Image:
    """``load_background_image`` restricted to URLs and ``data:`` URIs."""
    return load_background_image(reference, timeout, allow_local=False)


@lru_cache(maxsize=8)
def _load_cached(reference: str, timeout: float) -> Image.Image:
    raw = _read_reference(reference, timeout)
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise ValueError(f"Could not decode background image: {e}")
    return img.convert("RGB")


def _read_reference(reference: str, timeout: float) -> bytes:
    if reference.startswith("data:"):
        header, _, payload = reference.partition(",")
        if ";base64" not in header or not payload:
            raise ValueError("Only base64-encoded data URIs are supported.")
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Malformed data URI: {e}")

    if reference.startswith(("http://", "https://")):
        request = urllib.request.Request(reference, headers={"User-Agent": _USER_AGENT})
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                return response.read()
        except (urllib.error.URLError, TimeoutError) as e:
            raise ValueError(f"Could not fetch background '{reference}': {e}")

    if not os.path.exists(reference):
        raise FileNotFoundError(f"Image not found: {reference}")
    with open(reference, "rb") as f:
        return f.read()


def _center_crop_aspect(img: Image.Image, aspect: float) -> Image.Image:
    """Center-crop an image to the given width/height ratio.

    Takes the largest centered region with that ratio from the image.
    """
    width, height = img.size
    if height == 0 or abs(width / height - aspect) < 1e-3:
        return img

    if width / height > aspect:
        new_width = round(height * aspect)
        left = (width - new_width) // 2
        return img.crop((left, 0, left + new_width, height))

    new_height = round(width / aspect)
    top = (height - new_height) // 2
    return img.crop((0, top, width, top + new_height))


def fit_cover(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Scale and crop an image to fill ``size`` exactly, centered."""
    width, height = size
    img = _center_crop_aspect(img, width / height)
    return img.resize(size, Image.LANCZOS)


def parse_color(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Convert a CSS color string to an RGBA tuple with the given alpha.

    Raises:
        ValueError: If the color string is not recognised.
    """
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, alpha


def bytes_to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    """Encode raw image bytes as an inline ``data:`` URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
