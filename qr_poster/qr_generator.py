"""Render QR codes for placement on a poster."""

import qrcode
from PIL import Image
from qrcode.exceptions import DataOverflowError

from qr_poster import FALLBACK_QR_PAYLOAD, MAX_QR_DATA_BYTES


def qr_payload(url: str) -> str:
    """Return the text to encode, substituting the fallback for an empty URL."""
    return url or FALLBACK_QR_PAYLOAD


def generate_qr_code(
    data: str,
    size: int,
    fg_color: str = "#000000",
    bg_color: str = "transparent",
    include_margin: bool = True,
) -> Image.Image:
    """Generate a square QR code image.

    Error correction is fixed at level H (30% redundancy) so the code stays
    scannable under a translucent container and artistic backgrounds.

    Args:
        data: The text or URL to encode. An empty string encodes the
            fallback payload instead.
        size: Output image size in pixels (square).
        fg_color: Color of the dark modules.
        bg_color: Color of the light modules, or "transparent".
        include_margin: Keep the standard 4-module quiet zone.

    Returns:
        RGBA PIL Image of the QR code at the requested size.

    Raises:
        ValueError: If the data exceeds QR code capacity.
    """
    data = qr_payload(data)
    n_bytes = len(data.encode("utf-8"))
    if n_bytes > MAX_QR_DATA_BYTES:
        raise ValueError(
            f"QR data too long ({n_bytes} bytes). "
            f"Maximum is {MAX_QR_DATA_BYTES} bytes with error correction level H."
        )

    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4 if include_margin else 0,
    )
    qr.add_data(data)
    try:
        qr.make(fit=True)
    except DataOverflowError as e:
        raise ValueError(f"QR data too long for error correction level H: {e}") from e

    qr_image = qr.make_image(fill_color=fg_color, back_color=bg_color)
    qr_image = qr_image.convert("RGBA")
    # Nearest neighbour keeps module edges sharp at any target size
    return qr_image.resize((size, size), Image.NEAREST)
