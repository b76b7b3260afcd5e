from __future__ import annotations

import base64
import io
import secrets

import qrcode
from PIL import Image

from ..core.constants import QR_BORDER, QR_BOX_SIZE, QR_IMAGE_SIZE


def mint_token() -> str:
    """128 bits from the OS CSPRNG as 32 lowercase hex characters."""
    return secrets.token_hex(16)


def render_qr_png(payload: str, *, size: int = QR_IMAGE_SIZE) -> bytes:
    """QR code (medium error correction) for ``payload`` as a square PNG."""

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white").get_image()
    img = img.convert("L").resize((size, size), Image.Resampling.NEAREST)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_qr_base64(payload: str) -> str:
    return base64.b64encode(render_qr_png(payload)).decode("utf-8")
