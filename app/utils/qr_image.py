# app/utils/qr_image.py
import base64
from io import BytesIO

import qrcode

from app.core.config import FRONTEND_URL


def table_landing_url(qr_code: str) -> str:
    return f"{FRONTEND_URL.rstrip('/')}/?table={qr_code}"


def render_table_qr(qr_code: str) -> str:
    """Render the table's landing URL as a PNG data URL."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=1,
    )
    qr.add_data(table_landing_url(qr_code))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()
