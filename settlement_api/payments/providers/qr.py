import base64
import logging
from io import BytesIO

import qrcode
import qrcode.constants
from qrcode.main import QRCode

logger = logging.getLogger(__name__)


def render_qr_base64(data, box_size=10, border=1):
    """Render a payment code as a PNG QR image and return it base64 encoded."""
    qr = QRCode(
        version=None,  # fit to data length
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffered = BytesIO()
    img.save(buffered, format="PNG")
    img_base64 = base64.b64encode(buffered.getvalue()).decode()

    logger.debug(f"Rendered QR code for payload of {len(data)} chars")
    return img_base64
