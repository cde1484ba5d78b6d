"""QR rasters for the card backs."""
import asyncio

import qrcode
from qrcode.constants import ERROR_CORRECT_H
from PIL import Image

QR_PIXEL_SIZE = 400
QR_BORDER = 1
QR_ERROR_CORRECTION = ERROR_CORRECT_H


def encode_qr(url, pixel_size=QR_PIXEL_SIZE, border=QR_BORDER):
    """Encode ``url`` as an RGB image exactly ``pixel_size`` pixels square."""
    if not url:
        raise ValueError("Cannot encode an empty URL")
    qr = qrcode.QRCode(error_correction=QR_ERROR_CORRECTION, box_size=1, border=border)
    qr.add_data(url)
    qr.make(fit=True)
    modules = qr.modules_count + 2 * border
    # Whole pixels per module keep the edges crisp; the final resize only pads the rounding.
    qr.box_size = max(1, pixel_size // modules)
    img = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")
    if img.size != (pixel_size, pixel_size):
        img = img.resize((pixel_size, pixel_size), resample=Image.Resampling.NEAREST)
    return img


async def encode_qr_async(url, pixel_size=QR_PIXEL_SIZE, border=QR_BORDER):
    return await asyncio.to_thread(encode_qr, url, pixel_size, border)
