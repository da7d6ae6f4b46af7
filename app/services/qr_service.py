"""
QR code generation service
"""

import io
import qrcode

from app.services.link_service import link_url

class QRService:
    """Service for generating QR codes for external DJ links"""

    @staticmethod
    def generate_link_qr(token: str, format: str = 'PNG') -> bytes:
        """Generate QR code pointing at the guest registration page"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(link_url(token))
        qr.make(fit=True)

        # Create QR code image
        img = qr.make_image(fill_color="black", back_color="white")

        # Convert to bytes
        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()
