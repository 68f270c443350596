"""Certificate PDF rendering with reportlab (canvas text + QR verification code)."""

from __future__ import annotations

from datetime import date
from io import BytesIO

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

QR_SIZE = 120
LEFT_MARGIN = 100


def _qr_drawing(payload: str, size: int = QR_SIZE) -> Drawing:
    widget = QrCodeWidget(payload)
    x1, y1, x2, y2 = widget.getBounds()
    drawing = Drawing(size, size, transform=[size / (x2 - x1), 0, 0, size / (y2 - y1), 0, 0])
    drawing.add(widget)
    return drawing


def render_certificate_pdf(
    display_name: str,
    realm_name: str,
    certificate_number: str,
    issued_on: date,
    verify_url: str,
) -> bytes:
    """Render a one-page certificate and return the PDF bytes."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    _, height = letter

    def line(font: str, size: int, text: str, from_top: int) -> None:
        pdf.setFont(font, size)
        pdf.drawString(LEFT_MARGIN, height - from_top, text)

    pdf.setTitle(f"{realm_name} Certificate - {certificate_number}")
    line("Helvetica-Bold", 30, "Certificate of Achievement", 100)
    line("Helvetica", 20, "This certifies that", 200)
    line("Helvetica-Bold", 25, display_name, 250)
    line("Helvetica", 20, "has successfully completed the", 300)
    line("Helvetica-Bold", 25, f"{realm_name} Realm", 350)
    line("Helvetica", 12, f"Certificate Number: {certificate_number}", 450)
    line("Helvetica", 12, f"Issued: {issued_on.strftime('%d/%m/%Y')}", 470)

    renderPDF.draw(_qr_drawing(verify_url), pdf, LEFT_MARGIN, height - 500 - QR_SIZE)
    line("Helvetica", 10, f"Verify at {verify_url}", 500 + QR_SIZE + 15)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
