import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from medref.documents.models import UploadedFile


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Medical referral letter")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def pdf_upload(sample_pdf_bytes: bytes) -> UploadedFile:
    return UploadedFile(
        file_name="referral.pdf",
        file_type="application/pdf",
        content=sample_pdf_bytes,
    )
