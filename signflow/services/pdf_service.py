import io
import base64
import logging
from pypdf import PdfReader, PdfWriter
from reportlab.pdfgen import canvas
from reportlab.lib.utils import ImageReader

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 150
DEFAULT_HEIGHT = 50


def decode_image_data(image_data: str) -> bytes:
    # format: data:image/png;base64,.....
    if "," in image_data:
        _, image_data = image_data.split(",", 1)
    return base64.b64decode(image_data)


def flatten_signatures(input_pdf_bytes: bytes, signatures: list) -> bytes:
    """
    Burn signature images onto a PDF in memory.

    Positions come from the browser viewer, so x/y are measured from the
    top-left corner of the page; they are flipped to PDF space here.

    Args:
        input_pdf_bytes: Original PDF as bytes
        signatures: list of dicts with keys: page, x, y, width, height, image_data, text, signed_at

    Returns:
        bytes: Flattened PDF as bytes
    """
    reader = PdfReader(io.BytesIO(input_pdf_bytes))
    writer = PdfWriter()

    # Group signatures by page
    sigs_by_page = {}
    for sig in signatures:
        sigs_by_page.setdefault(sig.get("page") or 1, []).append(sig)

    for i, page in enumerate(reader.pages):
        page_num = i + 1

        if page_num in sigs_by_page:
            packet = io.BytesIO()
            page_width = float(page.mediabox.width)
            page_height = float(page.mediabox.height)

            c = canvas.Canvas(packet, pagesize=(page_width, page_height))

            for sig in sigs_by_page[page_num]:
                width = float(sig.get("width") or DEFAULT_WIDTH)
                height = float(sig.get("height") or DEFAULT_HEIGHT)
                x = float(sig.get("x") or 0)
                y = page_height - float(sig.get("y") or 0) - height

                if sig.get("image_data"):
                    try:
                        image = ImageReader(io.BytesIO(decode_image_data(sig["image_data"])))
                        c.drawImage(image, x, y, width=width, height=height, mask="auto")
                    except Exception as e:
                        logger.warning("Error drawing signature image on page %s: %s", page_num, e)

                # Caption below the image
                curr_y = y - 10
                c.setFont("Helvetica", 8)
                if sig.get("text"):
                    c.drawString(x, curr_y, f"Signer: {sig['text']}")
                    curr_y -= 10
                if sig.get("signed_at"):
                    c.drawString(x, curr_y, f"Date: {sig['signed_at']}")

            c.save()
            packet.seek(0)

            overlay = PdfReader(packet)
            page.merge_page(overlay.pages[0])

        writer.add_page(page)

    # Write to bytes
    output_buffer = io.BytesIO()
    writer.write(output_buffer)
    output_buffer.seek(0)
    return output_buffer.read()
