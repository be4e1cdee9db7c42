"""First-page PDF to PNG rasterization for resumes (needs poppler installed)."""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import PurePath

from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

from ..errors import RasterizationError
from ..models import Blob


__all__ = ["PdfRasterizer"]


logger = logging.getLogger(__name__)


PDF_MIME_TYPE = "application/pdf"


class PdfRasterizer:
    """Renders page one of a PDF resume to a PNG image blob."""

    def __init__(self, dpi: int = 150) -> None:
        self.dpi = dpi

    def _render(self, data: bytes):
        pages = convert_from_bytes(data, dpi=self.dpi, first_page=1, last_page=1)
        if not pages:
            raise RasterizationError("PDF has no pages")
        buffer = io.BytesIO()
        pages[0].save(buffer, format="PNG")
        return buffer.getvalue()

    async def rasterize(self, document: Blob) -> Blob:
        """
        Raises:
            RasterizationError: If the document is not a readable PDF.
        """
        if document.mime_type.lower() != PDF_MIME_TYPE:
            raise RasterizationError(f"Unsupported resume type: {document.mime_type}")

        try:
            png = await asyncio.to_thread(self._render, document.data)
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as exc:
            raise RasterizationError(f"PDF conversion failed: {exc}") from exc

        filename = PurePath(document.filename).with_suffix(".png").name
        logger.info("Rasterized %s to %s (%d bytes)", document.filename, filename, len(png))
        return Blob(data=png, mime_type="image/png", filename=filename)
