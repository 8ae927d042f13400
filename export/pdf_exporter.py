"""
Multi-page PDF export

Pages are cut from the rendered surface and each is placed, full size,
inside the margins of one physical page. The PDF is built in memory and only
returned once every page is in it; any failure before that raises
RenderFailure and nothing is emitted.
"""

import io
import re
from typing import List

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from export.paginator import PageGeometry, Paginator
from models.document import ExportArtifact, RenderedPage
from rendering.surface import Surface
from utils.config import PipelineConfig
from utils.errors import RenderFailure

UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def artifact_filename(document_number: str, prefix: str = "invoice", extension: str = "pdf") -> str:
    """invoice-<number>.pdf, with path-unsafe characters replaced"""
    safe = UNSAFE_FILENAME_CHARS.sub('-', document_number).strip('-') or 'unnumbered'
    return f"{prefix}-{safe}.{extension}"


class PaginationExporter:
    """Turns a rendered surface into page images or a PDF artifact"""

    def __init__(self, config: PipelineConfig = None):
        self.config = config or PipelineConfig()
        self.geometry = PageGeometry.from_config(self.config)
        self.paginator = Paginator.from_geometry(self.geometry)

    def preview(self, surface: Surface) -> List[RenderedPage]:
        """Page images for on-screen preview"""
        self._check_width(surface)
        try:
            return self.paginator.slice(surface)
        except RenderFailure:
            raise
        except (OSError, ValueError) as e:
            raise RenderFailure(f"Page rasterization failed: {e}", stage="paginate") from e

    def export(self, surface: Surface, document_number: str, prefix: str = "invoice") -> ExportArtifact:
        """
        Assemble all pages into one PDF

        Returns:
            ExportArtifact named <prefix>-<document_number>.pdf
        """
        self._check_width(surface)
        geometry = self.geometry

        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=(geometry.page_width_mm * mm, geometry.page_height_mm * mm),
            invariant=1,
        )
        pdf.setTitle(f"{prefix.capitalize()} {document_number}")

        page_count = 0
        pages = self.paginator.iter_pages(surface)
        try:
            for _, page in pages:
                try:
                    pdf.drawImage(
                        ImageReader(page),
                        geometry.margin_left_mm * mm,
                        geometry.margin_bottom_mm * mm,
                        width=geometry.printable_width_mm * mm,
                        height=geometry.printable_height_mm * mm,
                    )
                finally:
                    page.close()
                pdf.showPage()
                page_count += 1
            pdf.save()
        except RenderFailure:
            raise
        except Exception as e:
            raise RenderFailure(f"PDF assembly failed: {e}", stage="assemble") from e
        finally:
            pages.close()

        return ExportArtifact(
            document_number=document_number,
            filename=artifact_filename(document_number, prefix),
            content=buffer.getvalue(),
            media_type="application/pdf",
            page_count=page_count,
        )

    def _check_width(self, surface: Surface):
        if surface.width != self.geometry.width_px:
            raise RenderFailure(
                f"Surface is {surface.width}px wide, pages are {self.geometry.width_px}px",
                stage="paginate",
            )


def page_images(pages: List[RenderedPage]) -> List[Image.Image]:
    """Decode preview pages back into images; the caller closes them"""
    images = []
    for page in pages:
        with Image.open(io.BytesIO(page.image_bytes)) as img:
            images.append(img.convert("RGB"))
    return images
