"""
Page slicing

A rendered surface is W px wide and H px tall; a page holds P px of it.
Page i shows rows i*P .. min((i+1)*P, H) by drawing the whole surface at
vertical offset -(i*P) onto a blank W x P page.

Slicing stops as soon as the remaining height is non-positive, so content
that is an exact multiple of P never gets a blank trailing page. A trailing
sliver no taller than the configured remainder threshold is dropped rather
than given a near-empty page of its own.
"""

import io
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from PIL import Image

from models.document import RenderedPage
from rendering.surface import Surface
from utils.config import PipelineConfig
from utils.errors import RenderFailure


@dataclass(frozen=True)
class PageGeometry:
    """Page size in surface pixels plus the physical page it maps onto"""
    width_px: int
    height_px: int
    remainder_threshold_px: int
    page_width_mm: float
    page_height_mm: float
    margin_left_mm: float
    margin_bottom_mm: float
    printable_width_mm: float
    printable_height_mm: float

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "PageGeometry":
        px = config.px_per_mm
        return cls(
            width_px=int(round(config.printable_width_mm * px)),
            height_px=int(round(config.printable_height_mm * px)),
            remainder_threshold_px=int(round(config.trailing_remainder_mm * px)),
            page_width_mm=config.page_width_mm,
            page_height_mm=config.page_height_mm,
            margin_left_mm=config.margin_left_mm,
            margin_bottom_mm=config.margin_bottom_mm,
            printable_width_mm=config.printable_width_mm,
            printable_height_mm=config.printable_height_mm,
        )


@dataclass(frozen=True)
class PageSlice:
    index: int
    top: int
    bottom: int

    @property
    def offset(self) -> int:
        """Where the surface is drawn relative to the page origin"""
        return -self.top

    @property
    def height(self) -> int:
        return self.bottom - self.top


class Paginator:
    """Cuts a tall surface into fixed-size pages"""

    def __init__(self, page_height: int, remainder_threshold: int = 0):
        if page_height <= 0:
            raise ValueError(f"Page height must be positive, got {page_height}")
        if remainder_threshold < 0:
            raise ValueError(f"Remainder threshold cannot be negative, got {remainder_threshold}")
        self.page_height = page_height
        self.remainder_threshold = remainder_threshold

    @classmethod
    def from_geometry(cls, geometry: PageGeometry) -> "Paginator":
        return cls(geometry.height_px, geometry.remainder_threshold_px)

    def page_count(self, surface_height: int) -> int:
        return len(self.plan(surface_height))

    def plan(self, surface_height: int) -> List[PageSlice]:
        """
        Page boundaries for a surface of the given height

        floor(H/P) full pages, plus one for the remainder only when it is
        taller than the threshold. Non-empty content always gets a page.
        """
        if surface_height <= 0:
            raise RenderFailure(f"Nothing to paginate: surface height is {surface_height}", stage="paginate")

        slices = []
        remaining = surface_height
        top = 0
        while remaining > 0:
            if slices and remaining <= self.remainder_threshold and remaining < self.page_height:
                break
            bottom = min(top + self.page_height, surface_height)
            slices.append(PageSlice(index=len(slices), top=top, bottom=bottom))
            top = bottom
            remaining -= self.page_height
        return slices

    def iter_pages(self, surface: Surface, background="white") -> Iterator[Tuple[PageSlice, Image.Image]]:
        """
        Yield (slice, W x P page image) for each page, in order

        Each yielded image belongs to the caller, who must close it.
        """
        source = surface.rasterize()
        for page_slice in self.plan(source.height):
            page = Image.new("RGB", (source.width, self.page_height), background)
            page.paste(source, (0, page_slice.offset))
            yield page_slice, page

    def slice(self, surface: Surface) -> List[RenderedPage]:
        """All pages as PNG-encoded RenderedPage values"""
        rendered = []
        pages = self.iter_pages(surface)
        try:
            for page_slice, image in pages:
                width, height = image.size
                try:
                    buffer = io.BytesIO()
                    image.save(buffer, format="PNG")
                finally:
                    image.close()
                rendered.append(RenderedPage(
                    page_number=page_slice.index + 1,
                    width=width,
                    height=height,
                    source_top=page_slice.top,
                    source_bottom=page_slice.bottom,
                    image_bytes=buffer.getvalue(),
                ))
        finally:
            pages.close()
        return rendered


def stitch_pages(pages: List[RenderedPage]) -> Image.Image:
    """
    Reassemble page images into one surface-high image

    Only the content rows of each page are used; this is the inverse of
    Paginator.slice for every row that made it onto a page.
    """
    if not pages:
        raise ValueError("No pages to stitch")
    width = pages[0].width
    height = sum(page.content_height for page in pages)
    result = Image.new("RGB", (width, height), "white")
    for page in pages:
        with Image.open(io.BytesIO(page.image_bytes)) as img:
            content = img.crop((0, 0, width, page.content_height))
            result.paste(content, (0, page.source_top))
            content.close()
    return result
