"""
Block layout

A document is a vertical stack of blocks. Each block reports its natural
height for a given width and then draws itself at a y offset, so the surface
can be allocated at exactly the stacked height before anything is drawn.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from rendering.surface import FontSet, RasterSurface, Surface, fit_image, line_height, text_width
from utils.errors import RenderFailure

TEXT_COLOR = (51, 51, 51)
MUTED_COLOR = (102, 102, 102)
BORDER_COLOR = (204, 204, 204)
HEADER_FILL = (245, 245, 245)


@dataclass
class RenderContext:
    """Per-document drawing parameters"""
    fonts: FontSet
    px_per_mm: float

    def mm(self, value: float) -> int:
        return int(round(value * self.px_per_mm))


@dataclass
class TextStyle:
    size_mm: float = 3.0
    bold: bool = False
    color: Tuple[int, int, int] = TEXT_COLOR
    align: str = "left"


BODY = TextStyle()
SMALL = TextStyle(size_mm=2.6, color=MUTED_COLOR)
LABEL = TextStyle(bold=True)
HEADING = TextStyle(size_mm=3.8, bold=True)
TITLE = TextStyle(size_mm=6.5, bold=True)


def wrap_text(text: str, font, max_width: int) -> List[str]:
    """Greedy word wrap by pixel width; words wider than a line are split"""
    lines: List[str] = []
    for paragraph in str(text).split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if text_width(font, candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while text_width(font, word) > max_width and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and text_width(font, word[:cut]) > max_width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


class Block:
    def measure(self, ctx: RenderContext, width: int) -> int:
        raise NotImplementedError

    def draw(self, surface: Surface, ctx: RenderContext, x: int, y: int, width: int) -> None:
        raise NotImplementedError


class Spacer(Block):
    def __init__(self, height_mm: float):
        self.height_mm = height_mm

    def measure(self, ctx, width):
        return ctx.mm(self.height_mm)

    def draw(self, surface, ctx, x, y, width):
        pass


class Rule(Block):
    """Horizontal line with a little air above and below"""

    def __init__(self, thickness_mm: float = 0.3, color=TEXT_COLOR, gap_mm: float = 2.0):
        self.thickness_mm = thickness_mm
        self.color = color
        self.gap_mm = gap_mm

    def measure(self, ctx, width):
        return 2 * ctx.mm(self.gap_mm) + max(1, ctx.mm(self.thickness_mm))

    def draw(self, surface, ctx, x, y, width):
        thickness = max(1, ctx.mm(self.thickness_mm))
        line_y = y + ctx.mm(self.gap_mm)
        surface.draw_rect((x, line_y, x + width - 1, line_y + thickness - 1), fill=self.color)


class Paragraph(Block):
    """Lines of wrapped text, each with its own style"""

    def __init__(self, lines: Sequence[Tuple[str, TextStyle]], spacing_mm: float = 1.0):
        self.lines = list(lines)
        self.spacing_mm = spacing_mm

    def _layout(self, ctx, width):
        rows = []
        for text, style in self.lines:
            font = ctx.fonts.get(style.size_mm, style.bold)
            for wrapped in wrap_text(text, font, width):
                rows.append((wrapped, style, font))
        return rows

    def measure(self, ctx, width):
        rows = self._layout(ctx, width)
        gap = ctx.mm(self.spacing_mm)
        return sum(line_height(font) + gap for _, _, font in rows)

    def draw(self, surface, ctx, x, y, width):
        gap = ctx.mm(self.spacing_mm)
        for text, style, font in self._layout(ctx, width):
            if style.align == "right":
                tx = x + width - text_width(font, text)
            elif style.align == "center":
                tx = x + (width - text_width(font, text)) // 2
            else:
                tx = x
            surface.draw_text((tx, y), text, font, fill=style.color)
            y += line_height(font) + gap


class Badge(Block):
    """Short label on a filled background, e.g. payment status"""

    def __init__(self, text: str, fill, align: str = "right", style: TextStyle = None):
        self.text = text
        self.fill = fill
        self.align = align
        self.style = style or TextStyle(size_mm=2.8, bold=True, color=(255, 255, 255))

    def measure(self, ctx, width):
        font = ctx.fonts.get(self.style.size_mm, self.style.bold)
        return line_height(font) + 2 * ctx.mm(1.0)

    def draw(self, surface, ctx, x, y, width):
        font = ctx.fonts.get(self.style.size_mm, self.style.bold)
        pad = ctx.mm(1.0)
        box_w = text_width(font, self.text) + 4 * pad
        box_h = line_height(font) + 2 * pad
        left = x + width - box_w if self.align == "right" else x
        surface.draw_rect((left, y, left + box_w - 1, y + box_h - 1), fill=self.fill)
        surface.draw_text((left + 2 * pad, y + pad), self.text, font, fill=self.style.color)


class ImageBlock(Block):
    """A pre-loaded image scaled into a box"""

    def __init__(self, image: Image.Image, max_width_mm: float, max_height_mm: float, align: str = "left"):
        self.image = image
        self.max_width_mm = max_width_mm
        self.max_height_mm = max_height_mm
        self.align = align

    def _fitted(self, ctx, width):
        return fit_image(self.image, min(width, ctx.mm(self.max_width_mm)), ctx.mm(self.max_height_mm))

    def measure(self, ctx, width):
        fitted = self._fitted(ctx, width)
        try:
            return fitted.height
        finally:
            fitted.close()

    def draw(self, surface, ctx, x, y, width):
        fitted = self._fitted(ctx, width)
        try:
            left = x + width - fitted.width if self.align == "right" else x
            surface.paste_image(fitted, (left, y))
        finally:
            fitted.close()


class Columns(Block):
    """Blocks side by side; height is the tallest column"""

    def __init__(self, blocks: Sequence[Block], weights: Optional[Sequence[float]] = None, gap_mm: float = 6.0):
        self.blocks = list(blocks)
        self.weights = list(weights or [1] * len(self.blocks))
        self.gap_mm = gap_mm

    def _widths(self, ctx, width):
        gap = ctx.mm(self.gap_mm)
        usable = width - gap * (len(self.blocks) - 1)
        total = sum(self.weights)
        widths = [int(usable * w / total) for w in self.weights]
        widths[-1] = usable - sum(widths[:-1])
        return widths, gap

    def measure(self, ctx, width):
        widths, _ = self._widths(ctx, width)
        return max(block.measure(ctx, w) for block, w in zip(self.blocks, widths))

    def draw(self, surface, ctx, x, y, width):
        widths, gap = self._widths(ctx, width)
        for block, w in zip(self.blocks, widths):
            block.draw(surface, ctx, x, y, w)
            x += w + gap


class Stack(Block):
    """Blocks stacked vertically inside one column"""

    def __init__(self, blocks: Sequence[Block]):
        self.blocks = list(blocks)

    def measure(self, ctx, width):
        return sum(block.measure(ctx, width) for block in self.blocks)

    def draw(self, surface, ctx, x, y, width):
        for block in self.blocks:
            block.draw(surface, ctx, x, y, width)
            y += block.measure(ctx, width)


class Section(Block):
    """Optional heading over a body block, inside an optional border"""

    def __init__(self, title: Optional[str], body: Block, border: bool = False, padding_mm: float = 2.5):
        self.title = title
        self.body = body
        self.border = border
        self.padding_mm = padding_mm

    def _title_height(self, ctx):
        if not self.title:
            return 0
        font = ctx.fonts.get(HEADING.size_mm, HEADING.bold)
        return line_height(font) + ctx.mm(2.0)

    def _pad(self, ctx):
        return ctx.mm(self.padding_mm) if self.border else 0

    def measure(self, ctx, width):
        pad = self._pad(ctx)
        return 2 * pad + self._title_height(ctx) + self.body.measure(ctx, width - 2 * pad)

    def draw(self, surface, ctx, x, y, width):
        pad = self._pad(ctx)
        if self.border:
            height = self.measure(ctx, width)
            surface.draw_rect((x, y, x + width - 1, y + height - 1), outline=BORDER_COLOR, width=max(1, ctx.mm(0.25)))
        inner_y = y + pad
        if self.title:
            font = ctx.fonts.get(HEADING.size_mm, HEADING.bold)
            surface.draw_text((x + pad, inner_y), self.title, font, fill=HEADING.color)
            inner_y += self._title_height(ctx)
        self.body.draw(surface, ctx, x + pad, inner_y, width - 2 * pad)


@dataclass
class Column:
    title: str
    weight: float = 1.0
    align: str = "left"


@dataclass
class Cell:
    """Table cell: text, or an image when one is given"""
    text: str = ""
    image: Optional[Image.Image] = None
    bold: bool = False


@dataclass
class Table(Block):
    columns: List[Column]
    rows: List[List[Cell]]
    footer: Optional[List[Cell]] = None
    empty_text: str = "No items found"
    font_mm: float = 2.8
    padding_mm: float = 1.8
    image_mm: float = 12.0
    _cache: dict = field(default_factory=dict, repr=False)

    def _widths(self, width):
        total = sum(c.weight for c in self.columns)
        widths = [int(width * c.weight / total) for c in self.columns]
        widths[-1] = width - sum(widths[:-1])
        return widths

    def _all_rows(self):
        header = [Cell(c.title, bold=True) for c in self.columns]
        rows = [('header', header)]
        if self.rows:
            rows.extend(('body', row) for row in self.rows)
        else:
            rows.append(('empty', [Cell(self.empty_text)]))
        if self.footer:
            rows.append(('footer', self.footer))
        return rows

    def _cell_lines(self, ctx, cell, width):
        font = ctx.fonts.get(self.font_mm, cell.bold)
        return font, wrap_text(cell.text, font, max(1, width))

    def _row_height(self, ctx, kind, cells, widths, table_width):
        pad = ctx.mm(self.padding_mm)
        if kind == 'empty':
            font, lines = self._cell_lines(ctx, cells[0], table_width - 2 * pad)
            return 2 * pad + len(lines) * line_height(font)
        tallest = 0
        for cell, w in zip(cells, widths):
            if cell.image is not None:
                tallest = max(tallest, ctx.mm(self.image_mm))
                continue
            font, lines = self._cell_lines(ctx, cell, w - 2 * pad)
            tallest = max(tallest, len(lines) * line_height(font))
        return 2 * pad + tallest

    def row_heights(self, ctx, width) -> List[int]:
        key = (id(ctx), width)
        if key not in self._cache:
            widths = self._widths(width)
            self._cache[key] = [
                self._row_height(ctx, kind, cells, widths, width)
                for kind, cells in self._all_rows()
            ]
        return self._cache[key]

    def measure(self, ctx, width):
        return sum(self.row_heights(ctx, width))

    def draw(self, surface, ctx, x, y, width):
        widths = self._widths(width)
        pad = ctx.mm(self.padding_mm)
        stroke = max(1, ctx.mm(0.2))

        for (kind, cells), height in zip(self._all_rows(), self.row_heights(ctx, width)):
            if kind in ('header', 'footer'):
                surface.draw_rect((x, y, x + width - 1, y + height - 1), fill=HEADER_FILL)

            if kind == 'empty':
                surface.draw_rect((x, y, x + width - 1, y + height - 1), outline=BORDER_COLOR, width=stroke)
                font, lines = self._cell_lines(ctx, cells[0], width - 2 * pad)
                ty = y + pad
                for text in lines:
                    surface.draw_text((x + (width - text_width(font, text)) // 2, ty), text, font, fill=MUTED_COLOR)
                    ty += line_height(font)
                y += height
                continue

            cx = x
            for cell, column, w in zip(cells, self.columns, widths):
                surface.draw_rect((cx, y, cx + w - 1, y + height - 1), outline=BORDER_COLOR, width=stroke)
                if cell.image is not None:
                    fitted = fit_image(cell.image, w - 2 * pad, ctx.mm(self.image_mm))
                    try:
                        surface.paste_image(fitted, (cx + pad, y + pad))
                    finally:
                        fitted.close()
                else:
                    font, lines = self._cell_lines(ctx, cell, w - 2 * pad)
                    ty = y + pad
                    for text in lines:
                        if column.align == "right":
                            tx = cx + w - pad - text_width(font, text)
                        elif column.align == "center":
                            tx = cx + (w - text_width(font, text)) // 2
                        else:
                            tx = cx + pad
                        surface.draw_text((tx, ty), text, font, fill=TEXT_COLOR)
                        ty += line_height(font)
                cx += w
            y += height


class KeyValueTable(Block):
    """Label / value rows, values right-aligned; used for totals"""

    def __init__(self, rows: Sequence[Tuple[str, str]], emphasis: Sequence[str] = (), width_ratio: float = 0.5):
        self.rows = list(rows)
        self.emphasis = set(emphasis)
        self.width_ratio = width_ratio

    def _row_font(self, ctx, label):
        bold = label in self.emphasis
        return ctx.fonts.get(3.2 if bold else BODY.size_mm, bold)

    def measure(self, ctx, width):
        gap = ctx.mm(1.5)
        return sum(line_height(self._row_font(ctx, label)) + gap for label, _ in self.rows)

    def draw(self, surface, ctx, x, y, width):
        gap = ctx.mm(1.5)
        box_w = int(width * self.width_ratio)
        left = x + width - box_w
        for label, value in self.rows:
            font = self._row_font(ctx, label)
            surface.draw_text((left, y), label, font, fill=TEXT_COLOR)
            surface.draw_text((x + width - text_width(font, value), y), value, font, fill=TEXT_COLOR)
            y += line_height(font) + gap


def render_blocks(blocks: Sequence[Block], ctx: RenderContext, width: int,
                  padding_mm: float = 8.0, block_gap_mm: float = 3.0) -> RasterSurface:
    """
    Lay the blocks out top to bottom on a new surface

    The surface is exactly as tall as its content. On any failure the
    surface is released before RenderFailure propagates.
    """
    pad = ctx.mm(padding_mm)
    gap = ctx.mm(block_gap_mm)
    inner = width - 2 * pad
    if inner <= 0:
        raise RenderFailure(f"Surface width {width}px leaves no room for content", stage="layout")

    try:
        heights = [block.measure(ctx, inner) for block in blocks]
    except RenderFailure:
        raise
    except (OSError, ValueError, TypeError) as e:
        raise RenderFailure(f"Layout failed: {e}", stage="layout") from e

    total = 2 * pad + sum(heights) + gap * max(0, len(blocks) - 1)
    surface = RasterSurface(width, total)
    try:
        y = pad
        for block, height in zip(blocks, heights):
            block.draw(surface, ctx, pad, y, inner)
            y += height + gap
    except RenderFailure:
        surface.close()
        raise
    except (OSError, ValueError, TypeError, UnicodeError) as e:
        surface.close()
        raise RenderFailure(f"Drawing failed: {e}", stage="draw") from e
    return surface
