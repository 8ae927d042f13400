"""
Drawing surfaces

Layouts draw onto a Surface; nothing in rendering knows how the pixels end
up on screen or paper. RasterSurface is the Pillow implementation used for
export and preview. It holds W x H x 3 bytes, so it is a context manager
and must be closed as soon as the pages have been cut from it.
"""

from pathlib import Path
from typing import Optional, Protocol, Tuple, Union

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from utils.errors import RenderFailure

Color = Union[str, Tuple[int, int, int]]
Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


class Surface(Protocol):
    """Something that can be drawn on and later rasterized"""

    width: int
    height: int

    def draw_text(self, xy: Tuple[int, int], text: str, font: Font, fill: Color = "black") -> None: ...

    def draw_line(self, start: Tuple[int, int], end: Tuple[int, int], fill: Color = "black", width: int = 1) -> None: ...

    def draw_rect(self, box: Tuple[int, int, int, int], outline: Optional[Color] = None,
                  fill: Optional[Color] = None, width: int = 1) -> None: ...

    def paste_image(self, image: Image.Image, xy: Tuple[int, int]) -> None: ...

    def rasterize(self) -> Image.Image: ...

    def close(self) -> None: ...


class RasterSurface:
    """Pillow-backed surface of fixed pixel size"""

    def __init__(self, width: int, height: int, background: Color = "white"):
        if width <= 0 or height <= 0:
            raise RenderFailure(f"Cannot allocate a {width}x{height} surface", stage="allocate")
        self.width = width
        self.height = height
        self.background = background
        try:
            self._image = Image.new("RGB", (width, height), background)
        except (MemoryError, ValueError) as e:
            raise RenderFailure(f"Cannot allocate a {width}x{height} surface: {e}", stage="allocate") from e
        self._draw = ImageDraw.Draw(self._image)

    @property
    def closed(self) -> bool:
        return self._image is None

    def _require_open(self):
        if self._image is None:
            raise RenderFailure("Surface already released", stage="draw")

    def draw_text(self, xy, text, font, fill="black"):
        self._require_open()
        self._draw.text(xy, text, font=font, fill=fill)

    def draw_line(self, start, end, fill="black", width=1):
        self._require_open()
        self._draw.line([start, end], fill=fill, width=width)

    def draw_rect(self, box, outline=None, fill=None, width=1):
        self._require_open()
        self._draw.rectangle(box, outline=outline, fill=fill, width=width)

    def paste_image(self, image, xy):
        self._require_open()
        if image.mode == "RGBA":
            self._image.paste(image, xy, image)
        else:
            self._image.paste(image.convert("RGB"), xy)

    def rasterize(self) -> Image.Image:
        """The surface's pixels; valid until close()"""
        self._require_open()
        return self._image

    def close(self):
        if self._image is not None:
            self._image.close()
            self._image = None
            self._draw = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class FontSet:
    """Fonts at the sizes a document uses, scaled to the surface density"""

    def __init__(self, px_per_mm: float, font_path: Optional[str] = None, bold_font_path: Optional[str] = None):
        self.px_per_mm = px_per_mm
        self.font_path = font_path
        self.bold_font_path = bold_font_path or font_path
        self._cache = {}

    def get(self, size_mm: float, bold: bool = False) -> Font:
        size = max(6, int(round(size_mm * self.px_per_mm)))
        key = (size, bold)
        if key not in self._cache:
            self._cache[key] = self._load(size, bold)
        return self._cache[key]

    def _load(self, size: int, bold: bool) -> Font:
        path = self.bold_font_path if bold else self.font_path
        if path:
            try:
                return ImageFont.truetype(path, size)
            except OSError as e:
                raise RenderFailure(f"Cannot load font {path}: {e}", asset=path, stage="fonts") from e
        return ImageFont.load_default(size=size)


def text_width(font: Font, text: str) -> int:
    return int(round(font.getlength(text)))


def line_height(font: Font) -> int:
    """Height of one text line, including descenders"""
    left, top, right, bottom = font.getbbox("Hgjy|")
    return bottom


def load_image(ref: str) -> Image.Image:
    """
    Open an image asset fully into memory

    Raises RenderFailure naming the asset when it is missing or unreadable.
    """
    path = Path(ref)
    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGBA")
    except FileNotFoundError as e:
        raise RenderFailure(f"Image asset not found: {ref}", asset=ref, stage="assets") from e
    except (UnidentifiedImageError, OSError) as e:
        raise RenderFailure(f"Image asset could not be loaded: {ref}: {e}", asset=ref, stage="assets") from e


def fit_image(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Scaled copy that fits the box, keeping the aspect ratio"""
    ratio = min(max_width / image.width, max_height / image.height)
    size = (max(1, int(image.width * ratio)), max(1, int(image.height * ratio)))
    return image.resize(size, Image.LANCZOS)
