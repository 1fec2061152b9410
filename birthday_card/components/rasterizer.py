import io
import logging
from typing import Callable, Optional

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from ..helper import from_data_url
from .stock_images import fetch_stock_image

logger = logging.getLogger(__name__)

# Card geometry at scale 1, in CSS pixels
CARD_WIDTH = 600
IMAGE_HEIGHT = 400
PADDING = 40
LINE_SPACING = 8

FONT_CANDIDATES = ("DejaVuSerif.ttf", "DejaVuSans.ttf", "arial.ttf")
FONT_SIZES = {
    "recipient": 26,
    "message": 20,
    "signature": 22,
}
COLORS = {
    "recipient": "#6b2d5c",
    "message": "#333333",
    "signature": "#b0457f",
}


class RasterizationError(Exception):
    """The card could not be turned into a bitmap."""


def _load_font(size: int):
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> list[str]:
    """Word-wrap text to max_width, keeping explicit (and blank) lines."""
    lines: list[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if draw.textlength(candidate, font=font) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class CardRasterizer:
    """Draws a rendered card view into a PNG snapshot with Pillow."""

    def __init__(
        self,
        scale: int = 2,
        background: str = "#ffffff",
        fetch_image: Optional[Callable[[str], bytes]] = None,
        timeout: float = 15.0,
    ):
        self.scale = scale
        self.background = background
        self.timeout = timeout
        self._fetch_image = fetch_image or (lambda url: fetch_stock_image(url, timeout=self.timeout))

    def _image_bytes(self, src: str) -> bytes:
        data = from_data_url(src)
        if data is not None:
            return data
        # Remote images are loaded regardless of origin
        return self._fetch_image(src)

    def render(self, view) -> bytes:
        """Return PNG bytes for the card currently shown in view.

        Raises:
            RasterizationError: when the image cannot be loaded or drawn
        """
        try:
            return self._render(view)
        except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as e:
            raise RasterizationError(f"Card rasterization failed: {e}") from e

    def _render(self, view) -> bytes:
        s = self.scale
        width = CARD_WIDTH * s
        text_width = width - 2 * PADDING * s

        fonts = {key: _load_font(size * s) for key, size in FONT_SIZES.items()}
        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        message_lines = _wrap(measure, view.message or "", fonts["message"], text_width)

        def line_height(font) -> int:
            _, top, _, bottom = font.getbbox("Hg")
            return (bottom - top) + LINE_SPACING * s

        height = IMAGE_HEIGHT * s + PADDING * s
        height += line_height(fonts["recipient"]) + PADDING * s // 2
        height += line_height(fonts["message"]) * max(len(message_lines), 1)
        height += PADDING * s // 2 + line_height(fonts["signature"]) + PADDING * s

        card = Image.new("RGB", (width, height), color=self.background)

        if view.image_src:
            with Image.open(io.BytesIO(self._image_bytes(view.image_src))) as photo:
                photo = ImageOps.fit(photo.convert("RGB"), (width, IMAGE_HEIGHT * s))
                card.paste(photo, (0, 0))

        draw = ImageDraw.Draw(card)
        x = PADDING * s
        y = IMAGE_HEIGHT * s + PADDING * s

        draw.text((x, y), view.recipient or "", font=fonts["recipient"], fill=COLORS["recipient"])
        y += line_height(fonts["recipient"]) + PADDING * s // 2

        for line in message_lines:
            if line:
                draw.text((x, y), line, font=fonts["message"], fill=COLORS["message"])
            y += line_height(fonts["message"])

        y += PADDING * s // 2
        draw.text((x, y), view.signature or "", font=fonts["signature"], fill=COLORS["signature"])

        out = io.BytesIO()
        card.save(out, format="PNG")
        logger.info("[render] card rasterized at %sx (%dx%d)", s, width, height)
        return out.getvalue()
