"""Draw an ESC/POS command stream as a PNG approximation of the paper."""

from __future__ import annotations

import io
from typing import Iterable, List

from PIL import Image, ImageDraw, ImageFont

from .escpos import Align, Barcode, Bold, Command, PrintMode, QRStore, Text
from .layout import Alignment, TextSize

# printable dot width at 8 dots/mm
PAPER_PIXELS = {"58mm": 384, "80mm": 576}
MARGIN = 8
FONT_SIZE = 14
SMALL_FONT_SIZE = 12


def _font(size: int):
    try:
        return ImageFont.truetype("DejaVuSansMono.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _line_image(text: str, font, *, bold: bool, tall: bool) -> Image.Image:
    left, top, right, bottom = font.getbbox(text or " ")
    height = bottom - top + 4
    image = Image.new("L", (max(right - left, 1) + 3, height), 255)
    draw = ImageDraw.Draw(image)
    for dx in ((0, 1) if bold else (0,)):
        draw.text((dx - left, 2 - top), text, font=font, fill=0)
    if tall:
        image = image.resize((image.width, image.height * 2))
    return image


def _rows(commands: Iterable[Command]) -> List[tuple[Image.Image, Alignment]]:
    fonts = {TextSize.SMALL: _font(SMALL_FONT_SIZE)}
    default = _font(FONT_SIZE)
    align, bold, size = Alignment.LEFT, False, TextSize.NORMAL
    rows: List[tuple[Image.Image, Alignment]] = []
    for command in commands:
        if isinstance(command, Align):
            align = Alignment(command.alignment)
        elif isinstance(command, Bold):
            bold = command.on
        elif isinstance(command, PrintMode):
            size = TextSize(command.size)
        elif isinstance(command, Text):
            font = fonts.get(size, default)
            tall = size is TextSize.DOUBLE_HEIGHT
            rows.append((_line_image(command.text, font, bold=bold, tall=tall), align))
        elif isinstance(command, Barcode):
            label = f"|| {command.payload} ||"
            rows.append((_line_image(label, default, bold=True, tall=True), align))
        elif isinstance(command, QRStore):
            rows.append((_line_image("[QR]", default, bold=True, tall=True), align))
    return rows


def render_receipt_image(commands: Iterable[Command], paper: str = "80mm") -> bytes:
    """Render ``commands`` onto a strip as wide as ``paper`` and return PNG bytes.

    Alignment, bold and double height are honoured. Barcodes and QR codes are
    drawn as labelled placeholders.
    """
    rows = _rows(commands) or [
        (_line_image("", _font(FONT_SIZE), bold=False, tall=False), Alignment.LEFT)
    ]
    content = max(image.width for image, _ in rows)
    width = max(PAPER_PIXELS.get(paper, 0), content + 2 * MARGIN)
    height = sum(image.height for image, _ in rows) + 2 * MARGIN

    strip = Image.new("L", (width, height), 255)
    y = MARGIN
    for image, align in rows:
        if align is Alignment.CENTER:
            x = (width - image.width) // 2
        elif align is Alignment.RIGHT:
            x = width - MARGIN - image.width
        else:
            x = MARGIN
        strip.paste(image, (x, y))
        y += image.height

    buf = io.BytesIO()
    strip.save(buf, format="PNG")
    return buf.getvalue()
