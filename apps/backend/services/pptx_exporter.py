"""
Deck export

Renders a PresentationState snapshot to a 16:9 PowerPoint file with
python-pptx (one visual treatment per layout, speaker notes, embedded data
URI images), or to camelCase JSON.
"""

import base64
import binascii
from io import BytesIO
from typing import Dict, List, Optional

from PIL import Image, UnidentifiedImageError
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Inches, Pt

from agents.core.interfaces import IDeckExporter
from services.outline.models import PresentationState, SlideLayout, SlideRecord
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

SLIDE_WIDTH = 10.0
SLIDE_HEIGHT = 5.625
FONT_FACE = "Microsoft YaHei"
CODE_FONT_FACE = "Courier New"
# Code this long moves the description into a side column
SPLIT_CODE_LINES = 6

THEME_COLORS: Dict[str, Dict[str, str]] = {
    "light": {"bg": "ffffff", "text": "111827", "accent": "4f46e5", "muted": "6b7280"},
    "dark": {"bg": "0f172a", "text": "ffffff", "accent": "818cf8", "muted": "cbd5e1"},
    "blue": {"bg": "1e3a8a", "text": "eff6ff", "accent": "93c5fd", "muted": "bfdbfe"},
    "modern": {"bg": "f5f5f5", "text": "171717", "accent": "f43f5e", "muted": "737373"},
}
# Text over a background picture is always light
IMAGE_BACKGROUND_COLORS = {"bg": "000000", "text": "ffffff", "accent": "ffffff", "muted": "e5e5e5"}


def theme_colors(theme: str, has_background_image: bool = False) -> Dict[str, str]:
    if has_background_image:
        return IMAGE_BACKGROUND_COLORS
    return THEME_COLORS.get(theme, THEME_COLORS["light"])


def decode_data_uri(uri: str) -> Optional[bytes]:
    """Bytes behind a ``data:...;base64,`` URI, or None if it isn't one."""
    if not uri or not uri.startswith("data:") or "," not in uri:
        return None
    header, payload = uri.split(",", 1)
    if ";base64" not in header:
        return None
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError):
        return None


def export_deck_json(state: PresentationState) -> bytes:
    """camelCase JSON for a deck snapshot."""
    return state.model_dump_json(by_alias=True, indent=2).encode("utf-8")


class JsonDeckExporter(IDeckExporter):
    media_type = "application/json"

    def export(self, state: PresentationState) -> bytes:
        return export_deck_json(state)


class PptxDeckExporter(IDeckExporter):
    """PowerPoint rendering of a deck.

    Positions are in inches on a 10 x 5.625 canvas. Slides whose image is not
    a data URI (or fails to decode) are rendered without it.
    """

    media_type = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

    def __init__(self, font_face: str = FONT_FACE):
        self.font_face = font_face

    def export(self, state: PresentationState) -> bytes:
        prs = Presentation()
        prs.slide_width = Inches(SLIDE_WIDTH)
        prs.slide_height = Inches(SLIDE_HEIGHT)
        blank = prs.slide_layouts[6]

        background = decode_data_uri(state.background_image) if state.background_image else None
        colors = theme_colors(state.theme, background is not None)

        for record in state.slides:
            slide = prs.slides.add_slide(blank)
            self._paint_background(slide, colors, background)
            if record.speaker_notes:
                slide.notes_slide.notes_text_frame.text = record.speaker_notes
            self._render(slide, record, colors)

        buffer = BytesIO()
        prs.save(buffer)
        logger.info(f"[EXPORT] Rendered {len(state.slides)} slides to PPTX ({buffer.tell()} bytes)")
        return buffer.getvalue()

    # --- backgrounds ---

    def _paint_background(self, slide, colors: Dict[str, str], background: Optional[bytes]) -> None:
        if background is not None:
            _add_cover_picture(slide, background, 0, 0, SLIDE_WIDTH, SLIDE_HEIGHT)
            _add_rect(slide, 0, 0, SLIDE_WIDTH, SLIDE_HEIGHT, "000000", transparency=60)
            return
        fill = slide.background.fill
        fill.solid()
        fill.fore_color.rgb = RGBColor.from_string(colors["bg"])
        for x, y, size in ((8.5, -1.5, 3.0), (-1.0, 4.5, 2.5)):
            shape = slide.shapes.add_shape(MSO_SHAPE.OVAL, Inches(x), Inches(y), Inches(size), Inches(size))
            _fill(shape, colors["text"], transparency=97)
            shape.line.fill.background()

    # --- layouts ---

    def _render(self, slide, record: SlideRecord, colors: Dict[str, str]) -> None:
        layout = record.layout
        if layout == SlideLayout.TITLE:
            self._text(slide, record.title, 0.5, 2.0, 9.0, 1.5, 44, colors["accent"], bold=True, align=PP_ALIGN.CENTER)
            if record.subtitle:
                self._text(slide, record.subtitle, 1.5, 3.5, 7.0, 1.0, 24, colors["muted"], align=PP_ALIGN.CENTER)
        elif layout == SlideLayout.TWO_COLUMN:
            self._heading(slide, record.title, colors)
            self._bullets(slide, record.column_left or [], 0.5, 1.4, 4.25, 4.0, 16, colors)
            self._bullets(slide, record.column_right or [], 5.25, 1.4, 4.25, 4.0, 16, colors)
        elif layout == SlideLayout.QUOTE:
            self._text(slide, "“", 0.5, 1.0, 9.0, 1.0, 80, colors["accent"], align=PP_ALIGN.CENTER)
            self._text(slide, f"\"{record.quote or ''}\"", 1.0, 2.0, 8.0, 2.0, 28, colors["text"],
                       italic=True, align=PP_ALIGN.CENTER, font_face="Georgia")
            if record.author:
                self._text(slide, f"- {record.author}", 1.0, 4.0, 8.0, 0.5, 18, colors["accent"],
                           bold=True, align=PP_ALIGN.CENTER)
        elif layout == SlideLayout.BIG_NUMBER:
            self._text(slide, record.title, 0.5, 0.5, 9.0, 0.5, 24, colors["muted"], bold=True, align=PP_ALIGN.CENTER)
            if record.statistic:
                self._text(slide, record.statistic, 0.0, 1.5, SLIDE_WIDTH, 2.0, 80, colors["accent"],
                           bold=True, align=PP_ALIGN.CENTER)
            if record.description:
                self._text(slide, record.description, 2.0, 3.5, 6.0, 1.5, 18, colors["text"], align=PP_ALIGN.CENTER)
        elif layout == SlideLayout.CODE:
            self._render_code(slide, record, colors)
        elif layout == SlideLayout.IMAGE_TEXT:
            self._heading(slide, record.title, colors)
            self._bullets(slide, record.bullets or [], 0.5, 1.4, 4.5, 4.0, 18, colors)
            image = decode_data_uri(record.image_url) if record.image_url else None
            if image is not None:
                _add_cover_picture(slide, image, 5.25, 1.4, 4.25, 4.0)
        else:
            self._heading(slide, record.title, colors)
            self._bullets(slide, record.bullets or [], 0.5, 1.4, 9.0, 4.0, 18, colors)

    def _render_code(self, slide, record: SlideRecord, colors: Dict[str, str]) -> None:
        self._text(slide, record.title, 0.5, 0.4, 9.0, 0.8, 32, colors["accent"], bold=True)

        code = record.code or ""
        if len(code.split("\n")) >= SPLIT_CODE_LINES:
            code_box, text_box = (0.5, 1.4, 4.8, 3.8), (5.6, 1.4, 3.9, 3.8)
        else:
            code_box, text_box = (0.5, 1.4, 9.0, 2.5), (0.5, 4.1, 9.0, 1.3)

        x, y, w, h = code_box
        _add_rect(slide, x, y, w, 0.3, "252526", line="1e1e1e")
        _add_rect(slide, x, y + 0.3, w, h - 0.3, "1e1e1e", line="2d2d2d")
        if record.language:
            self._text(slide, record.language, x + 0.1, y, w - 0.2, 0.3, 9, "9ca3af", font_face=CODE_FONT_FACE)
        if code:
            self._text(slide, code, x + 0.1, y + 0.4, w - 0.2, h - 0.5, 10, "d4d4d4", font_face=CODE_FONT_FACE)
        if record.description:
            self._text(slide, record.description, *text_box, 14, colors["text"])

    # --- primitives ---

    def _heading(self, slide, title: str, colors: Dict[str, str]) -> None:
        self._text(slide, title, 0.5, 0.4, 9.0, 1.0, 32, colors["accent"], bold=True)

    def _bullets(self, slide, items: List[str], x, y, w, h, size: int, colors: Dict[str, str]) -> None:
        if not items:
            return
        box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
        frame = box.text_frame
        frame.word_wrap = True
        frame.vertical_anchor = MSO_ANCHOR.TOP
        for i, item in enumerate(items):
            paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
            paragraph.space_after = Pt(8)
            self._run(paragraph, f"• {item}", size, colors["text"])

    def _text(self, slide, text: str, x, y, w, h, size: int, color: str,
              bold: bool = False, italic: bool = False, align=PP_ALIGN.LEFT, font_face: str = None) -> None:
        box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
        frame = box.text_frame
        frame.word_wrap = True
        frame.vertical_anchor = MSO_ANCHOR.TOP
        for i, line in enumerate(text.split("\n")):
            paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
            paragraph.alignment = align
            self._run(paragraph, line, size, color, bold, italic, font_face)

    def _run(self, paragraph, text: str, size: int, color: str,
             bold: bool = False, italic: bool = False, font_face: str = None) -> None:
        run = paragraph.add_run()
        run.text = text
        font = run.font
        font.size = Pt(size)
        font.bold = bold
        font.italic = italic
        font.name = font_face or self.font_face
        font.color.rgb = RGBColor.from_string(color)


def _fill(shape, color: str, transparency: int = 0) -> None:
    shape.fill.solid()
    shape.fill.fore_color.rgb = RGBColor.from_string(color)
    if transparency:
        # python-pptx has no alpha API; set <a:alpha> on the srgbClr directly
        srgb = shape.fill._xPr.find(qn("a:solidFill")).find(qn("a:srgbClr"))
        alpha = srgb.makeelement(qn("a:alpha"), {"val": str((100 - transparency) * 1000)})
        srgb.append(alpha)


def _add_rect(slide, x, y, w, h, color: str, line: str = None, transparency: int = 0):
    shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Inches(x), Inches(y), Inches(w), Inches(h))
    _fill(shape, color, transparency)
    if line:
        shape.line.color.rgb = RGBColor.from_string(line)
        shape.line.width = Pt(1)
    else:
        shape.line.fill.background()
    return shape


def _add_cover_picture(slide, data: bytes, x, y, w, h):
    """Picture scaled to fill the box, cropped centrally like CSS ``cover``."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"[EXPORT] Skipping unreadable image: {e}")
        return None

    picture = slide.shapes.add_picture(BytesIO(data), Inches(x), Inches(y), Inches(w), Inches(h))
    box_ratio, image_ratio = w / h, width / height
    if image_ratio > box_ratio:
        crop = (1 - box_ratio / image_ratio) / 2
        picture.crop_left = picture.crop_right = crop
    elif image_ratio < box_ratio:
        crop = (1 - image_ratio / box_ratio) / 2
        picture.crop_top = picture.crop_bottom = crop
    return picture
