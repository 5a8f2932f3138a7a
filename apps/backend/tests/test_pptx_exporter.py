import json
from io import BytesIO

from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from services.outline.models import PresentationState, SlideLayout, SlideRecord
from services.pptx_exporter import (
    IMAGE_BACKGROUND_COLORS,
    JsonDeckExporter,
    PptxDeckExporter,
    decode_data_uri,
    theme_colors,
)


def deck(png_data_uri, background=None):
    slides = [
        SlideRecord(title="Binary Search", layout=SlideLayout.TITLE, speaker_notes="Welcome.", subtitle="Halving"),
        SlideRecord(title="Why", layout=SlideLayout.BULLETS, speaker_notes="Motivation.", bullets=["Fast", "Simple"]),
        SlideRecord(title="Compare", layout=SlideLayout.TWO_COLUMN, speaker_notes="n",
                    column_left=["Linear"], column_right=["Binary"]),
        SlideRecord(title="Motto", layout=SlideLayout.QUOTE, speaker_notes="n", quote="Halve it.", author="Knuth"),
        SlideRecord(title="Cost", layout=SlideLayout.BIG_NUMBER, speaker_notes="n", statistic="O(log n)"),
        SlideRecord(title="Code", layout=SlideLayout.CODE, speaker_notes="n", language="python",
                    code="lo, hi = 0, len(a)\nwhile lo < hi:\n    mid = (lo + hi) // 2",
                    description="The loop."),
        SlideRecord(title="Picture", layout=SlideLayout.IMAGE_TEXT, speaker_notes="n",
                    bullets=["Dictionary"], image_prompt="a dictionary", image_url=png_data_uri),
    ]
    return PresentationState(slides=slides, title="Binary Search", theme="dark", background_image=background)


def reopen(data):
    return Presentation(BytesIO(data))


def pictures(slide):
    return [s for s in slide.shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE]


def slide_text(slide):
    return "\n".join(s.text_frame.text for s in slide.shapes if s.has_text_frame)


def test_every_layout_is_rendered(png_data_uri):
    prs = reopen(PptxDeckExporter().export(deck(png_data_uri)))
    slides = list(prs.slides)

    assert len(slides) == 7
    assert slides[0].notes_slide.notes_text_frame.text == "Welcome."
    assert "Halving" in slide_text(slides[0])
    assert "• Fast" in slide_text(slides[1])
    assert "Linear" in slide_text(slides[2]) and "Binary" in slide_text(slides[2])
    assert "Knuth" in slide_text(slides[3])
    assert "O(log n)" in slide_text(slides[4])
    assert "mid = (lo + hi) // 2" in slide_text(slides[5])
    assert "python" in slide_text(slides[5])
    assert len(pictures(slides[6])) == 1
    assert not pictures(slides[1])


def test_background_image_is_placed_on_every_slide(png_data_uri):
    prs = reopen(PptxDeckExporter().export(deck(png_data_uri, background=png_data_uri)))
    counts = [len(pictures(slide)) for slide in prs.slides]
    assert counts == [1, 1, 1, 1, 1, 1, 2]


def test_unusable_image_reference_is_skipped():
    state = PresentationState(slides=[SlideRecord(
        title="Picture", layout=SlideLayout.IMAGE_TEXT, speaker_notes="n",
        bullets=["a"], image_prompt="p", image_url="https://example.com/cat.png",
    )])
    prs = reopen(PptxDeckExporter().export(state))
    assert not pictures(prs.slides[0])


def test_data_uri_decoding(png_bytes, png_data_uri):
    assert decode_data_uri(png_data_uri) == png_bytes
    assert decode_data_uri("https://example.com/cat.png") is None
    assert decode_data_uri("data:image/png,rawtext") is None
    assert decode_data_uri("") is None


def test_text_is_light_over_background_images():
    assert theme_colors("light", has_background_image=True) == IMAGE_BACKGROUND_COLORS
    assert theme_colors("light")["text"] != "ffffff"
    assert theme_colors("unknown") == theme_colors("light")


def test_json_export_is_camel_case(png_data_uri):
    data = json.loads(JsonDeckExporter().export(deck(png_data_uri)))
    assert data["theme"] == "dark"
    assert data["slides"][5]["speakerNotes"] == "n"
    assert data["slides"][6]["imageUrl"] == png_data_uri
    assert "columnLeft" in data["slides"][2]
