"""
PPTX text extractor

Pulls per-slide titles, body text and notes out of a .pptx with python-pptx,
and renders them as Markdown so an imported deck can be outlined like any
other document (one ``##`` section per slide).
"""

from io import BytesIO
from typing import Any, Dict, List, Optional

from pptx import Presentation


def _slide_title(slide) -> Optional[str]:
    title_shape = slide.shapes.title
    if title_shape is not None and title_shape.has_text_frame:
        text = title_shape.text_frame.text.strip()
        if text:
            return text
    return None


def _collect_text_items(slide) -> List[str]:
    items: List[str] = []
    title_shape = slide.shapes.title
    title_id = title_shape.shape_id if title_shape is not None else None
    for shape in slide.shapes:
        if shape.shape_id == title_id:
            continue
        if getattr(shape, "has_table", False) and shape.has_table:
            for row in shape.table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    items.append(" | ".join(cells))
            continue
        if shape.has_text_frame:
            for paragraph in shape.text_frame.paragraphs:
                text = "".join(run.text for run in paragraph.runs).strip()
                if text:
                    # Indented paragraphs keep their nesting as list depth
                    items.append("  " * paragraph.level + f"- {text}")
    return items


def _get_notes(slide) -> str:
    if not slide.has_notes_slide:
        return ""
    frame = slide.notes_slide.notes_text_frame
    return frame.text.strip() if frame is not None else ""


def extract_pptx_text_from_bytes(file_bytes: bytes) -> Dict[str, Any]:
    """
    Extract per-slide title, text items and notes from PPTX bytes.

    Returns:
        {
          "slide_count": int,
          "slides": [
            {"index": int, "title": str, "text_items": [str], "text": str, "notes": str}
          ]
        }
    """
    prs = Presentation(BytesIO(file_bytes))
    result: Dict[str, Any] = {
        "slide_count": len(prs.slides),
        "slides": []
    }

    for idx, slide in enumerate(prs.slides, start=1):
        text_items = _collect_text_items(slide)
        result["slides"].append({
            "index": idx,
            "title": _slide_title(slide) or f"Slide {idx}",
            "text_items": text_items,
            "text": "\n".join(text_items),
            "notes": _get_notes(slide)
        })

    return result


def pptx_to_markdown(extracted: Dict[str, Any]) -> str:
    """Render ``extract_pptx_text_from_bytes`` output as Markdown sections."""
    sections = []
    for slide in extracted.get("slides", []):
        lines = [f"## {slide['title']}"]
        if slide.get("text"):
            lines.extend(["", slide["text"]])
        if slide.get("notes"):
            lines.extend(["", slide["notes"]])
        sections.append("\n".join(lines))
    return "\n\n".join(sections).strip()
