"""Deterministic document segmentation and pagination.

A document is cut into sections at Markdown headers, and long sections are
paged into parts. Every part is an exact, contiguous slice of its section
body, so joining the parts of a section reproduces it character for
character. Parts only ever end at a sentence end, a paragraph break, a list
item, or around a code block; a code block is only cut (at line boundaries)
when it is too large to fit on one slide.
"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from agents import config
from .models import OutlineItem

HEADER_RE = re.compile(r'^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$')
FENCE_RE = re.compile(r'^[ \t]*(```|~~~)')
FENCE_LANGUAGE_RE = re.compile(r'^[ \t]*(?:```|~~~)[ \t]*([\w+#.\-]+)')

# Sentence end (closing quotes/brackets stay with the sentence) plus whitespace
SENTENCE_END_RE = re.compile(r'[.!?]["\')\]]*\s+')
PARAGRAPH_BREAK_RE = re.compile(r'\n[ \t]*\n\s*')
LIST_ITEM_RE = re.compile(r'\n(?=[ \t]*(?:[-*+]|\d+[.)])[ \t]+)')
# Abbreviations and initials: their period does not end the sentence
ABBREVIATION_RE = re.compile(
    r'(?:\b(?i:e\.g|i\.e|etc|vs|cf|approx|dr|mr|mrs|ms|prof|sr|jr|st|no|fig|eq)|(?<![\w.])[A-Z])\.$'
)


@dataclass
class DocumentSection:
    title: str
    body: str
    level: int = 0


@dataclass
class _Unit:
    start: int
    end: int
    kind: str  # "prose" or "code"
    words: int = 0
    lines: int = 0


def document_title(text: str, fallback: str = None) -> str:
    """First level-1 header outside code fences, else ``fallback``."""
    in_fence = False
    for line in text.splitlines():
        if FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        m = HEADER_RE.match(line)
        if m and len(m.group(1)) == 1:
            return m.group(2).strip()
    return fallback or config.DEFAULT_DOCUMENT_TITLE


def _trim(text: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def split_sections(text: str, fallback_title: str = None) -> List[DocumentSection]:
    """Cut ``text`` at Markdown headers. Headers inside code fences don't count.

    Text before the first header becomes a section titled after the document.
    Sections without a body are dropped.
    """
    fallback_title = fallback_title or document_title(text)
    sections: List[DocumentSection] = []

    title, level, body_start = fallback_title, 0, 0
    in_fence = False
    offset = 0
    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        if FENCE_RE.match(bare):
            in_fence = not in_fence
        elif not in_fence:
            m = HEADER_RE.match(bare)
            if m:
                _append_section(sections, text, title, level, body_start, offset)
                title, level = m.group(2).strip(), len(m.group(1))
                body_start = offset + len(line)
        offset += len(line)
    _append_section(sections, text, title, level, body_start, len(text))
    return sections


def _append_section(sections, text, title, level, start, end):
    start, end = _trim(text, start, end)
    if start < end:
        sections.append(DocumentSection(title=title, body=text[start:end], level=level))


def _code_spans(body: str) -> List[Tuple[int, int]]:
    """(start, end) of each fenced block, fence lines included. Unclosed runs to the end."""
    spans = []
    open_at: Optional[int] = None
    offset = 0
    for line in body.splitlines(keepends=True):
        if FENCE_RE.match(line):
            if open_at is None:
                open_at = offset
            else:
                spans.append((open_at, offset + len(line.rstrip("\r\n"))))
                open_at = None
        offset += len(line)
    if open_at is not None:
        spans.append((open_at, len(body)))
    return spans


def _prose_boundaries(body: str, start: int, end: int) -> List[int]:
    cuts = set()
    for pattern in (SENTENCE_END_RE, PARAGRAPH_BREAK_RE, LIST_ITEM_RE):
        for m in pattern.finditer(body, start, end):
            if not start < m.end() < end:
                continue
            if pattern is SENTENCE_END_RE and _is_abbreviation(body, start, m.start()):
                continue
            cuts.add(m.end())
    return sorted(cuts)


def _is_abbreviation(body: str, start: int, period: int) -> bool:
    if body[period] != ".":
        return False
    return ABBREVIATION_RE.search(body[max(start, period - 12):period + 1]) is not None


def _split_units(body: str) -> List[_Unit]:
    """Contiguous sentence/code units covering ``body`` exactly.

    Whitespace between units is carried by the unit before it, so every unit
    after the first starts on a non-space character.
    """
    raw: List[Tuple[int, int, str]] = []
    pos = 0
    for start, end in _code_spans(body):
        if start > pos:
            cuts = [pos] + _prose_boundaries(body, pos, start) + [start]
            raw.extend((a, b, "prose") for a, b in zip(cuts, cuts[1:]))
        raw.append((start, end, "code"))
        pos = end
    if pos < len(body):
        cuts = [pos] + _prose_boundaries(body, pos, len(body)) + [len(body)]
        raw.extend((a, b, "prose") for a, b in zip(cuts, cuts[1:]))

    units: List[_Unit] = []
    for start, end, kind in raw:
        segment = body[start:end]
        if not segment.strip():
            if units:
                units[-1].end = end
            continue
        lead = len(segment) - len(segment.lstrip())
        if lead and units:
            units[-1].end = start + lead
            start += lead
        text = body[start:end]
        units.append(_Unit(
            start=start,
            end=end,
            kind=kind,
            words=len(text.split()),
            lines=len(text.strip().splitlines()) if kind == "code" else 0,
        ))
    return units


def _split_code_unit(body: str, unit: _Unit, max_lines: int) -> List[Tuple[int, int]]:
    """Cut an oversized code block into near-equal runs of whole lines."""
    lines = body[unit.start:unit.end].splitlines(keepends=True)
    chunks = math.ceil(len(lines) / max_lines)
    size = math.ceil(len(lines) / chunks)
    spans = []
    offset = unit.start
    for i in range(0, len(lines), size):
        length = sum(len(line) for line in lines[i:i + size])
        spans.append((offset, offset + length))
        offset += length
    return spans


@dataclass
class Page:
    """One part of a section body. ``code_chunk`` marks a part cut out of a large code block."""
    text: str
    code_chunk: bool = False
    language: Optional[str] = None


def paginate_pages(
    body: str,
    word_limit: int = None,
    large_code_lines: int = None,
    huge_code_lines: int = None,
) -> List[Page]:
    """Split a section body into pages; their texts join back into ``body``."""
    word_limit = word_limit or config.PAGINATION_WORD_LIMIT
    large_code_lines = large_code_lines or config.LARGE_CODE_BLOCK_LINES
    huge_code_lines = huge_code_lines or config.HUGE_CODE_BLOCK_LINES

    # (start, end, language) with language None for prose pages
    spans: List[Tuple[int, int, Optional[str]]] = []
    current: Optional[List[int]] = None
    words = 0

    for unit in _split_units(body):
        if unit.kind == "code" and unit.lines > large_code_lines:
            # Large blocks get slides of their own
            if current:
                spans.append((current[0], current[1], None))
                current = None
            m = FENCE_LANGUAGE_RE.match(body[unit.start:unit.end])
            language = m.group(1) if m else ""
            if unit.lines > huge_code_lines:
                spans.extend((a, b, language) for a, b in _split_code_unit(body, unit, huge_code_lines))
            else:
                spans.append((unit.start, unit.end, language))
            continue

        if current and words + unit.words > word_limit:
            spans.append((current[0], current[1], None))
            current = None
        if current is None:
            current = [unit.start, unit.end]
            words = 0
        current[1] = unit.end
        words += unit.words

    if current:
        spans.append((current[0], current[1], None))

    if not spans:
        return [Page(body)] if body else []
    # Units are contiguous; pin the outer edges so nothing is ever lost
    spans[0] = (0,) + spans[0][1:]
    spans[-1] = (spans[-1][0], len(body), spans[-1][2])
    return [
        Page(body[start:end], code_chunk=language is not None, language=language or None)
        for start, end, language in spans
    ]


def paginate_body(body: str, **limits) -> List[str]:
    """Split a section body into parts; ``"".join(parts) == body``."""
    return [page.text for page in paginate_pages(body, **limits)]


def paginate_section(section: DocumentSection, **limits) -> List[OutlineItem]:
    """Outline items for one section, labelled "Title (Part n)" when split."""
    pages = paginate_pages(section.body, **limits)
    if len(pages) <= 1:
        page = pages[0] if pages else Page(section.body)
        return [OutlineItem(
            title=section.title,
            description=section.body,
            code_chunk=page.code_chunk,
            language=page.language,
        )]
    return [
        OutlineItem(
            title=f"{section.title} (Part {i})",
            description=page.text,
            code_chunk=page.code_chunk,
            language=page.language,
        )
        for i, page in enumerate(pages, 1)
    ]


def paginate_document(text: str, **limits) -> List[OutlineItem]:
    """Segment a whole document into outline items, in document order."""
    items: List[OutlineItem] = []
    for section in split_sections(text):
        items.extend(paginate_section(section, **limits))
    return items
