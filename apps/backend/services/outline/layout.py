"""Local checks on slide layout.

The model picks a layout, but whenever the raw content holds a fenced code
block the slide must be a CODE slide carrying that code verbatim.
"""

import re
from dataclasses import dataclass
from typing import Optional

from setup_logging_optimized import get_logger
from .models import SlideLayout, SlidePayload

logger = get_logger(__name__)

FENCE_LINE_RE = re.compile(r'^[ \t]*(?:```|~~~)[ \t]*([\w+#.\-]*)[^\n]*$')


@dataclass
class CodeBlock:
    code: str
    language: Optional[str]
    prose: str


def find_code_block(text: str) -> Optional[CodeBlock]:
    """First fenced code block in ``text``.

    Handles the partial fences a paginated code block leaves behind: an
    opening fence with no closer runs to the end, and a lone bare fence with
    nothing after it closes a block that started before the text did.
    """
    if not text:
        return None
    lines = text.splitlines()
    fences = [i for i, line in enumerate(lines) if FENCE_LINE_RE.match(line)]
    if not fences:
        return None

    first = fences[0]
    language = FENCE_LINE_RE.match(lines[first]).group(1) or None

    if len(fences) >= 2:
        start, end = first + 1, fences[1]
        prose_lines = lines[:first] + lines[fences[1] + 1:]
    elif language or any(line.strip() for line in lines[first + 1:]):
        start, end = first + 1, len(lines)
        prose_lines = lines[:first]
    else:
        start, end = 0, first
        prose_lines = []

    code = "\n".join(lines[start:end]).strip("\n")
    if not code.strip():
        return None
    return CodeBlock(code=code, language=language, prose="\n".join(prose_lines).strip())


def strip_code_fences(code: str) -> str:
    """Drop Markdown fence lines wrapping ``code``."""
    lines = code.strip("\n").splitlines()
    if lines and FENCE_LINE_RE.match(lines[0]):
        lines = lines[1:]
    if lines and FENCE_LINE_RE.match(lines[-1]):
        lines = lines[:-1]
    return "\n".join(lines).strip("\n")


def normalize_payload(payload: SlidePayload) -> SlidePayload:
    """Strip fences from ``code``; a CODE slide without code becomes BULLETS."""
    updates = {}
    code = payload.code
    if code:
        code = strip_code_fences(code)
        if code != payload.code:
            updates["code"] = code
    if payload.layout == SlideLayout.CODE and not (code or "").strip():
        logger.warning(f"[SLIDES] CODE layout without code on '{payload.title}', using BULLETS")
        updates["layout"] = SlideLayout.BULLETS
        if not payload.bullets and payload.description:
            updates["bullets"] = [payload.description]
    return payload.model_copy(update=updates) if updates else payload


def enforce_layout_contract(
    raw_content: str,
    payload: SlidePayload,
    code_chunk: bool = False,
    language: Optional[str] = None,
) -> SlidePayload:
    """Make ``payload`` agree with the code content of ``raw_content``.

    ``code_chunk`` marks raw content that is a piece of a larger code block;
    such a piece may have no fence at all and is taken as code whole.
    """
    block = find_code_block(raw_content)
    if block is None and code_chunk:
        code = strip_code_fences(raw_content)
        if code.strip():
            block = CodeBlock(code=code, language=None, prose="")
    if block is None:
        return normalize_payload(payload)

    if payload.layout != SlideLayout.CODE:
        logger.info(f"[SLIDES] '{payload.title}' has a code block, switching {payload.layout.value} to CODE")

    updates = {
        "layout": SlideLayout.CODE,
        "code": block.code,
        "language": block.language or language or (payload.language or "").strip() or "text",
    }
    if not (payload.description or "").strip() and block.prose:
        updates["description"] = block.prose
    return payload.model_copy(update=updates)
