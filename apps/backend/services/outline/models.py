"""Data models for outline and deck generation"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Theme = Literal["light", "dark", "blue", "modern"]
THEMES = ("light", "dark", "blue", "modern")


class SlideLayout(str, Enum):
    """Closed set of slide layouts the renderer understands"""
    TITLE = "TITLE"
    BULLETS = "BULLETS"
    TWO_COLUMN = "TWO_COLUMN"
    QUOTE = "QUOTE"
    BIG_NUMBER = "BIG_NUMBER"
    CODE = "CODE"
    IMAGE_TEXT = "IMAGE_TEXT"


class GenerationStep(str, Enum):
    """What the workflow is currently doing"""
    IDLE = "IDLE"
    PARSING_FILE = "PARSING_FILE"
    GENERATING_OUTLINE = "GENERATING_OUTLINE"
    GENERATING_SLIDES = "GENERATING_SLIDES"
    REGENERATING_SLIDE = "REGENERATING_SLIDE"
    GENERATING_IMAGE = "GENERATING_IMAGE"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class OutlineItem(WireModel):
    """One titled unit of raw content destined to become one slide"""
    title: str
    # Verbatim source text in document mode; no summarization
    description: str
    # Set when the description is one piece of a code block split across slides
    code_chunk: bool = False
    language: Optional[str] = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class SlidePayload(WireModel):
    """Slide content as returned by the model, before an id is assigned.

    Only ``title``, ``layout`` and ``speaker_notes`` are required. Fields that
    do not apply to the active layout may still be populated; renderers read
    only what they understand.
    """
    title: str
    layout: SlideLayout
    speaker_notes: str
    subtitle: Optional[str] = None
    bullets: Optional[List[str]] = None
    column_left: Optional[List[str]] = None
    column_right: Optional[List[str]] = None
    quote: Optional[str] = None
    author: Optional[str] = None
    statistic: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = None
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None


class SlideRecord(SlidePayload):
    """Identity-bearing slide. Changed only by copy, never in place."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    speaker_notes: str = ""

    @classmethod
    def from_payload(cls, payload: SlidePayload, slide_id: Optional[str] = None) -> "SlideRecord":
        data = payload.model_dump(exclude={"id"})
        if slide_id is not None:
            data["id"] = slide_id
        return cls(**data)

    def to_payload(self) -> SlidePayload:
        return SlidePayload(**self.model_dump(exclude={"id"}))


class PresentationState(WireModel):
    """Snapshot of a deck: ordered slides plus presentation metadata"""
    slides: List[SlideRecord] = Field(default_factory=list)
    title: str = "Untitled Presentation"
    theme: Theme = "light"
    background_image: Optional[str] = None


class ProgressUpdate(BaseModel):
    """Progress update for streaming"""
    stage: str
    message: str
    progress: float
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None


# --- Response schemas sent to the model (google-genai Schema dicts) ---

OUTLINE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {
                "type": "STRING",
                "description": "Title of the slide (or Markdown header). Use (Part 1), (Part 2) for splits."
            },
            "description": {
                "type": "STRING",
                "description": "The raw content for this section. Must be EXACT content from source."
            },
        },
        "required": ["title", "description"],
    },
}

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": {"type": "STRING"}}

SLIDE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": _STRING,
        "subtitle": _STRING,
        "bullets": _STRING_LIST,
        "columnLeft": _STRING_LIST,
        "columnRight": _STRING_LIST,
        "quote": _STRING,
        "author": _STRING,
        "statistic": _STRING,
        "description": _STRING,
        "code": {"type": "STRING", "description": "The source code string without markdown backticks"},
        "language": {"type": "STRING", "description": "The programming language"},
        "imagePrompt": {
            "type": "STRING",
            "description": "A detailed English prompt to generate an illustration for this slide if layout is IMAGE_TEXT."
        },
        "speakerNotes": _STRING,
        "layout": {"type": "STRING", "enum": [layout.value for layout in SlideLayout]},
    },
    "required": ["title", "layout", "speakerNotes"],
}
