"""Rewrite a single slide from a free-text instruction"""

from agents.prompts.generation.outline_prompts import get_slide_regeneration_prompt
from .layout import normalize_payload
from .models import SlidePayload, SlideRecord
from .slide_generator import SlideGenerator
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

# Never sent back to the model: identity is ours, images are large binary blobs
_HIDDEN_FIELDS = {"id", "image_url"}


class SlideRegenerator:
    """Asks the model for a revised version of one slide.

    The result is a payload only; the caller decides how it replaces the
    existing slide (same id, same position).
    """

    def __init__(self, slide_generator: SlideGenerator = None):
        self.slide_generator = slide_generator or SlideGenerator()

    async def regenerate(self, slide: SlideRecord, instruction: str) -> SlidePayload:
        if not instruction or not instruction.strip():
            raise ValueError("instruction must not be empty")

        current = slide.model_dump(by_alias=True, exclude=_HIDDEN_FIELDS, exclude_none=True, mode="json")
        logger.info(f"[SLIDES] Regenerating '{slide.title}': {instruction.strip()[:80]}")

        payload = await self.slide_generator.request_payload(
            get_slide_regeneration_prompt(current, instruction.strip())
        )
        return normalize_payload(payload)
