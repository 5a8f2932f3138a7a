"""Slide content generation module"""

import asyncio
from typing import Optional

from pydantic import ValidationError

from agents import config
from agents.ai.clients import GeminiTextService
from agents.core.interfaces import ITextGenerationService
from agents.generation.exceptions import SchemaValidationError
from agents.generation.retry import call_with_retry
from agents.prompts.generation.outline_prompts import get_slide_content_prompt
from .generator import load_json_response
from .layout import enforce_layout_contract
from .models import OutlineItem, SlidePayload, SLIDE_RESPONSE_SCHEMA
from setup_logging_optimized import get_logger

logger = get_logger(__name__)


def parse_slide_payload(text: str) -> SlidePayload:
    """Decode and validate one slide object.

    Raises:
        SchemaValidationError: not JSON, not an object, or missing title,
            layout or speaker notes, or an unknown layout
    """
    data = load_json_response(text, "slide")
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, dict):
        raise SchemaValidationError("Slide must be a JSON object")
    try:
        return SlidePayload.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError("Slide failed validation", cause=e)


class SlideGenerator:
    """Handles individual slide content generation"""

    def __init__(
        self,
        service: ITextGenerationService = None,
        model: str = None,
        retries: int = None,
        retry_delay: float = None,
        sleep=asyncio.sleep,
    ):
        self.service = service or GeminiTextService()
        self.model = model or config.SLIDE_CONTENT_MODEL
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def request_payload(self, prompt: str) -> SlidePayload:
        """Run a slide prompt through the retry policy and parse the result."""
        text = await call_with_retry(
            lambda: self.service.generate_json(prompt, SLIDE_RESPONSE_SCHEMA, self.model),
            self.retries,
            self.retry_delay,
            sleep=self._sleep,
        )
        return parse_slide_payload(text)

    async def generate_slide(self, item: OutlineItem, theme: Optional[str] = None) -> SlidePayload:
        """Generate one typed slide from one outline item."""
        theme = theme or config.DEFAULT_THEME
        logger.debug(f"[SLIDES] Generating '{item.title}' ({len(item.description)} chars)")

        payload = await self.request_payload(
            get_slide_content_prompt(item.title, item.description, theme)
        )
        payload = enforce_layout_contract(
            item.description, payload, code_chunk=item.code_chunk, language=item.language
        )

        logger.info(f"[SLIDES] '{payload.title}' -> {payload.layout.value}")
        return payload
