"""Outline generation from a topic or an uploaded document"""

import asyncio
import json
import re
from typing import Any, List, Optional

from pydantic import ValidationError

from .models import OutlineItem, OUTLINE_RESPONSE_SCHEMA
from .pagination import paginate_document
from agents import config
from agents.ai.clients import GeminiTextService
from agents.core.interfaces import ITextGenerationService
from agents.generation.exceptions import GenerationFailure, SchemaValidationError
from agents.generation.retry import call_with_retry
from agents.prompts.generation.outline_prompts import (
    get_document_outline_prompt,
    get_topic_outline_prompt,
)
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

_JSON_FENCE_RE = re.compile(r'^\s*```(?:json)?\s*(.*?)\s*```\s*$', re.DOTALL)


def load_json_response(text: str, what: str = "response") -> Any:
    """Decode a model's JSON answer, tolerating a ```json wrapper."""
    if not text or not text.strip():
        raise GenerationFailure("No response from AI")
    m = _JSON_FENCE_RE.match(text)
    if m:
        text = m.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaValidationError(f"Model returned invalid JSON for {what}", cause=e)


def parse_outline(text: str) -> List[OutlineItem]:
    """Validate a JSON outline array into ``OutlineItem`` objects."""
    data = load_json_response(text, "outline")
    if isinstance(data, dict):
        # Some answers wrap the array: {"slides": [...]}
        data = next((v for v in data.values() if isinstance(v, list)), None)
    if not isinstance(data, list):
        raise SchemaValidationError("Outline must be a JSON array of {title, description}")
    try:
        return [OutlineItem.model_validate(entry) for entry in data]
    except ValidationError as e:
        raise SchemaValidationError("Outline item failed validation", cause=e)


class OutlineGenerator:
    """Turns a topic or a document into an ordered outline.

    Topic mode asks the model to synthesize 5-8 items. Document mode
    preserves the source: by default it is paginated locally; with the
    ``model`` strategy the model segments it and every description is
    checked verbatim against the source.
    """

    def __init__(
        self,
        service: ITextGenerationService = None,
        model: str = None,
        strategy: str = None,
        retries: int = None,
        retry_delay: float = None,
        sleep=asyncio.sleep,
    ):
        self.service = service or GeminiTextService()
        self.model = model or config.OUTLINE_MODEL
        self.strategy = (strategy or config.DOCUMENT_OUTLINE_STRATEGY).lower()
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def generate(self, source: str, from_document: bool = False) -> List[OutlineItem]:
        """Generate the outline.

        Raises:
            GenerationFailure: empty source, empty result, or a payload that
                does not match the outline schema
        """
        if not source or not source.strip():
            raise GenerationFailure("Nothing to outline: the input is empty")

        if not from_document:
            return await self._generate_from_topic(source.strip())
        if self.strategy == "model":
            return await self._generate_from_document_remote(source)
        return self._generate_from_document_local(source)

    async def _request(self, prompt: str) -> str:
        return await call_with_retry(
            lambda: self.service.generate_json(
                prompt,
                OUTLINE_RESPONSE_SCHEMA,
                self.model,
                system_instruction=config.OUTLINE_SYSTEM_INSTRUCTION,
            ),
            self.retries,
            self.retry_delay,
            sleep=self._sleep,
        )

    async def _generate_from_topic(self, topic: str) -> List[OutlineItem]:
        min_items, max_items = config.TOPIC_OUTLINE_MIN_ITEMS, config.TOPIC_OUTLINE_MAX_ITEMS
        logger.info(f"[OUTLINE] Generating outline for topic: {topic[:80]}")

        text = await self._request(get_topic_outline_prompt(topic, min_items, max_items))
        items = parse_outline(text)

        if not items:
            raise GenerationFailure("Model returned an empty outline", context={'topic': topic})
        if len(items) > max_items:
            logger.warning(f"[OUTLINE] Model returned {len(items)} items, keeping the first {max_items}")
            items = items[:max_items]
        elif len(items) < min_items:
            logger.warning(f"[OUTLINE] Model returned only {len(items)} items (expected {min_items}-{max_items})")

        logger.info(f"[OUTLINE] Outline ready: {len(items)} items")
        return items

    def _generate_from_document_local(self, document: str) -> List[OutlineItem]:
        items = paginate_document(document)
        if not items:
            raise GenerationFailure("Document has no content to turn into slides")
        logger.info(f"[OUTLINE] Paginated document into {len(items)} items")
        return items

    async def _generate_from_document_remote(self, document: str) -> List[OutlineItem]:
        logger.info(f"[OUTLINE] Asking model to segment document ({len(document)} chars)")
        text = await self._request(get_document_outline_prompt(document, config.PAGINATION_WORD_LIMIT))
        items = parse_outline(text)
        if not items:
            raise GenerationFailure("Model returned an empty outline for the document")

        missing = _first_non_verbatim(items, document)
        if missing is not None:
            raise GenerationFailure(
                "Outline does not preserve the document text",
                context={'item': missing.title},
            )
        logger.info(f"[OUTLINE] Model segmented document into {len(items)} items")
        return items


def _first_non_verbatim(items: List[OutlineItem], document: str) -> Optional[OutlineItem]:
    for item in items:
        if item.description.strip() not in document:
            return item
    return None
