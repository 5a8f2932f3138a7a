"""
Presentation workflow orchestrator.

Handles:
- Outline generation from a topic or a file
- Sequential, paced slide generation with progressive deck updates
- Background image enrichment
- Single-slide regeneration and user edits
- Finalization and export
"""

import asyncio
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from agents import config
from agents.ai.clients import GeminiTextService
from agents.core.interfaces import IDeckExporter, IImageGenerationService, ITextGenerationService
from agents.generation.exceptions import (
    AITimeoutError,
    GenerationError,
    ImageGenerationFailure,
    IngestionError,
    MissingConfigError,
    TransientServiceError,
)
from agents.generation.retry import call_with_retry
from services.document_ingestion import read_document
from services.gemini_image_service import GeminiImageService, build_background_prompt
from services.outline.deck_store import DeckStore
from services.outline.generator import OutlineGenerator
from services.outline.image_scheduler import ImageEnrichmentScheduler
from services.outline.models import (
    GenerationStep,
    OutlineItem,
    PresentationState,
    ProgressUpdate,
    SlideLayout,
    SlideRecord,
    Theme,
)
from services.outline.pagination import document_title
from services.outline.slide_generator import SlideGenerator
from services.outline.slide_regenerator import SlideRegenerator
from setup_logging_optimized import get_logger

logger = get_logger(__name__)


class WorkflowBusyError(RuntimeError):
    """Another step is already running"""


def describe_error(error: BaseException) -> str:
    """User-facing message for a failed step."""
    if isinstance(error, MissingConfigError):
        return "No API key configured. Set GOOGLE_API_KEY (or GEMINI_API_KEY) and try again."
    if isinstance(error, TransientServiceError):
        return "The AI service is busy (rate limited). Please wait a moment and try again."
    if isinstance(error, AITimeoutError):
        return "The AI service took too long to respond. Please try again."
    if isinstance(error, IngestionError):
        return f"Could not read the file: {error.args[0]}"
    if isinstance(error, ImageGenerationFailure):
        return f"Image generation failed: {error.args[0]}. Please try again."
    if isinstance(error, GenerationError):
        return f"Generation failed: {error.args[0]}. Please check your input and try again."
    return str(error) or type(error).__name__


class PresentationWorkflow:
    """
    Drives one presentation from input to export.

    The deck lives in a DeckStore; every step moves ``step`` off IDLE while
    it runs and back to IDLE when it ends, successfully or not. A failed step
    stores a readable message in ``last_error`` and re-raises.
    """

    def __init__(
        self,
        text_service: ITextGenerationService = None,
        image_service: IImageGenerationService = None,
        store: DeckStore = None,
        delay_between_slides: float = None,
        image_stagger_seconds: float = None,
        images_enabled: bool = None,
        sleep=asyncio.sleep,
    ):
        text_service = text_service or GeminiTextService()
        self.image_service = image_service or GeminiImageService()
        self.store = store or DeckStore()
        self.outline_generator = OutlineGenerator(text_service, sleep=sleep)
        self.slide_generator = SlideGenerator(text_service, sleep=sleep)
        self.regenerator = SlideRegenerator(self.slide_generator)
        self.scheduler = ImageEnrichmentScheduler(
            self.store,
            self.image_service,
            stagger_seconds=image_stagger_seconds,
            sleep=sleep,
            on_image=self._on_image,
        )
        self.delay_between_slides = (
            config.DELAY_BETWEEN_SLIDES if delay_between_slides is None else delay_between_slides
        )
        self.images_enabled = config.IMAGE_GENERATION_ENABLED if images_enabled is None else images_enabled
        self._sleep = sleep

        self.step = GenerationStep.IDLE
        self.last_error: Optional[str] = None
        self.outline: List[OutlineItem] = []
        self.topic: Optional[str] = None
        self._progress_callback: Optional[Callable[[ProgressUpdate], Any]] = None

    # --- step bookkeeping ---

    @contextmanager
    def _step(self, step: GenerationStep):
        if self.step != GenerationStep.IDLE:
            raise WorkflowBusyError(f"Cannot start {step.value} while {self.step.value} is running")
        self.step = step
        self.last_error = None
        try:
            yield
        except Exception as e:
            self.last_error = describe_error(e)
            logger.error(f"[DECK] {step.value} failed: {e}")
            raise
        finally:
            self.step = GenerationStep.IDLE

    async def _emit(self, stage: str, message: str, progress: float, **metadata) -> None:
        callback = self._progress_callback
        if callback is None:
            return
        update = ProgressUpdate(stage=stage, message=message, progress=progress, metadata=metadata or None)
        try:
            result = callback(update)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.warning(f"[DECK] Progress callback failed: {e}")

    async def _on_image(self, slide_id: str, image_url: str) -> None:
        await self._emit(
            "image_ready",
            "Slide illustration ready",
            100.0,
            slide_id=slide_id,
            index=self.store.index_of(slide_id),
        )

    # --- outline ---

    async def generate_outline(self, topic: str) -> List[OutlineItem]:
        """Synthesize an outline for ``topic``."""
        with self._step(GenerationStep.GENERATING_OUTLINE):
            outline = await self.outline_generator.generate(topic)
        self.topic = topic.strip()
        self.outline = outline
        self.store.update_metadata(title=self.topic)
        return outline

    async def generate_outline_from_document(self, text: str, title: str = None) -> List[OutlineItem]:
        """Outline an already-read document, preserving its text."""
        with self._step(GenerationStep.GENERATING_OUTLINE):
            outline = await self.outline_generator.generate(text, from_document=True)
        self.topic = title or document_title(text)
        self.outline = outline
        self.store.update_metadata(title=self.topic)
        return outline

    async def generate_outline_from_file(self, path: Union[str, Path]) -> List[OutlineItem]:
        """Read ``path`` and outline it in document mode."""
        with self._step(GenerationStep.PARSING_FILE):
            text = await asyncio.to_thread(read_document, path)
        fallback = Path(path).stem.replace("_", " ").replace("-", " ").strip() or None
        return await self.generate_outline_from_document(text, document_title(text, fallback))

    def set_outline(self, items: List[OutlineItem]) -> None:
        """Replace the outline with a user-edited one."""
        self.outline = list(items)

    # --- slides ---

    async def generate_slides(self, progress_callback: Callable[[ProgressUpdate], Any] = None) -> PresentationState:
        """
        Generate one slide per outline item, in order.

        Each slide is appended to the deck as soon as it exists. A failing
        slide stops the loop; slides generated before it stay in the deck.
        """
        if not self.outline:
            raise ValueError("Generate or set an outline first")

        outline = list(self.outline)
        total = len(outline)

        with self._step(GenerationStep.GENERATING_SLIDES):
            self._progress_callback = progress_callback
            self.scheduler.cancel_all()
            self.store.reset(title=self.topic or config.DEFAULT_DECK_TITLE)
            await self._emit("outline_ready", f"Generating {total} slides", 0.0, total=total)

            try:
                for index, item in enumerate(outline):
                    if index > 0 and self.delay_between_slides > 0:
                        await self._sleep(self.delay_between_slides)

                    payload = await self.slide_generator.generate_slide(item, self.store.theme)
                    slide = SlideRecord.from_payload(payload)
                    self.store.append(slide)
                    if self.images_enabled:
                        self.scheduler.submit(slide)

                    logger.info(f"[DECK] Slide {index + 1}/{total} ready: {slide.title}")
                    await self._emit(
                        "slide_ready",
                        f"Slide {index + 1} of {total}: {slide.title}",
                        round((index + 1) / total * 100, 1),
                        slide_id=slide.id,
                        index=index,
                        layout=slide.layout.value,
                    )
            except Exception as e:
                await self._emit(
                    "error",
                    describe_error(e),
                    round(len(self.store) / total * 100, 1),
                    completed=len(self.store),
                    total=total,
                )
                raise

            await self._emit(
                "complete",
                f"Generated {total} slides",
                100.0,
                pending_images=len(self.scheduler.pending),
            )
        return self.store.snapshot()

    async def regenerate_slide(self, slide_id: str, instruction: str) -> SlideRecord:
        """Rewrite one slide from an instruction; id and position are kept."""
        current = self.store.get(slide_id)
        if current is None:
            raise KeyError(slide_id)

        with self._step(GenerationStep.REGENERATING_SLIDE):
            payload = await self.regenerator.regenerate(current, instruction)

        # Keep the existing picture when the illustration itself did not change
        if (
            payload.layout == SlideLayout.IMAGE_TEXT
            and payload.image_url is None
            and current.image_url
            and payload.image_prompt == current.image_prompt
        ):
            payload = payload.model_copy(update={"image_url": current.image_url})

        record = self.store.replace(slide_id, payload)
        if self.images_enabled:
            self.scheduler.submit(record)
        logger.info(f"[DECK] Slide {slide_id} regenerated as {record.layout.value}")
        return record

    def update_slide(self, slide_id: str, **fields) -> Optional[SlideRecord]:
        """Apply user edits (text, speaker notes, ...) to one slide."""
        return self.store.patch(slide_id, **fields)

    def set_theme(self, theme: Theme) -> None:
        self.store.update_metadata(theme=theme)

    async def generate_background(self, topic: str = None) -> str:
        """Generate a theme-aware wallpaper for the whole deck."""
        topic = (
            topic
            or self.topic
            or (self.outline[0].title if self.outline else None)
            or "Professional Presentation"
        )
        with self._step(GenerationStep.GENERATING_IMAGE):
            prompt = build_background_prompt(topic, self.store.theme)
            image_url = await call_with_retry(
                lambda: self.image_service.generate_image(prompt), sleep=self._sleep
            )
        self.store.update_metadata(background_image=image_url)
        logger.info("[DECK] Background image ready")
        return image_url

    # --- output ---

    async def finalize(self, wait_for_images: bool = True, timeout: float = None) -> PresentationState:
        """Stable snapshot of the deck, optionally after pending images land."""
        if wait_for_images:
            await self.scheduler.wait_all(timeout)
        return self.store.snapshot()

    async def export(self, exporter: IDeckExporter, wait_for_images: bool = True, timeout: float = None) -> bytes:
        state = await self.finalize(wait_for_images, timeout)
        return await asyncio.to_thread(exporter.export, state)

    def load(self, state: PresentationState) -> None:
        """Restore a saved deck."""
        self.scheduler.cancel_all()
        self.store.load(state)
        self.topic = state.title
