"""
Background image enrichment for IMAGE_TEXT slides.

Requests are staggered (the Nth request queued since the queue was last
empty waits N * stagger seconds) so a deck with many illustrated slides
does not burst the image quota. Results are written back by slide id; a
failed image never affects the text deck.
"""

import asyncio
import inspect
from typing import Callable, Dict, List, Optional, Tuple

from agents import config
from agents.core.interfaces import IImageGenerationService
from agents.generation.retry import call_with_retry
from services.gemini_image_service import GeminiImageService
from .deck_store import DeckStore
from .models import SlideLayout, SlideRecord
from setup_logging_optimized import get_logger

logger = get_logger(__name__)


def needs_image(slide: SlideRecord) -> bool:
    return (
        slide.layout == SlideLayout.IMAGE_TEXT
        and bool((slide.image_prompt or "").strip())
        and not slide.image_url
    )


class ImageEnrichmentScheduler:
    """Schedules, tracks and merges image generation for one deck."""

    def __init__(
        self,
        store: DeckStore,
        image_service: IImageGenerationService = None,
        stagger_seconds: float = None,
        retries: int = None,
        retry_delay: float = None,
        sleep=asyncio.sleep,
        on_image: Optional[Callable[[str, str], object]] = None,
    ):
        self.store = store
        self.image_service = image_service or GeminiImageService()
        self.stagger_seconds = config.IMAGE_STAGGER_SECONDS if stagger_seconds is None else stagger_seconds
        self.retries = retries
        self.retry_delay = retry_delay
        self.on_image = on_image
        self._sleep = sleep
        self._slot = 0
        # slide id -> (prompt, task)
        self._tasks: Dict[str, Tuple[str, asyncio.Task]] = {}
        self.failures: Dict[str, str] = {}

    @property
    def pending(self) -> List[asyncio.Task]:
        return [task for _, task in self._tasks.values() if not task.done()]

    def submit(self, slide: SlideRecord) -> Optional[asyncio.Task]:
        """Schedule an image for ``slide`` if it needs one.

        Returns the task, the already running task for the same prompt, or
        None when the slide is not eligible.
        """
        if not needs_image(slide):
            return None

        existing = self._tasks.get(slide.id)
        if existing is not None and not existing[1].done():
            if existing[0] == slide.image_prompt:
                return existing[1]
            existing[1].cancel()

        if not self.pending:
            # Nothing queued ahead of this request
            self._slot = 0
        self._slot += 1
        delay = self._slot * self.stagger_seconds
        logger.debug(f"[IMAGES] Queued slide {slide.id} in slot {self._slot} ({delay:.1f}s)")

        task = asyncio.create_task(
            self._run(slide.id, slide.image_prompt, delay, self.store.generation)
        )
        self._tasks[slide.id] = (slide.image_prompt, task)
        task.add_done_callback(lambda t, slide_id=slide.id: self._forget(slide_id, t))
        return task

    def _forget(self, slide_id: str, task: asyncio.Task) -> None:
        entry = self._tasks.get(slide_id)
        if entry is not None and entry[1] is task:
            del self._tasks[slide_id]

    def _is_stale(self, slide_id: str, prompt: str, generation: int) -> bool:
        if generation != self.store.generation:
            return True
        slide = self.store.get(slide_id)
        return slide is None or slide.image_prompt != prompt

    async def _run(self, slide_id: str, prompt: str, delay: float, generation: int) -> Optional[str]:
        if delay > 0:
            await self._sleep(delay)
        if self._is_stale(slide_id, prompt, generation):
            logger.debug(f"[IMAGES] Slide {slide_id} changed before its image started, skipping")
            return None

        try:
            url = await call_with_retry(
                lambda: self.image_service.generate_image(prompt),
                self.retries,
                self.retry_delay,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.warning(f"[IMAGES] Image for slide {slide_id} failed: {e}")
            self.failures[slide_id] = str(e)
            return None

        if self._is_stale(slide_id, prompt, generation):
            logger.debug(f"[IMAGES] Discarding image for slide {slide_id}: deck changed meanwhile")
            return None

        self.store.set_image(slide_id, url)
        self.failures.pop(slide_id, None)
        logger.info(f"[IMAGES] Image ready for slide {slide_id}")

        if self.on_image is not None:
            try:
                result = self.on_image(slide_id, url)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"[IMAGES] Image listener failed for slide {slide_id}: {e}")
        return url

    def cancel_all(self) -> int:
        """Cancel everything in flight and restart slot numbering."""
        tasks = self.pending
        for task in tasks:
            task.cancel()
        self._tasks.clear()
        self._slot = 0
        if tasks:
            logger.info(f"[IMAGES] Cancelled {len(tasks)} pending image requests")
        return len(tasks)

    async def wait_all(self, timeout: float = None) -> bool:
        """Wait for pending images. Returns False if the timeout hit first."""
        tasks = self.pending
        if not tasks:
            return True
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        if still_running:
            logger.warning(f"[IMAGES] {len(still_running)} images still pending after {timeout}s")
        return not still_running
