"""Identity-keyed deck state.

Slides are addressed by id, never by position, so a late write (an image
finishing, a regeneration landing) reaches the right slide even when the
deck changed in between. None of the mutators await, so each one runs to
completion without interleaving under asyncio.
"""

from typing import Dict, List, Optional

from .models import PresentationState, SlidePayload, SlideRecord, Theme, THEMES
from agents import config
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

_IMMUTABLE_FIELDS = {"id", "layout"}


class DeckStore:
    """Ordered slides keyed by id, plus title, theme and background."""

    def __init__(self, title: str = None, theme: Theme = None):
        self._slides: Dict[str, SlideRecord] = {}
        self._order: List[str] = []
        self.title = title or config.DEFAULT_DECK_TITLE
        self.theme: Theme = _check_theme(theme or config.DEFAULT_THEME)
        self.background_image: Optional[str] = None
        # Bumped on every reset; async work compares it before writing back
        self.generation = 0

    # --- reads ---

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, slide_id: str) -> bool:
        return slide_id in self._slides

    def get(self, slide_id: str) -> Optional[SlideRecord]:
        return self._slides.get(slide_id)

    def index_of(self, slide_id: str) -> int:
        """Position of ``slide_id``; -1 if absent."""
        try:
            return self._order.index(slide_id)
        except ValueError:
            return -1

    def slide_at(self, index: int) -> SlideRecord:
        return self._slides[self._order[index]]

    def ids(self) -> List[str]:
        return list(self._order)

    def slides(self) -> List[SlideRecord]:
        return [self._slides[slide_id] for slide_id in self._order]

    # --- writes ---

    def append(self, slide: SlideRecord) -> bool:
        """Add ``slide`` at the end. Appending a known id is a no-op."""
        if slide.id in self._slides:
            logger.debug(f"[DECK] Slide {slide.id} already present, not appending again")
            return False
        self._slides[slide.id] = slide
        self._order.append(slide.id)
        return True

    def patch(self, slide_id: str, **fields) -> Optional[SlideRecord]:
        """Update only ``fields`` of one slide. Unknown ids are ignored."""
        forbidden = _IMMUTABLE_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"Cannot patch {', '.join(sorted(forbidden))}; use replace()")
        current = self._slides.get(slide_id)
        if current is None:
            logger.debug(f"[DECK] Patch for unknown slide {slide_id} ignored")
            return None
        unknown = set(fields) - set(SlideRecord.model_fields)
        if unknown:
            raise ValueError(f"Unknown slide fields: {', '.join(sorted(unknown))}")
        updated = SlideRecord.model_validate({**current.model_dump(), **fields})
        self._slides[slide_id] = updated
        return updated

    def set_image(self, slide_id: str, image_url: str) -> Optional[SlideRecord]:
        return self.patch(slide_id, image_url=image_url)

    def replace(self, slide_id: str, payload: SlidePayload) -> SlideRecord:
        """Swap the whole slide for ``payload``, keeping its id and position."""
        if slide_id not in self._slides:
            raise KeyError(slide_id)
        record = SlideRecord.from_payload(payload, slide_id=slide_id)
        self._slides[slide_id] = record
        return record

    def update_metadata(
        self,
        title: str = None,
        theme: Theme = None,
        background_image: str = None,
    ) -> None:
        if title is not None:
            self.title = title
        if theme is not None:
            self.theme = _check_theme(theme)
        if background_image is not None:
            self.background_image = background_image

    def reset(self, title: str = None, theme: Theme = None) -> int:
        """Drop all slides and start a new generation. Returns the new token.

        Title, theme and background carry over unless given.
        """
        self._slides.clear()
        self._order.clear()
        self.update_metadata(title=title, theme=theme)
        self.generation += 1
        logger.debug(f"[DECK] Reset to generation {self.generation}")
        return self.generation

    def load(self, state: PresentationState) -> int:
        generation = self.reset(title=state.title, theme=state.theme)
        for slide in state.slides:
            self.append(slide)
        self.background_image = state.background_image
        return generation

    def snapshot(self) -> PresentationState:
        """Detached copy of the deck in order."""
        return PresentationState(
            slides=[slide.model_copy(deep=True) for slide in self.slides()],
            title=self.title,
            theme=self.theme,
            background_image=self.background_image,
        )


def _check_theme(theme: str) -> str:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme '{theme}', expected one of {', '.join(THEMES)}")
    return theme
