"""Outline and deck generation service package"""

from .deck_store import DeckStore
from .generator import OutlineGenerator
from .image_scheduler import ImageEnrichmentScheduler
from .models import (
    GenerationStep,
    OutlineItem,
    PresentationState,
    ProgressUpdate,
    SlideLayout,
    SlidePayload,
    SlideRecord,
)
from .slide_generator import SlideGenerator
from .slide_regenerator import SlideRegenerator

__all__ = [
    'DeckStore',
    'OutlineGenerator',
    'ImageEnrichmentScheduler',
    'GenerationStep',
    'OutlineItem',
    'PresentationState',
    'ProgressUpdate',
    'SlideLayout',
    'SlidePayload',
    'SlideRecord',
    'SlideGenerator',
    'SlideRegenerator',
]
