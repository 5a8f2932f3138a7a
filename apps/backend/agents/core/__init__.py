"""
Core interfaces and contracts for the agents system.
"""

from .interfaces import IDeckExporter, IImageGenerationService, ITextGenerationService

__all__ = [
    'IDeckExporter',
    'IImageGenerationService',
    'ITextGenerationService',
]
