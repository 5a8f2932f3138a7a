"""
Interfaces for the remote collaborators of the deck pipeline.

Design principles:
- Small, focused interfaces
- Clear contracts
- Testability (fakes implement the same ABCs)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ITextGenerationService(ABC):
    """Remote model returning structured JSON text"""

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        response_schema: Dict[str, Any],
        model: str,
        system_instruction: Optional[str] = None
    ) -> str:
        """Generate JSON text matching ``response_schema``.

        Raises TransientServiceError on rate limiting and GenerationFailure
        on any other failure, including an empty response.
        """
        pass


class IImageGenerationService(ABC):
    """Remote model returning one illustration"""

    @abstractmethod
    async def generate_image(self, prompt: str) -> str:
        """Generate an image and return it as a ``data:`` URI.

        Raises TransientServiceError on rate limiting and
        ImageGenerationFailure when no image comes back.
        """
        pass


class IDeckExporter(ABC):
    """Turns a finalized deck into document bytes"""

    media_type: str = "application/octet-stream"

    @abstractmethod
    def export(self, state: Any) -> bytes:
        """Export a PresentationState snapshot."""
        pass
