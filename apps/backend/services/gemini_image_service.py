import base64
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from agents import config
from agents.ai.clients import generate_content, get_client
from agents.core.interfaces import IImageGenerationService
from agents.generation.exceptions import ImageGenerationFailure
from setup_logging_optimized import get_logger

logger = get_logger(__name__)


def sniff_mime_type(data: bytes) -> str:
    """Best-effort MIME type for raw image bytes."""
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", "image/png")
    except (UnidentifiedImageError, OSError):
        return "image/png"


def to_data_uri(data: bytes, mime_type: Optional[str] = None) -> str:
    """Encode image bytes as a self-contained ``data:`` reference."""
    mime_type = mime_type or sniff_mime_type(data)
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def extract_inline_image(response) -> Optional[Tuple[bytes, Optional[str]]]:
    """Return (bytes, mime_type) of the first inline image part, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is None or not getattr(inline, "data", None):
            continue
        data = inline.data
        if isinstance(data, str):
            # Some SDK versions hand back base64 text instead of bytes
            data = base64.b64decode(data.split(",")[-1])
        return bytes(data), getattr(inline, "mime_type", None)
    return None


class GeminiImageService(IImageGenerationService):
    """Service for generating slide illustrations with Gemini's image model.

    Returns each image as a ``data:<mime>;base64,...`` string so decks stay
    self-contained for rendering and export.
    """

    def __init__(self, client=None, model: str = None, timeout: float = None):
        self._client = client
        self.model = model or config.IMAGE_MODEL
        self.timeout = config.IMAGE_CALL_TIMEOUT if timeout is None else timeout

    @property
    def client(self):
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate_image(self, prompt: str) -> str:
        """Generate an image via Gemini and return a data URI.

        Rate limiting surfaces as TransientServiceError so callers can retry;
        a response without image data raises ImageGenerationFailure.
        """
        if not prompt or not prompt.strip():
            raise ImageGenerationFailure("Image prompt is empty")

        response = await generate_content(
            self.client, self.model, prompt, timeout=self.timeout
        )

        image = extract_inline_image(response)
        if image is None:
            raise ImageGenerationFailure(
                "No image data found in response",
                context={'model': self.model}
            )
        data, mime_type = image
        logger.debug(f"[IMAGES] Received {len(data)} bytes ({mime_type or 'unknown type'})")
        return to_data_uri(data, mime_type)


def build_background_prompt(topic: str, theme: str) -> str:
    """Prompt for a low-contrast presentation wallpaper."""
    if theme == "dark":
        theme_context = "dark mode, elegant black/grey tones"
    elif theme == "blue":
        theme_context = "deep blue tones, calm and corporate"
    else:
        theme_context = "light mode, clean white/grey tones"
    return (
        f'Professional presentation background wallpaper for topic: "{topic}". '
        f"Style: {theme_context}, Minimalist, Abstract, Geometric, Soft Gradients, High-End Corporate. "
        "CRITICAL: Low contrast, No text, No realistic people, No complex details. "
        "Must have plenty of negative space for overlaying text. 4k resolution."
    )
