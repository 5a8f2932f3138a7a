"""
Exception hierarchy for the deck generation pipeline.

Provides specific exceptions for different failure scenarios
to enable proper error handling and recovery.
"""

from typing import Optional, Dict, Any


class GenerationError(Exception):
    """Base exception for all generation errors"""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self):
        parts = [super().__str__()]
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)


# === Remote generation failures ===

class GenerationFailure(GenerationError):
    """Remote call produced no usable payload, or failed for good"""
    pass


class TransientServiceError(GenerationFailure):
    """Rate limit or quota signal (HTTP 429); retried before surfacing"""
    pass


class AITimeoutError(GenerationFailure):
    """Remote call exceeded its timeout"""
    pass


class SchemaValidationError(GenerationFailure):
    """Payload did not validate against the expected schema"""
    pass


# === Input / media failures ===

class IngestionError(GenerationError):
    """Uploaded document could not be read"""
    pass


class ImageGenerationFailure(GenerationError):
    """Image generation failed for a single request"""
    pass


# === Configuration exceptions ===

class ConfigurationError(GenerationError):
    """Configuration error"""
    pass


class MissingConfigError(ConfigurationError):
    """Required configuration missing"""
    pass


# === Recovery helpers ===

RATE_LIMIT_STATUSES = ("RESOURCE_EXHAUSTED",)


def _status_code(error: Exception) -> Optional[int]:
    for attr in ("code", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_rate_limit_error(error: BaseException) -> bool:
    """Check if error signals rate limiting (HTTP 429 or a quota message)"""
    if isinstance(error, GenerationError):
        # Our own errors are already classified at the client boundary
        return isinstance(error, TransientServiceError)
    if not isinstance(error, Exception):
        return False
    if _status_code(error) == 429:
        return True
    if getattr(error, "status", None) in RATE_LIMIT_STATUSES:
        return True
    message = str(error)
    return "429" in message or "quota" in message.lower()


def get_retry_delay(initial_delay: float, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based): d, 2d, 4d, ..."""
    return initial_delay * (2 ** attempt)
