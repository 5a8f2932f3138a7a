import asyncio
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from agents import config
from agents.core.interfaces import ITextGenerationService
from agents.generation.exceptions import (
    AITimeoutError,
    GenerationError,
    GenerationFailure,
    MissingConfigError,
    TransientServiceError,
    is_rate_limit_error,
)
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

# One client per API key; google-genai clients are safe to share
_CLIENTS: Dict[str, genai.Client] = {}


def get_client(api_key: str = None) -> genai.Client:
    """
    Get a Gemini client. Uses the key from the environment when none is given.

    Raises:
        MissingConfigError: no API key configured
    """
    api_key = api_key or config.get_api_key()
    if not api_key:
        raise MissingConfigError("GOOGLE_API_KEY (or GEMINI_API_KEY) environment variable is not set")
    client = _CLIENTS.get(api_key)
    if client is None:
        client = genai.Client(api_key=api_key)
        _CLIENTS[api_key] = client
    return client


def map_provider_error(error: Exception, model: str) -> GenerationError:
    """Translate a provider exception into the pipeline's error taxonomy."""
    error_str = str(error)
    error_code = getattr(error, "code", None)

    if is_rate_limit_error(error):
        logger.warning(f"Rate limit exceeded ({error_code}): {error_str}")
        return TransientServiceError(
            "Rate limit exceeded",
            cause=error,
            context={'model': model}
        )

    logger.error(f"Error during model invocation: {error}")
    return GenerationFailure(
        f"AI generation failed: {error_str}",
        cause=error,
        context={'model': model, 'error_code': error_code}
    )


async def generate_content(
    client: genai.Client,
    model: str,
    contents: Any,
    generation_config: Optional[types.GenerateContentConfig] = None,
    timeout: float = None,
) -> types.GenerateContentResponse:
    """Single attempt at ``models.generate_content`` with a timeout.

    Retries are the caller's business (see agents.generation.retry).
    """
    timeout = config.AI_CALL_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(
            client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=generation_config,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        logger.warning(f"Model call timed out after {timeout:.0f}s ({model})")
        raise AITimeoutError(
            f"AI service timeout after {timeout:.0f}s",
            cause=e,
            context={'model': model}
        )
    except genai_errors.APIError as e:
        raise map_provider_error(e, model)
    except GenerationError:
        raise
    except Exception as e:
        # Transport and auth failures (httpx, google-auth) land here
        raise map_provider_error(e, model)


class GeminiTextService(ITextGenerationService):
    """Structured JSON generation through Gemini"""

    def __init__(self, client: genai.Client = None, timeout: float = None):
        self._client = client
        self.timeout = config.AI_CALL_TIMEOUT if timeout is None else timeout

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate_json(
        self,
        prompt: str,
        response_schema: Dict[str, Any],
        model: str,
        system_instruction: Optional[str] = None
    ) -> str:
        generation_config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=response_schema,
            system_instruction=system_instruction,
        )
        response = await generate_content(
            self.client, model, prompt, generation_config, timeout=self.timeout
        )
        text = getattr(response, "text", None)
        if not text:
            raise GenerationFailure("No response from AI", context={'model': model})
        return text


__all__ = [
    'get_client',
    'generate_content',
    'map_provider_error',
    'GeminiTextService',
]
