# tests/conftest.py
import asyncio
import base64
import json
import os
import pathlib
import sys
from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

# Keep tests offline and deterministic regardless of the developer's .env
os.environ.setdefault("DOCUMENT_OUTLINE_STRATEGY", "local")
os.environ.setdefault("IMAGE_GENERATION_ENABLED", "true")

# Add apps/backend to sys.path so `import agents...` works under pytest
BACKEND = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from agents.core.interfaces import IImageGenerationService, ITextGenerationService  # noqa: E402


class RecordingSleep:
    """Stands in for asyncio.sleep: records delays, yields once, never waits."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeTextService(ITextGenerationService):
    """Scripted text model.

    Answers come from ``handler(prompt, schema)`` when given, else from the
    ``responses`` queue. Exceptions are raised, dicts/lists are JSON-encoded.
    """

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []

    async def generate_json(self, prompt, response_schema, model, system_instruction=None):
        self.calls.append(SimpleNamespace(
            prompt=prompt, schema=response_schema, model=model, system_instruction=system_instruction
        ))
        result = self.handler(prompt, response_schema) if self.handler else self.responses.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result if isinstance(result, str) else json.dumps(result)


class FakeImageService(IImageGenerationService):
    """Returns a data URI per prompt; ``failures`` maps prompt -> exception (or list of them)."""

    def __init__(self, failures=None):
        self.failures = dict(failures or {})
        self.calls = []

    async def generate_image(self, prompt):
        self.calls.append(prompt)
        failure = self.failures.get(prompt)
        if isinstance(failure, list):
            failure = failure.pop(0) if failure else None
        if failure is not None:
            raise failure
        return "data:image/png;base64," + base64.b64encode(prompt.encode("utf-8")).decode("ascii")


def make_png(width=32, height=16, color="red") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def image_service():
    return FakeImageService()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
