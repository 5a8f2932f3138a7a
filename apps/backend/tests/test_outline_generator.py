import pytest

from agents.generation.exceptions import GenerationFailure, SchemaValidationError, TransientServiceError
from services.outline.generator import OutlineGenerator, parse_outline
from services.outline.models import OUTLINE_RESPONSE_SCHEMA

from conftest import FakeTextService


def outline_items(count):
    return [{"title": f"Point {i}", "description": f"What point {i} covers."} for i in range(1, count + 1)]


def make_generator(service, sleep, **kwargs):
    return OutlineGenerator(service, model="outline-model", retries=3, retry_delay=2.0, sleep=sleep, **kwargs)


async def test_topic_outline_uses_schema_and_system_instruction(sleep):
    service = FakeTextService([outline_items(6)])
    items = await make_generator(service, sleep).generate("Intro to Binary Search")

    assert [i.title for i in items] == [f"Point {i}" for i in range(1, 7)]
    call = service.calls[0]
    assert "Intro to Binary Search" in call.prompt
    assert "5-8" in call.prompt
    assert call.schema == OUTLINE_RESPONSE_SCHEMA
    assert call.model == "outline-model"
    assert call.system_instruction == "You are an expert presentation designer."


async def test_topic_outline_is_truncated_to_eight(sleep):
    service = FakeTextService([outline_items(11)])
    items = await make_generator(service, sleep).generate("Volcanoes")
    assert len(items) == 8
    assert items[-1].title == "Point 8"


async def test_short_topic_outline_is_accepted(sleep):
    service = FakeTextService([outline_items(3)])
    items = await make_generator(service, sleep).generate("Volcanoes")
    assert len(items) == 3


async def test_empty_outline_is_a_failure(sleep):
    service = FakeTextService([[]])
    with pytest.raises(GenerationFailure):
        await make_generator(service, sleep).generate("Volcanoes")


async def test_blank_topic_fails_without_calling_the_model(sleep):
    service = FakeTextService([])
    with pytest.raises(GenerationFailure):
        await make_generator(service, sleep).generate("   ")
    assert service.calls == []


async def test_rate_limited_outline_is_retried(sleep):
    limited = TransientServiceError("Rate limit exceeded")
    service = FakeTextService([limited, limited, outline_items(5)])

    items = await make_generator(service, sleep).generate("Volcanoes")

    assert len(items) == 5
    assert len(service.calls) == 3
    assert sleep.delays == [2.0, 4.0]


async def test_persistent_rate_limit_surfaces_as_failure(sleep):
    service = FakeTextService([TransientServiceError("Rate limit exceeded")] * 5)
    with pytest.raises(GenerationFailure):
        await make_generator(service, sleep).generate("Volcanoes")
    assert len(service.calls) == 4


@pytest.mark.parametrize("answer", [
    "not json at all",
    '{"title": "no array"}',
    '[{"title": "Missing description"}]',
    '[{"title": "", "description": "blank title"}]',
])
def test_malformed_outlines_are_rejected(answer):
    with pytest.raises(SchemaValidationError):
        parse_outline(answer)


def test_outline_parser_accepts_fenced_and_wrapped_json():
    assert len(parse_outline('```json\n[{"title": "A", "description": "B"}]\n```')) == 1
    assert len(parse_outline('{"slides": [{"title": "A", "description": "B"}]}')) == 1


async def test_document_outline_is_local_and_verbatim(sleep):
    doc = "# Guide\n\nFirst part of the guide.\n\n## Usage\n\nCall `search(items, target)`."
    service = FakeTextService([])

    items = await make_generator(service, sleep, strategy="local").generate(doc, from_document=True)

    assert service.calls == []
    assert [(i.title, i.description) for i in items] == [
        ("Guide", "First part of the guide."),
        ("Usage", "Call `search(items, target)`."),
    ]


async def test_empty_document_is_a_failure(sleep):
    with pytest.raises(GenerationFailure):
        await make_generator(FakeTextService([]), sleep).generate("# Title only\n", from_document=True)


async def test_model_segmented_document_must_be_verbatim(sleep):
    doc = "# Guide\n\nFirst part of the guide.\n\n## Usage\n\nCall search with a sorted list."
    faithful = [
        {"title": "Guide", "description": "First part of the guide."},
        {"title": "Usage", "description": "Call search with a sorted list.\n"},
    ]
    service = FakeTextService([faithful])
    items = await make_generator(service, sleep, strategy="model").generate(doc, from_document=True)
    assert len(items) == 2
    assert "--- DOCUMENT CONTENT ---" in service.calls[0].prompt

    summarized = [{"title": "Guide", "description": "A short guide about searching."}]
    service = FakeTextService([summarized])
    with pytest.raises(GenerationFailure, match="preserve"):
        await make_generator(service, sleep, strategy="model").generate(doc, from_document=True)
