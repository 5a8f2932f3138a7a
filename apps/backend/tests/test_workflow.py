import asyncio
import json
import re

import pytest

from agents.generation.deck_orchestrator import PresentationWorkflow, WorkflowBusyError
from agents.generation.exceptions import GenerationFailure, ImageGenerationFailure
from services.outline.models import GenerationStep, OUTLINE_RESPONSE_SCHEMA, SlideLayout
from services.pptx_exporter import JsonDeckExporter

from conftest import FakeImageService, FakeTextService

TOPIC = "Intro to Binary Search"
OUTLINE = [
    {"title": "What is Binary Search", "description": "Searching a sorted list by halving it."},
    {"title": "The Algorithm", "description": "Compare with the middle, discard half.\n```python\ndef search(a, x): ...\n```"},
    {"title": "A Real-World Picture", "description": "Finding a word in a paper dictionary."},
    {"title": "Complexity", "description": "O(log n) comparisons."},
    {"title": "Takeaways", "description": "Sorted input, halving, logarithmic time."},
]
TITLE_RE = re.compile(r"Slide Title: (.*)")


def slide_for(title):
    if title == "A Real-World Picture":
        return {
            "title": title,
            "layout": "IMAGE_TEXT",
            "bullets": ["Open near the middle", "Go left or right"],
            "imagePrompt": "An open dictionary on a desk, photorealistic",
            "speakerNotes": "Everyone has done this.",
        }
    if title == "Complexity":
        return {"title": title, "layout": "BIG_NUMBER", "statistic": "O(log n)", "speakerNotes": "Fast."}
    return {"title": title, "layout": "BULLETS", "bullets": ["Point"], "speakerNotes": f"About {title}."}


class DeckModel:
    """Fake text model answering outline, slide and regeneration prompts."""

    def __init__(self, fail_on=None, regenerated=None):
        self.fail_on = fail_on
        self.regenerated = regenerated

    def __call__(self, prompt, schema):
        if schema == OUTLINE_RESPONSE_SCHEMA:
            return OUTLINE
        if prompt.startswith("Update this slide"):
            return self.regenerated
        title = TITLE_RE.search(prompt).group(1).strip()
        if title == self.fail_on:
            return GenerationFailure("AI generation failed: 500 internal")
        return slide_for(title)


def make_workflow(model, sleep, image_service=None):
    return PresentationWorkflow(
        text_service=FakeTextService(handler=model),
        image_service=image_service or FakeImageService(),
        delay_between_slides=1.0,
        image_stagger_seconds=0.25,
        images_enabled=True,
        sleep=sleep,
    )


async def test_topic_to_deck_end_to_end(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    updates = []

    outline = await workflow.generate_outline(TOPIC)
    assert len(outline) == 5
    assert workflow.step == GenerationStep.IDLE

    state = await workflow.generate_slides(progress_callback=updates.append)
    final = await workflow.finalize()

    assert [s.title for s in state.slides] == [item["title"] for item in OUTLINE]
    assert len({s.id for s in final.slides}) == 5
    assert final.title == TOPIC
    assert final.slides[1].layout == SlideLayout.CODE
    assert final.slides[1].code == "def search(a, x): ..."
    assert final.slides[2].image_url.startswith("data:image/png;base64,")
    assert sleep.delays.count(1.0) == 4
    assert 0.25 in sleep.delays

    stages = [u.stage for u in updates]
    assert stages[0] == "outline_ready"
    assert stages.count("slide_ready") == 5
    assert "complete" in stages
    assert "image_ready" in stages
    assert [u.metadata["index"] for u in updates if u.stage == "slide_ready"] == [0, 1, 2, 3, 4]
    assert workflow.step == GenerationStep.IDLE
    assert workflow.last_error is None


async def test_failed_slide_keeps_earlier_slides(sleep):
    workflow = make_workflow(DeckModel(fail_on="A Real-World Picture"), sleep)
    updates = []
    await workflow.generate_outline(TOPIC)

    with pytest.raises(GenerationFailure):
        await workflow.generate_slides(progress_callback=updates.append)

    assert [s.title for s in workflow.store.slides()] == ["What is Binary Search", "The Algorithm"]
    assert workflow.step == GenerationStep.IDLE
    assert workflow.last_error.startswith("Generation failed")
    assert updates[-1].stage == "error"


async def test_generating_again_replaces_the_deck(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    await workflow.generate_outline(TOPIC)
    first = await workflow.generate_slides()
    second = await workflow.generate_slides()

    assert len(second.slides) == 5
    assert not {s.id for s in first.slides} & {s.id for s in second.slides}


async def test_regeneration_replaces_one_slide_in_place(sleep):
    regenerated = {"title": "Binary Search in One Line", "layout": "QUOTE",
                   "quote": "Halve until found.", "speakerNotes": "Short."}
    workflow = make_workflow(DeckModel(regenerated=regenerated), sleep)
    await workflow.generate_outline(TOPIC)
    await workflow.generate_slides()
    before = await workflow.finalize()
    target = before.slides[0]

    record = await workflow.regenerate_slide(target.id, "Make it a quote")
    after = workflow.store.snapshot()

    assert record.id == target.id
    assert after.slides[0].title == "Binary Search in One Line"
    assert after.slides[0].layout == SlideLayout.QUOTE
    assert [s.id for s in after.slides] == [s.id for s in before.slides]
    assert after.slides[1:] == before.slides[1:]

    prompt = workflow.slide_generator.service.calls[-1].prompt
    assert target.id not in prompt
    assert workflow.step == GenerationStep.IDLE


async def test_regeneration_keeps_image_when_prompt_is_unchanged(sleep):
    image_slide = slide_for("A Real-World Picture")
    regenerated = dict(image_slide, title="Dictionary Search", bullets=["Middle first"])
    images = FakeImageService()
    workflow = make_workflow(DeckModel(regenerated=regenerated), sleep, images)
    await workflow.generate_outline(TOPIC)
    await workflow.generate_slides()
    state = await workflow.finalize()
    target = state.slides[2]
    calls_before = len(images.calls)

    record = await workflow.regenerate_slide(target.id, "Shorter bullets")
    await workflow.finalize()

    assert record.image_url == target.image_url
    assert len(images.calls) == calls_before
    assert "data:image" not in workflow.slide_generator.service.calls[-1].prompt


async def test_regeneration_with_new_picture_schedules_an_image(sleep):
    regenerated = dict(slide_for("A Real-World Picture"), imagePrompt="A phone book, watercolor")
    images = FakeImageService()
    workflow = make_workflow(DeckModel(regenerated=regenerated), sleep, images)
    await workflow.generate_outline(TOPIC)
    await workflow.generate_slides()
    target = (await workflow.finalize()).slides[2]

    await workflow.regenerate_slide(target.id, "Different picture")
    final = await workflow.finalize()

    assert images.calls[-1] == "A phone book, watercolor"
    assert final.slides[2].image_url != target.image_url


async def test_regeneration_errors(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    await workflow.generate_outline(TOPIC)
    state = await workflow.generate_slides()

    with pytest.raises(ValueError):
        await workflow.regenerate_slide(state.slides[0].id, "")
    assert workflow.step == GenerationStep.IDLE
    assert workflow.last_error

    with pytest.raises(KeyError):
        await workflow.regenerate_slide("missing", "anything")


async def test_failed_regeneration_leaves_the_slide_untouched(sleep):
    workflow = make_workflow(DeckModel(regenerated=GenerationFailure("AI generation failed: 500 internal")), sleep)
    await workflow.generate_outline(TOPIC)
    await workflow.generate_slides()
    before = await workflow.finalize()
    target = workflow.store.slide_at(2)

    with pytest.raises(GenerationFailure):
        await workflow.regenerate_slide(target.id, "Use a different picture")

    assert workflow.store.slide_at(2) == target
    assert workflow.store.snapshot().slides == before.slides
    assert workflow.step == GenerationStep.IDLE
    assert workflow.last_error.startswith("Generation failed")


async def test_busy_workflow_keeps_the_running_progress_listener():
    gate = asyncio.Event()

    async def gated_sleep(delay):
        await gate.wait()

    workflow = make_workflow(DeckModel(), gated_sleep)
    await workflow.generate_outline(TOPIC)
    first, second = [], []

    run = asyncio.create_task(workflow.generate_slides(progress_callback=first.append))
    while not first:
        await asyncio.sleep(0)

    with pytest.raises(WorkflowBusyError):
        await workflow.generate_slides(progress_callback=second.append)

    gate.set()
    await run
    await workflow.finalize()

    stages = [u.stage for u in first]
    assert "complete" in stages
    assert "image_ready" in stages
    assert second == []


async def test_slides_need_an_outline(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    with pytest.raises(ValueError):
        await workflow.generate_slides()


async def test_user_edits_and_theme(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    await workflow.generate_outline(TOPIC)
    state = await workflow.generate_slides()

    workflow.update_slide(state.slides[0].id, speaker_notes="Welcome everyone.")
    workflow.set_theme("dark")

    final = await workflow.finalize()
    assert final.slides[0].speaker_notes == "Welcome everyone."
    assert final.theme == "dark"


async def test_background_generation(sleep):
    images = FakeImageService()
    workflow = make_workflow(DeckModel(), sleep, images)
    await workflow.generate_outline(TOPIC)
    workflow.set_theme("dark")

    url = await workflow.generate_background()

    assert workflow.store.background_image == url
    assert TOPIC in images.calls[-1]
    assert "dark mode" in images.calls[-1]

    workflow.image_service = FakeImageService({images.calls[-1]: ImageGenerationFailure("No image data found in response")})
    with pytest.raises(ImageGenerationFailure):
        await workflow.generate_background()
    assert workflow.store.background_image == url
    assert workflow.step == GenerationStep.IDLE


async def test_document_file_to_outline(sleep, tmp_path):
    doc = tmp_path / "binary_search_notes.md"
    doc.write_text("# Binary Search Notes\n\nHalve the range.\n\n## Code\n\n```python\nmid = (lo + hi) // 2\n```\n")
    model = DeckModel()
    workflow = make_workflow(model, sleep)

    outline = await workflow.generate_outline_from_file(doc)

    assert [i.title for i in outline] == ["Binary Search Notes", "Code"]
    assert outline[1].description == "```python\nmid = (lo + hi) // 2\n```"
    assert workflow.store.title == "Binary Search Notes"
    assert workflow.step == GenerationStep.IDLE


async def test_export_uses_a_stable_snapshot(sleep):
    workflow = make_workflow(DeckModel(), sleep)
    await workflow.generate_outline(TOPIC)
    await workflow.generate_slides()

    data = json.loads(await workflow.export(JsonDeckExporter()))

    assert data["title"] == TOPIC
    assert len(data["slides"]) == 5
    assert data["slides"][2]["imageUrl"].startswith("data:image/png")
    assert "speakerNotes" in data["slides"][0]
