"""
Generate a presentation from a topic or a document and export it.

    python scripts/generate_deck.py --topic "Intro to Binary Search" --out deck.pptx
    python scripts/generate_deck.py --file notes.md --theme dark --json deck.json
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agents import config  # noqa: E402
from agents.generation.deck_orchestrator import PresentationWorkflow  # noqa: E402
from agents.generation.exceptions import GenerationError  # noqa: E402
from services.outline.models import THEMES, ProgressUpdate  # noqa: E402
from services.pptx_exporter import JsonDeckExporter, PptxDeckExporter  # noqa: E402
from setup_logging_optimized import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a slide deck with Gemini")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--topic", help="Topic to build an outline for")
    source.add_argument("--file", help="Document (.md, .txt, .pptx, ...) to turn into slides")
    parser.add_argument("--theme", choices=THEMES, default=config.DEFAULT_THEME, help="Deck theme")
    parser.add_argument("--out", default="deck.pptx", help="PowerPoint output path")
    parser.add_argument("--json", dest="json_out", help="Also write the deck as JSON")
    parser.add_argument("--no-images", action="store_true", help="Skip slide illustrations")
    parser.add_argument("--image-timeout", type=float, default=300, help="Seconds to wait for pending images")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def print_progress(update: ProgressUpdate) -> None:
    print(f"[{update.progress:5.1f}%] {update.message}")


async def run(args: argparse.Namespace) -> int:
    workflow = PresentationWorkflow(images_enabled=not args.no_images)
    workflow.set_theme(args.theme)

    try:
        if args.file:
            outline = await workflow.generate_outline_from_file(args.file)
        else:
            outline = await workflow.generate_outline(args.topic)
    except GenerationError:
        print(f"Error: {workflow.last_error}", file=sys.stderr)
        return 1

    print(f"Outline: {len(outline)} slides")
    for i, item in enumerate(outline, 1):
        print(f"  {i}. {item.title}")

    exit_code = 0
    try:
        await workflow.generate_slides(progress_callback=print_progress)
    except GenerationError:
        print(f"Error: {workflow.last_error}", file=sys.stderr)
        if not len(workflow.store):
            return 1
        print(f"Exporting the {len(workflow.store)} slides generated so far", file=sys.stderr)
        exit_code = 1

    state = await workflow.finalize(wait_for_images=not args.no_images, timeout=args.image_timeout)
    if workflow.scheduler.failures:
        print(f"{len(workflow.scheduler.failures)} illustrations could not be generated", file=sys.stderr)

    out_path = Path(args.out)
    out_path.write_bytes(PptxDeckExporter().export(state))
    print(f"Wrote {out_path} ({len(state.slides)} slides)")

    if args.json_out:
        Path(args.json_out).write_bytes(JsonDeckExporter().export(state))
        print(f"Wrote {args.json_out}")
    return exit_code


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
