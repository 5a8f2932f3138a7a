"""
Outline and Slide Generation Prompts

This module contains all prompts used for turning topics and documents into
outlines, outline items into slides, and edit instructions into revised slides.
"""

import json
from typing import Any, Dict


def get_topic_outline_prompt(topic: str, min_items: int = 5, max_items: int = 8) -> str:
    """Prompt for synthesizing an outline from general knowledge."""
    return (
        f'Create a comprehensive presentation outline for the topic: "{topic}". '
        f"The outline should have {min_items}-{max_items} slides. "
        "For each slide give a 'title' and a 'description' with the raw content the slide should cover."
    )


def get_document_outline_prompt(document_text: str, word_limit: int = 150) -> str:
    """Prompt for segmenting an uploaded document without summarizing it."""
    return f"""You are a strict content parser converting a document into presentation slides.

RULES:
1. NO SUMMARIZATION: You must preserve the exact technical details, code examples, and explanations from the source text. Do not shorten them.
2. SEGMENTATION: Break the text into slides based on headers (#, ##).
3. PAGINATION (CRITICAL): If a section is long (more than {word_limit} words or contains a long code block), split it into multiple slides.
   - Label them "Title (Part 1)", "Title (Part 2)".
   - When splitting, ensure CONTINUITY. Do not cut a sentence in half. Finish the sentence on the current slide before starting the next.
   - Do not split inside a small code block. If a code block is huge, you may split it, but prefer keeping it whole.
4. CODE AWARENESS: Identify sections that contain code blocks.
5. RAW CONTENT: The 'description' field must contain the FULL text/code for that section so the slide generator has the complete context.

--- DOCUMENT CONTENT ---
{document_text}"""


def get_slide_content_prompt(title: str, raw_content: str, theme: str) -> str:
    """Prompt for turning one outline item into one typed slide."""
    return f"""Generate content for a single presentation slide based on the provided Raw Content.

Slide Title: {title}
Raw Content: {raw_content}
Presentation Theme: {theme}

INSTRUCTIONS:
1. Analyze the 'Raw Content'.
2. LAYOUT SELECTION:
   - Check if the content contains a code block (wrapped in ``` or obvious programming code).
   - IF CODE:
      - Set 'layout' to 'CODE'.
      - Extract code to 'code' (without the ``` markers), language to 'language'.
      - Put context in 'description'.
   - IF NO CODE:
      - VISUAL OPPORTUNITY: Does this content describe a physical object, a scene, a concept that benefits from visualization, or a specific person?
        - IF YES: Set 'layout' to 'IMAGE_TEXT'. Provide a 'bullets' array with key points AND an 'imagePrompt' (detailed English description for an AI image generator, e.g., "A futuristic city skyline with neon lights, photorealistic, 8k").
        - IF NO:
          - Quote? Use 'QUOTE'.
          - Big stat? Use 'BIG_NUMBER'.
          - Comparison? Use 'TWO_COLUMN'.
          - Default: 'BULLETS'.

3. CONTENT FIDELITY:
   - Do not hallucinate. Use the provided Raw Content.

Return the JSON matching the schema."""


def get_slide_regeneration_prompt(current_slide: Dict[str, Any], instruction: str) -> str:
    """Prompt for applying a free-text edit instruction to a slide."""
    return f"""Update this slide based on the user's instruction.

Current Slide JSON:
{json.dumps(current_slide, ensure_ascii=False)}

User Instruction: "{instruction}"

Return the full updated slide JSON object including the layout."""
