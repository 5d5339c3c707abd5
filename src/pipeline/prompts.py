# src/pipeline/prompts.py — v1
"""Prompt texts and the content-category table for note generation."""

from __future__ import annotations

from visionrecall.config.runtime_config import RuntimeConfig

DEFAULT_VISION_PROMPT = (
    "Analyze this screenshot and describe its content and identify the type "
    "of screenshot if possible."
)

DEFAULT_NOTES_PROMPT = (
    "The following OCR text and vision analysis are from a screenshot. "
    "Summarize and synthesize the text and vision analysis and identify key "
    "information."
)

TAGS_PROMPT = (
    "Please suggest exactly 5 relevant tags or keywords to categorize the "
    "following notes as well as a title for the notes. Return ONLY a JSON "
    "object with the following properties: tags (array of strings), title "
    "(string). Example format: { title: 'Title of the notes', tags: ['tag1', "
    "'tag2', 'tag3', 'tag4', 'tag5'] }"
)


def generic_category_prompt(source: str, include_vision: bool = True) -> str:
    vision = " and vision analysis" if include_vision else ""
    return (
        f"The following text{vision} is from {source}. "
        "Summarize the main topic and key information/arguments."
    )


# Ordered: the first keyword found in the vision response wins.
CATEGORY_PROMPTS: list[tuple[str, str]] = [
    (
        "youtube comment",
        "The following text is from a YouTube comment. Summarize key findings, "
        "experiences, or opinions, focusing on actionable takeaways.",
    ),
    ("web page", generic_category_prompt("a web page screenshot")),
    ("email", generic_category_prompt("an email screenshot")),
    ("reddit comment", generic_category_prompt("a Reddit comment")),
    ("tweet", generic_category_prompt("a Twitter comment or Tweet")),
    ("instagram comment", generic_category_prompt("an Instagram comment")),
    ("tiktok comment", generic_category_prompt("a TikTok comment")),
    ("discord message", generic_category_prompt("a Discord message")),
    ("telegram message", generic_category_prompt("a Telegram message")),
]


def detect_category(vision_response: str) -> str | None:
    """First category keyword contained in the vision response."""
    lowered = vision_response.lower()
    for keyword, _ in CATEGORY_PROMPTS:
        if keyword in lowered:
            return keyword
    return None


def vision_prompt(config: RuntimeConfig) -> str:
    return config.vision_llm_prompt.strip() or DEFAULT_VISION_PROMPT


def notes_base_prompt(config: RuntimeConfig, vision_response: str) -> str:
    """Configured notes prompt, replaced by a category prompt when one matches."""
    prompt = config.notes_llm_prompt.strip() or DEFAULT_NOTES_PROMPT
    if config.enable_category_detection:
        category = detect_category(vision_response)
        if category is not None:
            prompt = dict(CATEGORY_PROMPTS)[category]
    return prompt


def build_notes_prompt(
    config: RuntimeConfig,
    ocr_text: str,
    vision_response: str,
    language_modifier: str = "",
) -> str:
    base = notes_base_prompt(config, vision_response)
    return (
        f"{base}{language_modifier}\n\nOCR text:\n{ocr_text}"
        f"\n\nVision analysis:\n{vision_response}"
    )


def build_tags_prompt(notes: str, language_modifier: str = "") -> str:
    return f"{TAGS_PROMPT}{language_modifier}\n\nNotes:\n{notes}"
