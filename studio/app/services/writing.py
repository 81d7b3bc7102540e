"""Writing: draft articles, refine them and write promotional social posts."""

import re

from studio.app.exceptions import InvalidInputError
from studio.app.providers.openai import ChatProvider
from studio.app.services.models import Angle, DraftResult, ResearchResult

WRITER_PERSONA = """You are a thought leadership writer. Authoritative but accessible, slightly contrarian, focused on the "why" and "so what".
Use Markdown with ## subheadings, short paragraphs, 600-1000 words. Never use hashtags, emojis or em dashes."""

SOCIAL_PERSONA = """You write short social posts that make readers open the full article.
Punchy sentences, under 150 words, hook then tension then a pointer to the article. Never use hashtags or em dashes."""

DRAFT_PROMPT = """Write a thought leadership article based on the following.

ANGLE:
Title: {title}
Hook: {hook}
Focus: {pitch}

RESEARCH SUMMARY:
{summary}

KEY STATISTICS:
{stats}

SOURCES:
{sources}

Start with the hook, weave the statistics in naturally, reference the sources and end with a call to action."""

SOCIAL_PROMPT = """Write a short post promoting this article.

ARTICLE TITLE: {title}
ARTICLE HOOK: {hook}
ARTICLE SUMMARY: {pitch}

Tease the core insight without giving away the full solution."""

REFINE_PROMPT = """Refine the following text strictly according to the instruction, keeping the author's voice.

INSTRUCTION: "{instruction}"

CURRENT TEXT:
{content}

Return the rewritten text only."""

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def count_words(text: str) -> int:
    return len(text.split())


def extract_title(content: str, fallback: str) -> str:
    """First level-one Markdown heading, or the fallback."""
    match = _HEADING_RE.search(content)
    return match.group(1).strip() if match else fallback


async def generate_draft(
    provider: ChatProvider,
    model: str,
    angle: Angle,
    research: ResearchResult,
) -> DraftResult:
    """Write a full article draft for an angle and its research.

    Raises:
        InvalidInputError: If the angle has no title
        GenerationError: If the provider fails
    """
    if not angle.title or not angle.title.strip():
        raise InvalidInputError("Angle title cannot be empty")

    prompt = DRAFT_PROMPT.format(
        title=angle.title,
        hook=angle.hook,
        pitch=angle.pitch,
        summary=research.summary,
        stats="\n".join(f"{i}. {stat}" for i, stat in enumerate(research.key_stats, 1)),
        sources="\n".join(f"- {c.title} {c.url}" for c in research.citations),
    )
    content = await provider.complete_text(model, prompt, system=WRITER_PERSONA)
    return DraftResult(
        title=extract_title(content, angle.title),
        content=content,
        word_count=count_words(content),
    )


async def generate_social_post(
    provider: ChatProvider,
    model: str,
    draft: DraftResult,
    angle: Angle,
) -> str:
    """Write a short post promoting a draft."""
    prompt = SOCIAL_PROMPT.format(title=draft.title, hook=angle.hook, pitch=angle.pitch)
    return await provider.complete_text(model, prompt, system=SOCIAL_PERSONA)


async def refine_draft(
    provider: ChatProvider,
    model: str,
    content: str,
    instruction: str,
) -> str:
    """Rewrite content according to an editing instruction.

    Raises:
        InvalidInputError: If content or instruction is empty
    """
    if not content or not content.strip():
        raise InvalidInputError("Content cannot be empty")
    if not instruction or not instruction.strip():
        raise InvalidInputError("Instruction cannot be empty")

    prompt = REFINE_PROMPT.format(instruction=instruction.strip(), content=content)
    return await provider.complete_text(model, prompt, system=WRITER_PERSONA)
