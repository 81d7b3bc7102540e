"""Research: gather a summary, citations and statistics for an angle."""

from pydantic import ValidationError

from studio.app.exceptions import GenerationError, InvalidInputError
from studio.app.providers.openai import ChatProvider
from studio.app.services.models import Angle, ResearchResult

RESEARCH_PROMPT = """Research the following topic for a thought leadership article.

Topic: {title}
Context: {pitch}

Respond with a JSON object containing:
- summary: a 300-500 word summary of insights, trends and expert perspectives
- citations: 3-6 recent sources, each with title, url and snippet
- key_stats: 3-5 statistics, each with its source"""


async def research_topic(provider: ChatProvider, model: str, angle: Angle) -> ResearchResult:
    """Research an angle.

    Raises:
        InvalidInputError: If the angle has no title
        GenerationError: If the provider fails or returns malformed research
    """
    if not angle.title or not angle.title.strip():
        raise InvalidInputError("Angle title cannot be empty")

    data = await provider.complete_json(
        model, RESEARCH_PROMPT.format(title=angle.title, pitch=angle.pitch)
    )
    try:
        return ResearchResult.model_validate(data)
    except ValidationError as e:
        raise GenerationError(f"Malformed research from provider: {e.error_count()} errors") from e
