"""Ideation: propose article angles for a topic."""

from typing import List

from pydantic import ValidationError

from studio.app.exceptions import GenerationError, InvalidInputError
from studio.app.providers.openai import ChatProvider
from studio.app.services.models import Angle

ANGLE_COUNT = 3

IDEATION_PROMPT = """Generate exactly {count} distinct angles for a thought leadership article on the topic below.

Topic: {topic}

Respond with a JSON object {{"angles": [...]}} where each angle has:
- id: a short unique slug
- title: a headline of 5-10 words
- hook: an opening line of 1-2 sentences
- pitch: 2-3 sentences describing the angle and the points to cover"""


async def generate_angles(provider: ChatProvider, model: str, topic: str) -> List[Angle]:
    """Generate three angles for a topic.

    Raises:
        InvalidInputError: If the topic is empty
        GenerationError: If the provider fails or returns malformed angles
    """
    if not topic or not topic.strip():
        raise InvalidInputError("Topic cannot be empty")

    data = await provider.complete_json(
        model, IDEATION_PROMPT.format(count=ANGLE_COUNT, topic=topic.strip())
    )
    try:
        angles = [Angle.model_validate(item) for item in data.get("angles") or []]
    except ValidationError as e:
        raise GenerationError(f"Malformed angles from provider: {e.error_count()} errors") from e

    if len(angles) != ANGLE_COUNT:
        raise GenerationError(f"Expected {ANGLE_COUNT} angles, got {len(angles)}")
    return angles
