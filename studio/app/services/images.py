"""Image prompts for a draft, and image generation from a prompt."""

from typing import List

from pydantic import ValidationError

from studio.app.core.config import Settings
from studio.app.exceptions import GenerationError, InvalidInputError
from studio.app.providers.gemini import ImageProvider
from studio.app.providers.openai import ChatProvider
from studio.app.services.models import (
    AspectRatio,
    DraftResult,
    GeneratedImage,
    ImageModel,
    ImagePrompt,
)

IMAGE_PROMPT_COUNT = 3

IMAGE_PROMPTS_PROMPT = """Analyse this article and write {count} distinct image prompts for it.

ARTICLE TITLE: {title}

ARTICLE CONTENT:
{content}

One hero image for the main theme, one supporting image for a key concept or data point,
one closing image for the conclusion. Professional imagery, no text, no real faces.

Respond with a JSON object {{"prompts": [...]}} where each prompt has:
- id: a short kebab-case identifier
- description: a detailed 50-100 word image generation prompt
- style: one of professional, abstract, editorial, infographic"""


async def generate_image_prompts(
    provider: ChatProvider,
    model: str,
    draft: DraftResult,
) -> List[ImagePrompt]:
    """Generate three image prompts for a draft.

    Raises:
        InvalidInputError: If the draft has no content
        GenerationError: If the provider fails or returns malformed prompts
    """
    if not draft.content or not draft.content.strip():
        raise InvalidInputError("Draft content cannot be empty")

    data = await provider.complete_json(
        model,
        IMAGE_PROMPTS_PROMPT.format(count=IMAGE_PROMPT_COUNT, title=draft.title, content=draft.content),
    )
    try:
        prompts = [ImagePrompt.model_validate(item) for item in data.get("prompts") or []]
    except ValidationError as e:
        raise GenerationError(f"Malformed image prompts from provider: {e.error_count()} errors") from e

    if len(prompts) != IMAGE_PROMPT_COUNT:
        raise GenerationError(f"Expected {IMAGE_PROMPT_COUNT} image prompts, got {len(prompts)}")
    return prompts


def resolve_image_model(model: ImageModel, settings: Settings) -> str:
    """Map the workflow's model choice to the provider model id."""
    return settings.image_model_pro if model == "pro" else settings.image_model_standard


async def generate_image(
    provider: ImageProvider,
    settings: Settings,
    prompt: str,
    aspect_ratio: AspectRatio = "1:1",
    model: ImageModel = "standard",
) -> GeneratedImage:
    """Generate one image from a prompt.

    Raises:
        InvalidInputError: If the prompt is empty
        GenerationError: If the provider fails or returns no image
    """
    if not prompt or not prompt.strip():
        raise InvalidInputError("Prompt cannot be empty")

    image = await provider.generate_image(
        resolve_image_model(model, settings), prompt.strip(), aspect_ratio
    )
    return GeneratedImage(base64=image["data"], media_type=image["mime_type"])
