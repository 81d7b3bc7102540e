"""Rate limited studio actions.

Each action validates its input, calls one generation service and turns
service failures into an {"error": message} result. The actions are
wrapped by the RateLimiter at construction, so a denied call returns a
RateLimitExceeded instead of a result dict and never reaches the
provider.
"""

import re
from typing import Any, Dict, Union

import httpx

from studio.app.core.config import Settings, settings as default_settings
from studio.app.core.logging import get_log_context, get_logger
from studio.app.exceptions import InvalidInputError, StudioException
from studio.app.middleware.rate_limit import RateLimitClass, RateLimiter, RateLimitExceeded
from studio.app.providers.gemini import ImageProvider
from studio.app.providers.openai import ChatProvider
from studio.app import services
from studio.app.services.models import (
    Angle,
    AspectRatio,
    DraftResult,
    ImageModel,
    ResearchResult,
)

logger = get_logger(__name__)

TOPIC_MIN_LENGTH = 5
TOPIC_MAX_LENGTH = 500
INSTRUCTION_MIN_LENGTH = 3
INSTRUCTION_MAX_LENGTH = 2000
IMAGE_PROMPT_MIN_LENGTH = 5
IMAGE_PROMPT_MAX_LENGTH = 1000
CONTENT_MAX_LENGTH = 50000

_MARKUP_RE = re.compile(r"[<>]")

# Instructions are spliced into the writing prompt verbatim
UNSAFE_INSTRUCTION_PATTERNS = [
    re.compile(r"ignore\s+previous\s+instructions", re.IGNORECASE),
    re.compile(r"forget\s+everything", re.IGNORECASE),
    re.compile(r"you\s+are\s+now", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"role\s*:\s*system", re.IGNORECASE),
]

# action name -> (rate limit class, cost)
ACTION_RATE_LIMITS = {
    "generate_angles": (RateLimitClass.IDEATION, 1),
    "research_topic": (RateLimitClass.RESEARCH, 1),
    "generate_draft": (RateLimitClass.WRITING, 2),
    "generate_social_post": (RateLimitClass.WRITING, 1),
    "refine_draft": (RateLimitClass.WRITING, 1),
    "generate_image_prompts": (RateLimitClass.WRITING, 1),
    "generate_image": (RateLimitClass.IMAGE, 1),
}

ActionResult = Union[Dict[str, Any], RateLimitExceeded]


def validate_text(value: str, field: str, max_length: int, min_length: int = 1) -> str:
    """Strip a text input and enforce min_length..max_length characters.

    Raises:
        InvalidInputError: If the value is empty, too short or too long
    """
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(f"{field} cannot be empty")
    if len(value) < min_length:
        raise InvalidInputError(f"{field} must be at least {min_length} characters")
    if len(value) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return value


def validate_topic(topic: str) -> str:
    topic = validate_text(topic, "Topic", TOPIC_MAX_LENGTH, TOPIC_MIN_LENGTH)
    if _MARKUP_RE.search(topic):
        raise InvalidInputError("Topic cannot contain < or > characters")
    return topic


def validate_instruction(instruction: str) -> str:
    """Validate a refinement instruction, refusing prompt injection phrases."""
    instruction = validate_text(
        instruction, "Instruction", INSTRUCTION_MAX_LENGTH, INSTRUCTION_MIN_LENGTH
    )
    if any(pattern.search(instruction) for pattern in UNSAFE_INSTRUCTION_PATTERNS):
        raise InvalidInputError("Instruction contains potentially unsafe patterns")
    return instruction


def validate_image_prompt(prompt: str) -> str:
    return validate_text(prompt, "Prompt", IMAGE_PROMPT_MAX_LENGTH, IMAGE_PROMPT_MIN_LENGTH)


def _error_result(action: str, exc: Exception, **fields: Any) -> Dict[str, Any]:
    message = exc.message if isinstance(exc, StudioException) else str(exc)
    logger.warning(
        f"Action {action} failed: {message}",
        extra=get_log_context(error_type=type(exc).__name__),
    )
    return {**fields, "error": message or "An unexpected error occurred"}


class StudioActions:
    """The workflow operations exposed to clients, each behind a rate limit.

    Usage:
        actions = StudioActions(limiter, chat_provider, image_provider)
        result = await actions.generate_angles("remote work")
        if isinstance(result, RateLimitExceeded):
            ...
    """

    def __init__(
        self,
        limiter: RateLimiter,
        chat_provider: ChatProvider,
        image_provider: ImageProvider,
        settings: Settings = default_settings,
    ):
        self.limiter = limiter
        self.chat_provider = chat_provider
        self.image_provider = image_provider
        self.settings = settings

        # Wrapping here validates every class and cost before traffic flows
        for name, (rate_class, cost) in ACTION_RATE_LIMITS.items():
            handler = getattr(self, f"_{name}")
            setattr(self, name, limiter.with_rate_limit(rate_class, cost)(handler))

    async def _generate_angles(self, topic: str) -> Dict[str, Any]:
        try:
            topic = validate_topic(topic)
            angles = await services.generate_angles(
                self.chat_provider, self.settings.ideation_model, topic
            )
            return {"angles": [angle.model_dump() for angle in angles]}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("generate_angles", e)

    async def _research_topic(self, angle: Angle) -> Dict[str, Any]:
        try:
            research = await services.research_topic(
                self.chat_provider, self.settings.research_model, angle
            )
            return {"research": research.model_dump()}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("research_topic", e)

    async def _generate_draft(self, angle: Angle, research: ResearchResult) -> Dict[str, Any]:
        try:
            draft = await services.generate_draft(
                self.chat_provider, self.settings.writing_model, angle, research
            )
            return {"draft": draft.model_dump()}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("generate_draft", e)

    async def _generate_social_post(self, draft: DraftResult, angle: Angle) -> Dict[str, Any]:
        try:
            post = await services.generate_social_post(
                self.chat_provider, self.settings.writing_model, draft, angle
            )
            return {"post": post}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("generate_social_post", e)

    async def _refine_draft(self, content: str, instruction: str) -> Dict[str, Any]:
        try:
            content = validate_text(content, "Content", CONTENT_MAX_LENGTH)
            instruction = validate_instruction(instruction)
            refined = await services.refine_draft(
                self.chat_provider, self.settings.writing_model, content, instruction
            )
            return {"refined_content": refined}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("refine_draft", e)

    async def _generate_image_prompts(self, draft: DraftResult) -> Dict[str, Any]:
        try:
            prompts = await services.generate_image_prompts(
                self.chat_provider, self.settings.writing_model, draft
            )
            return {"success": True, "prompts": [p.model_dump() for p in prompts]}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("generate_image_prompts", e, success=False)

    async def _generate_image(
        self,
        prompt: str,
        aspect_ratio: AspectRatio = "1:1",
        model: ImageModel = "standard",
    ) -> Dict[str, Any]:
        try:
            prompt = validate_image_prompt(prompt)
            image = await services.generate_image(
                self.image_provider, self.settings, prompt, aspect_ratio, model
            )
            return {"success": True, "image": image.model_dump()}
        except (StudioException, httpx.HTTPError) as e:
            return _error_result("generate_image", e, success=False)
