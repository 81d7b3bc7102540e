"""Generation endpoints, one per studio action.

A denied call answers 429 with a Retry-After header; service failures
come back as {"error": message} with status 200, the same shape the
action returns.
"""

from typing import Any, Callable, Dict, Union

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from studio.app.actions import (
    CONTENT_MAX_LENGTH,
    ActionResult,
    validate_image_prompt,
    validate_instruction,
    validate_topic,
)
from studio.app.api.deps import ActionsDep
from studio.app.exceptions import InvalidInputError
from studio.app.middleware.rate_limit import RateLimitExceeded
from studio.app.services.models import (
    Angle,
    AspectRatio,
    DraftResult,
    ImageModel,
    ResearchResult,
)

router = APIRouter(prefix="/api", tags=["generation"])


def _checked(validator: Callable[[str], str], value: str) -> str:
    # pydantic only reports ValueError as a validation error
    try:
        return validator(value)
    except InvalidInputError as e:
        raise ValueError(e.message) from e


class AnglesRequest(BaseModel):
    topic: str

    @field_validator("topic")
    @classmethod
    def check_topic(cls, v: str) -> str:
        return _checked(validate_topic, v)


class ResearchRequest(BaseModel):
    angle: Angle


class DraftRequest(BaseModel):
    angle: Angle
    research: ResearchResult


class SocialPostRequest(BaseModel):
    draft: DraftResult
    angle: Angle


class RefineRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)
    instruction: str

    @field_validator("instruction")
    @classmethod
    def check_instruction(cls, v: str) -> str:
        return _checked(validate_instruction, v)


class ImagePromptsRequest(BaseModel):
    draft: DraftResult


class ImageRequest(BaseModel):
    prompt: str
    aspect_ratio: AspectRatio = "1:1"
    model: ImageModel = "standard"

    @field_validator("prompt")
    @classmethod
    def check_prompt(cls, v: str) -> str:
        return _checked(validate_image_prompt, v)


def rate_limited_response(exceeded: RateLimitExceeded) -> JSONResponse:
    """Build the 429 response for a denied action."""
    return JSONResponse(
        status_code=429,
        content=exceeded.to_dict(),
        headers={"Retry-After": str(exceeded.retry_after_seconds)},
    )


def to_response(result: ActionResult) -> Union[Dict[str, Any], JSONResponse]:
    if isinstance(result, RateLimitExceeded):
        return rate_limited_response(result)
    return result


@router.post("/ideation/angles")
async def generate_angles(body: AnglesRequest, actions: ActionsDep):
    return to_response(await actions.generate_angles(body.topic))


@router.post("/research")
async def research_topic(body: ResearchRequest, actions: ActionsDep):
    return to_response(await actions.research_topic(body.angle))


@router.post("/writing/draft")
async def generate_draft(body: DraftRequest, actions: ActionsDep):
    return to_response(await actions.generate_draft(body.angle, body.research))


@router.post("/writing/social-post")
async def generate_social_post(body: SocialPostRequest, actions: ActionsDep):
    return to_response(await actions.generate_social_post(body.draft, body.angle))


@router.post("/writing/refine")
async def refine_draft(body: RefineRequest, actions: ActionsDep):
    return to_response(await actions.refine_draft(body.content, body.instruction))


@router.post("/assets/image-prompts")
async def generate_image_prompts(body: ImagePromptsRequest, actions: ActionsDep):
    return to_response(await actions.generate_image_prompts(body.draft))


@router.post("/assets/images")
async def generate_image(body: ImageRequest, actions: ActionsDep):
    return to_response(
        await actions.generate_image(body.prompt, body.aspect_ratio, body.model)
    )
