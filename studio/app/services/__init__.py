"""Content generation services, one module per workflow phase."""

from studio.app.services.ideation import generate_angles
from studio.app.services.images import generate_image, generate_image_prompts
from studio.app.services.research import research_topic
from studio.app.services.writing import generate_draft, generate_social_post, refine_draft

__all__ = [
    "generate_angles",
    "research_topic",
    "generate_draft",
    "generate_social_post",
    "refine_draft",
    "generate_image_prompts",
    "generate_image",
]
