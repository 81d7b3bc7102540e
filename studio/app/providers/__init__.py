"""AI providers package.

- BaseProvider: shared HTTP client handling
- ChatProvider: OpenAI-compatible chat completions (ideation, research, writing)
- ImageProvider: Gemini image generation
"""

from studio.app.providers.base import BaseProvider
from studio.app.providers.gemini import ImageProvider
from studio.app.providers.openai import ChatProvider

__all__ = [
    "BaseProvider",
    "ChatProvider",
    "ImageProvider",
]
