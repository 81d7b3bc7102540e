"""Gemini image generation provider.

Calls the generateContent endpoint with image output enabled and returns
the first inline image part.
"""

from typing import Any, Dict

import httpx

from studio.app.core.logging import get_logger
from studio.app.exceptions import GenerationError
from studio.app.providers.base import BaseProvider

logger = get_logger(__name__)


class ImageProvider(BaseProvider):
    """Image generation provider."""

    name = "image"

    def _build_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    async def generate_content(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a generateContent request for a model.

        Raises:
            GenerationError: If the API returns an error status or cannot be reached
        """
        url = self._get_endpoint_url(f"/models/{model}:generateContent")
        async with self._client_context() as client:
            try:
                resp = await client.post(url, headers=self.headers, json=payload)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Image provider returned {e.response.status_code} for {model}")
                raise GenerationError(
                    f"Image generation failed: HTTP {e.response.status_code}", provider=self.name
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Image provider request failed: {e}")
                raise GenerationError(f"Image generation failed: {e}", provider=self.name) from e
            try:
                return resp.json()
            except ValueError as e:
                logger.error(f"Image provider returned a non-JSON body for {model}")
                raise GenerationError("Image generation failed: non-JSON response", provider=self.name) from e

    async def generate_image(self, model: str, prompt: str, aspect_ratio: str) -> Dict[str, str]:
        """Generate one image.

        Returns:
            Dict with "data" (base64) and "mime_type"

        Raises:
            GenerationError: If the response carries no image
        """
        payload = {
            "contents": [{"parts": [{"text": f"Generate an image of: {prompt}"}]}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": aspect_ratio},
            },
        }
        logger.info(f"Generating image with model {model}, aspect ratio {aspect_ratio}")
        data = await self.generate_content(model, payload)

        for candidate in data.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData")
                if inline and inline.get("data"):
                    return {
                        "data": inline["data"],
                        "mime_type": inline.get("mimeType") or "image/png",
                    }

        logger.warning(f"{model} output no images")
        raise GenerationError(f"{model} output no images.", provider=self.name)
