"""OpenAI-compatible chat provider.

Works against the OpenAI API and compatible endpoints (Azure OpenAI
deployments, local servers exposing /chat/completions).
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from studio.app.core.logging import get_logger
from studio.app.exceptions import GenerationError
from studio.app.providers.base import BaseProvider

logger = get_logger(__name__)


class ChatProvider(BaseProvider):
    """Chat completion provider used for ideation, research and writing."""

    name = "chat"

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming chat completion request.

        Raises:
            GenerationError: If the API returns an error status or cannot be reached
        """
        url = self._get_endpoint_url("/chat/completions")
        async with self._client_context() as client:
            try:
                resp = await client.post(url, headers=self.headers, json=payload)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Chat provider returned {e.response.status_code} for {payload.get('model')}")
                raise GenerationError(
                    f"Chat provider error: HTTP {e.response.status_code}", provider=self.name
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Chat provider request failed: {e}")
                raise GenerationError(f"Chat provider unreachable: {e}", provider=self.name) from e
            try:
                return resp.json()
            except ValueError as e:
                logger.error(f"Chat provider returned a non-JSON body for {payload.get('model')}")
                raise GenerationError("Chat provider returned a non-JSON response", provider=self.name) from e

    @staticmethod
    def _messages(prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _extract_content(self, data: Dict[str, Any]) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Chat provider returned no choices", provider=self.name) from e
        if not isinstance(content, str):
            raise GenerationError("Chat provider returned non-text content", provider=self.name)
        if not content.strip():
            raise GenerationError("Chat provider returned empty content", provider=self.name)
        return content.strip()

    async def complete_text(self, model: str, prompt: str, system: Optional[str] = None) -> str:
        """Generate free text for a prompt."""
        data = await self.chat_completion({
            "model": model,
            "messages": self._messages(prompt, system),
        })
        return self._extract_content(data)

    async def complete_json(self, model: str, prompt: str, system: Optional[str] = None) -> Dict[str, Any]:
        """Generate a JSON object for a prompt.

        Raises:
            GenerationError: If the content is not a JSON object
        """
        data = await self.chat_completion({
            "model": model,
            "messages": self._messages(prompt, system),
            "response_format": {"type": "json_object"},
        })
        content = self._extract_content(data)
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise GenerationError("Chat provider returned invalid JSON", provider=self.name) from e
        if not isinstance(parsed, dict):
            raise GenerationError("Chat provider returned non-object JSON", provider=self.name)
        return parsed
