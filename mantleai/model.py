from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from .errors import LanguageModelError
from .prompts import PromptMessages


logger = logging.getLogger(__name__)


class LanguageModel:
    """Wrapper around the hosted OpenAI chat-completions model."""

    def __init__(
        self,
        api_key: str,
        model_id: str,
        timeout: float = 60.0,
        json_mode: bool = True,
    ) -> None:
        self._model_id = model_id
        self._json_mode = json_mode
        self._client: Optional[AsyncOpenAI] = None
        if api_key:
            # Failures surface to the caller on first occurrence.
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(self, prompt: PromptMessages) -> str:
        """Send a composed prompt and return the raw completion text."""
        if self._client is None:
            logger.error("OpenAI API key is not configured")
            raise LanguageModelError("OpenAI API is not properly configured")

        kwargs = {}
        if prompt.json_mode and self._json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if prompt.presence_penalty:
            kwargs["presence_penalty"] = prompt.presence_penalty
        if prompt.frequency_penalty:
            kwargs["frequency_penalty"] = prompt.frequency_penalty

        logger.info("Requesting %s completion from %s", prompt.task.value, self._model_id)
        try:
            completion = await self._client.chat.completions.create(
                model=self._model_id,
                messages=prompt.to_messages(),
                temperature=prompt.temperature,
                max_tokens=prompt.max_tokens,
                **kwargs,
            )
        except OpenAIError as exc:
            logger.error("%s completion failed: %s", prompt.task.value, exc)
            raise LanguageModelError("Language model request failed", details=str(exc)) from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise LanguageModelError(f"No {prompt.task.value} content received from OpenAI")
        return content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
