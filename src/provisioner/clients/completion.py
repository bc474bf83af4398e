"""Completion service backed by the OpenAI SDK."""

import logging
from typing import Optional

from openai import OpenAI

from ..errors import CompletionError

logger = logging.getLogger(__name__)


class OpenAICompletion:
    """Single-turn chat completion returning the raw message text."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.1,
        max_tokens: int = 1000,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        system_prompt: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        if not api_key and client is None:
            raise CompletionError("OPENAI_API_KEY not found in environment")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

        logger.debug(f"Completion service initialized: model={model}")

    def complete(self, prompt: str) -> str:
        """
        Send `prompt` and return the response text.

        Raises:
            CompletionError: If the API call fails or returns no content
        """
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise CompletionError("Completion service returned an empty response")

        if completion.usage:
            logger.debug(
                f"Completion used {completion.usage.prompt_tokens} in / "
                f"{completion.usage.completion_tokens} out tokens"
            )
        return content
