"""Claude API wrapper with async support and retry logic."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anthropic
from tenacity import retry, stop_after_attempt, wait_exponential

from manuscript_review.config import LLMConfig

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


class LLMClient:
    """Async Claude API client with exponential-backoff retries.

    ``model``, ``temperature`` and ``max_tokens`` are per-client defaults;
    each call may override them.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        *,
        model: str = LLMConfig.model,
        temperature: float = LLMConfig.temperature,
        max_tokens: int = LLMConfig.max_tokens,
    ):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    @classmethod
    def from_config(cls, config: LLMConfig, api_key: str | None = None) -> LLMClient:
        return cls(
            api_key=api_key,
            timeout=config.timeout,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _call_api(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> anthropic.types.Message:
        """Make the actual API call with retry logic."""
        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        return await self.client.messages.create(**kwargs)

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Send a prompt to Claude and return the text response with usage."""
        model = model or self.model
        logger.debug("LLM call: model=%s", model)
        try:
            message = await self._call_api(
                prompt=prompt,
                system=system,
                model=model,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self.max_tokens,
            )
        except Exception:
            logger.error("LLM call failed", exc_info=True)
            raise
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((model, input_tokens, output_tokens))
        return LLMResponse(
            text=message.content[0].text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary
