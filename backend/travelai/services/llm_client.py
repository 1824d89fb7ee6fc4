"""Unified LLM client: tries OpenAI first, falls back to Anthropic."""

import json
import logging

import anthropic
from openai import AsyncOpenAI

from travelai.config import Settings, settings

logger = logging.getLogger(__name__)


class LLMUnavailableError(RuntimeError):
    """No provider is configured, or every configured provider failed."""


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback."""

    def __init__(self, config: Settings = settings):
        self._config = config
        self._openai = None
        self._anthropic = None

        if config.openai_api_key:
            self._openai = AsyncOpenAI(
                api_key=config.openai_api_key,
                timeout=config.provider_timeout_seconds * 3,
            )
        if config.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(
                api_key=config.anthropic_api_key,
                timeout=config.provider_timeout_seconds * 3,
            )

    @property
    def is_configured(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def complete(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1000,
        temperature: float = 0,
        json_mode: bool = False,
    ) -> str:
        """Get a completion from the best available LLM.

        Args:
            system: System prompt
            user: User message
            max_tokens: Max output tokens
            temperature: Sampling temperature
            json_mode: If True, force JSON output (OpenAI response_format)

        Returns:
            Raw text response from the LLM.

        Raises:
            LLMUnavailableError if no provider is configured or all of them fail.
        """
        if not self.is_configured:
            raise LLMUnavailableError("No LLM provider configured")

        errors = []
        messages = [{"role": "user", "content": user}]

        if self._openai:
            try:
                kwargs: dict = {
                    "model": self._config.openai_model,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": [{"role": "system", "content": system}] + messages,
                }
                if json_mode:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await self._openai.chat.completions.create(**kwargs)
                content = response.choices[0].message.content or ""
                return content.strip()
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e}")

        if self._anthropic:
            try:
                response = await self._anthropic.messages.create(
                    model=self._config.anthropic_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=messages,
                )
                return response.content[0].text.strip()
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                logger.warning(f"Anthropic also failed: {e}")

        raise LLMUnavailableError(f"All LLM providers failed: {'; '.join(errors)}")

    async def complete_json(self, system: str, user: str, **kwargs) -> dict:
        """Completion parsed as a JSON object.

        Raises:
            LLMUnavailableError from ``complete``; ValueError when the reply is not a JSON object.
        """
        text = await self.complete(system, user, json_mode=True, **kwargs)
        parsed = json.loads(strip_code_fences(text))
        if not isinstance(parsed, dict):
            raise ValueError("LLM reply is not a JSON object")
        return parsed


# Singleton
llm_client = LLMClient()
