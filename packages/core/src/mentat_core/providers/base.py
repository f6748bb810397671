"""Base LLM provider implementing the Template Method pattern.

Every agent in mentat (context gatherer, code reviewer, comment fixer) talks
to the model the same way:
    complete() → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Retry with exponential backoff and JSON extraction live here so every
provider inherits them unchanged.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 4096


class BaseProvider(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    def complete(self, system_prompt: str, user_prompt: str) -> str | None:
        """Run one prompt and return the model's text, or None once retries are exhausted."""
        return self._call_with_retry(system_prompt, user_prompt)

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None


def parse_json(raw: str) -> Any:
    """Parse a model response that should be JSON, tolerating an outer code fence.

    Only the outer ```json ... ``` wrapper is stripped; backticks inside string
    values are left alone. Returns None when the text is not valid JSON.
    """
    cleaned = re.sub(r"^```(?:json)?\s*", "", raw.strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Failed to parse model response as JSON: %s", raw[:200])
        return None


def build_provider(config: dict) -> BaseProvider:
    """Instantiate the provider named by ``config["model"]``."""
    model = config.get("model", "anthropic")
    if model == "anthropic":
        from mentat_core.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=config["anthropic_api_key"])
    if model == "openai":
        from mentat_core.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=config["openai_api_key"])
    raise ValueError(f"Unknown model provider: {model!r}. Use 'anthropic' or 'openai'.")
