"""
LLM Client Abstraction Layer
==============================
Thin gateway over the Anthropic Messages API.

One attempt per call, no retry. Any provider failure (network, timeout, auth,
rate limit, empty reply) is raised as GatewayError with the provider's message.
"""

import logging
import re
import time

import anthropic

from config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL, MAX_TOKENS

logger = logging.getLogger("guidance_rx.llm")


class GatewayError(Exception):
    """The remote completion call failed."""


def model_label(model: str) -> str:
    """Model id without its release date suffix, e.g. claude-sonnet-4-20250514 -> claude-sonnet-4."""
    return re.sub(r"-\d{8}$", "", model or "")


class LLMClient:
    """
    Unified LLM interface.
    - query(): single user message → first content block's text, unmodified
    """

    def __init__(self, api_key: str = None, model: str = None, max_tokens: int = None):
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model or ANTHROPIC_MODEL
        self.max_tokens = max_tokens or MAX_TOKENS
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    # ------------------------------------------------------------------
    #  Public API: query()
    # ------------------------------------------------------------------
    def query(self, user_message: str, system_prompt: str = None,
              max_tokens: int = None, temperature: float = None) -> str:
        """Send a single-turn request and return the raw text response."""
        if not self.is_configured:
            raise GatewayError("ANTHROPIC_API_KEY is not configured")

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if temperature is not None:
            kwargs["temperature"] = temperature

        logger.info(f"Calling {self.model} (max_tokens={kwargs['max_tokens']})")
        t0 = time.monotonic()
        try:
            response = self._get_client().messages.create(**kwargs)
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic API error: {type(e).__name__}: {e}")
            raise GatewayError(str(e)) from e
        elapsed = time.monotonic() - t0

        if not response.content or not hasattr(response.content[0], "text"):
            raise GatewayError("Model returned no text content")

        logger.info(f"Model responded in {elapsed:.1f}s")
        return response.content[0].text
