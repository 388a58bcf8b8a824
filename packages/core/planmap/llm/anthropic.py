"""Anthropic LLM provider."""

from __future__ import annotations

import os
import time

import anthropic

from planmap.llm.base import BaseLLM

CHAT_MODEL = os.environ.get("PLANMAP_ANTHROPIC_MODEL", "claude-haiku-4-5-20251001")
_MAX_RETRIES = 3


class AnthropicLLM(BaseLLM):
    def __init__(self, api_key: str | None = None):
        self.client = anthropic.Anthropic(api_key=api_key or os.environ.get("ANTHROPIC_API_KEY"), timeout=60.0)

    def generate(
        self, messages: list[dict], system: str, max_tokens: int = 1024, temperature: float = 0.7
    ) -> tuple[str, dict]:
        # The system prompt is identical on every call, so let Anthropic cache it
        system_block = [{"type": "text", "text": system, "cache_control": {"type": "ephemeral"}}]
        delay = 1.0
        for attempt in range(_MAX_RETRIES):
            try:
                response = self.client.messages.create(
                    model=CHAT_MODEL,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_block,
                    messages=messages,
                )
                usage = {
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                }
                text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
                return text, usage
            except anthropic.RateLimitError:
                if attempt == _MAX_RETRIES - 1:
                    raise
                time.sleep(delay)
                delay *= 2
