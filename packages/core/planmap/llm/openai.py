"""OpenAI LLM provider."""

from __future__ import annotations

import os
import time

import openai

from planmap.llm.base import BaseLLM

CHAT_MODEL = os.environ.get("PLANMAP_OPENAI_MODEL", "gpt-4o-mini")
_MAX_RETRIES = 3


class OpenAILLM(BaseLLM):
    def __init__(self, api_key: str | None = None):
        self.client = openai.OpenAI(api_key=api_key or os.environ.get("OPENAI_API_KEY"), timeout=60.0)

    def generate(
        self, messages: list[dict], system: str, max_tokens: int = 1024, temperature: float = 0.7
    ) -> tuple[str, dict]:
        full_messages = [{"role": "system", "content": system}] + messages
        delay = 1.0
        for attempt in range(_MAX_RETRIES):
            try:
                response = self.client.chat.completions.create(
                    model=CHAT_MODEL,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=full_messages,
                )
                usage = {
                    "input_tokens": response.usage.prompt_tokens,
                    "output_tokens": response.usage.completion_tokens,
                }
                return response.choices[0].message.content or "", usage
            except openai.RateLimitError:
                if attempt == _MAX_RETRIES - 1:
                    raise
                time.sleep(delay)
                delay *= 2
