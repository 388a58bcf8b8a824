"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseLLM(ABC):
    @abstractmethod
    def generate(
        self, messages: list[dict], system: str, max_tokens: int = 1024, temperature: float = 0.7
    ) -> tuple[str, dict]:
        """Answer with the provider's fast chat model.

        Returns (response_text, usage_dict).
        """
