"""LLM providers behind the licensing advisor.

The provider is the explicit argument, else PLANMAP_LLM_PROVIDER, else the
first provider in PROVIDERS whose API key is set. PLANMAP_LLM_PROVIDER=none
switches the advisor off, so chat answers with the static apology and never
reaches the network.
"""

from __future__ import annotations

import importlib
import logging
import os

from planmap.llm.base import BaseLLM

log = logging.getLogger(__name__)

# name -> (module, class, API key variable), in auto-detect order
PROVIDERS: dict[str, tuple[str, str, str]] = {
    "anthropic": ("planmap.llm.anthropic", "AnthropicLLM", "ANTHROPIC_API_KEY"),
    "openai": ("planmap.llm.openai", "OpenAILLM", "OPENAI_API_KEY"),
}
DISABLED = "none"


def resolve_provider(provider: str | None = None) -> str | None:
    """Name of the provider get_llm would build, or None when there is none.

    Raises ValueError for a provider name that is not in PROVIDERS.
    """
    name = (provider or os.environ.get("PLANMAP_LLM_PROVIDER", "")).strip().lower()
    if name == DISABLED:
        return None
    if name:
        if name not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider {name!r}. Use one of: {', '.join([*PROVIDERS, DISABLED])}")
        return name
    return next((candidate for candidate, (_, _, key_var) in PROVIDERS.items() if os.environ.get(key_var)), None)


def get_llm(provider: str | None = None) -> BaseLLM:
    name = resolve_provider(provider)
    if name is None:
        if (provider or os.environ.get("PLANMAP_LLM_PROVIDER", "")).strip().lower() == DISABLED:
            raise RuntimeError("The licensing advisor is switched off (PLANMAP_LLM_PROVIDER=none)")
        raise RuntimeError(
            "No LLM provider configured for the licensing advisor. Set ANTHROPIC_API_KEY or OPENAI_API_KEY, "
            "or set PLANMAP_LLM_PROVIDER=anthropic|openai"
        )
    module_name, class_name, _ = PROVIDERS[name]
    log.debug("Licensing advisor using the %s provider", name)
    return getattr(importlib.import_module(module_name), class_name)()


__all__ = ["BaseLLM", "PROVIDERS", "get_llm", "resolve_provider"]
