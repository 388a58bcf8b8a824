"""Licensing advisor — forwards user questions to an LLM with a fixed consultant prompt."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Literal

from pydantic import BaseModel

from planmap.llm import BaseLLM, get_llm
from planmap.models import Bundle

log = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an expert Microsoft 365 Licensing Consultant.
Your goal is to help users understand the complex landscape of M365 plans (E3, E5, Business Premium, F3, etc.).
Be concise, accurate, and focus on value-for-money and security requirements.
If you are unsure about pricing, mention it is estimated and can change.
Suggest the most cost-effective plan based on their needs.
Keep responses in clear Markdown format."""

GREETING = (
    "Hello! I'm your M365 Licensing Specialist. Need help picking a plan for your business? Ask me anything!"
)
UNAVAILABLE_REPLY = "The AI assistant is currently unavailable. Please check your network or try again later."
EMPTY_REPLY = "I'm sorry, I couldn't process that request."
DEFAULT_CONTEXT = "General M365 Licensing"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


def build_context(bundles: Iterable[Bundle]) -> str:
    listing = ", ".join(f"{b.name} at {b.monthly_price_usd}" for b in bundles)
    return f"The user is looking at Microsoft 365 licensing. Available plans include: {listing}."


def build_prompt(question: str, context: str | None = None) -> str:
    return f"Context about M365 Plans: {context or DEFAULT_CONTEXT}\n\nUser Question: {question}"


class LicensingAdvisor:
    """Single-question chat panel with a visible transcript.

    Each question is sent on its own with the plan context; the transcript is
    kept for display only. Any provider failure turns into UNAVAILABLE_REPLY.
    """

    def __init__(self, llm: BaseLLM | None = None, llm_factory: Callable[[], BaseLLM] = get_llm):
        self._llm = llm
        self._llm_factory = llm_factory
        self.transcript: list[ChatMessage] = [ChatMessage(role="assistant", content=GREETING)]

    @property
    def llm(self) -> BaseLLM:
        if self._llm is None:
            self._llm = self._llm_factory()
        return self._llm

    def ask(self, question: str, context: str | None = None) -> str:
        question = question.strip()
        if not question:
            return ""
        self.transcript.append(ChatMessage(role="user", content=question))
        reply = self._complete(question, context)
        self.transcript.append(ChatMessage(role="assistant", content=reply))
        return reply

    def _complete(self, question: str, context: str | None) -> str:
        messages = [{"role": "user", "content": build_prompt(question, context)}]
        try:
            text, usage = self.llm.generate(messages, SYSTEM_PROMPT, temperature=0.7)
        except Exception:
            log.exception("Licensing advisor request failed")
            return UNAVAILABLE_REPLY
        log.debug("Advisor usage: %s", usage)
        return text or EMPTY_REPLY
