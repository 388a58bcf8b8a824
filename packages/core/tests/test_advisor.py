"""Tests for the licensing advisor. All LLM calls are mocked."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from planmap.advisor import (
    EMPTY_REPLY,
    GREETING,
    SYSTEM_PROMPT,
    UNAVAILABLE_REPLY,
    LicensingAdvisor,
    build_context,
    build_prompt,
)


def _mock_llm(responses: list[str]) -> MagicMock:
    llm = MagicMock()
    llm.generate.side_effect = [(r, {"input_tokens": 10, "output_tokens": 20}) for r in responses]
    return llm


class TestPrompt:
    def test_context_lists_plans(self, basic_bundle, pro_bundle):
        context = build_context([basic_bundle, pro_bundle])
        assert context == (
            "The user is looking at Microsoft 365 licensing. Available plans include: Basic at $6.00, Pro at $22.00."
        )

    def test_prompt_default_context(self):
        assert build_prompt("Which plan?") == (
            "Context about M365 Plans: General M365 Licensing\n\nUser Question: Which plan?"
        )


class TestLicensingAdvisor:
    def test_transcript_starts_with_greeting(self):
        advisor = LicensingAdvisor(llm=_mock_llm([]))
        assert advisor.transcript[0].content == GREETING

    def test_ask_sends_system_prompt(self):
        llm = _mock_llm(["Business Premium is the best fit."])
        advisor = LicensingAdvisor(llm=llm)
        reply = advisor.ask("Which plan for 50 users?", "ctx")

        assert reply == "Business Premium is the best fit."
        messages, system = llm.generate.call_args.args[:2]
        assert system == SYSTEM_PROMPT
        assert messages == [{"role": "user", "content": build_prompt("Which plan for 50 users?", "ctx")}]
        assert [m.role for m in advisor.transcript] == ["assistant", "user", "assistant"]

    def test_questions_sent_independently(self):
        llm = _mock_llm(["one", "two"])
        advisor = LicensingAdvisor(llm=llm)
        advisor.ask("first")
        advisor.ask("second")
        assert len(llm.generate.call_args.args[0]) == 1

    def test_failure_becomes_apology(self):
        llm = MagicMock()
        llm.generate.side_effect = ConnectionError("network down")
        advisor = LicensingAdvisor(llm=llm)
        assert advisor.ask("Hello?") == UNAVAILABLE_REPLY
        assert advisor.transcript[-1].content == UNAVAILABLE_REPLY

    def test_missing_provider_becomes_apology(self):
        def no_provider():
            raise RuntimeError("No LLM provider configured.")

        advisor = LicensingAdvisor(llm_factory=no_provider)
        assert advisor.ask("Hello?") == UNAVAILABLE_REPLY

    def test_empty_completion(self):
        advisor = LicensingAdvisor(llm=_mock_llm([""]))
        assert advisor.ask("Hello?") == EMPTY_REPLY

    @pytest.mark.parametrize("question", ["", "   "])
    def test_blank_question_ignored(self, question):
        llm = _mock_llm([])
        advisor = LicensingAdvisor(llm=llm)
        assert advisor.ask(question) == ""
        llm.generate.assert_not_called()
        assert len(advisor.transcript) == 1


class TestGetLLM:
    @pytest.fixture(autouse=True)
    def _no_provider_env(self, monkeypatch):
        for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PLANMAP_LLM_PROVIDER"):
            monkeypatch.delenv(var, raising=False)

    def test_no_keys(self):
        from planmap.llm import get_llm

        with pytest.raises(RuntimeError, match="No LLM provider"):
            get_llm()

    def test_detects_provider_from_keys(self, monkeypatch):
        from planmap.llm import resolve_provider

        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert resolve_provider() == "openai"
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert resolve_provider() == "anthropic"
        assert resolve_provider("OpenAI") == "openai"

    def test_unknown_provider(self, monkeypatch):
        from planmap.llm import get_llm

        monkeypatch.setenv("PLANMAP_LLM_PROVIDER", "gemini")
        with pytest.raises(ValueError, match="anthropic, openai, none"):
            get_llm()

    def test_switched_off(self, monkeypatch):
        from planmap.llm import get_llm, resolve_provider

        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.setenv("PLANMAP_LLM_PROVIDER", "none")
        assert resolve_provider() is None
        with pytest.raises(RuntimeError, match="switched off"):
            get_llm()
        assert LicensingAdvisor().ask("Which plan has Teams Phone?") == UNAVAILABLE_REPLY

    def test_builds_detected_provider(self, monkeypatch):
        from planmap.llm import get_llm
        from planmap.llm.anthropic import AnthropicLLM

        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert isinstance(get_llm(), AnthropicLLM)
