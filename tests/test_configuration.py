"""Tests for model resolution and chat model construction."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from inbox_triage.configuration import (
    format_model_identifier,
    get_llm,
    model_for_role,
    normalize_model_spec,
)


def test_normalize_model_spec_prefixed_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("INBOX_TRIAGE_MODEL_PROVIDER", raising=False)
    spec = normalize_model_spec("openai:gpt-4o")
    assert spec.provider == "openai"
    assert spec.model == "gpt-4o"
    assert spec.identifier == "openai:gpt-4o"


def test_normalize_model_spec_strips_models_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INBOX_TRIAGE_MODEL_PROVIDER", "google_genai")
    spec = normalize_model_spec("models/gemini-1.5-pro")
    assert spec.provider == "google_genai"
    assert spec.model == "gemini-1.5-pro"


def test_normalize_model_spec_defaults_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INBOX_TRIAGE_MODEL", "gemini-2.5-flash")
    monkeypatch.delenv("INBOX_TRIAGE_MODEL_PROVIDER", raising=False)
    spec = normalize_model_spec(None)
    assert spec == normalize_model_spec("google_genai:gemini-2.5-flash")


def test_model_for_role_prefers_role_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INBOX_TRIAGE_MODEL", "gemini-2.5-pro")
    monkeypatch.setenv("INBOX_TRIAGE_MEMORY_MODEL", "gemini-2.5-flash")
    monkeypatch.delenv("INBOX_TRIAGE_ROUTER_MODEL", raising=False)

    assert model_for_role("memory") == "gemini-2.5-flash"
    assert model_for_role("router") == "gemini-2.5-pro"


def test_format_model_identifier_uses_explicit_provider() -> None:
    assert format_model_identifier("gpt-4o", provider="openai") == "openai:gpt-4o"


def test_get_llm_calls_init_chat_model_with_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: dict[str, object] = {}

    def _fake_init(model: str, **kwargs):
        calls["model"] = model
        calls.update(kwargs)
        return object()

    monkeypatch.setenv("INBOX_TRIAGE_MODEL_PROVIDER", "")
    with patch("inbox_triage.configuration.init_chat_model", side_effect=_fake_init):
        get_llm(model="google_genai:gemini-1.5-pro", temperature=0.1, max_output_tokens=128)

    assert calls.get("model") == "gemini-1.5-pro"
    assert calls.get("model_provider") == "google_genai"
    assert calls.get("temperature") == 0.1
    assert calls.get("max_output_tokens") == 128
    assert calls.get("convert_system_message_to_human") is False


def test_get_llm_skips_gemini_only_kwargs_for_other_providers() -> None:
    calls: dict[str, object] = {}

    def _fake_init(model: str, **kwargs):
        calls.update(kwargs)
        return object()

    with patch("inbox_triage.configuration.init_chat_model", side_effect=_fake_init):
        get_llm(model="openai:gpt-4o")

    assert calls["model_provider"] == "openai"
    assert "convert_system_message_to_human" not in calls
