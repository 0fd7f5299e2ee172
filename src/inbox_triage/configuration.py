from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from langchain.chat_models import init_chat_model

_DEFAULT_MODEL = "gemini-2.5-pro"
_DEFAULT_PROVIDER = "google_genai"

ModelRole = Literal["router", "tool", "memory"]

_ROLE_ENV = {
    "router": "INBOX_TRIAGE_ROUTER_MODEL",
    "tool": "INBOX_TRIAGE_TOOL_MODEL",
    "memory": "INBOX_TRIAGE_MEMORY_MODEL",
}


@dataclass(frozen=True)
class ModelSpec:
    """Normalised representation of the chat model + provider."""

    provider: str
    model: str

    @property
    def identifier(self) -> str:
        """``provider:model`` when a provider is set, otherwise just the model name."""

        return f"{self.provider}:{self.model}" if self.provider else self.model


def _default_model() -> str:
    return os.environ.get("INBOX_TRIAGE_MODEL") or _DEFAULT_MODEL


def _default_provider() -> str:
    return os.environ.get("INBOX_TRIAGE_MODEL_PROVIDER", _DEFAULT_PROVIDER)


def _split_provider(identifier: str) -> tuple[str | None, str]:
    prefix, sep, rest = identifier.partition(":")
    if not sep:
        return None, identifier
    return prefix.strip() or None, rest.strip()


def normalize_model_spec(
    model: str | None = None,
    *,
    model_provider: str | None = None,
    default_model: str | None = None,
    default_provider: str | None = None,
) -> ModelSpec:
    """
    Resolve a provider and model name from loosely formatted input.

    Accepts ``provider:model`` prefixes and Vertex-style ``models/<id>`` paths.
    An explicit ``model_provider`` wins over the environment default, and a
    prefix embedded in ``model`` wins over both.

    Parameters:
        model (str | None): Optional model identifier, possibly prefixed.
        model_provider (str | None): Optional explicit provider override.
        default_model (str | None): Fallback model when ``model`` is empty.
        default_provider (str | None): Fallback provider when none is given.

    Returns:
        ModelSpec: The resolved provider/model pair.
    """

    fallback = default_model or _default_model()
    provider = model_provider or default_provider or _default_provider() or ""

    embedded_provider, name = _split_provider((model or "").strip() or fallback)
    if embedded_provider:
        provider = embedded_provider
    name = name.removeprefix("models/")
    return ModelSpec(provider=provider, model=name or fallback)


def format_model_identifier(model: str | None = None, *, provider: str | None = None) -> str:
    """Provider-prefixed model identifier, for log lines."""

    return normalize_model_spec(model, model_provider=provider).identifier


def model_for_role(role: ModelRole) -> str:
    """
    Pick the model name for one of the agent's three LLM roles.

    ``INBOX_TRIAGE_ROUTER_MODEL`` / ``INBOX_TRIAGE_TOOL_MODEL`` /
    ``INBOX_TRIAGE_MEMORY_MODEL`` override ``INBOX_TRIAGE_MODEL`` for the
    router, the tool-calling agent and the memory updater respectively.
    """

    return os.getenv(_ROLE_ENV[role]) or _default_model()


def get_llm(temperature: float = 0.0, **kwargs):
    """
    Create a LangChain chat model through ``init_chat_model``.

    Parameters:
        temperature (float): Sampling temperature for the model.
        **kwargs: Forwarded to ``init_chat_model``. ``model`` and
            ``model_provider`` are normalised through ``normalize_model_spec``
            first.

    Returns:
        BaseChatModel: A configured chat model instance.
    """

    raw_model = kwargs.pop("model", None)
    provider_override = kwargs.pop("model_provider", None)
    spec = normalize_model_spec(raw_model, model_provider=provider_override)

    if spec.provider == "google_genai":
        # Gemini takes system messages natively; the conversion shim only warns.
        kwargs.setdefault("convert_system_message_to_human", False)

    return init_chat_model(
        spec.model,
        model_provider=spec.provider,
        temperature=temperature,
        **kwargs,
    )
