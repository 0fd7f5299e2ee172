"""Runtime context helpers shared by the workflow variants."""
from __future__ import annotations

import os
from typing import Any

from langgraph.runtime import Runtime

from inbox_triage.schemas import AssistantContext

_TIMEZONE_ENV = "INBOX_TRIAGE_TIMEZONE"


def runtime_thread_id(runtime: Runtime[AssistantContext] | None) -> str | None:
    """Thread id from ``context["thread_id"]`` or ``context["thread_metadata"]["thread_id"]``."""

    if not runtime:
        return None
    context = runtime.context or {}
    thread_metadata = context.get("thread_metadata") or {}
    return context.get("thread_id") or thread_metadata.get("thread_id")


def extract_runtime_metadata(
    runtime: Runtime[AssistantContext] | None,
) -> tuple[str, str | None, dict[str, Any]]:
    """
    Pull the timezone, thread id and trace metadata out of a LangGraph runtime.

    Nodes invoked outside a graph (tests, the CLI's dry paths) pass ``None``;
    the timezone then falls back to ``INBOX_TRIAGE_TIMEZONE`` and the thread id
    to ``None``.

    Returns:
        tuple[str, str | None, dict[str, Any]]: ``(timezone, thread_id, metadata)``
        where ``metadata`` carries the timezone plus any ``thread_metadata``
        the caller attached to the context.
    """

    context = (runtime.context if runtime and runtime.context else {})  # type: ignore[attr-defined]
    timezone = context.get("timezone") or os.getenv(_TIMEZONE_ENV) or "UTC"
    thread_metadata = dict(context.get("thread_metadata") or {})
    metadata: dict[str, Any] = {**thread_metadata, "timezone": timezone}
    return timezone, runtime_thread_id(runtime), metadata
