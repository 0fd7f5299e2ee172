"""LangSmith helpers that keep trace grids readable.

Every helper is a no-op (returning ``False`` where it returns anything) when
no LangSmith run tree is active, so the workflows call them unconditionally.
"""
from __future__ import annotations

import hashlib
import logging
import os
import re
from collections.abc import Mapping
from typing import Any

from langsmith.run_helpers import get_current_run_tree

from inbox_triage import version as INBOX_TRIAGE_VERSION
from inbox_triage.utils import parse_email

logger = logging.getLogger(__name__)

_GRID_LIMIT = 220
_MARKDOWN_LIMIT = 4096
_HIDDEN_FLAGS = (
    "LANGSMITH_HIDE_INPUTS",
    "LANGSMITH_HIDE_OUTPUTS",
    "LANGCHAIN_HIDE_INPUTS",
    "LANGCHAIN_HIDE_OUTPUTS",
)


def init_project(project: str | None) -> None:
    """Point LangSmith at ``project`` unless the environment already names one."""

    if not project:
        return
    os.environ.setdefault("LANGSMITH_PROJECT", project)
    os.environ.setdefault("LANGCHAIN_PROJECT", project)
    # Hidden inputs would blank the email summaries we attach
    for flag in _HIDDEN_FLAGS:
        os.environ.pop(flag, None)


def _shorten(text: str, limit: int = _GRID_LIMIT) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[: limit - 1].rstrip() + "…"


def _grid_text(text: str | None) -> str:
    value = (text or "").strip()
    return value or "(empty)"


def strip_markdown_to_text(markdown: Any) -> str:
    """Drop markdown emphasis, headings and link syntax, collapsing whitespace."""

    if markdown is None:
        return ""
    text = str(markdown)
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    text = re.sub(r"^#+\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"[*_`>]+", "", text)
    return " ".join(text.split())


def summarize_email_for_grid(email_input: Any) -> str:
    """One-line ``subject | From: author`` summary of an email dict."""

    if not isinstance(email_input, Mapping):
        return _shorten(strip_markdown_to_text(email_input))
    author, _to, subject, _thread = parse_email(dict(email_input))
    parts = [subject or "(no subject)"]
    if author:
        parts.append(f"From: {author}")
    return _shorten(" | ".join(parts))


def email_fingerprint(email_markdown: str | None) -> str | None:
    """Stable 24-hex digest of an email, insensitive to case and whitespace."""

    if not email_markdown:
        return None
    normalised = " ".join(str(email_markdown).split()).lower()
    return hashlib.sha256(normalised.encode("utf-8")).hexdigest()[:24]


def _current_run() -> Any | None:
    return get_current_run_tree()


def _root_run() -> Any | None:
    run = _current_run()
    while run is not None and getattr(run, "parent_run", None) is not None:
        run = run.parent_run
    return run


def prime_parent_run(
    *,
    email_input: Any,
    email_markdown: str | None = None,
    metadata_update: Mapping[str, Any] | None = None,
    outputs: Any | None = None,
    agent_label: str | None = None,
    thread_id: str | None = None,
) -> bool:
    """
    Give the root LangSmith run a readable email summary and metadata.

    Parameters:
        email_input (Any): The raw email dict the workflow was invoked with.
        email_markdown (str | None): Rendered email; stored truncated and fingerprinted.
        metadata_update (Mapping[str, Any] | None): Extra metadata merged in last.
        outputs (Any | None): Final outputs, a string becomes ``{"summary": ...}``.
        agent_label (str | None): Display name for the root run.
        thread_id (str | None): Conversation thread id, recorded in metadata.

    Returns:
        bool: ``True`` when a root run was found and updated.
    """

    root = _root_run()
    if root is None:
        return False

    metadata: dict[str, Any] = {"inbox_triage_version": INBOX_TRIAGE_VERSION}
    if thread_id:
        metadata["thread_id"] = thread_id
    if email_markdown:
        metadata["email_markdown"] = email_markdown[:_MARKDOWN_LIMIT]
        metadata["email_fingerprint"] = email_fingerprint(email_markdown)
    if metadata_update:
        metadata.update(metadata_update)

    root.add_metadata(metadata)
    inputs = dict(getattr(root, "inputs", None) or {})
    inputs["summary"] = _grid_text(summarize_email_for_grid(email_input))
    root.inputs = inputs

    if outputs is not None:
        if isinstance(outputs, Mapping):
            root.add_outputs(dict(outputs))
        else:
            root.add_outputs({"summary": _grid_text(strip_markdown_to_text(outputs))})
    if agent_label:
        root.name = agent_label
    return True


def log_tool_child_run(
    *,
    name: str,
    args: Any,
    result: Any | None = None,
    error: str | None = None,
) -> bool:
    """Record a tool invocation, its observation and any error on the current run."""

    run = _current_run()
    if run is None:
        return False

    metadata: dict[str, Any] = {"tool_name": name, "tool_args": args}
    if error:
        metadata["tool_error"] = error
    run.add_metadata(metadata)
    if result is not None:
        run.add_outputs({f"{name}_result": _shorten(str(result), _MARKDOWN_LIMIT)})
    return True


def _last_action_call(messages: list[Any]) -> Mapping[str, Any] | None:
    for message in reversed(messages):
        if isinstance(message, Mapping):
            tool_calls = message.get("tool_calls")
        else:
            tool_calls = getattr(message, "tool_calls", None)
        for call in reversed(tool_calls or []):
            if str(call.get("name", "")).lower() != "done":
                return call
    return None


def format_final_output(state: Mapping[str, Any]) -> str:
    """Two-line plain-text outcome: an ``[action]`` tag, then a short detail line."""

    classification = str(state.get("classification_decision", "")).lower()
    call = _last_action_call(list(state.get("messages", [])))

    if call is not None:
        name = str(call.get("name", ""))
        args = call.get("args") or {}
        if name == "write_email":
            snippet = strip_markdown_to_text(args.get("content", ""))
            return f"[reply]\n{_grid_text(_shorten(snippet))}"
        if name == "schedule_meeting":
            return f"[tool_call] schedule_meeting\n{_grid_text(str(args.get('subject') or 'Scheduled meeting.'))}"
        if name == "check_calendar_availability":
            return f"[tool_call] check_calendar\n{_grid_text(str(args.get('day') or 'Checked availability.'))}"
        if name == "Question":
            return f"[question]\n{_grid_text(_shorten(str(args.get('content', ''))))}"

    if classification == "ignore":
        return "[no_action]\nIgnored after triage."
    if classification == "notify":
        return "[no_action]\nNotified user; no reply sent."
    if classification == "respond":
        return "[no_action]\nWorkflow ended without drafting a reply."
    if classification == "error":
        return "[error]\nTriage failed; see logs."
    return "[no_action]\nWorkflow completed."


__all__ = [
    "init_project",
    "strip_markdown_to_text",
    "summarize_email_for_grid",
    "email_fingerprint",
    "prime_parent_run",
    "log_tool_child_run",
    "format_final_output",
]
