"""Run one email through a workflow variant from the terminal.

Usage:
  inbox-triage --variant hitl_memory --email path/to/email.json
  inbox-triage --variant hitl --auto-accept --ephemeral

Notes:
  - The default model is Gemini; set GOOGLE_API_KEY, or point
    INBOX_TRIAGE_MODEL at another ``provider:model``.
  - Without --email a built-in meeting request is used.
  - Review prompts accept: accept, edit, ignore, response.
"""
from __future__ import annotations

import argparse
import importlib
import json
import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Any, Callable

from langgraph.types import Command

from inbox_triage.checkpointing import new_memory_checkpointer, new_memory_store
from inbox_triage.logging_config import setup_logging
from inbox_triage.review import ACTION_FLAGS
from inbox_triage.schemas import (
    CAL_PREFERENCES_NAMESPACE,
    PREFERENCES_KEY,
    RESPONSE_PREFERENCES_NAMESPACE,
    TRIAGE_PREFERENCES_NAMESPACE,
)
from inbox_triage.utils import format_messages_string

logger = logging.getLogger(__name__)

VARIANTS = {
    "basic": "inbox_triage.email_assistant",
    "hitl": "inbox_triage.email_assistant_hitl",
    "hitl_memory": "inbox_triage.email_assistant_hitl_memory",
}

SAMPLE_EMAIL = {
    "id": "123456",
    "thread_id": "thread_123456",
    "from_email": "example@example.com",
    "to_email": "assistant@yourcompany.com",
    "subject": "Meeting Request Tomorrow",
    "page_content": (
        "Hi there,\n\nI was wondering if we could schedule a meeting tomorrow to "
        "discuss the project.\n\nThanks,\nExample User"
    ),
    "send_time": "2025-01-01T09:00:00+00:00",
}

def load_email(path: str | None) -> dict:
    """Email dict from a JSON file, or the sample email when ``path`` is empty."""

    if not path:
        return dict(SAMPLE_EMAIL)
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def prompt_for_review(request: dict, input_fn: Callable[[str], str] = input) -> dict:
    """
    Ask the operator how to handle one review request.

    Only actions enabled in ``request["config"]`` are offered. ``edit`` asks
    for the replacement arguments as JSON (blank keeps the proposed ones);
    ``response`` asks for free-text feedback.

    Returns:
        dict: A human response ``{"type": ..., "args": ...}``.
    """

    config = request.get("config") or {}
    allowed = [action for action, flag in ACTION_FLAGS.items() if config.get(flag)]
    action_request = request.get("action_request") or {}

    print(request.get("description", ""))
    while True:
        choice = input_fn(f"Action [{'/'.join(allowed)}]: ").strip().lower()
        if choice in allowed:
            break
        print(f"Please choose one of: {', '.join(allowed)}")

    if choice == "accept" or choice == "ignore":
        return {"type": choice, "args": {}}
    if choice == "response":
        return {"type": "response", "args": input_fn("Feedback: ")}

    proposed = action_request.get("args") or {}
    while True:
        raw = input_fn(f"Edited args as JSON (blank keeps {json.dumps(proposed)}): ").strip()
        if not raw:
            edited = proposed
            break
        try:
            edited = json.loads(raw)
        except json.JSONDecodeError as exc:
            print(f"Invalid JSON: {exc}")
            continue
        if isinstance(edited, dict):
            break
        print("Edited args must be a JSON object")
    return {"type": "edit", "args": {"action": action_request.get("action"), "args": edited}}


def _pending_requests(chunk: dict) -> list[dict]:
    requests: list[dict] = []
    for pending in chunk.get("__interrupt__", ()):
        value = getattr(pending, "value", pending)
        requests.extend(value if isinstance(value, list) else [value])
    return requests


def run_email(
    graph: Any,
    email_input: dict,
    *,
    thread_id: str,
    context: dict | None = None,
    input_fn: Callable[[str], str] = input,
) -> dict:
    """
    Drive ``graph`` until it finishes, answering each interrupt via ``prompt_for_review``.

    Returns the final state values.
    """

    config = {"configurable": {"thread_id": thread_id}, "recursion_limit": 50}
    payload: Any = {"email_input": email_input}
    while True:
        requests: list[dict] = []
        for chunk in graph.stream(payload, config, context=context):
            requests.extend(_pending_requests(chunk))
        if not requests:
            break
        logger.info("Thread %s paused for %d review request(s)", thread_id, len(requests))
        payload = Command(resume=[prompt_for_review(request, input_fn) for request in requests])
    return graph.get_state(config).values


def show_memory(store: Any) -> None:
    for namespace in (
        TRIAGE_PREFERENCES_NAMESPACE,
        RESPONSE_PREFERENCES_NAMESPACE,
        CAL_PREFERENCES_NAMESPACE,
    ):
        item = store.get(namespace, PREFERENCES_KEY)
        value = item.value if item is not None else None
        text = value.get("content", "") if isinstance(value, dict) else (value or "(not set)")
        print(f"\n=== {namespace[-1]} ===\n{str(text).strip()}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="inbox-triage", description="Triage and answer an email with the LangGraph agent")
    ap.add_argument("--variant", choices=sorted(VARIANTS), default="hitl_memory", help="Workflow to run")
    ap.add_argument("--email", help="Path to a JSON email (defaults to a sample meeting request)")
    ap.add_argument("--thread-id", help="Checkpoint thread id (defaults to a fresh one)")
    ap.add_argument("--auto-accept", action="store_true", help="Answer review requests automatically")
    ap.add_argument(
        "--ephemeral",
        action="store_true",
        help="Use an in-memory checkpointer and store instead of SQLite",
    )
    ap.add_argument("--show-memory", action="store_true", help="Print learned preferences afterwards")
    ap.add_argument("--timezone", default=os.getenv("INBOX_TRIAGE_TIMEZONE"), help="Timezone for scheduling and trace metadata (sets INBOX_TRIAGE_TIMEZONE)")
    ap.add_argument("--log-level", default=None, help="Logging level (default INBOX_TRIAGE_LOG_LEVEL or INFO)")
    return ap


def main(argv: list[str] | None = None, input_fn: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    if args.auto_accept:
        os.environ["HITL_AUTO_ACCEPT"] = "1"

    try:
        email_input = load_email(args.email)
    except (OSError, ValueError) as exc:
        print(f"Could not load email: {exc}", file=sys.stderr)
        return 2

    module = importlib.import_module(VARIANTS[args.variant])
    if args.ephemeral:
        store = new_memory_store() if args.variant == "hitl_memory" else None
        graph = module.build_email_assistant(checkpointer=new_memory_checkpointer(), store=store)
    else:
        graph = module.email_assistant
        store = getattr(module, "get_sqlite_store", lambda: None)()

    thread_id = args.thread_id or f"cli-{uuid.uuid4()}"
    context: dict[str, Any] = {"thread_id": thread_id, "thread_metadata": {"thread_id": thread_id}}
    if args.timezone:
        os.environ["INBOX_TRIAGE_TIMEZONE"] = args.timezone
        context["timezone"] = args.timezone

    logger.info("Running %s on thread %s", args.variant, thread_id)
    state = run_email(graph, email_input, thread_id=thread_id, context=context, input_fn=input_fn)

    print(f"\nClassification: {state.get('classification_decision', 'unknown')}")
    print(format_messages_string(state.get("messages", [])))

    if args.show_memory:
        if store is None:
            print("\nThe basic and hitl variants keep no preference memory.")
        else:
            show_memory(store)
    return 0


if __name__ == "__main__":
    sys.exit(main())
