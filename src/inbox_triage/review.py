"""Human review plumbing shared by the workflow variants.

Covers building Agent Inbox style interrupt requests, the ``HITL_AUTO_ACCEPT``
shortcut for unattended runs, and tool execution that turns tool failures
into observations the agent can read.
"""

import logging
import os
from typing import Any, Iterable, Mapping

from langchain_core.tools import BaseTool, ToolException
from langgraph.prebuilt.interrupt import (
    ActionRequest,
    HumanInterrupt,
    HumanInterruptConfig,
)
from langgraph.types import interrupt

from inbox_triage.tracing import log_tool_child_run

logger = logging.getLogger(__name__)

# Tool calls that pause for a human before they run
HITL_TOOLS = ("write_email", "schedule_meeting", "Question")

DEFERRED_TOOL_MESSAGE = "Tool execution deferred or pending subsequent review step."

_REVIEW_CONFIGS = {
    "write_email": HumanInterruptConfig(
        allow_ignore=True, allow_respond=True, allow_edit=True, allow_accept=True
    ),
    "schedule_meeting": HumanInterruptConfig(
        allow_ignore=True, allow_respond=True, allow_edit=True, allow_accept=True
    ),
    "Question": HumanInterruptConfig(
        allow_ignore=True, allow_respond=True, allow_edit=False, allow_accept=False
    ),
}

# Human response type -> config flag that must be set for it
ACTION_FLAGS = {
    "accept": "allow_accept",
    "edit": "allow_edit",
    "ignore": "allow_ignore",
    "response": "allow_respond",
}


def _auto_accept_enabled() -> bool:
    return os.getenv("HITL_AUTO_ACCEPT", "").lower() in ("1", "true", "yes")


def review_config(tool_name: str) -> HumanInterruptConfig:
    """Allowed review actions for a HITL tool. Raises ``KeyError`` for other tools."""

    return _REVIEW_CONFIGS[tool_name]


def action_allowed(config: Mapping[str, Any] | None, response_type: str) -> bool:
    flag = ACTION_FLAGS.get(response_type)
    return bool(config and flag and config.get(flag, False))


def tool_review_request(tool_call: Mapping[str, Any], description: str) -> HumanInterrupt:
    return HumanInterrupt(
        action_request=ActionRequest(action=tool_call["name"], args=tool_call["args"]),
        config=review_config(tool_call["name"]),
        description=description,
    )


def triage_review_request(classification: str, email_markdown: str) -> HumanInterrupt:
    """Notify request: the reviewer can only respond to the email or ignore it."""

    return HumanInterrupt(
        action_request=ActionRequest(action=f"Email Assistant: {classification}", args={}),
        config=HumanInterruptConfig(
            allow_ignore=True, allow_respond=True, allow_edit=False, allow_accept=False
        ),
        description=email_markdown,
    )


def _synthesize(request: Mapping[str, Any]) -> dict:
    config = request.get("config") or {}
    action = str((request.get("action_request") or {}).get("action", ""))
    if config.get("allow_accept"):
        return {"type": "accept", "args": {}}
    if config.get("allow_respond"):
        text = "Auto-accept: proceed." if action == "Question" else ""
        return {"type": "response", "args": text}
    if config.get("allow_ignore"):
        return {"type": "ignore", "args": {}}
    return {"type": "response", "args": ""}


def maybe_interrupt(requests: Iterable[HumanInterrupt]) -> list:
    """
    Pause for human review, or answer the requests ourselves under ``HITL_AUTO_ACCEPT``.

    Auto answers prefer ``accept``, then ``response``, then ``ignore``, based on
    each request's config. Without the flag this is ``interrupt(requests)``:
    the caller resumes with ``Command(resume=[<human response>])``.
    """

    requests = list(requests)
    if not _auto_accept_enabled():
        return interrupt(requests)

    responses = [_synthesize(request) for request in requests]
    logger.info("HITL_AUTO_ACCEPT answered %d review request(s): %s", len(responses), [r["type"] for r in responses])
    return responses


def invoke_tool(tools_by_name: Mapping[str, BaseTool], tool_name: str, args: dict) -> str:
    """
    Run a tool and return its observation as text.

    Errors do not propagate: they come back as ``ToolException: ...`` or
    ``Error: ...`` so the agent sees them on its next turn.
    """

    tool = tools_by_name.get(tool_name)
    error = None
    if tool is None:
        observation = f"Error: unknown tool {tool_name!r}"
        error = "unknown_tool"
    else:
        try:
            observation = str(tool.invoke(args))
        except ToolException as exc:
            observation = f"ToolException: {exc}"
            error = "ToolException"
        except Exception as exc:  # noqa: BLE001 - tool errors feed back into the agent loop
            observation = f"Error: {exc}"
            error = exc.__class__.__name__

    if error:
        logger.warning("Tool %s failed: %s", tool_name, observation)
    else:
        logger.debug("Tool %s returned: %s", tool_name, observation)
    log_tool_child_run(name=tool_name, args=args, result=observation, error=error)
    return observation


def tool_message(content: str, tool_call_id: str) -> dict:
    return {"role": "tool", "content": content, "tool_call_id": tool_call_id}


def deferred_tool_messages(tool_calls: list) -> list[dict]:
    """Placeholder replies for the tool calls left unreviewed this turn."""

    return [tool_message(DEFERRED_TOOL_MESSAGE, call["id"]) for call in tool_calls]


def edited_tool_args(response: Mapping[str, Any], proposed: dict) -> dict:
    """Arguments from an ``edit`` response (``{"action": ..., "args": {...}}``), else ``proposed``."""

    payload = response.get("args")
    edited = payload.get("args") if isinstance(payload, Mapping) else None
    return dict(edited) if isinstance(edited, Mapping) and edited else proposed
