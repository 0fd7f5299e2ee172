"""Tests for review request construction, auto-accept and tool execution."""

from langchain_core.tools import ToolException, tool

from inbox_triage.review import (
    DEFERRED_TOOL_MESSAGE,
    action_allowed,
    deferred_tool_messages,
    edited_tool_args,
    invoke_tool,
    maybe_interrupt,
    review_config,
    tool_review_request,
    triage_review_request,
)
from inbox_triage.tools import get_tools_by_name


@tool
def flaky(value: str) -> str:
    """Always fails with a tool error."""
    raise ToolException(f"cannot handle {value}")


@tool
def broken(value: str) -> str:
    """Always fails with an unexpected error."""
    raise RuntimeError("boom")


def test_review_configs_per_tool():
    assert all(action_allowed(review_config("write_email"), a) for a in ("accept", "edit", "ignore", "response"))
    assert all(action_allowed(review_config("schedule_meeting"), a) for a in ("accept", "edit", "ignore", "response"))
    question = review_config("Question")
    assert action_allowed(question, "response") and action_allowed(question, "ignore")
    assert not action_allowed(question, "accept")
    assert not action_allowed(question, "edit")


def test_action_allowed_rejects_unknown_types_and_missing_config():
    assert not action_allowed(review_config("write_email"), "approve")
    assert not action_allowed(None, "accept")


def test_tool_review_request_shape():
    call = {"name": "write_email", "args": {"to": "a@x.com"}, "id": "c1"}
    request = tool_review_request(call, "description")
    assert request["action_request"] == {"action": "write_email", "args": {"to": "a@x.com"}}
    assert request["description"] == "description"
    assert request["config"]["allow_edit"] is True


def test_triage_review_request_shape():
    request = triage_review_request("notify", "**Subject**: S")
    assert request["action_request"]["action"] == "Email Assistant: notify"
    assert request["action_request"]["args"] == {}
    assert request["config"] == {
        "allow_ignore": True,
        "allow_respond": True,
        "allow_edit": False,
        "allow_accept": False,
    }


def test_maybe_interrupt_auto_accept(monkeypatch):
    monkeypatch.setenv("HITL_AUTO_ACCEPT", "true")
    requests = [
        tool_review_request({"name": "write_email", "args": {}, "id": "1"}, ""),
        tool_review_request({"name": "Question", "args": {"content": "?"}, "id": "2"}, ""),
        triage_review_request("notify", ""),
    ]
    responses = maybe_interrupt(requests)
    assert responses == [
        {"type": "accept", "args": {}},
        {"type": "response", "args": "Auto-accept: proceed."},
        {"type": "response", "args": ""},
    ]


def test_maybe_interrupt_auto_accept_falls_back_to_ignore(monkeypatch):
    monkeypatch.setenv("HITL_AUTO_ACCEPT", "1")
    request = {"action_request": {"action": "x", "args": {}}, "config": {"allow_ignore": True}, "description": ""}
    assert maybe_interrupt([request]) == [{"type": "ignore", "args": {}}]


def test_invoke_tool_success():
    tools = get_tools_by_name()
    result = invoke_tool(tools, "write_email", {"to": "a@x.com", "subject": "S", "content": "C"})
    assert result.startswith("Email sent to a@x.com")


def test_invoke_tool_errors_become_observations():
    tools = {"flaky": flaky, "broken": broken}
    assert invoke_tool(tools, "missing", {}) == "Error: unknown tool 'missing'"
    assert invoke_tool(tools, "flaky", {"value": "x"}) == "ToolException: cannot handle x"
    assert invoke_tool(tools, "broken", {"value": "x"}) == "Error: boom"


def test_invoke_tool_reports_invalid_arguments():
    tools = get_tools_by_name()
    result = invoke_tool(tools, "write_email", {"to": "a@x.com"})
    assert result.startswith("Error: ")


def test_deferred_tool_messages():
    calls = [{"name": "write_email", "args": {}, "id": "a"}, {"name": "Done", "args": {}, "id": "b"}]
    assert deferred_tool_messages(calls) == [
        {"role": "tool", "content": DEFERRED_TOOL_MESSAGE, "tool_call_id": "a"},
        {"role": "tool", "content": DEFERRED_TOOL_MESSAGE, "tool_call_id": "b"},
    ]


def test_edited_tool_args_falls_back_on_malformed_responses():
    proposed = {"to": "a@x.com"}
    assert edited_tool_args({"type": "edit", "args": {"action": "write_email", "args": {"to": "b@x.com"}}}, proposed) == {"to": "b@x.com"}
    assert edited_tool_args({"type": "edit", "args": "shorter please"}, proposed) is proposed
    assert edited_tool_args({"type": "edit", "args": {"action": "write_email", "args": "oops"}}, proposed) is proposed
    assert edited_tool_args({"type": "edit"}, proposed) is proposed
