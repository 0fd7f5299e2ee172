"""Review handling in the human-in-the-loop workflow, node by node."""

import pytest
from langgraph.graph import END

import inbox_triage.email_assistant_hitl as hitl
from inbox_triage.review import DEFERRED_TOOL_MESSAGE

from agent_test_utils import ScriptedModel, content_of, patch_models, tool_call_message

EMAIL_ARGS = {"to": "alice.smith@company.com", "subject": "Re: API docs", "content": "Hi Alice, here you go."}
MEETING_ARGS = {
    "attendees": ["alice.smith@company.com"],
    "subject": "API docs walkthrough",
    "duration_minutes": 30,
    "preferred_day": "2025-05-02",
    "start_time": 1400,
}


def _respond_with(monkeypatch, response):
    seen = []

    def _fake(requests):
        seen.extend(requests)
        return [response]

    monkeypatch.setattr(hitl, "maybe_interrupt", _fake)
    return seen


def _state(sample_email, message):
    return {"email_input": sample_email, "messages": [message], "classification_decision": "respond"}


def test_accept_write_email_sends_and_ends(monkeypatch, sample_email):
    seen = _respond_with(monkeypatch, {"type": "accept", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("write_email", EMAIL_ARGS)))

    assert cmd.goto == END
    [message] = cmd.update["messages"]
    assert message["tool_call_id"] == "call_1"
    assert message["content"].startswith("Email sent to alice.smith@company.com")
    [request] = seen
    assert request["action_request"] == {"action": "write_email", "args": EMAIL_ARGS}
    assert "# Email Draft" in request["description"]
    assert "Quick question about API documentation" in request["description"]


def test_accept_schedule_meeting_loops_back(monkeypatch, sample_email):
    _respond_with(monkeypatch, {"type": "accept", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("schedule_meeting", MEETING_ARGS)))

    assert cmd.goto == "llm_call"
    assert cmd.update["messages"][0]["content"].startswith("Meeting 'API docs walkthrough' scheduled on")


def test_edit_rewrites_call_in_place_and_runs_edited_args(monkeypatch, sample_email):
    edited = {**EMAIL_ARGS, "content": "Hi Alice, the docs are updated."}
    _respond_with(monkeypatch, {"type": "edit", "args": {"action": "write_email", "args": edited}})
    original = tool_call_message("write_email", EMAIL_ARGS)

    cmd = hitl.interrupt_handler(_state(sample_email, original))

    assert cmd.goto == "llm_call"
    replaced, observation = cmd.update["messages"]
    assert replaced.id == original.id
    assert replaced.tool_calls[0]["args"] == edited
    assert replaced.tool_calls[0]["id"] == "call_1"
    assert observation["content"].endswith("content: Hi Alice, the docs are updated.")


def test_edit_without_args_keeps_proposal(monkeypatch, sample_email):
    _respond_with(monkeypatch, {"type": "edit", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("write_email", EMAIL_ARGS)))

    replaced, _observation = cmd.update["messages"]
    assert replaced.tool_calls[0]["args"] == EMAIL_ARGS



def test_edit_with_malformed_args_keeps_proposal(monkeypatch, sample_email):
    _respond_with(monkeypatch, {"type": "edit", "args": "make it shorter"})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("write_email", EMAIL_ARGS)))

    assert cmd.goto == "llm_call"
    replaced, observation = cmd.update["messages"]
    assert replaced.tool_calls[0]["args"] == EMAIL_ARGS
    assert observation["content"].startswith("Email sent to alice.smith@company.com")

@pytest.mark.parametrize(
    "name, args, noun",
    [
        ("write_email", EMAIL_ARGS, "email draft"),
        ("schedule_meeting", MEETING_ARGS, "calendar meeting draft"),
        ("Question", {"content": "Which endpoints?"}, "question"),
    ],
)
def test_ignore_ends_workflow(monkeypatch, sample_email, name, args, noun):
    _respond_with(monkeypatch, {"type": "ignore", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message(name, args)))

    assert cmd.goto == END
    assert cmd.update["messages"] == [{
        "role": "tool",
        "content": f"User ignored this {noun}. Ignore this email and end the workflow.",
        "tool_call_id": "call_1",
    }]


@pytest.mark.parametrize(
    "name, args, prefix",
    [
        ("write_email", EMAIL_ARGS, "User gave feedback, which we can incorporate into the email."),
        ("schedule_meeting", MEETING_ARGS, "User gave feedback, which we can incorporate into the meeting request."),
        ("Question", {"content": "Which endpoints?"}, "User answered the question, which we can use for any follow up actions."),
    ],
)
def test_response_feeds_back_to_agent(monkeypatch, sample_email, name, args, prefix):
    _respond_with(monkeypatch, {"type": "response", "args": "Make it shorter"})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message(name, args)))

    assert cmd.goto == "llm_call"
    [message] = cmd.update["messages"]
    assert message["content"] == f"{prefix} Feedback: Make it shorter"


def test_disallowed_action_is_reported_and_not_executed(monkeypatch, sample_email):
    _respond_with(monkeypatch, {"type": "accept", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("Question", {"content": "Which endpoints?"})))

    assert cmd.goto == "llm_call"
    assert cmd.update["messages"][0]["content"] == "Unhandled review action: accept"


def test_unknown_action_is_reported(monkeypatch, sample_email):
    _respond_with(monkeypatch, {"type": "approve", "args": {}})

    cmd = hitl.interrupt_handler(_state(sample_email, tool_call_message("write_email", EMAIL_ARGS)))

    assert cmd.goto == "llm_call"
    assert cmd.update["messages"][0]["content"] == "Unhandled review action: approve"


def test_non_reviewed_tool_runs_without_interrupt(monkeypatch, sample_email):
    def _fail(requests):
        raise AssertionError("check_calendar_availability must not be reviewed")

    monkeypatch.setattr(hitl, "maybe_interrupt", _fail)

    cmd = hitl.interrupt_handler(
        _state(sample_email, tool_call_message("check_calendar_availability", {"day": "Friday"}))
    )

    assert cmd.goto == "llm_call"
    assert cmd.update["messages"][0]["content"].startswith("Available times on Friday")


def test_only_first_call_is_reviewed_rest_are_deferred(monkeypatch, sample_email):
    seen = _respond_with(monkeypatch, {"type": "response", "args": "Not yet"})
    message = tool_call_message(
        "write_email",
        EMAIL_ARGS,
        "call_1",
        ("schedule_meeting", MEETING_ARGS, "call_2"),
        ("Done", {"done": True}, "call_3"),
    )

    cmd = hitl.interrupt_handler(_state(sample_email, message))

    assert len(seen) == 1
    replies = cmd.update["messages"]
    assert [reply["tool_call_id"] for reply in replies] == ["call_1", "call_2", "call_3"]
    assert [content_of(reply) for reply in replies[1:]] == [DEFERRED_TOOL_MESSAGE, DEFERRED_TOOL_MESSAGE]


def test_should_continue(sample_email):
    state = _state(sample_email, tool_call_message("write_email", EMAIL_ARGS))
    assert hitl.should_continue(state) == "interrupt_handler"

    state = _state(sample_email, tool_call_message("Done", {"done": True}))
    assert hitl.should_continue(state) == END

    state = {"email_input": sample_email, "messages": [{"role": "assistant", "content": "Error calling model: boom"}]}
    assert hitl.should_continue(state) == END


def test_llm_call_failure_becomes_plain_message(monkeypatch, sample_email):
    patch_models(monkeypatch, hitl, tools=ScriptedModel([RuntimeError("boom")]))
    result = hitl.llm_call({"email_input": sample_email, "messages": [{"role": "user", "content": "hi"}]})
    assert result == {"messages": [{"role": "assistant", "content": "Error calling model: boom"}]}


class TestTriageInterruptHandler:
    def _state(self, sample_email):
        return {"email_input": sample_email, "messages": [], "classification_decision": "notify"}

    def test_response_routes_to_agent_with_feedback(self, monkeypatch, sample_email):
        seen = _respond_with(monkeypatch, {"type": "response", "args": "Tell her Friday"})

        cmd = hitl.triage_interrupt_handler(self._state(sample_email))

        assert cmd.goto == "response_agent"
        first, second = cmd.update["messages"]
        assert first["content"].startswith("Email to notify user about: ")
        assert second["content"] == "User wants to reply to the email. Use this feedback to respond: Tell her Friday"
        assert seen[0]["action_request"]["action"] == "Email Assistant: notify"

    def test_ignore_ends(self, monkeypatch, sample_email):
        _respond_with(monkeypatch, {"type": "ignore", "args": {}})

        cmd = hitl.triage_interrupt_handler(self._state(sample_email))

        assert cmd.goto == END
        assert len(cmd.update["messages"]) == 1

    def test_other_action_ends_with_system_note(self, monkeypatch, sample_email):
        _respond_with(monkeypatch, {"type": "accept", "args": {}})

        cmd = hitl.triage_interrupt_handler(self._state(sample_email))

        assert cmd.goto == END
        assert cmd.update["messages"][-1] == {
            "role": "system",
            "content": "Unhandled review action: accept. Ending triage.",
        }
