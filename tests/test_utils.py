from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from inbox_triage.utils import (
    email_markdown,
    extract_message_content,
    extract_tool_calls,
    format_email_markdown,
    format_for_display,
    format_messages_string,
    parse_email,
)


def test_parse_email_record_shape(sample_email):
    author, to, subject, thread = parse_email(sample_email)
    assert author == "Alice Smith <alice.smith@company.com>"
    assert to == "Lance Martin <lance@company.com>"
    assert subject == "Quick question about API documentation"
    assert thread.startswith("Hi Lance")


def test_parse_email_dataset_and_gmail_shapes():
    dataset = {"author": "a@x.com", "to": "b@x.com", "subject": "S", "email_thread": "Body"}
    gmail = {"from": "a@x.com", "to": "b@x.com", "subject": "S", "body": "Body"}
    assert parse_email(dataset) == ("a@x.com", "b@x.com", "S", "Body")
    assert parse_email(gmail) == ("a@x.com", "b@x.com", "S", "Body")


def test_parse_email_tolerates_missing_fields_and_non_dicts():
    assert parse_email({"subject": "Only subject"}) == ("", "", "Only subject", "")
    assert parse_email(None) == ("", "", "", "")


def test_format_email_markdown_includes_optional_id():
    without_id = format_email_markdown("S", "a@x.com", "b@x.com", "Body")
    with_id = format_email_markdown("S", "a@x.com", "b@x.com", "Body", email_id="42")
    assert "**Subject**: S" in without_id
    assert "**ID**" not in without_id
    assert "**ID**: 42" in with_id


def test_email_markdown_uses_record_id(sample_email):
    rendered = email_markdown(sample_email)
    assert "**ID**: msg-1" in rendered
    assert "**From**: Alice Smith" in rendered


def test_format_for_display_variants():
    email = format_for_display({"name": "write_email", "args": {"to": "a@x.com", "subject": "Hi", "content": "Body"}})
    invite = format_for_display({
        "name": "schedule_meeting",
        "args": {"subject": "Sync", "attendees": ["a@x.com", "b@x.com"], "duration_minutes": 30, "preferred_day": "2025-05-02"},
    })
    question = format_for_display({"name": "Question", "args": {"content": "Which day?"}})
    other = format_for_display({"name": "check_calendar_availability", "args": {"day": "Monday"}})

    assert email.startswith("# Email Draft") and "**To**: a@x.com" in email
    assert invite.startswith("# Calendar Invite") and "a@x.com, b@x.com" in invite
    assert "30 minutes" in invite
    assert question.startswith("# Question for User") and "Which day?" in question
    assert other.startswith("# Tool Call: check_calendar_availability")
    assert '"day": "Monday"' in other


def test_extract_message_content_joins_text_blocks():
    message = AIMessage(content=[{"type": "text", "text": "first"}, {"type": "text", "text": "second"}])
    assert extract_message_content(message) == "first\nsecond"
    assert extract_message_content({"content": "plain"}) == "plain"


def test_extract_tool_calls_dedupes_edited_calls():
    original = AIMessage(content="", tool_calls=[{"name": "write_email", "args": {"to": "a"}, "id": "c1"}])
    edited = AIMessage(content="", tool_calls=[{"name": "write_email", "args": {"to": "b"}, "id": "c1"}])
    done = AIMessage(content="", tool_calls=[{"name": "Done", "args": {"done": True}, "id": "c2"}])
    assert extract_tool_calls([original, edited, done]) == ["write_email", "done"]


def test_format_messages_string_renders_each_role():
    messages = [
        HumanMessage(content="Respond to the email"),
        AIMessage(content="", tool_calls=[{"name": "write_email", "args": {"to": "a@x.com"}, "id": "c1"}]),
        ToolMessage(content="x" * 1200, tool_call_id="c1"),
        AIMessage(content="all done"),
    ]
    lines = format_messages_string(messages).splitlines()
    assert lines[0] == "user: Respond to the email"
    assert lines[1] == 'assistant: tool_call -> write_email {"to": "a@x.com"}'
    assert lines[2].startswith("tool[c1]: ") and lines[2].endswith("…")
    assert lines[3] == "assistant: all done"
