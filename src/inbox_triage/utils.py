from typing import List, Any
import json

# Key aliases per field, first match wins: EmailData, dataset, Gmail-like
_AUTHOR_KEYS = ("from_email", "author", "from", "From")
_TO_KEYS = ("to_email", "to", "To")
_SUBJECT_KEYS = ("subject", "Subject")
_BODY_KEYS = ("page_content", "email_thread", "body", "Body")
_ID_KEYS = ("id", "thread_id", "message_id")

# Tool results longer than this are clipped in transcripts
_MAX_TOOL_RESULT_CHARS = 1000


def _first_present(email_input: dict, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = email_input.get(key)
        if value:
            return str(value)
    return ""


def format_email_markdown(subject, author, to, email_thread, email_id=None):
    """Format email details into a markdown block for prompts and review screens.

    Args:
        subject: Email subject
        author: Email sender
        to: Email recipient
        email_thread: Email content
        email_id: Optional email ID, shown when present
    """
    id_section = f"\n**ID**: {email_id}" if email_id else ""

    return f"""

**Subject**: {subject}
**From**: {author}
**To**: {to}{id_section}

{email_thread}

---
"""


def parse_email(email_input: dict) -> tuple[str, str, str, str]:
    """Parse an email input dictionary, accepting the common schemas.

    Supported shapes:
      - Email record: from_email, to_email, subject, page_content
      - Dataset schema: author, to, subject, email_thread
      - Gmail-like schema: from, to, subject, body

    Returns (author, to, subject, email_thread). Missing fields come back as
    empty strings so prompts still render.
    """
    if not isinstance(email_input, dict):
        return ("", "", "", "")

    return (
        _first_present(email_input, _AUTHOR_KEYS),
        _first_present(email_input, _TO_KEYS),
        _first_present(email_input, _SUBJECT_KEYS),
        _first_present(email_input, _BODY_KEYS),
    )


def email_id(email_input: dict) -> str:
    """Identifier of the email, or an empty string."""
    if not isinstance(email_input, dict):
        return ""
    return _first_present(email_input, _ID_KEYS)


def email_markdown(email_input: dict) -> str:
    """``parse_email`` followed by ``format_email_markdown``."""
    author, to, subject, email_thread = parse_email(email_input)
    return format_email_markdown(subject, author, to, email_thread, email_id(email_input) or None)


def format_for_display(tool_call):
    """Render a pending tool call for the human reviewer.

    Args:
        tool_call: The tool call to format
    """
    args = tool_call.get("args") or {}
    name = tool_call["name"]

    if name == "write_email":
        return f"""# Email Draft

**To**: {args.get("to") or ''}
**Subject**: {args.get("subject") or ''}

{args.get("content") or ''}
"""
    if name == "schedule_meeting":
        attendees = args.get("attendees") or []
        return f"""# Calendar Invite

**Meeting**: {args.get("subject")}
**Attendees**: {', '.join(attendees)}
**Duration**: {args.get("duration_minutes")} minutes
**Day**: {args.get("preferred_day")}
"""
    if name == "Question":
        return f"""# Question for User

{args.get("content")}
"""

    if isinstance(args, dict):
        rendered = json.dumps(args, indent=2, default=str)
    else:
        rendered = str(args)
    return f"""# Tool Call: {name}

Arguments:
{rendered}
"""


def extract_message_content(message) -> str:
    """Extract content from a message as a plain string.

    Args:
        message: A message object (HumanMessage, AIMessage, ToolMessage) or a dict

    Returns:
        str: The text content; list-style content blocks are joined by newlines
    """
    content = message.get("content", "") if isinstance(message, dict) else message.content

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                text_parts.append(item["text"])
            elif isinstance(item, str):
                text_parts.append(item)
        return "\n".join(text_parts)

    return str(content)


def _tool_calls_of(message) -> list:
    if isinstance(message, dict):
        return message.get("tool_calls") or []
    return getattr(message, "tool_calls", None) or []


def extract_tool_calls(messages: List[Any]) -> List[str]:
    """
    Names of the tool calls made across ``messages``, lowercased, in order.

    A call that appears twice (the same id, or the same name and arguments when
    there is no id) is listed once, so a tool call rewritten in place by an
    edit is not double counted.

    Parameters:
        messages (List[Any]): Message objects or dicts that may carry ``tool_calls``.

    Returns:
        List[str]: Ordered list of unique tool call names in lowercase.
    """

    names: List[str] = []
    seen: set[tuple] = set()

    for message in messages:
        for call in _tool_calls_of(message):
            if isinstance(call, dict):
                name, call_id, args = call.get("name"), call.get("id"), call.get("args")
            else:
                name, call_id, args = (
                    getattr(call, "name", None),
                    getattr(call, "id", None),
                    getattr(call, "args", None),
                )

            name = str(name or "").lower()
            if not name:
                continue
            key = (name, str(call_id)) if call_id else (name, json.dumps(args or {}, sort_keys=True, default=str))
            if key in seen:
                continue
            seen.add(key)
            names.append(name)

    return names


def format_messages_string(messages: List[Any]) -> str:
    """
    Render a transcript as one line per message.

    Lines look like ``user: ...``, ``assistant: ...``,
    ``assistant: tool_call -> <name> <args json>`` and
    ``tool[<tool_call_id>]: <result>``; long tool results are clipped.
    """

    lines: List[str] = []
    for message in messages:
        if isinstance(message, dict):
            role = message.get("role") or message.get("type") or "assistant"
        else:
            role = getattr(message, "type", None) or getattr(message, "role", None) or "assistant"

        tool_calls = _tool_calls_of(message)
        if tool_calls:
            for call in tool_calls:
                args_json = json.dumps(call.get("args", {}), ensure_ascii=False, default=str)
                lines.append(f"assistant: tool_call -> {call.get('name', '')} {args_json}")
            continue

        text = extract_message_content(message)
        if role == "tool":
            tool_call_id = (
                message.get("tool_call_id", "") if isinstance(message, dict)
                else getattr(message, "tool_call_id", "")
            )
            if len(text) > _MAX_TOOL_RESULT_CHARS:
                text = text[:_MAX_TOOL_RESULT_CHARS] + "…"
            lines.append(f"tool[{tool_call_id}]: {text}")
        elif role in ("ai", "assistant"):
            lines.append(f"assistant: {text}")
        elif role in ("human", "user"):
            lines.append(f"user: {text}")
        else:
            lines.append(f"{role}: {text}")

    return "\n".join(lines)
