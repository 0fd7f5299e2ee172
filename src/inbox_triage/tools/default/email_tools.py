from langchain_core.tools import tool

_URGENT_MARKERS = ("urgent", "important")


@tool
def write_email(to: str, subject: str, content: str) -> str:
    """Write and send an email."""
    # Placeholder response - in real app would send email
    return f"Email sent to {to} with subject '{subject}' and content: {content}"


@tool
def triage_email(sender: str, subject: str, content: str) -> str:
    """Analyze an email and assign it a priority and a recommended action."""
    lowered_subject = subject.lower()
    if any(marker in lowered_subject for marker in _URGENT_MARKERS) or "asap" in content.lower():
        priority = "High"
    elif len(content) < 50 or "fyi" in lowered_subject:
        priority = "Low"
    else:
        priority = "Medium"

    action = "Respond immediately" if priority == "High" else "Review when convenient"
    return (
        f"Email from {sender} has been analyzed:\n"
        f"Priority: {priority}\n"
        "Category: General correspondence\n"
        f"Recommended action: {action}"
    )


@tool
def Question(content: str) -> str:
    """Question to ask user."""
    return f"The user will see and can answer this question: {content}"


@tool
def Done(done: bool) -> str:
    """E-mail has been sent."""
    return "Task completed successfully. No further actions required."
