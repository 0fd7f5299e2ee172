from typing import Any, Dict

from pydantic import BaseModel, Field
from typing_extensions import TypedDict, Literal, NotRequired
from langgraph.graph import MessagesState

Classification = Literal["ignore", "respond", "notify"]
ReviewType = Literal["accept", "edit", "ignore", "response"]

# Namespaces holding one preference blob each, all under the same key
TRIAGE_PREFERENCES_NAMESPACE = ("email_assistant", "triage_preferences")
RESPONSE_PREFERENCES_NAMESPACE = ("email_assistant", "response_preferences")
CAL_PREFERENCES_NAMESPACE = ("email_assistant", "cal_preferences")
PREFERENCES_KEY = "user_preferences"


class RouterSchema(BaseModel):
    """Analyze the unread email and route it according to its content."""

    reasoning: str = Field(
        description="Step-by-step reasoning behind the classification."
    )
    classification: Classification = Field(
        description="The classification of an email: 'ignore' for irrelevant emails, "
        "'notify' for important information that doesn't need a response, "
        "'respond' for emails that need a reply",
    )


class UserPreferences(BaseModel):
    """Updated user preferences based on user's feedback."""

    rationale: str = Field(
        description="Brief rationale for updating user preferences based on feedback."
    )
    user_preferences: str = Field(description="Updated user preferences")


class StateInput(TypedDict):
    # This is the input to the state
    email_input: dict


class State(MessagesState):
    # This state class has the messages key built in
    email_input: dict
    # "error" marks a triage failure in the review-enabled workflows
    classification_decision: Literal["ignore", "respond", "notify", "error"]


class EmailData(TypedDict):
    id: str
    thread_id: str
    from_email: str
    subject: str
    page_content: str
    send_time: str
    to_email: str


class HumanResponse(TypedDict):
    """What a reviewer sends back when resuming an interrupt.

    ``args`` is the feedback text for ``response``, and
    ``{"action": <tool name>, "args": {...}}`` for ``edit``.
    """

    type: ReviewType
    args: NotRequired[Any]


class AssistantContext(TypedDict, total=False):
    """Runtime context propagated through LangGraph Runtime."""

    timezone: str
    thread_id: str | None
    thread_metadata: Dict[str, Any]
