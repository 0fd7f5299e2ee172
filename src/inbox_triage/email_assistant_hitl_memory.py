"""Reviewed workflow that learns triage, response and calendar preferences from review feedback.

Preferences live in the LangGraph store, one text profile per namespace under
the ``user_preferences`` key. They are read into the prompts on every run and
rewritten by the memory model whenever a reviewer edits, redirects or
ignores something the assistant proposed.
"""

from datetime import datetime
from functools import lru_cache
import logging
from typing import Any, Literal

from langgraph.graph import StateGraph, START, END
from langgraph.runtime import Runtime
from langgraph.store.base import BaseStore
from langgraph.types import Command
from dotenv import load_dotenv, find_dotenv

from inbox_triage.configuration import get_llm, format_model_identifier, model_for_role
from inbox_triage.tracing import init_project, prime_parent_run, format_final_output
from inbox_triage.tools import get_tools, get_tools_by_name
from inbox_triage.tools.default.prompt_templates import HITL_MEMORY_TOOLS_PROMPT
from inbox_triage.prompts import (
    triage_system_prompt,
    triage_user_prompt,
    agent_system_prompt_hitl_memory,
    default_background,
    default_triage_instructions,
    default_response_preferences,
    default_cal_preferences,
    MEMORY_UPDATE_INSTRUCTIONS,
    MEMORY_UPDATE_INSTRUCTIONS_REINFORCEMENT,
)
from inbox_triage.review import (
    HITL_TOOLS,
    action_allowed,
    deferred_tool_messages,
    edited_tool_args,
    invoke_tool,
    maybe_interrupt,
    tool_message,
    tool_review_request,
    triage_review_request,
)
from inbox_triage.schemas import (
    CAL_PREFERENCES_NAMESPACE,
    PREFERENCES_KEY,
    RESPONSE_PREFERENCES_NAMESPACE,
    TRIAGE_PREFERENCES_NAMESPACE,
    AssistantContext,
    RouterSchema,
    State,
    StateInput,
    UserPreferences,
)
from inbox_triage.runtime import extract_runtime_metadata
from inbox_triage.checkpointing import get_sqlite_checkpointer, get_sqlite_store
from inbox_triage.utils import parse_email, format_email_markdown, format_for_display, email_markdown

load_dotenv(find_dotenv())
init_project("inbox-triage")

logger = logging.getLogger(__name__)

tools = get_tools(["write_email", "schedule_meeting", "check_calendar_availability", "Question", "Done"])
tools_by_name = get_tools_by_name(tools)

CLASSIFICATIONS = ("ignore", "respond", "notify")

# Preferences rewritten when a reviewer edits or answers a proposed tool call
_FEEDBACK_NAMESPACES = {
    "write_email": RESPONSE_PREFERENCES_NAMESPACE,
    "schedule_meeting": CAL_PREFERENCES_NAMESPACE,
}


@lru_cache(maxsize=1)
def get_llm_router():
    model = model_for_role("router")
    logger.info("Router model: %s", format_model_identifier(model))
    return get_llm(temperature=0.0, model=model).with_structured_output(RouterSchema)


@lru_cache(maxsize=1)
def get_llm_with_tools():
    model = model_for_role("tool")
    logger.info("Tool model: %s", format_model_identifier(model))
    return get_llm(temperature=0.0, model=model).bind_tools(tools, tool_choice="any")


@lru_cache(maxsize=1)
def get_memory_llm():
    model = model_for_role("memory")
    logger.info("Memory model: %s", format_model_identifier(model))
    return get_llm(temperature=0.0, model=model).with_structured_output(UserPreferences)


def _profile_text(value: Any) -> str:
    # Older stores hold the bare string rather than {"content": ...}
    if isinstance(value, dict):
        return str(value.get("content", ""))
    return "" if value is None else str(value)


def get_memory(store: BaseStore, namespace: tuple, default_content: str | None = None) -> str:
    """Read a preference profile, seeding the store with ``default_content`` on first use.

    Args:
        store: LangGraph BaseStore holding the profiles
        namespace: e.g. ``("email_assistant", "triage_preferences")``
        default_content: Text stored and returned when the profile is missing

    Returns:
        str: The stored profile, or ``default_content`` when the store has none
        or cannot be read
    """
    default_content = default_content or ""
    try:
        item = store.get(namespace, PREFERENCES_KEY)
        if item is not None:
            return _profile_text(item.value)
        store.put(namespace, PREFERENCES_KEY, {"content": default_content})
    except Exception:  # noqa: BLE001 - prompts fall back to the defaults
        logger.exception("Could not read preferences from %s", namespace)
    return default_content


def update_memory(store: BaseStore, namespace: tuple, messages: list) -> str | None:
    """Ask the memory model to fold ``messages`` into the profile at ``namespace``.

    The stored profile is overwritten with the model's ``user_preferences``. When
    the store or the model fails, or the model returns an empty profile, the
    current text is left untouched. Returns the new profile, or ``None`` if
    nothing was written.
    """
    try:
        item = store.get(namespace, PREFERENCES_KEY)
    except Exception:  # noqa: BLE001
        logger.exception("Could not read preferences from %s", namespace)
        return None
    current_profile = _profile_text(item.value) if item is not None else ""

    try:
        result = get_memory_llm().invoke(
            [
                {
                    "role": "system",
                    "content": MEMORY_UPDATE_INSTRUCTIONS.format(
                        current_profile=current_profile, namespace=namespace
                    ),
                }
            ]
            + list(messages)
        )
    except Exception:  # noqa: BLE001 - learning is best effort
        logger.exception("Memory update for %s failed; keeping current profile", namespace)
        return None

    if isinstance(result, dict):
        new_profile = result.get("user_preferences")
    else:
        new_profile = getattr(result, "user_preferences", None)
    if not new_profile:
        logger.warning("Memory model returned no profile for %s; keeping current profile", namespace)
        return None

    try:
        store.put(namespace, PREFERENCES_KEY, {"content": new_profile})
    except Exception:  # noqa: BLE001
        logger.exception("Could not write preferences to %s", namespace)
        return None
    logger.info("Updated %s preferences", namespace[-1])
    return new_profile


def _with_reinforcement(text: str) -> dict:
    return {
        "role": "user",
        "content": f"{text} Follow all instructions above, and remember: {MEMORY_UPDATE_INSTRUCTIONS_REINFORCEMENT}.",
    }


def _classification_of(result) -> str | None:
    if isinstance(result, dict):
        return result.get("classification")
    return getattr(result, "classification", None)


# Nodes
def triage_router(
    state: State,
    store: BaseStore,
    runtime: Runtime[AssistantContext],
) -> Command[Literal["triage_interrupt_handler", "response_agent", "__end__"]]:
    """Classify the email using the learned triage preferences, then route it."""

    _timezone, thread_id, metadata = extract_runtime_metadata(runtime)

    email_input = state["email_input"]
    author, to, subject, email_thread = parse_email(email_input)
    email_md = format_email_markdown(subject, author, to, email_thread)
    prime_parent_run(
        email_input=email_input,
        email_markdown=email_md,
        metadata_update=metadata,
        thread_id=thread_id,
    )

    triage_instructions = get_memory(store, TRIAGE_PREFERENCES_NAMESPACE, default_triage_instructions)
    system_prompt = triage_system_prompt.format(
        background=default_background,
        triage_instructions=triage_instructions,
    )
    user_prompt = triage_user_prompt.format(
        author=author, to=to, subject=subject, email_thread=email_thread
    )

    try:
        result = get_llm_router().invoke([
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ])
        classification = _classification_of(result)
    except Exception as exc:  # noqa: BLE001 - surfaced as the "error" classification
        logger.exception("Triage router failed for %r", subject)
        return Command(
            goto=END,
            update={
                "classification_decision": "error",
                "messages": [{"role": "system", "content": f"Error in triage router: {exc}"}],
            },
        )

    if classification not in CLASSIFICATIONS:
        logger.warning("Unrecognised classification %r; treating as notify", classification)
        classification = "notify"

    if classification == "respond":
        print("📧 Classification: RESPOND - This email requires a response")
        return Command(
            goto="response_agent",
            update={
                "classification_decision": classification,
                "messages": [{"role": "user", "content": f"Respond to the email: {email_md}"}],
            },
        )

    if classification == "notify":
        print("🔔 Classification: NOTIFY - This email contains important information")
        return Command(
            goto="triage_interrupt_handler",
            update={"classification_decision": classification},
        )

    print("🚫 Classification: IGNORE - This email can be safely ignored")
    prime_parent_run(
        email_input=email_input,
        outputs=format_final_output({**state, "classification_decision": classification}),
        thread_id=thread_id,
    )
    return Command(goto=END, update={"classification_decision": classification})


def triage_interrupt_handler(
    state: State, store: BaseStore
) -> Command[Literal["response_agent", "__end__"]]:
    """Review a notify-classified email; either decision is fed back into the triage preferences."""

    email_md = email_markdown(state["email_input"])
    request = triage_review_request(state["classification_decision"], email_md)
    response = maybe_interrupt([request])[0]

    messages = [{"role": "user", "content": f"Email to notify user about: {email_md}"}]
    if response["type"] == "response":
        messages.append({
            "role": "user",
            "content": f"User wants to reply to the email. Use this feedback to respond: {response.get('args')}",
        })
        update_memory(store, TRIAGE_PREFERENCES_NAMESPACE, messages + [{
            "role": "user",
            "content": "The user decided to respond to the email, so update the triage preferences to capture this.",
        }])
        return Command(goto="response_agent", update={"messages": messages})

    if response["type"] == "ignore":
        update_memory(store, TRIAGE_PREFERENCES_NAMESPACE, messages + [{
            "role": "user",
            "content": "The user decided to ignore the email even though it was classified as notify. Update triage preferences to capture this.",
        }])
        return Command(goto=END, update={"messages": messages})

    logger.warning("Unhandled triage review action %r", response["type"])
    messages.append({
        "role": "system",
        "content": f"Unhandled review action: {response['type']}. Ending triage.",
    })
    return Command(goto=END, update={"messages": messages})


def llm_call(state: State, store: BaseStore):
    """LLM picks the next tool call, prompted with the learned response and calendar preferences."""
    system_prompt = agent_system_prompt_hitl_memory.format(
        tools_prompt=HITL_MEMORY_TOOLS_PROMPT,
        background=default_background,
        response_preferences=get_memory(store, RESPONSE_PREFERENCES_NAMESPACE, default_response_preferences),
        cal_preferences=get_memory(store, CAL_PREFERENCES_NAMESPACE, default_cal_preferences),
        today=datetime.now().strftime("%Y-%m-%d"),
    )
    try:
        msg = get_llm_with_tools().invoke(
            [{"role": "system", "content": system_prompt}] + state["messages"]
        )
    except Exception as exc:  # noqa: BLE001 - a message without tool calls ends the agent
        logger.exception("Tool model call failed")
        return {"messages": [{"role": "assistant", "content": f"Error calling model: {exc}"}]}
    return {"messages": [msg]}


def interrupt_handler(state: State, store: BaseStore) -> Command[Literal["llm_call", "__end__"]]:
    """
    Review the first tool call on the last AI message and learn from the outcome.

    Behaves like the plain reviewed workflow, plus:

    - an ``edit`` of an email or invite updates the response or calendar preferences
    - an ``ignore`` updates the triage preferences
    - a ``response`` to an email or invite updates the response or calendar
      preferences; answering a ``Question`` teaches nothing

    A plain ``accept`` leaves every profile untouched.
    """

    ai_message = state["messages"][-1]
    tool_call, *remaining = ai_message.tool_calls
    name = tool_call["name"]

    if name not in HITL_TOOLS:
        observation = invoke_tool(tools_by_name, name, tool_call["args"])
        result = [tool_message(observation, tool_call["id"])] + deferred_tool_messages(remaining)
        return Command(goto="llm_call", update={"messages": result})

    description = email_markdown(state["email_input"]) + format_for_display(tool_call)
    request = tool_review_request(tool_call, description)
    response = maybe_interrupt([request])[0]
    response_type = response.get("type")

    result = []
    goto = "llm_call"

    if not action_allowed(request["config"], response_type):
        logger.warning("Unhandled review action %r for %s", response_type, name)
        result.append(tool_message(f"Unhandled review action: {response_type}", tool_call["id"]))

    elif response_type == "accept":
        observation = invoke_tool(tools_by_name, name, tool_call["args"])
        result.append(tool_message(observation, tool_call["id"]))
        if name == "write_email":
            goto = END

    elif response_type == "edit":
        initial_args = tool_call["args"]
        edited_args = edited_tool_args(response, initial_args)
        # Same message id, so add_messages swaps the edited call into place
        updated_tool_calls = [
            {"type": "tool_call", "name": name, "args": edited_args, "id": tool_call["id"]}
            if tc["id"] == tool_call["id"] else tc
            for tc in ai_message.tool_calls
        ]
        result.append(ai_message.model_copy(update={"tool_calls": updated_tool_calls}))
        observation = invoke_tool(tools_by_name, name, edited_args)
        result.append(tool_message(observation, tool_call["id"]))

        if name == "write_email":
            note = (
                "User edited the email response. Here is the initial email generated by the "
                f"assistant: {initial_args}. Here is the edited email: {edited_args}."
            )
        else:
            note = (
                "User edited the calendar invitation. Here is the initial calendar invitation "
                f"generated by the assistant: {initial_args}. Here is the edited calendar invitation: {edited_args}."
            )
        update_memory(store, _FEEDBACK_NAMESPACES[name], [_with_reinforcement(note)])

    elif response_type == "ignore":
        subject, consequence = {
            "write_email": ("email draft", "they did not want to respond to the email"),
            "schedule_meeting": ("calendar meeting draft", "they did not want to schedule a meeting for this email"),
            "Question": ("question", "they did not want to answer the question or deal with this email"),
        }[name]
        result.append(tool_message(
            f"User ignored this {subject}. Ignore this email and end the workflow.",
            tool_call["id"],
        ))
        goto = END
        update_memory(
            store,
            TRIAGE_PREFERENCES_NAMESPACE,
            state["messages"] + result + [_with_reinforcement(
                f"The user ignored the {subject}. That means {consequence}. Update the triage "
                "preferences to ensure emails of this type are not classified as respond."
            )],
        )

    else:
        feedback = response.get("args")
        if name == "write_email":
            content = f"User gave feedback, which we can incorporate into the email. Feedback: {feedback}"
        elif name == "schedule_meeting":
            content = f"User gave feedback, which we can incorporate into the meeting request. Feedback: {feedback}"
        else:
            content = f"User answered the question, which we can use for any follow up actions. Feedback: {feedback}"
        result.append(tool_message(content, tool_call["id"]))

        if name in _FEEDBACK_NAMESPACES:
            category = "response" if name == "write_email" else "calendar"
            update_memory(
                store,
                _FEEDBACK_NAMESPACES[name],
                state["messages"] + result + [_with_reinforcement(
                    f"User gave feedback, which we can use to update the {category} preferences."
                )],
            )

    result.extend(deferred_tool_messages(remaining))
    if goto == END:
        prime_parent_run(
            email_input=state["email_input"],
            outputs=format_final_output({**state, "messages": state["messages"] + result}),
        )
    return Command(goto=goto, update={"messages": result})


# Conditional edge function
def should_continue(state: State) -> Literal["interrupt_handler", "__end__"]:
    """Route to interrupt_handler, or end if Done was called or no tool was requested."""
    last_message = state["messages"][-1]
    tool_calls = getattr(last_message, "tool_calls", None) or []
    if tool_calls and not any(tc["name"] == "Done" for tc in tool_calls):
        return "interrupt_handler"

    prime_parent_run(
        email_input=state.get("email_input", {}),
        outputs=format_final_output({"classification_decision": "respond", **state}),
    )
    return END


# Build workflow
agent_builder = StateGraph(State, context_schema=AssistantContext)
agent_builder.add_node("llm_call", llm_call)
agent_builder.add_node("interrupt_handler", interrupt_handler)
agent_builder.add_edge(START, "llm_call")
agent_builder.add_conditional_edges(
    "llm_call",
    should_continue,
    {
        "interrupt_handler": "interrupt_handler",
        END: END,
    },
)

response_agent = agent_builder.compile()

overall_workflow = (
    StateGraph(State, context_schema=AssistantContext, input_schema=StateInput)
    .add_node(triage_router)
    .add_node(triage_interrupt_handler)
    .add_node("response_agent", response_agent)
    .add_edge(START, "triage_router")
    .add_edge("response_agent", END)
)


def build_email_assistant(checkpointer=None, store=None):
    """Compile ``overall_workflow`` with a checkpointer and the preference store.

    Missing arguments fall back to the shared SQLite checkpointer and store.
    """
    return overall_workflow.compile(
        checkpointer=checkpointer if checkpointer is not None else get_sqlite_checkpointer(),
        store=store if store is not None else get_sqlite_store(),
    )


email_assistant = build_email_assistant().with_config(durability="sync")
