"""Triage plus a response agent whose side-effecting tool calls wait for human review."""

from datetime import datetime
from functools import lru_cache
import logging
from typing import Literal

from langgraph.graph import StateGraph, START, END
from langgraph.runtime import Runtime
from langgraph.types import Command
from dotenv import load_dotenv, find_dotenv

from inbox_triage.configuration import get_llm, format_model_identifier, model_for_role
from inbox_triage.tracing import init_project, prime_parent_run, format_final_output
from inbox_triage.tools import get_tools, get_tools_by_name
from inbox_triage.tools.default.prompt_templates import HITL_TOOLS_PROMPT
from inbox_triage.prompts import (
    triage_system_prompt,
    triage_user_prompt,
    agent_system_prompt_hitl,
    default_background,
    default_triage_instructions,
    default_response_preferences,
    default_cal_preferences,
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
from inbox_triage.schemas import State, RouterSchema, StateInput, AssistantContext
from inbox_triage.runtime import extract_runtime_metadata
from inbox_triage.checkpointing import get_sqlite_checkpointer
from inbox_triage.utils import parse_email, format_email_markdown, format_for_display, email_markdown

load_dotenv(find_dotenv())
init_project("inbox-triage")

logger = logging.getLogger(__name__)

tools = get_tools(["write_email", "schedule_meeting", "check_calendar_availability", "Question", "Done"])
tools_by_name = get_tools_by_name(tools)

CLASSIFICATIONS = ("ignore", "respond", "notify")


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


def _classification_of(result) -> str | None:
    if isinstance(result, dict):
        return result.get("classification")
    return getattr(result, "classification", None)


# Nodes
def triage_router(
    state: State,
    runtime: Runtime[AssistantContext],
) -> Command[Literal["triage_interrupt_handler", "response_agent", "__end__"]]:
    """
    Classify the email and route it.

    ``respond`` goes to the response agent with the email as a user message,
    ``notify`` goes to the reviewer, ``ignore`` ends the run. A router failure
    sets ``classification_decision`` to ``"error"`` and ends the run.
    """

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

    system_prompt = triage_system_prompt.format(
        background=default_background,
        triage_instructions=default_triage_instructions,
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


def triage_interrupt_handler(state: State) -> Command[Literal["response_agent", "__end__"]]:
    """Show a notify-classified email to the reviewer, who may respond to it or drop it."""

    email_md = email_markdown(state["email_input"])
    request = triage_review_request(state["classification_decision"], email_md)
    response = maybe_interrupt([request])[0]

    messages = [{"role": "user", "content": f"Email to notify user about: {email_md}"}]
    if response["type"] == "response":
        messages.append({
            "role": "user",
            "content": f"User wants to reply to the email. Use this feedback to respond: {response.get('args')}",
        })
        return Command(goto="response_agent", update={"messages": messages})

    if response["type"] == "ignore":
        return Command(goto=END, update={"messages": messages})

    logger.warning("Unhandled triage review action %r", response["type"])
    messages.append({
        "role": "system",
        "content": f"Unhandled review action: {response['type']}. Ending triage.",
    })
    return Command(goto=END, update={"messages": messages})


def llm_call(state: State):
    """LLM picks the next tool call given the transcript so far."""
    system_prompt = agent_system_prompt_hitl.format(
        tools_prompt=HITL_TOOLS_PROMPT,
        background=default_background,
        response_preferences=default_response_preferences,
        cal_preferences=default_cal_preferences,
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


def interrupt_handler(state: State) -> Command[Literal["llm_call", "__end__"]]:
    """
    Review the first tool call on the last AI message; reply to the rest as deferred.

    Non-HITL tools run straight away. For ``write_email``, ``schedule_meeting``
    and ``Question`` the reviewer can:

    - ``accept``: run the call as proposed (an accepted email ends the run)
    - ``edit``: rewrite the call in place and run the edited version
    - ``ignore``: skip it and end the run
    - ``response``: skip it and pass the feedback back to the agent
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
        edited_args = edited_tool_args(response, tool_call["args"])
        # Same message id, so add_messages swaps the edited call into place
        updated_tool_calls = [
            {"type": "tool_call", "name": name, "args": edited_args, "id": tool_call["id"]}
            if tc["id"] == tool_call["id"] else tc
            for tc in ai_message.tool_calls
        ]
        result.append(ai_message.model_copy(update={"tool_calls": updated_tool_calls}))
        observation = invoke_tool(tools_by_name, name, edited_args)
        result.append(tool_message(observation, tool_call["id"]))

    elif response_type == "ignore":
        subject = {
            "write_email": "email draft",
            "schedule_meeting": "calendar meeting draft",
            "Question": "question",
        }[name]
        result.append(tool_message(
            f"User ignored this {subject}. Ignore this email and end the workflow.",
            tool_call["id"],
        ))
        goto = END

    else:
        feedback = response.get("args")
        if name == "write_email":
            content = f"User gave feedback, which we can incorporate into the email. Feedback: {feedback}"
        elif name == "schedule_meeting":
            content = f"User gave feedback, which we can incorporate into the meeting request. Feedback: {feedback}"
        else:
            content = f"User answered the question, which we can use for any follow up actions. Feedback: {feedback}"
        result.append(tool_message(content, tool_call["id"]))

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
agent_builder = StateGraph(State)
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

# triage_router and triage_interrupt_handler route themselves via Command
overall_workflow = (
    StateGraph(State, context_schema=AssistantContext, input_schema=StateInput)
    .add_node(triage_router)
    .add_node(triage_interrupt_handler)
    .add_node("response_agent", response_agent)
    .add_edge(START, "triage_router")
    .add_edge("response_agent", END)
)


def build_email_assistant(checkpointer=None, store=None):
    """Compile ``overall_workflow``; a checkpointer is needed to resume after a review."""
    return overall_workflow.compile(checkpointer=checkpointer, store=store)


email_assistant = build_email_assistant(checkpointer=get_sqlite_checkpointer()).with_config(
    durability="sync"
)
