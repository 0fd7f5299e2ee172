"""Autonomous workflow: triage, then a tool-calling agent whose tools run unreviewed."""

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
from inbox_triage.tools.default.prompt_templates import AGENT_TOOLS_PROMPT
from inbox_triage.prompts import (
    triage_system_prompt,
    triage_user_prompt,
    agent_system_prompt,
    default_background,
    default_triage_instructions,
    default_response_preferences,
    default_cal_preferences,
)
from inbox_triage.review import invoke_tool, tool_message
from inbox_triage.schemas import State, RouterSchema, StateInput, AssistantContext
from inbox_triage.runtime import extract_runtime_metadata
from inbox_triage.checkpointing import get_sqlite_checkpointer
from inbox_triage.utils import parse_email, format_email_markdown

load_dotenv(find_dotenv())
init_project("inbox-triage")

logger = logging.getLogger(__name__)

tools = get_tools(["write_email", "schedule_meeting", "check_calendar_availability", "Done"])
tools_by_name = get_tools_by_name(tools)

CLASSIFICATIONS = ("ignore", "respond", "notify")


@lru_cache(maxsize=1)
def get_llm_router():
    """Router model with ``RouterSchema`` structured output, built on first use."""
    model = model_for_role("router")
    logger.info("Router model: %s", format_model_identifier(model))
    return get_llm(temperature=0.0, model=model).with_structured_output(RouterSchema)


@lru_cache(maxsize=1)
def get_llm_with_tools():
    """Tool model forced to call one of ``tools`` on every turn."""
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
) -> Command[Literal["response_agent", "__end__"]]:
    """Classify the email and either hand it to the response agent or stop.

    ``notify`` ends the run here; there is no reviewer in this variant.
    A router failure is recorded as ``ignore``.
    """
    _timezone, thread_id, metadata = extract_runtime_metadata(runtime)

    email_input = state["email_input"]
    author, to, subject, email_thread = parse_email(email_input)
    email_markdown = format_email_markdown(subject, author, to, email_thread)
    prime_parent_run(
        email_input=email_input,
        email_markdown=email_markdown,
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
    except Exception as exc:  # noqa: BLE001 - a failed triage ends the run
        logger.exception("Triage router failed for %r", subject)
        return Command(
            goto=END,
            update={
                "classification_decision": "ignore",
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
                "messages": [{"role": "user", "content": f"Respond to the email: {email_markdown}"}],
            },
        )

    if classification == "ignore":
        print("🚫 Classification: IGNORE - This email can be safely ignored")
    else:
        print("🔔 Classification: NOTIFY - This email contains important information")

    prime_parent_run(
        email_input=email_input,
        outputs=format_final_output({**state, "classification_decision": classification}),
        thread_id=thread_id,
    )
    return Command(goto=END, update={"classification_decision": classification})


def llm_call(state: State):
    """LLM decides which tool to call next."""
    system_prompt = agent_system_prompt.format(
        tools_prompt=AGENT_TOOLS_PROMPT,
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


def tool_node(state: State):
    """Execute every tool call on the last message; failures become observations."""
    result = []
    for tool_call in state["messages"][-1].tool_calls:
        observation = invoke_tool(tools_by_name, tool_call["name"], tool_call["args"])
        result.append(tool_message(observation, tool_call["id"]))
    return {"messages": result}


# Conditional edge function
def should_continue(state: State) -> Literal["environment", "__end__"]:
    """Route to environment, or end if Done was called or no tool was requested."""
    last_message = state["messages"][-1]
    tool_calls = getattr(last_message, "tool_calls", None) or []
    if tool_calls and not any(tc["name"] == "Done" for tc in tool_calls):
        return "environment"

    prime_parent_run(
        email_input=state.get("email_input", {}),
        outputs=format_final_output({"classification_decision": "respond", **state}),
    )
    return END


# Build workflow
agent_builder = StateGraph(State)
agent_builder.add_node("llm_call", llm_call)
agent_builder.add_node("environment", tool_node)
agent_builder.add_edge(START, "llm_call")
agent_builder.add_conditional_edges(
    "llm_call",
    should_continue,
    {
        "environment": "environment",
        END: END,
    },
)
agent_builder.add_edge("environment", "llm_call")

agent = agent_builder.compile()

overall_workflow = (
    StateGraph(State, context_schema=AssistantContext, input_schema=StateInput)
    .add_node(triage_router)
    .add_node("response_agent", agent)
    .add_edge(START, "triage_router")
    .add_edge("response_agent", END)
)


def build_email_assistant(checkpointer=None, store=None):
    """Compile ``overall_workflow``. Nothing here pauses, so both arguments are optional."""
    return overall_workflow.compile(checkpointer=checkpointer, store=store)


email_assistant = build_email_assistant(checkpointer=get_sqlite_checkpointer()).with_config(
    durability="sync"
)
