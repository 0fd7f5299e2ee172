from typing import Dict, List, Optional
from langchain_core.tools import BaseTool

from inbox_triage.tools.default.email_tools import write_email, triage_email, Done, Question
from inbox_triage.tools.default.calendar_tools import (
    schedule_meeting,
    check_calendar_availability,
)

_ALL_TOOLS: Dict[str, BaseTool] = {
    "write_email": write_email,
    "triage_email": triage_email,
    "Done": Done,
    "Question": Question,
    "schedule_meeting": schedule_meeting,
    "check_calendar_availability": check_calendar_availability,
}


def get_tools(tool_names: Optional[List[str]] = None) -> List[BaseTool]:
    """
    Return the requested tool objects, or every registered tool when no names are given.

    Parameters:
        tool_names (Optional[List[str]]): Names of tools to return. Unknown names
            are skipped so a variant can ask for a superset.

    Returns:
        List[BaseTool]: Tool objects in the requested order.
    """
    if tool_names is None:
        return list(_ALL_TOOLS.values())

    return [_ALL_TOOLS[name] for name in tool_names if name in _ALL_TOOLS]


def get_tools_by_name(tools: Optional[List[BaseTool]] = None) -> Dict[str, BaseTool]:
    """Get a dictionary of tools mapped by name."""
    if tools is None:
        tools = get_tools()

    return {tool.name: tool for tool in tools}
