from inbox_triage.tools.base import get_tools, get_tools_by_name
from inbox_triage.tools.default.email_tools import write_email, triage_email, Question, Done
from inbox_triage.tools.default.calendar_tools import schedule_meeting, check_calendar_availability

__all__ = [
    "get_tools",
    "get_tools_by_name",
    "write_email",
    "triage_email",
    "Question",
    "Done",
    "schedule_meeting",
    "check_calendar_availability",
]
