#!/usr/bin/env python

import os
import sys
import tempfile
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))

# The workflow modules open their SQLite files and log file at import time
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="inbox-triage-tests-"))
os.environ["INBOX_TRIAGE_CHECKPOINT_PATH"] = str(_TMP_ROOT / "checkpoints.sqlite")
os.environ["INBOX_TRIAGE_STORE_PATH"] = str(_TMP_ROOT / "store.sqlite")
os.environ["INBOX_TRIAGE_LOG_PATH"] = str(_TMP_ROOT / "inbox_triage.log")
os.environ["LANGSMITH_TRACING"] = "false"
os.environ["LANGCHAIN_TRACING_V2"] = "false"


@pytest.fixture(autouse=True)
def no_auto_accept(monkeypatch):
    # Review requests must reach the patched interrupt unless a test opts in
    monkeypatch.delenv("HITL_AUTO_ACCEPT", raising=False)


@pytest.fixture
def sample_email():
    return {
        "id": "msg-1",
        "thread_id": "thread-1",
        "from_email": "Alice Smith <alice.smith@company.com>",
        "to_email": "Lance Martin <lance@company.com>",
        "subject": "Quick question about API documentation",
        "page_content": (
            "Hi Lance,\n\nI was reviewing the API documentation and noticed a few "
            "endpoints are missing. Could you help clarify?\n\nThanks,\nAlice"
        ),
        "send_time": "2025-05-01T10:00:00+00:00",
    }
