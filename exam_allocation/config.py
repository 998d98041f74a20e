import os
from datetime import time
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# --- Core Path Configuration ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from a .env file at the project root
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")


def _parse_sessions(raw: str) -> List[Tuple[time, time]]:
    """Parses "09:00-12:00,14:00-17:00" into a list of (start, end) times."""
    sessions: List[Tuple[time, time]] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        start_raw, _, end_raw = chunk.partition("-")
        start, end = time.fromisoformat(start_raw.strip()), time.fromisoformat(end_raw.strip())
        if start >= end:
            raise ValueError(f"Exam session '{chunk}' must start before it ends")
        sessions.append((start, end))
    if not sessions:
        raise ValueError("At least one exam session must be configured")
    return sessions


# --- API ---
API_PREFIX = os.environ.get("EXAM_API_PREFIX", "/api")
# When unset every caller may mutate state.
ADMIN_TOKEN: Optional[str] = os.environ.get("EXAM_ADMIN_TOKEN") or None

# --- Allocation policy ---
STUDENTS_PER_INVIGILATOR = int(os.environ.get("EXAM_STUDENTS_PER_INVIGILATOR", "30"))
MAX_INVIGILATORS = int(os.environ.get("EXAM_MAX_INVIGILATORS", "4"))
REPORTING_LEAD_MINUTES = 30
# Exam duties a faculty member takes when no capacity is given.
DEFAULT_WORKLOAD_CAPACITY = int(os.environ.get("EXAM_DEFAULT_WORKLOAD_CAPACITY", "5"))

# --- Reporting ---
UPCOMING_DAYS = int(os.environ.get("EXAM_UPCOMING_DAYS", "7"))

# --- Schedule generation ---
EXAM_SESSIONS = _parse_sessions(os.environ.get("EXAM_SESSIONS", "09:00-12:00,14:00-17:00"))

# --- Startup data and logging ---
SEED_FILE: Optional[Path] = Path(os.environ["EXAM_SEED_FILE"]) if os.environ.get("EXAM_SEED_FILE") else None
LOG_LEVEL = os.environ.get("EXAM_LOG_LEVEL", "INFO")
