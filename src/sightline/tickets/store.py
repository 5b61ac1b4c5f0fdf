"""tickets.json persistence for a session directory."""

import json
import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from sightline.errors import SessionCorruptError
from sightline.session_store import atomic_write
from sightline.tickets.models import TicketsData

logger = logging.getLogger(__name__)

TICKETS_FILE = "tickets.json"


def tickets_path(session_dir: Path) -> Path:
    return Path(session_dir) / TICKETS_FILE


def save_tickets(session_dir: Path, data: TicketsData) -> Path:
    """Write tickets.json atomically, refreshing ``updated_at``.

    Returns:
        Path to the written file
    """
    data = replace(data, updated_at=datetime.now(UTC))
    path = tickets_path(session_dir)
    atomic_write(path, json.dumps(data.to_dict(), indent=2, ensure_ascii=False) + "\n")
    logger.debug("Saved %d tickets to %s", len(data.tickets), path)
    return path


def load_tickets(session_dir: Path) -> TicketsData:
    """Load tickets.json from a session directory.

    Raises:
        FileNotFoundError: If the session has no tickets.json
        SessionCorruptError: If the file cannot be decoded
    """
    path = tickets_path(session_dir)
    if not path.is_file():
        raise FileNotFoundError(f"No {TICKETS_FILE} in {session_dir}")

    try:
        return TicketsData.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise SessionCorruptError(path, str(e)) from e
