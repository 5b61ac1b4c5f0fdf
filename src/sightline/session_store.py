"""Session persistence.

Each session owns one directory under the sessions root:

    <sessions_dir>/<session id>/
        session.json          # full Session snapshot
        00_domain_research.md # one file per completed phase
        ...
        FEATURE.md
        tickets.json          # written when the session completes

Every write goes to a sibling temp file that is then renamed over the
target with ``os.replace``, so a crash leaves either the previous or the
new file on disk, never a partial one.
"""

import json
import logging
import os
import random
import re
import tempfile
from datetime import date
from pathlib import Path
from typing import Any

from sightline.errors import SessionCorruptError, SessionNotFoundError
from sightline.models.session import Session

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"
SLUG_MAX_LENGTH = 30
MAX_ID_ATTEMPTS = 20


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Convert text to a lowercase, hyphen-separated slug.

    Args:
        text: Free text (task description or session name)
        max_length: Maximum slug length

    Returns:
        Slug, or "session" when nothing usable remains
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "session"


def generate_session_id(
    task: str,
    today: date | None = None,
    rng: random.Random | None = None,
) -> str:
    """Generate a session id: ``YYYY-MM-DD_<task slug>_<4 digits>``."""
    today = today or date.today()
    suffix = (rng or random).randint(0, 9999)
    return f"{today.isoformat()}_{slugify(task)}_{suffix:04d}"


def atomic_write(path: Path, content: str) -> None:
    """Write text to ``path`` via a temp file and ``os.replace``.

    Raises:
        OSError: If the file cannot be written or renamed
    """
    path = Path(path)
    with tempfile.NamedTemporaryFile(
        mode="w",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        encoding="utf-8",
    ) as tmp_file:
        tmp_file.write(content)
        tmp_file.flush()
        os.fsync(tmp_file.fileno())

    try:
        os.replace(tmp_file.name, path)
    except OSError:
        Path(tmp_file.name).unlink(missing_ok=True)
        raise


class SessionStore:
    """Creates, saves, loads and lists sessions under one root directory.

    Usage:
        store = SessionStore(Path("~/.sightline/sessions").expanduser())
        session = store.create("./app", "Add CSV export", config)
        store.save(session)
    """

    def __init__(self, sessions_dir: Path) -> None:
        self.sessions_dir = Path(sessions_dir).expanduser()

    def create(
        self,
        codebase_path: str | Path,
        task: str,
        config: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> Session:
        """Create a session with a fresh, exclusively owned directory.

        The initial snapshot is persisted before returning.

        Args:
            codebase_path: Codebase under analysis
            task: Task description
            config: Resolved LLM options to record on the session
            name: Optional user-supplied session name (slugified)

        Returns:
            The new Session

        Raises:
            FileExistsError: If a named session directory already exists,
                or no free generated id was found
        """
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        session_id, session_dir = self._claim_directory(task, name)

        resolved_path = Path(codebase_path).expanduser().resolve()
        session = Session.new(session_id, resolved_path, task, session_dir, config)
        self.save(session)

        logger.info("Created session %s in %s", session_id, session_dir)
        return session

    def _claim_directory(self, task: str, name: str | None) -> tuple[str, Path]:
        if name:
            session_id = slugify(name, max_length=64)
            session_dir = self.sessions_dir / session_id
            session_dir.mkdir()
            return session_id, session_dir

        for _ in range(MAX_ID_ATTEMPTS):
            session_id = generate_session_id(task)
            session_dir = self.sessions_dir / session_id
            try:
                session_dir.mkdir()
            except FileExistsError:
                continue
            return session_id, session_dir

        raise FileExistsError(f"Could not allocate a session directory in {self.sessions_dir}")

    def save(self, session: Session) -> Path:
        """Persist the full session snapshot atomically.

        Returns:
            Path to session.json
        """
        path = session.session_dir / SESSION_FILE
        content = json.dumps(session.to_dict(), indent=2, ensure_ascii=False)
        atomic_write(path, content + "\n")
        logger.debug("Saved session %s (%s)", session.id, session.state.value)
        return path

    def write_output(self, session: Session, filename: str, content: str) -> Path:
        """Write a phase output file into the session directory."""
        path = session.session_dir / filename
        atomic_write(path, content)
        return path

    def load(self, session_dir: str | Path) -> Session:
        """Load a session from its directory.

        Context entries missing for completed phases are restored from the
        phase output files.

        Raises:
            SessionNotFoundError: If the directory has no session.json
            SessionCorruptError: If session.json cannot be decoded
        """
        session_dir = Path(session_dir).expanduser()
        path = session_dir / SESSION_FILE
        if not path.is_file():
            raise SessionNotFoundError(session_dir)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            session = Session.from_dict(data, session_dir)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise SessionCorruptError(path, str(e)) from e

        return self._restore_context(session)

    def _restore_context(self, session: Session) -> Session:
        context = dict(session.context)
        restored = False

        for name in session.completed_phases():
            if context.get(name):
                continue
            output_path = session.output_path(name)
            if output_path is not None and output_path.is_file():
                context[name] = output_path.read_text(encoding="utf-8")
                restored = True
            else:
                logger.warning("Output for completed phase '%s' is missing", name)

        return session.with_context(context) if restored else session

    def list_sessions(self) -> list[Session]:
        """List loadable sessions, newest first.

        Directories that do not hold a readable session are skipped.
        """
        if not self.sessions_dir.is_dir():
            return []

        sessions = []
        for entry in sorted(self.sessions_dir.iterdir()):
            if not (entry / SESSION_FILE).is_file():
                continue
            try:
                sessions.append(self.load(entry))
            except SessionCorruptError as e:
                logger.warning("Skipping %s: %s", entry.name, e.reason)

        return sorted(sessions, key=lambda s: s.created_at, reverse=True)
