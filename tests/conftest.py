"""Shared pytest fixtures for sightline tests.

Fixtures are organized by category:
- Transport fixtures: a recording fake that replaces the network
- Settings fixtures: LLM settings with and without API keys
- Session fixtures: sessions directory, codebase and store
- Plan fixtures: a change-planning document with tickets
"""

import logging
from collections import deque
from pathlib import Path
from typing import Any

import pytest

from sightline.llm.transport import HttpResponse
from sightline.models.llm_config import LLMSettings
from sightline.result import Err, Ok
from sightline.session_store import SessionStore

# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_sightline_logger():
    """Undo CLI logging setup so caplog sees sightline records in every test."""
    yield
    logger = logging.getLogger("sightline")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# =============================================================================
# Transport Fixtures
# =============================================================================


class RecordingTransport:
    """Fake transport that records every POST and replays queued results.

    Queue ``Ok(HttpResponse(...))`` or ``Err(reason)`` values with
    ``queue``; when the queue is empty ``default`` is returned.
    """

    def __init__(self, default: Any = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: deque[Any] = deque()
        self.default = default
        self.closed = False

    def queue(self, *results: Any) -> "RecordingTransport":
        self.responses.extend(results)
        return self

    def post(
        self,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any],
        timeout: float,
    ) -> Any:
        self.calls.append(
            {"url": url, "headers": headers, "json_body": json_body, "timeout": timeout}
        )
        if self.responses:
            return self.responses.popleft()
        if self.default is None:
            raise AssertionError(f"Unexpected POST to {url}")
        return self.default

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "RecordingTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def gemini_ok(text: str) -> Ok:
    """A 200 Gemini response carrying ``text``."""
    return Ok(
        HttpResponse(
            status=200,
            body={"candidates": [{"content": {"parts": [{"text": text}]}}]},
        )
    )


def http_status(status: int, body: Any = None) -> Ok:
    return Ok(HttpResponse(status=status, body=body))


def transport_error(reason: str = "econnrefused") -> Err:
    return Err(reason)


@pytest.fixture
def transport() -> RecordingTransport:
    """Return an empty recording transport (any unexpected call fails the test)."""
    return RecordingTransport()


# =============================================================================
# Settings Fixtures
# =============================================================================


ALL_KEYS = {
    "GEMINI_API_KEY": "gemini-test-key",
    "ANTHROPIC_API_KEY": "claude-test-key",
    "OPENAI_API_KEY": "openai-test-key",
}


@pytest.fixture
def settings() -> LLMSettings:
    """Return settings with every provider's API key configured."""
    return LLMSettings.from_env(environ=ALL_KEYS)


@pytest.fixture
def keyless_settings() -> LLMSettings:
    """Return settings with no API keys at all."""
    return LLMSettings.from_env(environ={})


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove provider API keys from the process environment."""
    for var in ALL_KEYS:
        monkeypatch.delenv(var, raising=False)


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    """Return a (not yet created) sessions root directory."""
    return tmp_path / "sessions"


@pytest.fixture
def codebase_dir(tmp_path: Path) -> Path:
    """Create a tiny codebase to analyze."""
    codebase = tmp_path / "app"
    (codebase / "src").mkdir(parents=True)
    (codebase / "src" / "main.py").write_text("def main():\n    return 0\n")
    return codebase


@pytest.fixture
def store(sessions_dir: Path) -> SessionStore:
    """Return a session store rooted in a temporary directory."""
    return SessionStore(sessions_dir)


# =============================================================================
# Plan Fixtures
# =============================================================================


FEATURE_MD = """# Feature: CSV export

## Overview

Add CSV export to the reports page.

---

## Tickets

### Ticket #1: Add CSV serializer

**Type:** Feature
**Priority:** High
**Estimate:** Small
**Depends On:** None
**Blocks:** #2

#### Description
Serialize report rows to CSV with a header row.

#### Implementation Notes
Follow the existing JSON serializer in `reports/serializers.py`.

#### Files to Create
| File | Purpose |
|------|---------|
| `reports/csv_export.py` | CSV serializer |
| `tests/test_csv_export.py` | Serializer tests |

#### Acceptance Criteria
- [ ] Header row matches column names
- [ ] Values are quoted when needed

---

### Ticket #2: Add export button

**Type:** Enhancement
**Priority:** Medium
**Estimate:** Medium
**Depends On:** #1
**Blocks:** None

#### Description
Add an export button to the reports template for logged-in users with the export permission.

#### Files to Modify
| File | Changes |
|------|---------|
| `templates/reports.html` | Add button |
| `reports/views.py` | Add export view |

#### Acceptance Criteria
- [ ] Button downloads a CSV file

---

## Risk Summary

| Risk | Likelihood | Impact | Mitigation |
|------|------------|--------|------------|
| Large reports time out | Medium | High | Stream rows |
| Encoding issues | Low | Medium | Force UTF-8 |

## Estimated Total Effort

| Ticket | Estimate | Points |
|--------|----------|--------|
| #1 | Small | 2 |
| #2 | Medium | 3 |
| **Total** | | **5** |
"""


@pytest.fixture
def feature_md() -> str:
    """Return a change plan with two tickets and two risks."""
    return FEATURE_MD
