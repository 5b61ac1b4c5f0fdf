"""sightline data models.

This module exports the core entities used throughout the application:
- Session: Immutable snapshot of one pipeline run
- PhaseRecord: Execution record of a single phase
- LLMSettings: Resolved provider, model and API key settings
- ProviderConfig: Per-request settings handed to a provider
"""

from sightline.models.llm_config import ChatOptions, LLMSettings, ProviderConfig
from sightline.models.session import (
    PHASE_OUTPUT_FILES,
    PHASES,
    InvalidTransitionError,
    PhaseRecord,
    PhaseStatus,
    Session,
    SessionState,
)

__all__ = [
    "PHASES",
    "PHASE_OUTPUT_FILES",
    "ChatOptions",
    "InvalidTransitionError",
    "LLMSettings",
    "PhaseRecord",
    "PhaseStatus",
    "ProviderConfig",
    "Session",
    "SessionState",
]
