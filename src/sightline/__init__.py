"""sightline - Multi-phase codebase analysis and change planning.

sightline takes a task description and a codebase path and runs a fixed
sequence of LLM-backed analysis phases, from domain research to a ticketed
implementation plan. Each phase sees the output of every earlier phase.

Core principles:
- Crash-safe: The session is persisted after every phase transition
- Resumable: Completed phases are never re-run
- Fail-fast: Missing credentials are detected before any network call
- Explicit errors: Provider failures are classified into a closed set of kinds
"""

__version__ = "0.1.0"
__author__ = "sightline Contributors"
