"""sightline utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- preflight: Local prerequisite checks run before analysis
"""

from sightline.utils.logging import LogMode, configure_from_cli, setup_logging
from sightline.utils.preflight import CheckResult, PreflightChecker, PreflightResult

__all__ = [
    "CheckResult",
    "LogMode",
    "PreflightChecker",
    "PreflightResult",
    "configure_from_cli",
    "setup_logging",
]
