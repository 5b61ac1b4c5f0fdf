"""Preflight validation.

Everything an analysis run depends on is validated before the first phase
starts, not halfway through it:

- the codebase path exists and is a directory
- the sessions directory can be created and written
- the selected provider has an API key

Keys for the other providers are reported as warnings only. No network
call is made; a key that is present but rejected surfaces as an
``invalid_api_key`` failure on the first phase.
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sightline.models.llm_config import PROVIDER_ENV_VARS, VALID_PROVIDERS, LLMSettings


@dataclass
class CheckResult:
    """Result of a single preflight check.

    Attributes:
        name: Check name
        passed: Whether the check passed
        required: Whether a failure blocks the run
        message: Status message (human-readable context)
    """

    name: str
    passed: bool
    required: bool = True
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether every required check passed
        checks: Individual check results
        errors: Messages for failed required checks
        warnings: Messages for failed optional checks
    """

    success: bool = True
    checks: list[CheckResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: CheckResult) -> None:
        """Add a check result."""
        self.checks.append(check)

        if not check.passed:
            if check.required:
                self.success = False
                self.errors.append(f"{check.name}: {check.message}")
            else:
                self.warnings.append(f"{check.name}: {check.message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "passed": c.passed,
                    "required": c.required,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates local prerequisites before analysis.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(codebase_path, settings, sessions_dir)
        if not result.success:
            raise typer.Exit(code=2)
    """

    def check_codebase(self, codebase_path: Path) -> CheckResult:
        """Check that the codebase path is an existing directory."""
        if not codebase_path.exists():
            return CheckResult(
                name="codebase",
                passed=False,
                message=f"Path does not exist: {codebase_path}",
            )
        if not codebase_path.is_dir():
            return CheckResult(
                name="codebase",
                passed=False,
                message=f"Not a directory: {codebase_path}",
            )
        return CheckResult(name="codebase", passed=True, message=str(codebase_path.resolve()))

    def check_sessions_dir(self, sessions_dir: Path) -> CheckResult:
        """Check that session files can be written under ``sessions_dir``.

        The directory is created if missing; a throwaway file is written and
        removed to prove it is writable.
        """
        try:
            sessions_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=sessions_dir, prefix=".preflight."):
                pass
        except OSError as e:
            return CheckResult(
                name="sessions_dir",
                passed=False,
                message=f"Cannot write to {sessions_dir}: {e.strerror or e}",
            )
        return CheckResult(name="sessions_dir", passed=True, message=str(sessions_dir))

    def check_api_key(
        self,
        provider: str,
        settings: LLMSettings,
        required: bool = True,
    ) -> CheckResult:
        """Check that an API key is configured for ``provider``.

        Args:
            provider: Provider name
            settings: Resolved LLM settings
            required: Whether a missing key blocks the run

        Returns:
            CheckResult for the provider
        """
        env_var = PROVIDER_ENV_VARS[provider]
        if settings.api_key_for(provider) is None:
            return CheckResult(
                name=provider,
                passed=False,
                required=required,
                message=f"API key not set. Export {env_var} or set llm.api_keys.{provider}",
            )

        model = settings.model_for(provider) or "provider default"
        return CheckResult(
            name=provider,
            passed=True,
            required=required,
            message=f"API key configured (model: {model})",
        )

    def check_all(
        self,
        codebase_path: Path | None,
        settings: LLMSettings,
        sessions_dir: Path,
    ) -> PreflightResult:
        """Run all preflight checks.

        Args:
            codebase_path: Codebase to analyze (None skips the check)
            settings: Resolved LLM settings
            sessions_dir: Root directory for session files

        Returns:
            PreflightResult with all check results
        """
        result = PreflightResult()

        if codebase_path is not None:
            result.add_check(self.check_codebase(codebase_path))

        result.add_check(self.check_sessions_dir(sessions_dir))

        for provider in VALID_PROVIDERS:
            result.add_check(
                self.check_api_key(provider, settings, required=provider == settings.provider)
            )

        return result

