"""sightline configuration system.

Configuration is YAML-based with a few CLI overrides (--provider, --model).
Supports environment variable substitution (${VAR}) in config files.
API keys come from the provider environment variables unless the file sets
them explicitly under ``llm.api_keys``.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.sightline/config.yaml
3. ./sightline.yaml
4. ~/.sightline/config.yaml
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sightline.errors import ConfigError
from sightline.models.llm_config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT,
    LLMSettings,
)

DEFAULT_SESSIONS_DIR = "~/.sightline/sessions"

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class OutputConfig:
    """Output configuration.

    Attributes:
        sessions_dir: Root directory holding one directory per session
    """

    sessions_dir: str = DEFAULT_SESSIONS_DIR

    @property
    def sessions_path(self) -> Path:
        return Path(self.sessions_dir).expanduser()


@dataclass
class LLMConfig:
    """LLM configuration as read from the config file.

    Attributes:
        provider: Default LLM provider (gemini, claude, openai)
        model: Model identifier (None selects the provider default)
        temperature: Sampling temperature
        max_tokens: Maximum response tokens
        timeout: Request timeout in seconds
        api_keys: Explicit API keys per provider (usually ${VAR} references)
    """

    provider: str = DEFAULT_PROVIDER
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT
    api_keys: dict[str, str] = field(default_factory=dict)


@dataclass
class SightlineConfig:
    """Top-level sightline configuration.

    Attributes:
        llm: LLM settings
        output: Output locations
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Set by load_config
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    def llm_settings(
        self,
        provider: str | None = None,
        model: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> LLMSettings:
        """Resolve LLM settings with API keys from the environment.

        Args:
            provider: CLI provider override
            model: CLI model override
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Validated LLMSettings

        Raises:
            ConfigError: If any value is invalid
        """
        selected = provider or self.llm.provider
        # A configured model belongs to the configured provider only
        if model is None and selected.lower().strip() == self.llm.provider.lower().strip():
            model = self.llm.model

        try:
            return LLMSettings.from_env(
                environ=environ,
                provider=selected,
                model=model,
                temperature=float(self.llm.temperature),
                max_tokens=int(self.llm.max_tokens),
                timeout=float(self.llm.timeout),
                api_keys=self.llm.api_keys,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e


# =============================================================================
# Environment Variable Substitution
# =============================================================================

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${ANTHROPIC_API_KEY} -> value of ANTHROPIC_API_KEY

    Args:
        value: Config value (string, dict, list, or other)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Value with environment variables substituted

    Raises:
        ConfigError: If a referenced variable is not set
    """
    env = os.environ if environ is None else environ

    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = env.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable not set: {var_name}")
            return env_value

        return ENV_VAR_PATTERN.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v, env) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v, env) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(
    start_path: Path | None = None,
    home: Path | None = None,
) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.sightline/config.yaml
    2. ./sightline.yaml
    3. ~/.sightline/config.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)
        home: Home directory (defaults to the user's home)

    Returns:
        Path to config file if found, None otherwise
    """
    start_path = (start_path or Path.cwd()).resolve()
    home = home or Path.home()

    candidates = [
        start_path / ".sightline" / "config.yaml",
        start_path / "sightline.yaml",
        home / ".sightline" / "config.yaml",
    ]

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(
    data: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> SightlineConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary
        environ: Environment used for ${VAR} substitution

    Returns:
        SightlineConfig instance

    Raises:
        ConfigError: If a section has the wrong shape
    """
    data = substitute_env_vars(data, environ)
    config = SightlineConfig()

    if "llm" in data:
        llm_data = _section(data, "llm")
        api_keys = llm_data.get("api_keys") or {}
        if not isinstance(api_keys, dict):
            raise ConfigError("llm.api_keys must be a mapping of provider to key")

        config.llm = LLMConfig(
            provider=str(llm_data.get("provider") or DEFAULT_PROVIDER),
            model=llm_data.get("model") or None,
            temperature=llm_data.get("temperature", DEFAULT_TEMPERATURE),
            max_tokens=llm_data.get("max_tokens", DEFAULT_MAX_TOKENS),
            timeout=llm_data.get("timeout", DEFAULT_TIMEOUT),
            api_keys={str(k): str(v) for k, v in api_keys.items() if v},
        )

    if "output" in data:
        output_data = _section(data, "output")
        config.output = OutputConfig(
            sessions_dir=str(output_data.get("sessions_dir") or DEFAULT_SESSIONS_DIR),
        )

    return config


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data[name] or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return section


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> SightlineConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        SightlineConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ConfigError: If the file is not valid YAML or has invalid values
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is None:
        return SightlineConfig()

    try:
        with open(found_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {found_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {found_path} must contain a mapping")

    config = load_config_from_dict(data)
    config._config_path = found_path
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return f'''# sightline Configuration

# LLM settings
llm:
  provider: "{DEFAULT_PROVIDER}"   # gemini, claude, openai
  # model: "gemini-2.0-flash"   # Defaults to the provider's default model
  temperature: {DEFAULT_TEMPERATURE}
  max_tokens: {DEFAULT_MAX_TOKENS}
  timeout: {int(DEFAULT_TIMEOUT)}        # Request timeout in seconds
  # API keys are read from GEMINI_API_KEY, ANTHROPIC_API_KEY and OPENAI_API_KEY.
  # api_keys:
  #   claude: "${{ANTHROPIC_API_KEY}}"

# Output settings
output:
  sessions_dir: "{DEFAULT_SESSIONS_DIR}"
'''
