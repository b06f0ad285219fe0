"""Configuration system for PR Pilot.

This module provides immutable configuration structures and loading functions
following functional programming principles. A single ``PilotConfig`` is built
once at process start and handed to every component that needs credentials or
endpoints, so business logic never reads the process environment directly.
"""

import logging
import os
import sys
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import cast

import yaml
from returns.result import Failure
from returns.result import Result
from returns.result import Success


DEFAULT_TICKET_PATTERN = r"\b([A-Z][A-Z0-9]*-\d+)(?=[_\-\s/]|$)"
DEFAULT_DESIGN_LINK_PATTERN = r"https?://(?:www\.)?figma\.com/(?:file|design)/[a-zA-Z0-9]+/[^?\s]*"
DEFAULT_GITHUB_API_BASE = "https://api.github.com"

GITHUB_SETUP_INSTRUCTIONS = (
    "1. Set GITHUB_TOKEN environment variable",
    "2. Set GITHUB_OWNER environment variable",
    "3. Set GITHUB_API_BASE environment variable",
    "4. Set JIRA_BASE_URL environment variable",
    "5. Restart the server",
)


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    """Immutable GitHub-specific configuration."""

    token: str | None = None
    owner: str | None = None
    api_base: str = DEFAULT_GITHUB_API_BASE
    default_repo: str | None = None
    timeout_seconds: int = 30

    @property
    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.token)


@dataclass(frozen=True, slots=True)
class JiraConfig:
    """Immutable Jira-specific configuration."""

    base_url: str | None = None
    api_token: str | None = None
    timeout_seconds: int = 30
    ticket_pattern: str = DEFAULT_TICKET_PATTERN
    design_link_pattern: str = DEFAULT_DESIGN_LINK_PATTERN

    def browse_url(self, ticket: str) -> str:
        """Build the browser URL for a ticket."""
        base = (self.base_url or "").rstrip("/")
        return f"{base}/browse/{ticket}"


@dataclass(frozen=True, slots=True)
class LLMConfig:
    """Immutable language-model endpoint configuration.

    Attributes:
        username: Caller identity forwarded to the endpoint
        base_url: Base URL of a chat-completion compatible API
        api_key: Bearer token for the endpoint
        model: Model name sent with every request
        timeout_seconds: Per-request timeout
        concurrent_generation: Issue the narrative prompts concurrently
        extra_headers: Additional headers sent with every request
    """

    username: str | None = None
    base_url: str | None = None
    api_key: str | None = None
    model: str | None = None
    timeout_seconds: int = 60
    concurrent_generation: bool = False
    extra_headers: dict[str, str] = field(default_factory=dict)

    def missing_settings(self) -> tuple[str, ...]:
        """Return the names of required settings that are not set."""
        required = {
            "AI_USERNAME": self.username,
            "AI_BASE_URL": self.base_url,
            "AI_API_KEY": self.api_key,
            "AI_MODEL": self.model,
        }
        return tuple(name for name, value in required.items() if not value)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Immutable REST server configuration."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000


@dataclass(frozen=True, slots=True)
class PilotConfig:
    """Immutable main configuration for PR Pilot."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    jira: JiraConfig = field(default_factory=JiraConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"


# -----------------------------
# Validation
# -----------------------------


def validate_github_config(config: PilotConfig) -> dict[str, Any]:
    """Report whether GitHub settings are complete, with remediation steps if not."""
    missing = [
        name
        for name, value in (
            ("GITHUB_TOKEN", config.github.token),
            ("GITHUB_OWNER", config.github.owner),
            ("GITHUB_API_BASE", config.github.api_base),
            ("JIRA_BASE_URL", config.jira.base_url),
        )
        if not value
    ]
    if not missing:
        return {
            "valid": True,
            "message": "GitHub configuration is valid",
            "owner": config.github.owner,
        }

    return {
        "valid": False,
        "message": "GitHub configuration error",
        "error": f"{missing[0]} environment variable is required",
        "instructions": list(GITHUB_SETUP_INSTRUCTIONS),
    }


# -----------------------------
# Configuration Loading Functions
# -----------------------------


def get_config_paths() -> tuple[Path, ...]:
    """Get possible configuration file paths in order of precedence.

    Returns:
        Tuple of Path objects in order of precedence (highest first):
        1. PRPILOT_CONFIG environment variable (absolute path to config file)
        2. Current directory .prpilot.yaml
        3. $XDG_CONFIG_HOME/prpilot/config.yaml (default: ~/.config/prpilot/config.yaml)
    """
    paths: list[Path] = []

    if explicit := os.getenv("PRPILOT_CONFIG"):
        paths.append(Path(explicit))

    paths.append(Path.cwd() / ".prpilot.yaml")

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        paths.append(Path(xdg_config_home) / "prpilot" / "config.yaml")
    else:
        paths.append(Path.home() / ".config" / "prpilot" / "config.yaml")

    return tuple(paths)


def load_config_file(path: Path) -> Result[dict[str, Any], str]:
    """Load configuration from a YAML (or JSON) file.

    Args:
        path: Path to the configuration file

    Returns:
        Result containing the parsed mapping or error message
    """
    try:
        if not path.exists():
            return Failure(f"Configuration file not found: {path}")

        if not path.is_file():
            return Failure(f"Path is not a file: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if data is None:
            return Success({})

        if not isinstance(data, dict):
            return Failure(f"Configuration must be a mapping, got {type(data).__name__}")

        return Success(cast("dict[str, Any]", data))

    except yaml.YAMLError as e:
        return Failure(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        return Failure(f"Failed to read {path}: {e}")


def parse_github_config(data: dict[str, Any]) -> GitHubConfig:
    """Parse GitHub configuration from dictionary data."""
    return GitHubConfig(
        token=data.get("token"),
        owner=data.get("owner"),
        api_base=data.get("api_base", DEFAULT_GITHUB_API_BASE),
        default_repo=data.get("default_repo"),
        timeout_seconds=data.get("timeout_seconds", 30),
    )


def parse_jira_config(data: dict[str, Any]) -> JiraConfig:
    """Parse Jira configuration from dictionary data."""
    return JiraConfig(
        base_url=data.get("base_url"),
        api_token=data.get("api_token"),
        timeout_seconds=data.get("timeout_seconds", 30),
        ticket_pattern=data.get("ticket_pattern", DEFAULT_TICKET_PATTERN),
        design_link_pattern=data.get("design_link_pattern", DEFAULT_DESIGN_LINK_PATTERN),
    )


def parse_llm_config(data: dict[str, Any]) -> LLMConfig:
    """Parse language-model configuration from dictionary data."""
    return LLMConfig(
        username=data.get("username"),
        base_url=data.get("base_url"),
        api_key=data.get("api_key"),
        model=data.get("model"),
        timeout_seconds=data.get("timeout_seconds", 60),
        concurrent_generation=bool(data.get("concurrent_generation", False)),
        extra_headers={str(k): str(v) for k, v in (data.get("extra_headers") or {}).items()},
    )


def parse_server_config(data: dict[str, Any]) -> ServerConfig:
    """Parse REST server configuration from dictionary data."""
    return ServerConfig(
        host=data.get("host", "0.0.0.0"),  # noqa: S104
        port=data.get("port", 3000),
    )


def parse_config_data(data: dict[str, Any]) -> Result[PilotConfig, str]:
    """Parse complete configuration from dictionary data.

    Args:
        data: Dictionary containing configuration data

    Returns:
        Result containing PilotConfig or error message
    """
    try:
        return Success(
            PilotConfig(
                github=parse_github_config(data.get("github") or {}),
                jira=parse_jira_config(data.get("jira") or {}),
                llm=parse_llm_config(data.get("llm") or {}),
                server=parse_server_config(data.get("server") or {}),
                log_level=str(data.get("log_level", "INFO")).upper(),
            )
        )
    except (AttributeError, TypeError, ValueError) as e:
        return Failure(f"Failed to parse configuration: {e}")


def load_config() -> Result[PilotConfig, str]:
    """Load PR Pilot configuration from the first configuration file found.

    Falls back to default configuration if no file exists.
    """
    for path in get_config_paths():
        if not path.exists():
            continue
        return load_config_file(path).bind(parse_config_data)

    return Success(PilotConfig())


def _get_int_env(name: str) -> int | None:
    val = os.getenv(name)
    if val is None:
        return None
    try:
        return int(val)
    except ValueError:
        return None


def _get_bool_env(name: str) -> bool | None:
    val = os.getenv(name)
    if val is None:
        return None
    return val.strip().lower() in {"1", "true", "yes", "on"}


def apply_environment(base: PilotConfig) -> PilotConfig:
    """Overlay environment variables on top of a base configuration."""
    concurrent = _get_bool_env("AI_CONCURRENT_GENERATION")

    github = GitHubConfig(
        token=os.getenv("GITHUB_TOKEN") or base.github.token,
        owner=os.getenv("GITHUB_OWNER") or base.github.owner,
        api_base=(os.getenv("GITHUB_API_BASE") or base.github.api_base).rstrip("/"),
        default_repo=os.getenv("GITHUB_DEFAULT_REPO") or base.github.default_repo,
        timeout_seconds=_get_int_env("GITHUB_TIMEOUT_SECONDS") or base.github.timeout_seconds,
    )

    jira = JiraConfig(
        base_url=os.getenv("JIRA_BASE_URL") or base.jira.base_url,
        api_token=os.getenv("JIRA_API_TOKEN") or base.jira.api_token,
        timeout_seconds=_get_int_env("JIRA_TIMEOUT_SECONDS") or base.jira.timeout_seconds,
        ticket_pattern=os.getenv("JIRA_TICKET_PATTERN") or base.jira.ticket_pattern,
        design_link_pattern=os.getenv("DESIGN_LINK_PATTERN") or base.jira.design_link_pattern,
    )

    llm = LLMConfig(
        username=os.getenv("AI_USERNAME") or base.llm.username,
        base_url=os.getenv("AI_BASE_URL") or base.llm.base_url,
        api_key=os.getenv("AI_API_KEY") or base.llm.api_key,
        model=os.getenv("AI_MODEL") or base.llm.model,
        timeout_seconds=_get_int_env("AI_TIMEOUT_SECONDS") or base.llm.timeout_seconds,
        concurrent_generation=base.llm.concurrent_generation if concurrent is None else concurrent,
        extra_headers=base.llm.extra_headers,
    )

    server = ServerConfig(
        host=os.getenv("PRPILOT_HOST") or base.server.host,
        port=_get_int_env("PORT") or base.server.port,
    )

    return PilotConfig(
        github=github,
        jira=jira,
        llm=llm,
        server=server,
        log_level=(os.getenv("PRPILOT_LOG_LEVEL") or base.log_level).upper(),
    )


def load_config_with_environment(config_path: str | os.PathLike[str] | None = None) -> Result[PilotConfig, str]:
    """Load configuration and merge with environment variables.

    Args:
        config_path: Optional explicit path to a config file

    Returns:
        Result containing PilotConfig with environment overrides, or the
        file error when an explicit or discovered file is malformed
    """
    if config_path:
        base_result = load_config_file(Path(config_path)).bind(parse_config_data)
    else:
        base_result = load_config()

    return base_result.map(apply_environment)


def mask_secret(value: str | None) -> str | None:
    """Mask a secret for display, keeping only its last four characters."""
    if not value:
        return value
    visible = 4
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def export_config_to_dict(config: PilotConfig, mask_secrets: bool = True) -> dict[str, Any]:
    """Export configuration to dictionary format, masking secrets by default."""

    def secret(value: str | None) -> str | None:
        return mask_secret(value) if mask_secrets else value

    return {
        "github": {
            "token": secret(config.github.token),
            "owner": config.github.owner,
            "api_base": config.github.api_base,
            "default_repo": config.github.default_repo,
            "timeout_seconds": config.github.timeout_seconds,
        },
        "jira": {
            "base_url": config.jira.base_url,
            "api_token": secret(config.jira.api_token),
            "timeout_seconds": config.jira.timeout_seconds,
            "ticket_pattern": config.jira.ticket_pattern,
            "design_link_pattern": config.jira.design_link_pattern,
        },
        "llm": {
            "username": config.llm.username,
            "base_url": config.llm.base_url,
            "api_key": secret(config.llm.api_key),
            "model": config.llm.model,
            "timeout_seconds": config.llm.timeout_seconds,
            "concurrent_generation": config.llm.concurrent_generation,
            "extra_headers": dict(config.llm.extra_headers),
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
        "log_level": config.log_level,
    }


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stderr handler on the root logger.

    Stdout stays free for the stdio tool transport.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
