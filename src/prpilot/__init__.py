"""PR Pilot - GitHub and Jira tools for AI agents.

This package exposes pull-request creation, repository lookups, Jira ticket
details and AI-written PR descriptions through an MCP tool server, a small
REST façade and a command-line interface.
"""

__version__ = "1.0.0"

# Re-export main components for easy importing
from prpilot.config import PilotConfig
from prpilot.config import load_config
from prpilot.config import load_config_with_environment


__all__ = [
    "PilotConfig",
    "__version__",
    "load_config",
    "load_config_with_environment",
]
