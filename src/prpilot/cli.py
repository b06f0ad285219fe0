"""PR Pilot command-line interface.

Runs the tool operations from a terminal and starts the two servers.

Examples:
  # Serve the REST façade on port 3000
  prpilot serve

  # Serve the tool protocol on stdio (for AI agents)
  prpilot mcp

  # Create a PR with a generated description
  prpilot create-pr my-repo --title "Add login" --head ABC-123-login --base main
"""

import asyncio
import json
import sys
from typing import Any

import click
import yaml
from returns.result import Failure
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from prpilot import __version__
from prpilot.api_server import run_server
from prpilot.config import PilotConfig
from prpilot.config import configure_logging
from prpilot.config import export_config_to_dict
from prpilot.config import get_config_paths
from prpilot.config import load_config_with_environment
from prpilot.config import validate_github_config
from prpilot.mcp_server import PRPilotMCPServer
from prpilot.mcp_server import serve_stdio
from prpilot.models import PullRequestParams
from prpilot.pipeline import PRPilot


console = Console()
err_console = Console(stderr=True)


def _config(ctx: click.Context) -> PilotConfig:
    return ctx.find_root().obj["config"]


def _render_ticket(ticket: dict[str, Any]) -> None:
    table = Table(title=f"{ticket['key']}: {ticket['summary']}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for label, key in (
        ("Status", "status"),
        ("Priority", "priority"),
        ("Assignee", "assignee"),
        ("Reporter", "reporter"),
        ("Issue Type", "issueType"),
        ("Created", "created"),
        ("Updated", "updated"),
    ):
        if ticket.get(key):
            table.add_row(label, str(ticket[key]))
    for label, key in (("Labels", "labels"), ("Components", "components"), ("Figma Links", "figmaLinks")):
        if ticket.get(key):
            table.add_row(label, ", ".join(ticket[key]))
    table.add_row("URL", ticket["url"])
    console.print(table)
    console.print(Markdown(ticket["description"]))


def _emit(envelope: dict[str, Any], as_json: bool) -> None:
    """Print an envelope and exit non-zero when it reports failure."""
    if as_json:
        click.echo(json.dumps(envelope, indent=2, ensure_ascii=False))
    elif envelope.get("success"):
        if "ticket" in envelope:
            _render_ticket(envelope["ticket"])
        else:
            console.print(Markdown(envelope.get("formatted_response") or envelope.get("message", "")))
    else:
        if "ticket" in envelope:
            _render_ticket(envelope["ticket"])
        err_console.print(f"[bold red]❌ {envelope.get('error', 'Operation failed')}[/bold red]")
        if envelope.get("instructions"):
            err_console.print(f"💡 {envelope['instructions']}")

    if not envelope.get("success"):
        sys.exit(1)


json_option = click.option("--json", "as_json", is_flag=True, help="Print the raw JSON envelope")
owner_option = click.option("--owner", help="Repository owner (defaults to GITHUB_OWNER)")


@click.group()
@click.version_option(version=__version__, prog_name="PR Pilot")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to a YAML config file")
@click.option("--log-level", help="Override the configured log level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """PR Pilot - AI-assisted pull requests from GitHub and Jira context.

    Configuration comes from a YAML file (--config, PRPILOT_CONFIG,
    ./.prpilot.yaml or ~/.config/prpilot/config.yaml) overlaid with
    environment variables such as GITHUB_TOKEN and JIRA_BASE_URL.
    """
    result = load_config_with_environment(config_path)
    if isinstance(result, Failure):
        click.echo(f"❌ Configuration error: {result.failure()}", err=True)
        sys.exit(1)

    config = result.unwrap()
    configure_logging(log_level or config.log_level)
    ctx.obj = {"config": config}


@cli.command()
@click.option("--host", help="Interface to bind (defaults to PRPILOT_HOST or 0.0.0.0)")
@click.option("--port", type=int, help="Port to listen on (defaults to PORT or 3000)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the REST API server."""
    run_server(_config(ctx), host, port)


@cli.command()
@click.pass_context
def mcp(ctx: click.Context) -> None:
    """Run the tool server on stdio."""
    asyncio.run(serve_stdio(PRPilotMCPServer(PRPilot(_config(ctx)))))


@cli.command("create-pr")
@click.argument("repo")
@click.option("--title", required=True, help="Pull request title")
@click.option("--head", required=True, help="Branch containing the changes")
@click.option("--base", required=True, help="Branch to merge into")
@owner_option
@click.option("--body", default="", help="Custom description (context for the generated one)")
@click.option("--draft", is_flag=True, help="Open the pull request as a draft")
@click.option("--no-diff-analysis", is_flag=True, help="Use --body verbatim instead of generating a description")
@json_option
@click.pass_context
def create_pr(
    ctx: click.Context,
    repo: str,
    title: str,
    head: str,
    base: str,
    owner: str | None,
    body: str,
    draft: bool,
    no_diff_analysis: bool,
    as_json: bool,
) -> None:
    """Create a pull request with an enriched description."""
    pilot = PRPilot(_config(ctx))
    params = PullRequestParams(
        owner=pilot.resolve_owner(owner),
        repo=repo,
        title=title,
        head=head,
        base=base,
        body=body,
        draft=draft,
        include_diff_analysis=not no_diff_analysis,
    )
    _emit(asyncio.run(pilot.create_pull_request(params)), as_json)


@cli.command()
@click.argument("repo")
@click.option("--head", required=True, help="Branch containing the changes")
@click.option("--base", required=True, help="Branch to compare against")
@owner_option
@click.option("--title", default="", help="Title to suggest")
@click.option("--body", default="", help="Custom description used as context")
@json_option
@click.pass_context
def summary(
    ctx: click.Context,
    repo: str,
    head: str,
    base: str,
    owner: str | None,
    title: str,
    body: str,
    as_json: bool,
) -> None:
    """Generate a PR description without creating the PR."""
    pilot = PRPilot(_config(ctx))
    _emit(asyncio.run(pilot.generate_pr_summary(owner, repo, head, base, title, body)), as_json)


@cli.command()
@click.argument("ticket_id")
@json_option
@click.pass_context
def ticket(ctx: click.Context, ticket_id: str, as_json: bool) -> None:
    """Show Jira ticket details."""
    pilot = PRPilot(_config(ctx))
    _emit(asyncio.run(pilot.get_jira_ticket_details(ticket_id)), as_json)


@cli.command("repo")
@click.argument("repo")
@owner_option
@json_option
@click.pass_context
def repo_info(ctx: click.Context, repo: str, owner: str | None, as_json: bool) -> None:
    """Show repository details and branches."""
    pilot = PRPilot(_config(ctx))
    _emit(asyncio.run(pilot.get_repository_info(owner, repo)), as_json)


@cli.command()
@click.pass_context
def doctor(ctx: click.Context) -> None:
    """Check configuration and report what is missing."""
    config = _config(ctx)

    table = Table(title="PR Pilot configuration checks")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")

    def row(name: str, ok: bool, detail: str = "") -> None:
        table.add_row(name, "✅" if ok else "❌", detail)

    config_file = next((p for p in get_config_paths() if p.exists()), None)
    table.add_row("Config file", "ℹ️", str(config_file) if config_file else "none (environment only)")
    row("GitHub token", config.github.is_configured, "GITHUB_TOKEN")
    row("GitHub owner", bool(config.github.owner), config.github.owner or "GITHUB_OWNER")
    row("GitHub API base", bool(config.github.api_base), config.github.api_base)
    row("Jira base URL", bool(config.jira.base_url), config.jira.base_url or "JIRA_BASE_URL")
    missing_llm = config.llm.missing_settings()
    row("Language model", not missing_llm, ", ".join(missing_llm) or config.llm.model or "")
    console.print(table)

    validation = validate_github_config(config)
    if validation["valid"]:
        console.print(f"[green]{validation['message']}[/green]")
        if missing_llm:
            console.print("⚠️  Descriptions will use the templated fallback until the AI_* settings are set.")
        return

    err_console.print(f"[bold red]{validation['message']}: {validation['error']}[/bold red]")
    for step in validation["instructions"]:
        err_console.print(f"  {step}")
    sys.exit(1)


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""


@config_group.command("show")
@click.option("--show-secrets", is_flag=True, help="Print secrets unmasked")
@click.pass_context
def show_config(ctx: click.Context, show_secrets: bool) -> None:
    """Print the effective configuration as YAML."""
    data = export_config_to_dict(_config(ctx), mask_secrets=not show_secrets)
    click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
