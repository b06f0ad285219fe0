"""PR description composer.

Pure assembly of narrative fragments, ticket links, design links and change
statistics into the fixed Markdown template. Identical inputs always produce
the identical string.
"""

from collections.abc import Sequence

from prpilot.config import JiraConfig
from prpilot.models import ChangeSet
from prpilot.models import FileStatus
from prpilot.models import NarrativeBundle
from prpilot.narrative import FALLBACK_MOTIVATION


TEMPLATE_HINT = "<!--- Provide a general summary of your changes in the Title above by starting with Jira Ticket -->"
NO_TICKETS_PLACEHOLDER = "<!-- Please add Jira Link here -->"
SCREENSHOTS_TABLE = "| Before | After |\n| ------ | ----- |\n|--before-image--|--after-image-- |"
FOOTER = "> 🤖 **Created by AI Agent** - This PR was automatically generated with enhanced analysis and formatting."
MANUAL_REVIEW_NOTE = "*Note: Unable to analyze code diff automatically. Please review the changes manually.*"


def extension_histogram(change_set: ChangeSet) -> list[tuple[str, int]]:
    """Count files per extension, most common first.

    Ties keep the order in which extensions were first seen.
    """
    counts: dict[str, int] = {}
    for change in change_set.files:
        counts[change.extension] = counts.get(change.extension, 0) + 1
    return sorted(counts.items(), key=lambda item: -item[1])


def change_analysis(change_set: ChangeSet) -> str:
    """Render the change-analysis block, with the histogram when files exist."""
    lines = [
        f"- **New Files Added:** {len(change_set.with_status(FileStatus.ADDED))}",
        f"- **Files Modified:** {len(change_set.with_status(FileStatus.MODIFIED))}",
        f"- **Files Deleted:** {len(change_set.with_status(FileStatus.REMOVED))}",
        f"- **Total Files Changed:** {len(change_set.files)}",
    ]
    histogram = extension_histogram(change_set)
    if histogram:
        lines.append("")
        lines.append("**File Type Analysis:**")
        lines.extend(f"- **.{ext}:** {count} files" for ext, count in histogram)
    return "\n".join(lines)


def ticket_section(ticket_refs: Sequence[str], jira: JiraConfig) -> str:
    """Render one link per ticket, or the placeholder comment."""
    if not ticket_refs:
        return NO_TICKETS_PLACEHOLDER
    return "\n".join(f"- [{ticket}]({jira.browse_url(ticket)})" for ticket in ticket_refs)


def design_section(figma_links: Sequence[str]) -> str:
    """Render the design-links section; empty when there are no links."""
    if not figma_links:
        return ""
    links = "\n".join(f"- [Figma Design]({link})" for link in figma_links)
    return f"## Figma Links:\n{links}\n\n"


def compose_description(
    bundle: NarrativeBundle,
    change_set: ChangeSet,
    ticket_refs: Sequence[str],
    figma_links: Sequence[str],
    jira: JiraConfig,
) -> str:
    """Assemble the full Markdown PR description."""
    return (
        f"{TEMPLATE_HINT}\n"
        "\n"
        "## Description:\n"
        f"{bundle.detailed_summary}\n"
        "\n"
        "   ### Key Changes:\n"
        f"   {bundle.key_changes}\n"
        "\n"
        "## Motivation and Context:\n"
        f"{bundle.motivation_context}\n"
        "\n"
        "## Jira Ticket: \n"
        f"{ticket_section(ticket_refs, jira)}\n"
        "\n"
        f"{design_section(figma_links)}"
        "## Screenshots:\n"
        f"{SCREENSHOTS_TABLE}\n"
        "\n"
        "## Change Analysis:\n"
        f"{change_analysis(change_set)}\n"
        "\n"
        "---\n"
        "\n"
        f"{FOOTER}"
    )


def fallback_description(head: str, base: str) -> str:
    """Static description used when diff analysis fails outright."""
    return (
        f"{TEMPLATE_HINT}\n"
        "\n"
        "## Description:\n"
        f"This PR introduces changes from `{head}` to `{base}` branch.\n"
        "\n"
        f"{MANUAL_REVIEW_NOTE}\n"
        "\n"
        "   ### Key Changes:\n"
        "   • Modified files with additions and deletions\n"
        "\n"
        "## Motivation and Context:\n"
        f"{FALLBACK_MOTIVATION}\n"
        "\n"
        "## Jira Ticket: \n"
        f"{NO_TICKETS_PLACEHOLDER}\n"
        "\n"
        "## Screenshots:\n"
        f"{SCREENSHOTS_TABLE}\n"
        "\n"
        "## Change Analysis:\n"
        f"{change_analysis(ChangeSet())}\n"
        "\n"
        "\n"
        "---\n"
        "\n"
        f"{FOOTER}"
    )
