"""Narrative generation for PR descriptions.

Three independent prompts (description, key changes, motivation) share one
context block built from the change set and the primary ticket. The bundle is
all-or-nothing: if any prompt fails, every generated fragment is discarded and
a templated bundle built from counts alone is used instead.
"""

import asyncio
import logging
from collections.abc import Sequence

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.errors import PilotError
from prpilot.llm import LanguageModel
from prpilot.metrics import record_degradation
from prpilot.models import ChangeSet
from prpilot.models import FileChange
from prpilot.models import NarrativeBundle
from prpilot.models import TicketLookup
from prpilot.tickets import TicketDetailProvider


logger = logging.getLogger(__name__)


FILE_CATEGORIES: dict[str, str] = {
    # Frontend
    "js": "JavaScript",
    "jsx": "React Component",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "vue": "Vue Component",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "sass": "SASS",
    "less": "LESS",
    # Backend
    "py": "Python",
    "java": "Java",
    "go": "Go",
    "rs": "Rust",
    "php": "PHP",
    "rb": "Ruby",
    "cs": "C#",
    "cpp": "C++",
    "c": "C",
    # Configuration
    "json": "JSON Config",
    "yaml": "YAML Config",
    "yml": "YAML Config",
    "xml": "XML Config",
    "toml": "TOML Config",
    "ini": "INI Config",
    "env": "Environment Config",
    "properties": "Properties Config",
    # Documentation
    "md": "Markdown",
    "txt": "Text",
    "rst": "reStructuredText",
    # Database
    "sql": "SQL",
    "db": "Database",
    # Build and deploy
    "dockerfile": "Docker",
    "sh": "Shell Script",
    "bat": "Batch Script",
    "ps1": "PowerShell",
    # Other
    "lock": "Lock File",
    "log": "Log File",
}

NO_TICKETS_CONTEXT = "No JIRA tickets found in branch name"

FALLBACK_MOTIVATION = (
    "This change addresses the requirements specified in the JIRA ticket(s) mentioned below. "
    "The modifications improve system functionality and user experience."
)

_PREAMBLE = "You are an expert software engineer assistant. "

DESCRIPTION_TASK = 'Your task is to write a concise description for the "Description:" section of a pull request.'
DESCRIPTION_INSTRUCTIONS = """Please provide a concise description (2-3 sentences maximum) that:
   - Use the provided JIRA ticket details to understand the "why" and the business requirements.
   - Use the provided file changes to understand the "how" and the technical implementation.
   - Reference the JIRA ticket title and requirements when explaining the changes.
   - Incorporate any custom description provided above into the summary.
   - Write ONLY the content for the "Description:" section - do NOT include any markdown headers like "## Description:" or "## Summary:".
   - Do not make up information; base the description strictly on the context provided.
   - Keep it brief, focused, and professional.
   - Focus on the main purpose and impact of the changes.
"""

KEY_CHANGES_TASK = 'Your task is to write a detailed "Key Changes:" section for a pull request.'
KEY_CHANGES_INSTRUCTIONS = """Based on the specific files and changes above, provide a detailed bulleted list of key changes that:
   - Analyzes the file names, extensions, and change patterns to understand the technical scope
   - Correlates the file changes with the JIRA ticket requirements and business context
   - Describes specific features, functionality, and business value added
   - Groups related changes logically (e.g., "Frontend Updates", "API Changes", "Configuration Updates")
   - Avoids mentioning specific file names, line numbers, or technical implementation details
   - Write ONLY the bulleted list content - do NOT include "Key Changes:" header or any markdown headers
   - Use bullet points (• or -) to list each key change
   - Do not make up information; base the content strictly on the actual files and changes provided
   - Limit to 4-6 most important changes
   - Start directly with the first bullet point, no introductory text
   - Focus on "what" was added/improved and "why" it matters, not "how" it was implemented
"""

MOTIVATION_TASK = 'Your task is to write a concise "Motivation and Context:" section for a pull request.'
MOTIVATION_INSTRUCTIONS = """Based on the specific files and changes above, provide a concise motivation and context (2-3 sentences maximum) that explains:
   - WHY is this specific change required? What business problem does it solve?
   - What specific functionality or capability is being added/improved?
   - What will be the immediate impact for users or the system?
   - Use the JIRA ticket details (title, description, status, priority) to understand the business requirements
   - Write ONLY the content for the "Motivation and Context:" section - do NOT include any markdown headers
   - Keep it brief, direct, and focused on the specific changes being made
   - Do not make up information; base the content strictly on the actual files and changes provided
"""


# -----------------------------
# Pure Functions - Context
# -----------------------------


def categorize_extension(extension: str) -> str:
    """Map a file extension to a human-readable category.

    Example:
        >>> categorize_extension("YML")
        'YAML Config'
        >>> categorize_extension("kt")
        'KT File'
    """
    return FILE_CATEGORIES.get(extension.lower(), f"{extension.upper()} File")


def summarize_file(change: FileChange) -> str:
    """Render one file as ``- name (status, category): +A/-D lines``."""
    category = categorize_extension(change.extension)
    return f"- {change.filename} ({change.status.value}, {category}): +{change.additions}/-{change.deletions} lines"


def summarize_files(files: Sequence[FileChange]) -> str:
    """Render the per-file summary shared by every prompt."""
    return "\n".join(summarize_file(f) for f in files)


def format_ticket_context(ticket_refs: Sequence[str], primary: TicketLookup | None) -> str:
    """Render the ticket lines of the shared context.

    Only the first ticket is expanded; the others appear by key only.
    """
    if not ticket_refs:
        return NO_TICKETS_CONTEXT

    context = f"JIRA Tickets: {', '.join(ticket_refs)}"
    if primary is None:
        return context
    if not primary.success:
        return f"{context}\nJIRA Ticket: {ticket_refs[0]} (details unavailable)"

    ticket = primary.ticket
    return "\n".join(
        [
            context,
            f"JIRA Ticket Details ({ticket.key}):",
            f"- Title: {ticket.summary}",
            f"- Status: {ticket.status}",
            f"- Priority: {ticket.priority}",
            f"- Assignee: {ticket.assignee}",
            f"- Issue Type: {ticket.issue_type}",
            f"- Description: {ticket.description}",
            f"- Components: {', '.join(ticket.components) or 'None'}",
            f"- Labels: {', '.join(ticket.labels) or 'None'}",
            f"- Figma Links: {', '.join(ticket.figma_links) or 'None'}",
        ]
    )


def build_shared_context(
    change_set: ChangeSet,
    head: str,
    base: str,
    ticket_context: str,
    custom_body: str = "",
) -> str:
    """Build the context block repeated verbatim in all three prompts."""
    stats = change_set.stats
    custom = f"\nCustom Description Provided:\n{custom_body}" if custom_body else ""
    return (
        "Context:\n"
        f"- Branch: {head} → {base}\n"
        f"- Files Changed: {len(change_set.files)}\n"
        f"- Lines Added: +{stats.additions}\n"
        f"- Lines Deleted: -{stats.deletions}\n"
        f"- Net Change: {stats.net}\n"
        f"- {ticket_context}{custom}\n"
        "\n"
        "Files Modified:\n"
        f"{summarize_files(change_set.files)}"
    )


def build_prompts(context: str) -> tuple[str, str, str]:
    """Build the description, key-changes and motivation prompts."""
    return (
        f"{_PREAMBLE}{DESCRIPTION_TASK}\n\n{context}\n\n{DESCRIPTION_INSTRUCTIONS}",
        f"{_PREAMBLE}{KEY_CHANGES_TASK}\n\n{context}\n\n{KEY_CHANGES_INSTRUCTIONS}",
        f"{_PREAMBLE}{MOTIVATION_TASK}\n\n{context}\n\n{MOTIVATION_INSTRUCTIONS}",
    )


def fallback_bundle(change_set: ChangeSet, head: str, base: str) -> NarrativeBundle:
    """Build the templated bundle used when generation fails."""
    count = len(change_set.files)
    additions = change_set.stats.additions
    deletions = change_set.stats.deletions
    return NarrativeBundle(
        detailed_summary=(
            f"This PR introduces changes from `{head}` to `{base}` branch with {count} files modified "
            f"({additions} additions, {deletions} deletions)."
        ),
        key_changes=f"• Modified {count} files with {additions} additions and {deletions} deletions",
        motivation_context=FALLBACK_MOTIVATION,
        generated=False,
    )


# -----------------------------
# Narrative Generator
# -----------------------------


class NarrativeGenerator:
    """Produces the three prose fragments of a PR description."""

    def __init__(
        self,
        model: LanguageModel,
        tickets: TicketDetailProvider,
        concurrent: bool = False,
    ) -> None:
        """Initialize with a language model and a ticket detail provider.

        Args:
            model: Backend used for the three completions
            tickets: Provider used to expand the primary ticket
            concurrent: Dispatch the three prompts together instead of in order
        """
        self._model = model
        self._tickets = tickets
        self._concurrent = concurrent

    async def _complete_all(self, prompts: Sequence[str]) -> Result[tuple[str, ...], PilotError]:
        if self._concurrent:
            outcomes = await asyncio.gather(*(self._model.complete(p) for p in prompts), return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
            results = outcomes
        else:
            results = []
            for prompt in prompts:
                result = await self._model.complete(prompt)
                if isinstance(result, Failure):
                    return result
                results.append(result)

        texts: list[str] = []
        for result in results:
            if isinstance(result, Failure):
                return result
            texts.append(result.unwrap())
        return Success(tuple(texts))

    async def generate(
        self,
        change_set: ChangeSet,
        head: str,
        base: str,
        ticket_refs: Sequence[str],
        custom_body: str = "",
    ) -> Result[NarrativeBundle, PilotError]:
        """Generate all three fragments, or fail as a whole."""
        primary = await self._tickets.lookup(ticket_refs[0]) if ticket_refs else None
        context = build_shared_context(
            change_set,
            head,
            base,
            format_ticket_context(ticket_refs, primary),
            custom_body,
        )

        result = await self._complete_all(build_prompts(context))
        return result.map(
            lambda texts: NarrativeBundle(
                detailed_summary=texts[0],
                key_changes=texts[1],
                motivation_context=texts[2],
            )
        )

    async def generate_or_fallback(
        self,
        change_set: ChangeSet,
        head: str,
        base: str,
        ticket_refs: Sequence[str],
        custom_body: str = "",
    ) -> NarrativeBundle:
        """Generate the bundle, substituting the templated fallback on any failure."""
        try:
            result = await self.generate(change_set, head, base, ticket_refs, custom_body)
        except Exception as e:
            logger.warning("Narrative generation raised, using fallback text: %s", e, exc_info=True)
            record_degradation("narrative")
            return fallback_bundle(change_set, head, base)

        if isinstance(result, Success):
            return result.unwrap()

        logger.warning("Failed to generate narrative, using fallback text: %s", result.failure())
        record_degradation("narrative")
        return fallback_bundle(change_set, head, base)
