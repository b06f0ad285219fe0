"""Immutable domain models for the PR description pipeline.

All models are frozen dataclasses; they are produced once per request and
never mutated afterwards.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any


class FileStatus(Enum):
    """Change status of a single file in a comparison."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @classmethod
    def parse(cls, value: str | None) -> "FileStatus":
        """Parse an upstream status, treating unknown values as modified."""
        try:
            return cls(value)
        except ValueError:
            return cls.MODIFIED


@dataclass(frozen=True, slots=True)
class FileChange:
    """Immutable per-file change summary."""

    filename: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0

    @property
    def extension(self) -> str:
        """File extension, or the whole file name when there is no dot."""
        return self.filename.rsplit(".", 1)[-1] or "no-extension"


@dataclass(frozen=True, slots=True)
class ChangeStats:
    """Immutable aggregate line counts."""

    additions: int = 0
    deletions: int = 0
    total: int = 0

    @property
    def net(self) -> int:
        """Net change in lines."""
        return self.additions - self.deletions


@dataclass(frozen=True, slots=True)
class ChangeSet:
    """Immutable result of comparing two branches."""

    files: tuple[FileChange, ...] = field(default_factory=tuple)
    stats: ChangeStats = field(default_factory=ChangeStats)

    def with_status(self, status: FileStatus) -> tuple[FileChange, ...]:
        """Return the files that have the given status."""
        return tuple(f for f in self.files if f.status == status)


@dataclass(frozen=True, slots=True)
class TicketDetail:
    """Immutable Jira ticket details.

    Placeholder tickets built after a failed fetch carry only ``key``,
    ``summary``, ``description``, ``status`` and ``url``.
    """

    key: str
    summary: str
    description: str
    status: str
    url: str
    priority: str | None = None
    assignee: str | None = None
    reporter: str | None = None
    issue_type: str | None = None
    created: str | None = None
    updated: str | None = None
    labels: tuple[str, ...] = field(default_factory=tuple)
    components: tuple[str, ...] = field(default_factory=tuple)
    fix_versions: tuple[str, ...] = field(default_factory=tuple)
    figma_links: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation used by the tool surface."""
        data: dict[str, Any] = {
            "key": self.key,
            "summary": self.summary,
            "description": self.description,
            "status": self.status,
        }
        if self.issue_type is not None:
            data.update(
                {
                    "priority": self.priority,
                    "assignee": self.assignee,
                    "reporter": self.reporter,
                    "issueType": self.issue_type,
                    "created": self.created,
                    "updated": self.updated,
                    "labels": list(self.labels),
                    "components": list(self.components),
                    "fixVersions": list(self.fix_versions),
                }
            )
        data["figmaLinks"] = list(self.figma_links)
        data["url"] = self.url
        return data


@dataclass(frozen=True, slots=True)
class TicketLookup:
    """Outcome of a ticket fetch: always carries a usable ticket.

    When ``success`` is false the ticket is a placeholder and only its key and
    URL should be trusted.
    """

    ticket: TicketDetail
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ``get_jira_ticket_details`` envelope."""
        data: dict[str, Any] = {"success": self.success, "ticket": self.ticket.to_dict()}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True, slots=True)
class NarrativeBundle:
    """Three prose fragments for a PR description.

    Either all three were generated or all three are the templated fallback.
    """

    detailed_summary: str
    key_changes: str
    motivation_context: str
    generated: bool = True


@dataclass(frozen=True, slots=True)
class PullRequestParams:
    """Immutable create-pull-request request."""

    owner: str
    repo: str
    title: str
    head: str
    base: str
    body: str = ""
    draft: bool = False
    include_diff_analysis: bool = True


@dataclass(frozen=True, slots=True)
class PullRequestResult:
    """Immutable created pull request summary."""

    number: int
    title: str
    url: str
    state: str
    draft: bool
    head: str
    base: str
    created_at: str
    author: str
    body_length: int
    includes_diff_analysis: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation used by the tool surface."""
        return {
            "number": self.number,
            "title": self.title,
            "url": self.url,
            "state": self.state,
            "draft": self.draft,
            "head": self.head,
            "base": self.base,
            "created_at": self.created_at,
            "user": self.author,
            "body_length": self.body_length,
            "includes_diff_analysis": self.includes_diff_analysis,
        }


@dataclass(frozen=True, slots=True)
class BranchInfo:
    """Immutable branch name and protection flag."""

    name: str
    protected: bool = False


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Immutable repository metadata."""

    name: str
    full_name: str
    description: str | None
    default_branch: str
    private: bool
    html_url: str
    clone_url: str
    branches: tuple[BranchInfo, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation used by the tool surface."""
        return {
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "default_branch": self.default_branch,
            "private": self.private,
            "html_url": self.html_url,
            "clone_url": self.clone_url,
            "branches": [{"name": b.name, "protected": b.protected} for b in self.branches],
        }


@dataclass(frozen=True, slots=True)
class PRSummary:
    """Immutable generated PR summary (no PR is created)."""

    repository: str
    head_branch: str
    base_branch: str
    suggested_title: str
    generated_description: str
    analysis_timestamp: str
    html_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation used by the tool surface."""
        return {
            "repository": self.repository,
            "head_branch": self.head_branch,
            "base_branch": self.base_branch,
            "suggested_title": self.suggested_title,
            "generated_description": self.generated_description,
            "analysis_timestamp": self.analysis_timestamp,
        }


def unique_in_order(items: Sequence[str]) -> tuple[str, ...]:
    """Deduplicate while keeping the order of first appearance."""
    return tuple(dict.fromkeys(items))
