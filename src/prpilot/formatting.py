"""Human-readable renderings returned as ``formatted_response``.

Every rendering is built from the same model instance as the machine-readable
part of the envelope, so the two never disagree.
"""

import re
from datetime import datetime

from prpilot.models import PRSummary
from prpilot.models import PullRequestResult
from prpilot.models import RepositoryInfo


_PULL_PATH = re.compile(r"/pull/.*")


def format_timestamp(value: str) -> str:
    """Render an ISO-8601 timestamp for display; unparsable values pass through."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%m/%d/%Y, %I:%M:%S %p")


def repository_url(pr_url: str) -> str:
    """Strip the ``/pull/<n>`` suffix from a pull request URL."""
    return _PULL_PATH.sub("", pr_url)


def format_pull_request(pr: PullRequestResult) -> str:
    """Render a created pull request."""
    draft = "(Draft)" if pr.draft else ""
    return f"""🎉 **Enhanced Pull Request Created Successfully!**

📋 **PR Details:**
- **Number:** #{pr.number}
- **Title:** {pr.title}
- **Status:** {pr.state} {draft}
- **From:** `{pr.head}` → **To:** `{pr.base}`
- **Author:** {pr.author}
- **Created:** {format_timestamp(pr.created_at)}
- **Description Length:** {pr.body_length} characters
- **Includes Diff Analysis:** {"Yes" if pr.includes_diff_analysis else "No"}

🔗 **Links:**
- **View PR:** {pr.url}
- **Repository:** {repository_url(pr.url)}

✨ **Enhanced Features:**
- 📊 Automatic code diff analysis
- 📈 File type analysis
- 🎫 JIRA ticket links
- ✅ Review checklist

💡 **Next Steps:**
- Review the enhanced PR description
- Check the automated analysis
- Add reviewers if needed
- Merge when ready"""


def pull_request_message(pr: PullRequestResult) -> str:
    """One-line summary of a created pull request."""
    source = "automatic diff analysis" if pr.includes_diff_analysis else "custom description"
    return f'Successfully created enhanced pull request #{pr.number}: "{pr.title}" with {source}'


def format_repository(repo: RepositoryInfo) -> str:
    """Render repository details with its branches."""
    branch_names = "\n".join(f"  - {b.name}" for b in repo.branches)
    return f"""✅ Repository Information for {repo.full_name}:

📁 **Repository Details:**
- **Name:** {repo.name}
- **Description:** {repo.description or "No description"}
- **Default Branch:** {repo.default_branch}
- **Private:** {"Yes" if repo.private else "No"}

🔗 **URLs:**
- **Repository:** {repo.html_url}
- **Clone URL:** {repo.clone_url}

🌿 **Available Branches ({len(repo.branches)} total):**
{branch_names}

💡 **Quick Actions:**
- View repository: {repo.html_url}
- Clone repository: `git clone {repo.clone_url}`"""


def format_summary(summary: PRSummary) -> str:
    """Render a generated PR summary including the compare link."""
    return f"""📋 **PR Summary Generated Successfully!**

🎯 **Analysis Details:**
- **Repository:** {summary.repository}
- **Comparison:** `{summary.head_branch}` → `{summary.base_branch}`
- **Suggested Title:** {summary.suggested_title}
- **Analysis Generated:** {format_timestamp(summary.analysis_timestamp)}

---

## 📝 **Generated PR Description:**

{summary.generated_description}

---

💡 **Next Steps:**
- Review the generated description above
- Use this analysis to create the actual PR if needed
- Customize the title and description as required
- The analysis includes JIRA ticket context, file changes, and impact assessment

🔗 **Repository Links:**
- **Repository:** {summary.html_url}
- **Compare View:** {summary.html_url}/compare/{summary.base_branch}...{summary.head_branch}"""


def summary_message(owner: str, repo: str, head: str, base: str) -> str:
    """One-line summary of a generated PR summary."""
    return f"Successfully generated PR summary for {owner}/{repo}: {head} → {base}"
