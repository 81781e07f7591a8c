"""
Text rendering for PR Finder.

Produces the static report, the one-line picker entries and the PR
detail shown in the picker preview. Styling comes from an injected
``Style`` so output can be plain or colored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import click

from .aggregate import AggregatedPRs, Category
from .github import MergeDecision, MergeStatus, PullRequest


MINUTE = 60
HOUR = 3600
DAY = 86400

TITLE_WIDTH = 50
RULE = "─" * 33

SECTION_TITLES = {
    Category.AUTHORED: "Authored by you",
    Category.REVIEW_REQUESTED: "Review requested",
    Category.ASSIGNED: "Assigned to you",
    Category.REPO_ACCESS: "In your repositories",
}

PICKER_TAGS = {
    Category.AUTHORED: "✎ Authored",
    Category.REVIEW_REQUESTED: "⊙ Review",
    Category.ASSIGNED: "→ Assigned",
    Category.REPO_ACCESS: "◈ Repo",
}

CATEGORY_COLORS = {
    Category.AUTHORED: "green",
    Category.REVIEW_REQUESTED: "magenta",
    Category.ASSIGNED: "cyan",
    Category.REPO_ACCESS: "blue",
}


@dataclass
class Style:
    """Terminal styling. With ``enabled=False`` every helper returns plain text."""
    enabled: bool = True

    def _style(self, text: str, **kwargs) -> str:
        if not self.enabled:
            return text
        return click.style(text, **kwargs)

    def bold(self, text: str) -> str:
        return self._style(text, bold=True)

    def dim(self, text: str) -> str:
        return self._style(text, dim=True)

    def color(self, text: str, fg: str, bold: bool = False) -> str:
        return self._style(text, fg=fg, bold=bold)

    def category(self, text: str, category: Category, bold: bool = False) -> str:
        return self.color(text, CATEGORY_COLORS[category], bold=bold)

    def warning(self, text: str) -> str:
        return self.color(text, "yellow")

    def success(self, text: str) -> str:
        return self.color(text, "green")


def parse_timestamp(ts: str) -> datetime:
    """Parse a GitHub ISO-8601 UTC timestamp ("2024-06-15T12:30:00Z")."""
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def age_bucket(seconds: int) -> tuple[int, str]:
    """
    Bucket elapsed seconds into (value, unit).

    Below one hour counts minutes, below one day counts hours,
    otherwise days. Values are truncated, never rounded.
    """
    seconds = max(seconds, 0)
    if seconds < HOUR:
        return seconds // MINUTE, "minute"
    if seconds < DAY:
        return seconds // HOUR, "hour"
    return seconds // DAY, "day"


def format_age(seconds: int, compact: bool = False) -> str:
    """
    >>> format_age(86400)
    '1 day ago'
    >>> format_age(7200, compact=True)
    '2h ago'
    """
    value, unit = age_bucket(seconds)
    if compact:
        return f"{value}{unit[0]} ago"
    plural = "" if value == 1 else "s"
    return f"{value} {unit}{plural} ago"


def relative_age(updated_at: str, now: datetime | None = None, compact: bool = False) -> str:
    """Age of ``updated_at`` relative to ``now`` (default: current UTC time)."""
    now = now or datetime.now(timezone.utc)
    try:
        updated = parse_timestamp(updated_at)
    except (ValueError, AttributeError):
        return "unknown"
    return format_age(int((now - updated).total_seconds()), compact=compact)


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[:width - 1] + "…"


def render_header(login: str, owner: str | None, style: Style) -> str:
    line = f"{style.bold('PR Finder')}: open pull requests for {style.color(login, 'cyan')}"
    if owner:
        line += f" in {style.color(owner, 'magenta')}"
    return line


def render_pr(pr: PullRequest, style: Style, now: datetime | None = None) -> list[str]:
    """Report block for one PR: headline, author and age, URL, blank line."""
    draft = f"  {style.warning('[DRAFT]')}" if pr.draft else ""
    return [
        f"  {style.bold(f'{pr.repo} #{pr.number}')}  {pr.title}{draft}",
        f"  {style.dim(f'by {pr.author} · {relative_age(pr.updated_at, now)}')}",
        f"  {style.dim(pr.url)}",
        "",
    ]


def render_section(
    category: Category,
    prs: list[PullRequest],
    style: Style,
    now: datetime | None = None,
) -> list[str]:
    lines = [
        "",
        f"{style.category(SECTION_TITLES[category], category, bold=True)} {style.dim(f'({len(prs)})')}",
    ]
    if not prs:
        lines.append(f"  {style.dim('No PRs found.')}")
        return lines

    lines.append("")
    for pr in prs:
        lines.extend(render_pr(pr, style, now))
    return lines


def render_report(
    aggregated: AggregatedPRs,
    login: str,
    owner: str | None,
    style: Style,
    now: datetime | None = None,
) -> str:
    """The full non-interactive report, sections in priority order."""
    lines = [render_header(login, owner, style)]
    for category in Category:
        lines.extend(render_section(category, aggregated[category], style, now))

    lines.append(style.dim(RULE))
    lines.append(style.bold(f"Total: {aggregated.total} open PRs"))
    return "\n".join(lines)


def render_picker_line(
    category: Category,
    pr: PullRequest,
    style: Style,
    now: datetime | None = None,
) -> str:
    """Single-line picker entry (without the hidden URL column)."""
    tag = style.category(f"{PICKER_TAGS[category]:<14}", category)
    ref = style.bold(f"{f'{pr.repo} #{pr.number}':<6}")
    title = f"{truncate(pr.title, TITLE_WIDTH):<{TITLE_WIDTH}}"
    meta = style.dim(f"({pr.author})  {relative_age(pr.updated_at, now, compact=True)}")
    draft = f"  {style.warning('[DRAFT]')}" if pr.draft else ""
    return f"{tag}  {ref} {title} {meta}{draft}"


def render_detail(status: MergeStatus, style: Style) -> str:
    """Full PR detail for the picker preview pane."""
    state = "draft" if status.draft else status.state
    lines = [
        style.bold(f"{status.repo} #{status.number}"),
        status.title,
        "",
        f"{style.dim('author:')}   {status.author}",
        f"{style.dim('state:')}    {state}",
        f"{style.dim('branch:')}   {status.head_ref} → {status.base_ref}",
        f"{style.dim('changes:')}  {style.success(f'+{status.additions}')} "
        f"{style.color(f'-{status.deletions}', 'red')} in {status.changed_files} files",
        f"{style.dim('merge:')}    {render_decision_label(status.decision, style)} ({status.merge_state})",
        f"{style.dim('url:')}      {status.url}",
    ]
    if status.body:
        lines.extend(["", status.body.strip()])
    return "\n".join(lines)


def render_decision_label(decision: MergeDecision, style: Style) -> str:
    if decision is MergeDecision.MERGEABLE:
        return style.success("mergeable")
    if decision is MergeDecision.CONFLICTING:
        return style.warning("conflicting")
    return style.dim("computing")
