"""
The merge action run on a selected pull request.

Fetches live mergeability, then merges after confirmation, offers the
browser for conflicts, or asks the user to retry while GitHub is still
computing. Failures are reported as warnings and never end the session.
"""

from __future__ import annotations

import logging
import webbrowser
from enum import Enum
from typing import Callable

import click
import requests

from .github import GitHubAPIError, GitHubClient, MergeDecision, MergeError
from .render import Style


logger = logging.getLogger(__name__)


class ActionOutcome(str, Enum):
    MERGED = "merged"
    MERGE_FAILED = "merge_failed"
    DECLINED = "declined"
    CONFLICTING = "conflicting"
    PENDING = "pending"
    FETCH_FAILED = "fetch_failed"


class ActionHandler:
    """Runs the merge flow for one PR URL at a time."""

    def __init__(
        self,
        client: GitHubClient,
        style: Style,
        merge_method: str = "merge",
        confirm: Callable[[str], bool] | None = None,
        echo: Callable[..., None] = click.echo,
        open_browser: Callable[[str], object] = webbrowser.open,
    ):
        self.client = client
        self.style = style
        self.merge_method = merge_method
        self.confirm = confirm or (lambda text: click.confirm(text, default=False))
        self.echo = echo
        self.open_browser = open_browser

    def handle(self, url: str) -> ActionOutcome:
        style = self.style

        try:
            status = self.client.get_merge_status(url)
        except (GitHubAPIError, requests.RequestException, ValueError) as e:
            logger.debug("Detail fetch for %s failed: %s", url, e)
            self.echo(style.warning("Could not fetch PR details."), err=True)
            return ActionOutcome.FETCH_FAILED

        self.echo("")
        self.echo(f"  {style.bold(f'#{status.number}')} {status.title}")
        self.echo(f"  {style.dim(url)}")
        self.echo("")

        if status.decision is MergeDecision.MERGEABLE:
            self.echo(f"  {style.success('✓ This PR can be merged')} (status: {status.merge_state})")
            self.echo("")
            if not self.confirm("  Merge this PR?"):
                return ActionOutcome.DECLINED
            return self._merge(url)

        if status.decision is MergeDecision.CONFLICTING:
            self.echo(f"  {style.warning('✗ This PR has merge conflicts')}")
            self.echo("")
            if self.confirm("  Open in browser to resolve?"):
                self.open_browser(url)
            return ActionOutcome.CONFLICTING

        self.echo(f"  {style.dim('⋯ Mergeability is still being computed by GitHub')}")
        self.echo(f"  {style.dim('  Try again in a few seconds.')}")
        return ActionOutcome.PENDING

    def _merge(self, url: str) -> ActionOutcome:
        self.echo("")
        try:
            sha = self.client.merge(url, merge_method=self.merge_method)
        except (MergeError, GitHubAPIError, requests.RequestException) as e:
            logger.debug("Merge of %s failed: %s", url, e)
            self.echo(f"  {self.style.warning('Merge failed. Open in browser to resolve.')}", err=True)
            return ActionOutcome.MERGE_FAILED

        logger.debug("Merged %s as %s", url, sha)
        self.echo(f"  {self.style.success('✓ Merged successfully')}")
        return ActionOutcome.MERGED
