"""
Fetches the four raw PR lists.

Each query fails on its own: a network, auth or rate limit error turns
that query's result into an empty list and the run carries on.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import requests

from .aggregate import RawSources
from .config import FetchConfig
from .github import GitHubAPIError, GitHubClient, PullRequest


logger = logging.getLogger(__name__)

QUALIFIERS = {
    "authored": "author:@me",
    "review-requested": "review-requested:@me",
    "assigned": "assignee:@me",
}


def _safe(name: str, fetch: Callable[[], list]) -> list:
    """Run one query, substituting an empty list on failure."""
    try:
        return fetch()
    except (GitHubAPIError, requests.RequestException) as e:
        logger.warning("Query '%s' failed: %s", name, e)
        return []


def batched(items: list[str], size: int) -> list[list[str]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    return [items[i:i + size] for i in range(0, len(items), size)]


def fetch_qualified(client: GitHubClient, name: str, config: FetchConfig) -> list[PullRequest]:
    """Open PRs for one of the @me qualifiers."""
    return _safe(
        name,
        lambda: client.search_prs([QUALIFIERS[name]], owner=config.owner, limit=config.limit),
    )


def fetch_repo_access(client: GitHubClient, config: FetchConfig) -> list[PullRequest]:
    """
    Open PRs in repositories the user can push to.

    Repositories are searched ``batch_size`` at a time to keep the query
    under GitHub's length limit; batches run concurrently and their
    results are concatenated in batch order.
    """
    repos = _safe("repositories", lambda: client.list_push_repos(owner=config.owner))
    if not repos:
        return []

    batches = batched([repo.full_name for repo in repos], config.batch_size)
    logger.debug("Searching %d repositories in %d batches", len(repos), len(batches))

    def search(batch: list[str]) -> list[PullRequest]:
        return _safe(
            f"repositories {batch[0]}..",
            lambda: client.search_prs([f"repo:{name}" for name in batch], limit=config.limit),
        )

    with ThreadPoolExecutor(max_workers=config.max_concurrent_batches) as executor:
        results = list(executor.map(search, batches))

    prs: list[PullRequest] = []
    for batch_prs in results:
        prs.extend(batch_prs)
    return prs


def fetch_all(client: GitHubClient, config: FetchConfig) -> RawSources:
    """
    Run all four queries concurrently and wait for every one of them.

    Each future fills its own slot; nothing is aggregated until all
    have finished.
    """
    with ThreadPoolExecutor(max_workers=4) as executor:
        authored = executor.submit(fetch_qualified, client, "authored", config)
        review = executor.submit(fetch_qualified, client, "review-requested", config)
        assigned = executor.submit(fetch_qualified, client, "assigned", config)
        repo_access = executor.submit(fetch_repo_access, client, config)

        return RawSources(
            authored=authored.result(),
            review_requested=review.result(),
            assigned=assigned.result(),
            repo_access=repo_access.result(),
        )
