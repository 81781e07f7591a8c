"""
GitHub REST API client for PR Finder.

Searches open pull requests, lists repositories the user can push to,
reads live mergeability and performs merges.
Uses GITHUB_TOKEN (or GH_TOKEN, or the GitHub CLI's stored token) for
authentication.

Supports:
- Search paging up to a result limit
- Paginated repository listing
- Retry on network errors and rate limit detection
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

import requests

from . import __version__


logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_PER_PAGE = 100
# search/issues only serves the first 1000 matches
SEARCH_RESULT_CAP = 1000
MAX_RETRIES = 3
RETRY_DELAY = 1.0

REPO_AFFILIATION = "owner,collaborator,organization_member"

_PR_URL_RE = re.compile(r"^https?://[^/]+/([^/]+)/([^/]+)/pull/(\d+)/?$")


@dataclass(frozen=True)
class PullRequest:
    """An open pull request as returned by search. The URL is its identity."""
    url: str
    repo: str  # full_name like "owner/repo"
    number: int
    title: str
    author: str
    draft: bool
    updated_at: str


@dataclass(frozen=True)
class Repository:
    """Repository descriptor from the repo listing."""
    full_name: str
    archived: bool
    open_issues_count: int


class MergeDecision(str, Enum):
    """Upstream-computed mergeability of a pull request."""
    MERGEABLE = "MERGEABLE"
    CONFLICTING = "CONFLICTING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_api(cls, value: Any) -> "MergeDecision":
        # REST reports null while GitHub is still computing
        if value is True:
            return cls.MERGEABLE
        if value is False:
            return cls.CONFLICTING
        return cls.UNKNOWN


@dataclass
class MergeStatus:
    """Live state of a single pull request."""
    url: str
    repo: str
    number: int
    title: str
    decision: MergeDecision
    merge_state: str
    state: str = "open"
    draft: bool = False
    author: str = ""
    head_ref: str = ""
    base_ref: str = ""
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    body: str | None = None


class GitHubAPIError(Exception):
    """Error from GitHub API."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GitHubAPIError):
    """Rate limit exceeded."""
    def __init__(self, reset_time: int | None = None):
        super().__init__("GitHub API rate limit exceeded", 403)
        self.reset_time = reset_time


class AuthenticationError(GitHubAPIError):
    """Missing or rejected credentials."""


class MergeError(GitHubAPIError):
    """The merge request was refused."""


def parse_pr_url(url: str) -> tuple[str, int]:
    """
    Split a pull request URL into repository full name and number.

    >>> parse_pr_url("https://github.com/octo/hello/pull/7")
    ('octo/hello', 7)
    """
    match = _PR_URL_RE.match(url.strip())
    if not match:
        raise ValueError(f"Not a pull request URL: {url}")
    owner, name, number = match.groups()
    return f"{owner}/{name}", int(number)


def resolve_token() -> str | None:
    """
    Find a GitHub token.

    Checks GITHUB_TOKEN, then GH_TOKEN, then asks the GitHub CLI
    (``gh auth token``) if it is installed.
    """
    for var in ("GITHUB_TOKEN", "GH_TOKEN"):
        token = os.environ.get(var)
        if token:
            return token

    if not shutil.which("gh"):
        return None

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError:
        # gh installed but not logged in
        return None
    return result.stdout.strip() or None


class GitHubClient:
    """GitHub REST API client with pagination and rate limit handling."""

    def __init__(self, token: str | None = None, api_url: str = GITHUB_API_BASE):
        self.token = token or resolve_token()
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"prfinder/{__version__}",
        }
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """HTTP session for the calling thread; searches run on worker threads."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Make an API request with retry and rate limit handling."""
        url = f"{self.api_url}{endpoint}"

        for attempt in range(MAX_RETRIES):
            try:
                logger.debug("%s %s %s", method, endpoint, params or "")
                response = self.session.request(method, url, params=params, **kwargs)
            except requests.RequestException as e:
                if attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise GitHubAPIError(f"Request failed: {e}")

            if response.status_code in (403, 429):
                remaining = response.headers.get("X-RateLimit-Remaining")
                if remaining == "0" or response.status_code == 429:
                    reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
                    raise RateLimitError(reset_time)

            if response.status_code == 401:
                raise AuthenticationError("GitHub rejected the credentials", 401)

            if response.status_code >= 400:
                raise GitHubAPIError(
                    f"GitHub API error: {response.status_code} - {_error_message(response)}",
                    response.status_code,
                )

            return response

        raise GitHubAPIError("Max retries exceeded")

    def _paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Iterate through paginated API results."""
        params = dict(params or {})
        params.setdefault("per_page", DEFAULT_PER_PAGE)
        page = 1

        while True:
            if max_pages and page > max_pages:
                break

            params["page"] = page
            response = self._request("GET", endpoint, params=params)
            items = response.json()

            if not items:
                break

            yield from items

            if len(items) < params["per_page"]:
                break

            page += 1

    def get_current_user(self) -> str:
        """Login of the authenticated user."""
        if not self.token:
            raise AuthenticationError("No GitHub token available")
        response = self._request("GET", "/user")
        return response.json()["login"]

    def search_prs(
        self,
        qualifiers: list[str],
        owner: str | None = None,
        limit: int = 100,
    ) -> list[PullRequest]:
        """
        Search open pull requests.

        Args:
            qualifiers: Search qualifiers, e.g. ["author:@me"] or
                        ["repo:octo/a", "repo:octo/b"]
            owner: Restrict to repositories owned by this user or org
            limit: Maximum number of PRs to return

        Returns:
            PullRequest records in the order GitHub returned them
        """
        terms = ["is:pr", "is:open", *qualifiers]
        if owner:
            terms.append(f"user:{owner}")

        per_page = min(limit, DEFAULT_PER_PAGE)
        params: dict[str, Any] = {
            "q": " ".join(terms),
            "sort": "updated",
            "order": "desc",
            "per_page": per_page,
        }

        prs: list[PullRequest] = []
        page = 1
        while len(prs) < limit:
            params["page"] = page
            response = self._request("GET", "/search/issues", params=params)
            items = response.json().get("items", [])

            for item in items:
                prs.append(self._parse_search_item(item))
                if len(prs) >= limit:
                    break

            if len(items) < per_page or page * per_page >= SEARCH_RESULT_CAP:
                break
            page += 1

        return prs

    def list_push_repos(self, owner: str | None = None) -> list[Repository]:
        """
        List non-archived repositories with open issues or PRs that the
        user owns, collaborates on, or reaches through an organization.
        """
        repos = []
        params = {"affiliation": REPO_AFFILIATION}
        for item in self._paginate("/user/repos", params):
            repo = Repository(
                full_name=item.get("full_name", ""),
                archived=bool(item.get("archived")),
                open_issues_count=item.get("open_issues_count", 0) or 0,
            )
            if repo.archived or repo.open_issues_count <= 0:
                continue
            if owner and not repo.full_name.startswith(f"{owner}/"):
                continue
            repos.append(repo)
        return repos

    def get_merge_status(self, url: str) -> MergeStatus:
        """Fetch live mergeability for the pull request at ``url``."""
        repo, number = parse_pr_url(url)
        response = self._request("GET", f"/repos/{repo}/pulls/{number}")
        return self._parse_merge_status(repo, response.json())

    def merge(self, url: str, merge_method: str = "merge") -> str:
        """
        Merge the pull request at ``url``.

        Returns:
            The merge commit SHA reported by GitHub
        """
        repo, number = parse_pr_url(url)
        try:
            response = self._request(
                "PUT",
                f"/repos/{repo}/pulls/{number}/merge",
                json={"merge_method": merge_method},
            )
        except GitHubAPIError as e:
            raise MergeError(str(e), e.status_code) from e

        data = response.json()
        if not data.get("merged", True):
            raise MergeError(data.get("message", "Merge was not performed"))
        return data.get("sha", "")

    def _parse_search_item(self, data: dict[str, Any]) -> PullRequest:
        """Parse a search/issues item into a PullRequest."""
        user = data.get("user") or {}
        repository_url = data.get("repository_url", "")
        # https://api.github.com/repos/<owner>/<name>
        repo = "/".join(repository_url.rstrip("/").split("/")[-2:])

        return PullRequest(
            url=data.get("html_url", ""),
            repo=repo,
            number=data.get("number", 0),
            title=data.get("title", ""),
            author=user.get("login", ""),
            draft=bool(data.get("draft")),
            updated_at=data.get("updated_at", ""),
        )

    def _parse_merge_status(self, repo: str, data: dict[str, Any]) -> MergeStatus:
        user = data.get("user") or {}
        head = data.get("head") or {}
        base = data.get("base") or {}

        return MergeStatus(
            url=data.get("html_url", ""),
            repo=repo,
            number=data.get("number", 0),
            title=data.get("title", ""),
            decision=MergeDecision.from_api(data.get("mergeable")),
            merge_state=(data.get("mergeable_state") or "unknown").upper(),
            state=data.get("state", "open"),
            draft=bool(data.get("draft")),
            author=user.get("login", ""),
            head_ref=head.get("ref", ""),
            base_ref=base.get("ref", ""),
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            changed_files=data.get("changed_files", 0),
            body=data.get("body"),
        )


def _error_message(response: requests.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text
