"""
Deduplication of the four raw PR lists into prioritized categories.

A PR found by several queries is shown once, in the first category it
qualifies for: Authored > ReviewRequested > Assigned > RepoAccess.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from .github import PullRequest


class Category(Enum):
    """Fixed display order and dedup priority."""
    AUTHORED = "authored"
    REVIEW_REQUESTED = "review_requested"
    ASSIGNED = "assigned"
    REPO_ACCESS = "repo_access"


@dataclass
class RawSources:
    """Raw, possibly overlapping query results."""
    authored: list[PullRequest] = field(default_factory=list)
    review_requested: list[PullRequest] = field(default_factory=list)
    assigned: list[PullRequest] = field(default_factory=list)
    repo_access: list[PullRequest] = field(default_factory=list)

    def by_category(self) -> list[tuple[Category, list[PullRequest]]]:
        return [
            (Category.AUTHORED, self.authored),
            (Category.REVIEW_REQUESTED, self.review_requested),
            (Category.ASSIGNED, self.assigned),
            (Category.REPO_ACCESS, self.repo_access),
        ]


@dataclass
class AggregatedPRs:
    """Non-overlapping categories, each in fetch order."""
    sections: dict[Category, list[PullRequest]]

    def __getitem__(self, category: Category) -> list[PullRequest]:
        return self.sections.get(category, [])

    @property
    def total(self) -> int:
        return sum(len(prs) for prs in self.sections.values())

    def items(self) -> Iterator[tuple[Category, PullRequest]]:
        """Every (category, PR) pair in display order."""
        for category in Category:
            for pr in self[category]:
                yield category, pr


def _without_seen(prs: Iterable[PullRequest], seen: set[str]) -> list[PullRequest]:
    kept = []
    for pr in prs:
        if pr.url in seen:
            continue
        seen.add(pr.url)
        kept.append(pr)
    return kept


def aggregate(raw: RawSources) -> AggregatedPRs:
    """
    Merge raw query results into mutually exclusive categories.

    Each stage drops PRs whose URL an earlier stage already claimed,
    keeping the order in which GitHub returned them. Repeats within a
    single list are collapsed to their first occurrence.
    """
    seen: set[str] = set()
    sections = {
        category: _without_seen(prs, seen)
        for category, prs in raw.by_category()
    }
    return AggregatedPRs(sections=sections)


class WorkingSet:
    """
    The PRs still on offer in an interactive session.

    Only shrinks: entries are removed by URL once acted upon.
    """

    def __init__(self, entries: Iterable[tuple[Category, PullRequest]]):
        self._entries = list(entries)

    @classmethod
    def from_aggregated(cls, aggregated: AggregatedPRs) -> "WorkingSet":
        return cls(aggregated.items())

    @property
    def entries(self) -> list[tuple[Category, PullRequest]]:
        return list(self._entries)

    def remove(self, url: str) -> None:
        """Drop the entry for ``url``; no-op if it is already gone."""
        self._entries = [(c, pr) for c, pr in self._entries if pr.url != url]

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, url: object) -> bool:
        return any(pr.url == url for _, pr in self._entries)
