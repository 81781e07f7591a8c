"""
Interactive session: pick a PR, act on it, repeat until nothing is left
or the user quits. The list is never re-fetched, only shrunk.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable

import click

from .actions import ActionHandler, ActionOutcome
from .aggregate import WorkingSet
from .picker import Picker, PickerEntry
from .render import Style, render_picker_line


logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    BROWSING = "browsing"
    ACTION_IN_PROGRESS = "action_in_progress"
    EXITED = "exited"


class Session:
    """Drives selection → action → removal cycles over a working set."""

    def __init__(
        self,
        working_set: WorkingSet,
        picker: Picker,
        handler: ActionHandler,
        style: Style,
        echo: Callable[..., None] = click.echo,
        now: Callable[[], datetime | None] = lambda: None,
    ):
        self.working_set = working_set
        self.picker = picker
        self.handler = handler
        self.style = style
        self.echo = echo
        self.now = now
        self.state = SessionState.BROWSING
        self.outcomes: list[tuple[str, ActionOutcome]] = []

    def entries(self) -> list[PickerEntry]:
        now = self.now()
        return [
            PickerEntry(key=pr.url, display=render_picker_line(category, pr, self.style, now))
            for category, pr in self.working_set.entries
        ]

    def run(self) -> None:
        if not self.working_set:
            self.echo(self.style.dim("No open PRs found."))
            self.state = SessionState.EXITED
            return

        while self.state is SessionState.BROWSING:
            self.step()

    def step(self) -> None:
        """One pass through the state machine from Browsing."""
        url = self.picker.select(self.entries())
        if url is None:
            self.state = SessionState.EXITED
            return

        self.state = SessionState.ACTION_IN_PROGRESS
        outcome = self.handler.handle(url)
        self.outcomes.append((url, outcome))
        logger.debug("Action on %s finished: %s", url, outcome.value)

        # An aborted detail fetch leaves the PR on offer for a retry
        if outcome is not ActionOutcome.FETCH_FAILED:
            self.working_set.remove(url)

        if not self.working_set:
            self.echo(self.style.dim("No more open PRs."))
            self.state = SessionState.EXITED
        else:
            self.state = SessionState.BROWSING
