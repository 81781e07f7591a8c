"""
Interactive selection through fzf.

fzf is an optional external program. ``find_picker()`` returns None
when it is not installed and callers fall back to the text report.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


logger = logging.getLogger(__name__)

HEADER = "enter: merge · ctrl-o: open in browser · esc: quit"

# fzf exits 1 when nothing matched and 130 on esc / ctrl-c
CANCEL_CODES = (1, 130)


class PickerError(Exception):
    """fzf failed for a reason other than the user cancelling."""


@dataclass
class PickerEntry:
    """One selectable line. ``key`` is hidden from display and returned on selection."""
    key: str
    display: str


@runtime_checkable
class Picker(Protocol):
    """Anything that shows entries and returns the chosen key, or None on cancel."""
    def select(self, entries: list[PickerEntry]) -> str | None: ...


def self_command(*args: str) -> str:
    """Shell command that re-invokes prfinder with the current interpreter."""
    return " ".join([shlex.quote(sys.executable), "-m", "prfinder", *args])


class FzfPicker:
    """Fuzzy picker backed by the fzf binary."""

    def __init__(self, executable: str = "fzf"):
        self.executable = executable

    def build_command(self) -> list[str]:
        # {1} is the hidden URL column; fzf quotes it for the shell
        return [
            self.executable,
            "--delimiter=\t",
            "--with-nth=2",
            "--ansi",
            "--no-sort",
            f"--header={HEADER}",
            f"--preview={self_command('preview', '{1}')}",
            "--preview-window=right:50%:wrap",
            f"--bind=ctrl-o:execute-silent({self_command('open', '{1}')})",
        ]

    def select(self, entries: list[PickerEntry]) -> str | None:
        """
        Show ``entries`` and block until the user chooses one.

        Returns:
            The chosen entry's key, or None if the user cancelled
        """
        if not entries:
            return None

        lines = "\n".join(f"{entry.key}\t{entry.display}" for entry in entries)
        result = subprocess.run(
            self.build_command(),
            input=lines,
            stdout=subprocess.PIPE,
            text=True,
        )

        if result.returncode in CANCEL_CODES:
            return None
        if result.returncode != 0:
            raise PickerError(f"fzf exited with status {result.returncode}")

        selected = result.stdout.strip()
        if not selected:
            return None
        return selected.split("\t", 1)[0] or None


def find_picker() -> FzfPicker | None:
    """Return a picker if fzf is on PATH, else None."""
    executable = shutil.which("fzf")
    if not executable:
        logger.debug("fzf not found on PATH")
        return None
    return FzfPicker(executable)
