"""
PR Finder CLI - Show open pull requests across your GitHub contexts.

Sections (in priority order, each PR shown once):
    Authored by you
    Review requested
    Assigned to you
    In your repositories

Interactive mode lists every PR in fzf; enter runs the merge flow,
ctrl-o opens the PR in the browser.
"""

from __future__ import annotations

import logging
import sys
import webbrowser

import click
from dotenv import load_dotenv

from . import __version__
from .actions import ActionHandler
from .aggregate import WorkingSet, aggregate
from .config import MAX_LIMIT, MERGE_METHODS, ConfigError, PrFinderConfig
from .github import GITHUB_API_BASE, AuthenticationError, GitHubAPIError, GitHubClient
from .picker import Picker, PickerError, find_picker
from .render import Style, render_detail, render_report
from .session import Session
from .sources import fetch_all


# Load .env file from current directory
load_dotenv()

FZF_HINT = "Tip: Install fzf for interactive mode (https://github.com/junegunn/fzf)"


def fail(message: str) -> None:
    """Report a fatal error and exit non-zero."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def stdout_is_tty() -> bool:
    return sys.stdout.isatty()


def resolve_interactive(mode: str, picker: Picker | None, is_tty: bool) -> bool:
    """
    Decide between picker and report.

    ``force`` requires fzf, ``off`` never uses it, ``auto`` uses it when
    stdout is a terminal and fzf is installed.
    """
    if mode == "force":
        if picker is None:
            fail("--interactive requires fzf but it is not installed.")
        return True
    if mode == "off":
        return False
    return is_tty and picker is not None


def resolve_color(mode: str, is_tty: bool) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    return is_tty


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name="prfinder")
@click.option("--owner", default=None, help="Filter to PRs in repos owned by a user or organization")
@click.option("--limit", default=None, type=click.IntRange(1, MAX_LIMIT), help="Maximum PRs per query (default 100, at most 1000)")
@click.option("-i", "--interactive", is_flag=True, help="Force interactive mode (requires fzf)")
@click.option("--no-interactive", is_flag=True, help="Force non-interactive text output")
@click.option("--color", is_flag=True, help="Always use colors")
@click.option("--no-color", is_flag=True, help="Never use colors")
@click.option("--merge-method", type=click.Choice(MERGE_METHODS), default=None, help="How to merge (default: merge)")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    owner: str | None,
    limit: int | None,
    interactive: bool,
    no_interactive: bool,
    color: bool,
    no_color: bool,
    merge_method: str | None,
    verbose: bool,
):
    """Show open pull requests across your GitHub contexts."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is not None:
        return

    try:
        config = PrFinderConfig.load()
    except ConfigError as e:
        fail(str(e))

    # CLI flags win over config file and environment
    if owner is not None:
        config.fetch.owner = owner
    if limit is not None:
        config.fetch.limit = limit
    if interactive and no_interactive:
        fail("--interactive and --no-interactive are mutually exclusive.")
    if interactive:
        config.interactive = "force"
    elif no_interactive:
        config.interactive = "off"
    if color:
        config.color = "always"
    elif no_color:
        config.color = "never"
    if merge_method is not None:
        config.merge_method = merge_method

    is_tty = stdout_is_tty()
    picker = find_picker()
    use_picker = resolve_interactive(config.interactive, picker, is_tty)
    style = Style(enabled=resolve_color(config.color, is_tty))

    client = GitHubClient(api_url=config.fetch.api_url)
    try:
        login = client.get_current_user()
    except AuthenticationError:
        fail("not authenticated with GitHub. Set GITHUB_TOKEN or run 'gh auth login' first.")
    except GitHubAPIError as e:
        fail(f"could not reach GitHub: {e}")

    aggregated = aggregate(fetch_all(client, config.fetch))

    if use_picker:
        handler = ActionHandler(client, style, merge_method=config.merge_method)
        try:
            Session(WorkingSet.from_aggregated(aggregated), picker, handler, style).run()
        except PickerError as e:
            fail(str(e))
        return

    click.echo(render_report(aggregated, login, config.fetch.owner, style), color=style.enabled)

    if is_tty and picker is None and config.interactive != "off":
        click.echo()
        click.echo(style.dim(FZF_HINT), color=style.enabled)


@main.command(hidden=True)
@click.argument("url")
def preview(url: str):
    """Print PR detail (used by the picker preview pane)."""
    try:
        api_url = PrFinderConfig.load().fetch.api_url
    except ConfigError:
        api_url = GITHUB_API_BASE
    client = GitHubClient(api_url=api_url)
    try:
        status = client.get_merge_status(url)
    except (GitHubAPIError, ValueError) as e:
        click.echo(f"Could not fetch PR details: {e}")
        sys.exit(1)
    click.echo(render_detail(status, Style(enabled=True)), color=True)


@main.command("open", hidden=True)
@click.argument("url")
def open_url(url: str):
    """Open a PR in the browser (used by the picker's ctrl-o binding)."""
    webbrowser.open(url)


if __name__ == "__main__":
    main()
