from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from prfinder.aggregate import RawSources
from prfinder.cli import FZF_HINT, main, resolve_color, resolve_interactive
from prfinder.github import AuthenticationError, PullRequest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("PR_FINDER_CONFIG", str(tmp_path / "prfinder.yml"))
    monkeypatch.delenv("PR_FINDER_LIMIT", raising=False)


@pytest.fixture
def client():
    client = Mock()
    client.get_current_user.return_value = "alice"
    with patch("prfinder.cli.GitHubClient", return_value=client):
        yield client


def pr(number: int) -> PullRequest:
    return PullRequest(
        url=f"https://github.com/octo/hello/pull/{number}",
        repo="octo/hello",
        number=number,
        title=f"PR {number}",
        author="bob",
        draft=False,
        updated_at="2024-06-15T12:00:00Z",
    )


def test_help():
    result = CliRunner().invoke(main, ["-h"])
    assert result.exit_code == 0
    assert "--owner" in result.output
    assert "--no-interactive" in result.output
    assert "preview" not in result.output


def test_unknown_option_fails():
    result = CliRunner().invoke(main, ["--bogus"])
    assert result.exit_code != 0
    assert "No such option" in result.output


def test_report_with_zero_prs_exits_zero(client):
    with patch("prfinder.cli.fetch_all", return_value=RawSources()), \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, [])

    assert result.exit_code == 0
    assert "PR Finder: open pull requests for alice" in result.output
    assert result.output.count("No PRs found.") == 4
    assert "Total: 0 open PRs" in result.output


def test_report_dedups_sections(client):
    raw = RawSources(authored=[pr(1)], review_requested=[pr(1), pr(2)], repo_access=[pr(2), pr(3)])

    with patch("prfinder.cli.fetch_all", return_value=raw), \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["--no-interactive", "--owner", "octo"])

    assert result.exit_code == 0
    assert "for alice in octo" in result.output
    assert "Authored by you (1)" in result.output
    assert "Review requested (1)" in result.output
    assert "In your repositories (1)" in result.output
    assert "Total: 3 open PRs" in result.output


def test_cli_flags_override_config(client, tmp_path):
    (tmp_path / "prfinder.yml").write_text("limit: 10\nowner: someone\n")

    with patch("prfinder.cli.fetch_all", return_value=RawSources()) as fetch, \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["--owner=octo", "--limit", "5"])

    assert result.exit_code == 0
    fetch_config = fetch.call_args.args[1]
    assert fetch_config.owner == "octo"
    assert fetch_config.limit == 5


def test_interactive_without_fzf_is_fatal(client):
    with patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["--interactive"])

    assert result.exit_code == 1
    assert "requires fzf" in result.output


def test_auth_failure_is_fatal():
    client = Mock()
    client.get_current_user.side_effect = AuthenticationError("bad", 401)

    with patch("prfinder.cli.GitHubClient", return_value=client), \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["--no-interactive"])

    assert result.exit_code == 1
    assert "not authenticated" in result.output


def test_bad_config_is_fatal(tmp_path):
    (tmp_path / "prfinder.yml").write_text("limit: -3\n")

    result = CliRunner().invoke(main, [])

    assert result.exit_code == 1
    assert "limit must be positive" in result.output


def test_forced_interactive_runs_session(client):
    picker = Mock()
    picker.select.return_value = None

    with patch("prfinder.cli.fetch_all", return_value=RawSources(authored=[pr(1)])), \
         patch("prfinder.cli.find_picker", return_value=picker):
        result = CliRunner().invoke(main, ["-i"])

    assert result.exit_code == 0
    picker.select.assert_called_once()
    entries = picker.select.call_args.args[0]
    assert [e.key for e in entries] == [pr(1).url]
    assert "Total:" not in result.output


def test_no_color_output_is_plain(client):
    with patch("prfinder.cli.fetch_all", return_value=RawSources(authored=[pr(1)])), \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["--no-color"])

    assert "\x1b[" not in result.output


def test_open_subcommand():
    with patch("prfinder.cli.webbrowser.open") as open_browser:
        result = CliRunner().invoke(main, ["open", "https://github.com/octo/hello/pull/1"])

    assert result.exit_code == 0
    open_browser.assert_called_once_with("https://github.com/octo/hello/pull/1")


def test_preview_subcommand(client):
    from prfinder.github import MergeDecision, MergeStatus

    client.get_merge_status.return_value = MergeStatus(
        url="https://github.com/octo/hello/pull/1",
        repo="octo/hello",
        number=1,
        title="PR 1",
        decision=MergeDecision.MERGEABLE,
        merge_state="CLEAN",
    )

    result = CliRunner().invoke(main, ["preview", "https://github.com/octo/hello/pull/1"])

    assert result.exit_code == 0
    assert "octo/hello #1" in result.output
    assert "mergeable" in result.output


@pytest.mark.parametrize(
    "mode, has_picker, is_tty, expected",
    [
        ("auto", True, True, True),
        ("auto", True, False, False),
        ("auto", False, True, False),
        ("force", True, False, True),
        ("off", True, True, False),
    ],
)
def test_resolve_interactive(mode, has_picker, is_tty, expected):
    picker = Mock() if has_picker else None
    assert resolve_interactive(mode, picker, is_tty) is expected


def test_resolve_interactive_force_without_picker_exits():
    with pytest.raises(SystemExit) as exc:
        resolve_interactive("force", None, True)
    assert exc.value.code == 1


@pytest.mark.parametrize(
    "mode, is_tty, expected",
    [
        ("auto", True, True),
        ("auto", False, False),
        ("always", False, True),
        ("never", True, False),
    ],
)
def test_resolve_color(mode, is_tty, expected):
    assert resolve_color(mode, is_tty) is expected


def test_interactive_flags_are_mutually_exclusive(client):
    with patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, ["-i", "--no-interactive"])

    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_limit_above_search_cap_is_usage_error():
    result = CliRunner().invoke(main, ["--limit", "1001"])

    assert result.exit_code == 2
    assert "--limit" in result.output


def test_fzf_hint_on_terminal_without_fzf(client):
    with patch("prfinder.cli.fetch_all", return_value=RawSources()), \
         patch("prfinder.cli.find_picker", return_value=None), \
         patch("prfinder.cli.stdout_is_tty", return_value=True):
        result = CliRunner().invoke(main, [])

    assert result.exit_code == 0
    assert FZF_HINT in result.output


def test_fzf_hint_suppressed_when_interactive_off(client):
    with patch("prfinder.cli.fetch_all", return_value=RawSources()), \
         patch("prfinder.cli.find_picker", return_value=None), \
         patch("prfinder.cli.stdout_is_tty", return_value=True):
        result = CliRunner().invoke(main, ["--no-interactive"])

    assert result.exit_code == 0
    assert FZF_HINT not in result.output


def test_fzf_hint_suppressed_when_not_a_terminal(client):
    with patch("prfinder.cli.fetch_all", return_value=RawSources()), \
         patch("prfinder.cli.find_picker", return_value=None):
        result = CliRunner().invoke(main, [])

    assert FZF_HINT not in result.output


def test_terminal_auto_mode_uses_picker(client):
    picker = Mock()
    picker.select.return_value = None

    with patch("prfinder.cli.fetch_all", return_value=RawSources(authored=[pr(1)])), \
         patch("prfinder.cli.find_picker", return_value=picker), \
         patch("prfinder.cli.stdout_is_tty", return_value=True):
        result = CliRunner().invoke(main, [])

    assert result.exit_code == 0
    picker.select.assert_called_once()
    assert "Total:" not in result.output
