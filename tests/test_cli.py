"""
tests/test_cli.py -- End-to-end tests for the main.py admin CLI.

Each test runs against a throwaway SQLite file under tmp_path so separate
main() invocations share state the way separate shell commands would.
"""

from __future__ import annotations

import pytest

from core.config import Settings
from main import EXIT_EXPIRED, EXIT_FAILED, EXIT_OK, main


@pytest.fixture
def run(tmp_path, capsys):
    """Return a helper that runs the CLI and yields (exit_code, stdout lines)."""
    settings = Settings(secret_key="cli-test-secret-" + "x" * 32, debug=False)
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(*argv: str) -> tuple[int, list[str]]:
        code = main(["--database-url", db_url, *argv], settings=settings)
        out = capsys.readouterr().out
        return code, [line for line in out.splitlines() if line.strip()]

    return _run


def _issue(run, *extra: str) -> str:
    code, lines = run("issue", "--user", "alice", "--client", "web", *extra)
    assert code == EXIT_OK
    return lines[-1]


@pytest.fixture
def seeded(run):
    assert run("client", "add", "web")[0] == EXIT_OK
    assert run("user", "add", "alice")[0] == EXIT_OK
    return run


class TestSetup:
    def test_client_add_and_show(self, run):
        code, lines = run("client", "add", "mobile")
        assert code == EXIT_OK
        assert lines == ["Client 1: mobile"]
        assert run("client", "show", "1")[1] == ["Client 1: mobile"]
        assert run("client", "show", "mobile")[1] == ["Client 1: mobile"]

    def test_unknown_client(self, run):
        code, lines = run("client", "show", "nope")
        assert code == EXIT_FAILED
        assert "No client matches" in lines[0]

    def test_duplicate_user(self, seeded):
        code, lines = seeded("user", "add", "alice")
        assert code == EXIT_FAILED
        assert "alice" in lines[0]


class TestSessions:
    def test_issue_verify_revoke(self, seeded):
        token = _issue(seeded, "--no-expiry")

        code, lines = seeded("verify", token)
        assert code == EXIT_OK
        assert "user alice" in lines[0]

        assert seeded("revoke", token)[0] == EXIT_OK
        code, lines = seeded("verify", token)
        assert code == EXIT_FAILED
        assert "does not match an active session" in lines[0]

    def test_issue_reports_expiry(self, seeded):
        code, lines = seeded("issue", "--user", "alice", "--client", "web", "--no-expiry")
        assert "(expires: never)" in lines[0]
        code, lines = seeded("issue", "--user", "1", "--client", "1", "--expires", "2099-01-01T00:00:00")
        assert code == EXIT_OK
        assert "2099-01-01T00:00:00+00:00" in lines[0]

    def test_expired_token(self, seeded):
        token = _issue(seeded, "--expires", "2000-01-01T00:00:00")
        code, lines = seeded("verify", token)
        assert code == EXIT_EXPIRED
        assert "expired" in lines[0]

    def test_invalid_token(self, seeded):
        code, lines = seeded("verify", "not-a-token")
        assert code == EXIT_FAILED
        assert "invalid" in lines[0]

    def test_issue_for_unknown_user(self, seeded):
        code, lines = seeded("issue", "--user", "mallory", "--client", "web")
        assert code == EXIT_FAILED
        assert "No user matches" in lines[0]

    @pytest.mark.parametrize("command", ["sessions", "purge"])
    def test_oversized_numeric_user(self, seeded, command):
        code, lines = seeded(command, "99999999999999999999")
        assert code == EXIT_FAILED
        assert "No user matches" in lines[0]

    def test_oversized_numeric_client(self, seeded):
        code, lines = seeded("client", "show", "99999999999999999999")
        assert code == EXIT_FAILED
        assert "No client matches" in lines[0]

    def test_list_and_purge(self, seeded):
        _issue(seeded)
        _issue(seeded)
        code, lines = seeded("sessions", "alice")
        assert code == EXIT_OK
        assert len(lines) == 2

        assert seeded("purge", "alice")[1] == ["All sessions for alice removed."]
        assert seeded("sessions", "alice")[1] == ["No sessions for alice."]
        assert seeded("purge", "alice")[1] == ["No sessions for alice."]


def test_no_command_prints_help(capsys):
    assert main([]) == EXIT_OK
    assert "usage: sessionauth" in capsys.readouterr().out
