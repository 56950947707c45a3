import subprocess
from pathlib import Path

import pytest

from nvr_installer.errors import CommandError
from nvr_installer.git.cli_runner import GitCliRunner


class DummyCP:
    def __init__(self, rc=0, out="", err=""):
        self.returncode = rc
        self.stdout = out
        self.stderr = err


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_run(argv, **kw):
        recorded.append(argv)
        return DummyCP(0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    return recorded


def test_clone_with_branch(calls):
    GitCliRunner().clone("https://example.test/r.git", Path("/opt/r"), "main")
    assert calls[0] == ["git", "clone", "--branch", "main", "https://example.test/r.git", "/opt/r"]


def test_fetch_and_reset(calls):
    g = GitCliRunner()
    g.fetch_all(Path("/opt/r"))
    g.reset_hard(Path("/opt/r"), "origin/main")
    assert calls[0] == ["git", "-C", "/opt/r", "fetch", "--all"]
    assert calls[1] == ["git", "-C", "/opt/r", "reset", "--hard", "origin/main"]


def test_failure_raises(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda argv, **kw: DummyCP(128, err="fatal: repository not found"))
    with pytest.raises(CommandError) as ei:
        GitCliRunner().clone("https://example.test/missing.git", Path("/opt/r"))
    assert ei.value.outcome.returncode == 128
    assert "repository not found" in ei.value.details()
