# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/git/cli_runner.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from nvr_installer.execution.runner import CommandRunner


class GitCliRunner:
    """
    Thin wrapper around the `git` CLI.
    - clone / fetch --all / reset --hard, nothing else
    - Testable by mocking subprocess.run
    """

    def __init__(self, runner: Optional[CommandRunner] = None, git: str = "git"):
        self.runner = runner or CommandRunner(label="git")
        self.git = git

    def _run(self, argv: List[str]) -> None:
        self.runner.run([self.git] + argv, check=True, label="git")

    def clone(self, url: str, path: Path, branch: Optional[str] = None) -> None:
        argv = ["clone"]
        if branch:
            argv += ["--branch", branch]
        self._run(argv + [url, str(path)])

    def fetch_all(self, path: Path) -> None:
        self._run(["-C", str(path), "fetch", "--all"])

    def reset_hard(self, path: Path, ref: str) -> None:
        self._run(["-C", str(path), "reset", "--hard", ref])
