# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/compose/cli_runner.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from nvr_installer.execution.runner import CommandRunner, ExecutionOutcome


class ComposeCliRunner:
    """
    A pragmatic wrapper around `docker compose` (v2 CLI plugin).
    - Mirrors human CLI usage: 'pull', 'build', 'up -d', 'ps', 'docker login'.
    - Never raises on a non-zero exit: the activator decides what is fatal.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, docker: str = "docker", stream: bool = True):
        self.runner = runner or CommandRunner(label="compose")
        self.docker = docker
        self.stream = stream

    # ------------------------- internal helpers -------------------------

    def _base(self, definition: Path) -> List[str]:
        return [self.docker, "compose", "-f", str(definition)]

    def _run(self, argv: List[str], stream: Optional[bool] = None, cwd: Optional[Path] = None) -> ExecutionOutcome:
        # pull/build/up print progress for minutes; stream it to the log
        return self.runner.run(
            argv,
            stream=self.stream if stream is None else stream,
            cwd=cwd,
            label="compose",
        )

    # ------------------------- ContainerRuntime -------------------------

    def pull(self, definition: Path) -> ExecutionOutcome:
        return self._run(self._base(definition) + ["pull"], cwd=definition.parent)

    def build(self, definition: Path) -> ExecutionOutcome:
        return self._run(self._base(definition) + ["build"], cwd=definition.parent)

    def up(self, definition: Path) -> ExecutionOutcome:
        return self._run(self._base(definition) + ["up", "-d"], cwd=definition.parent)

    def status(self, definition: Path) -> str:
        out = self._run(self._base(definition) + ["ps"], stream=False, cwd=definition.parent)
        return out.stdout if out.ok else (out.stdout + out.stderr)

    def login(self, registry: str, user: str, secret: str) -> ExecutionOutcome:
        # secret goes over stdin, never argv (argv is logged)
        return self.runner.run(
            [self.docker, "login", registry, "-u", user, "--password-stdin"],
            input=secret + "\n",
            label="docker-login",
        )

    def logs_command(self, definition: Path) -> str:
        return f'{self.docker} compose -f "{definition}" logs -f'
