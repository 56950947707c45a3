# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/execution/runner.py
from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from nvr_installer.errors import CommandError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]

log = logging.getLogger("nvr_installer")


@dataclass(frozen=True)
class ExecutionOutcome:
    """Exit status plus captured output of one external command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)


@dataclass
class CommandRunner:
    """
    The only place the installer starts processes.

    - capture (default): stdout/stderr captured and logged after exit
    - stream: output lines echoed to the log as they arrive, still captured
    - interactive: inherits the terminal, nothing captured (editors)
    """

    logger: Optional[logging.Logger] = None
    label: Optional[str] = None

    def _log(self, msg: str, level: int = logging.DEBUG) -> None:
        (self.logger or log).log(level, msg)

    def run(
        self,
        cmd: Cmd,
        *,
        check: bool = False,
        input: Optional[str] = None,
        cwd: Optional[Path] = None,
        env: Optional[dict[str, str]] = None,
        stream: bool = False,
        interactive: bool = False,
        label: Optional[str] = None,
    ) -> ExecutionOutcome:
        label = label or self.label or "cmd"
        argv = tuple(str(c) for c in cmd)

        self._log(f"[{label}] $ {' '.join(argv)}", logging.INFO)

        start = time.time()
        try:
            if interactive:
                cp = subprocess.run(list(argv), cwd=cwd, env=env, check=False)
                stdout, stderr = "", ""
            elif stream:
                stdout, stderr, rc = self._stream(argv, label, cwd=cwd, env=env, input=input)
                cp = subprocess.CompletedProcess(list(argv), rc, stdout, stderr)
            else:
                cp = subprocess.run(
                    list(argv),
                    input=input,
                    capture_output=True,
                    text=True,
                    check=False,
                    cwd=cwd,
                    env=env,
                )
                stdout, stderr = cp.stdout or "", cp.stderr or ""
        except FileNotFoundError as e:
            # Missing executable: surface it the same way as a failed command.
            cp = subprocess.CompletedProcess(list(argv), 127, "", str(e))
            stdout, stderr = "", str(e)

        duration = time.time() - start
        outcome = ExecutionOutcome(
            argv=argv,
            returncode=cp.returncode,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
        )

        if stdout and not stream:
            self._log(f"[{label}][stdout]\n{stdout.rstrip()}")
        if stderr:
            self._log(f"[{label}][stderr]\n{stderr.rstrip()}")
        self._log(f"[{label}][exit {outcome.returncode}] ({duration:.2f}s)")

        if check and not outcome.ok:
            raise CommandError(outcome)
        return outcome

    def _stream(self, argv, label, *, cwd, env, input):
        process = subprocess.Popen(
            list(argv),
            stdin=subprocess.PIPE if input is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            cwd=cwd,
            env=env,
        )
        if input is not None:
            process.stdin.write(input)
            process.stdin.close()

        lines: list[str] = []
        for line in iter(process.stdout.readline, ""):
            self._log(f"[{label}] {line.rstrip()}", logging.INFO)
            lines.append(line)
        process.wait()
        return "".join(lines), "", process.returncode
