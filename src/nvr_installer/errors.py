# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/errors.py
from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from nvr_installer.execution.runner import ExecutionOutcome


class InstallerError(RuntimeError):
    """Base class for installer failures."""


class CommandError(InstallerError):
    """Raised when an external command exits non-zero."""

    def __init__(self, outcome: "ExecutionOutcome", message: Optional[str] = None):
        self.outcome = outcome
        super().__init__(message or f"command failed (rc={outcome.returncode}): {outcome.command}")

    def details(self) -> str:
        lines = [str(self), f"exit status: {self.outcome.returncode}"]
        if self.outcome.stdout.strip():
            lines.append(f"stdout:\n{self.outcome.stdout.rstrip()}")
        if self.outcome.stderr.strip():
            lines.append(f"stderr:\n{self.outcome.stderr.rstrip()}")
        return "\n".join(lines)


class PackageInstallError(CommandError):
    """Raised when the package manager fails."""


class MissingValueError(InstallerError):
    """Raised when a required value cannot be prompted for."""

    def __init__(self, key: str, hint: str = ""):
        self.key = key
        msg = f"missing required value for {key} (non-interactive mode)"
        if hint:
            msg += f": {hint}"
        super().__init__(msg)


class ComposeNotFoundError(InstallerError):
    """Raised when no compose definition can be found or synthesized."""


class LockedError(InstallerError):
    """Raised when another installer run holds the target lock."""


class ProvisionError(InstallerError):
    """A stage failure, tagged with the stage that raised it."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"[{stage}] {cause}")

    def details(self) -> str:
        if isinstance(self.cause, CommandError):
            body = self.cause.details()
        else:
            body = str(self.cause)
        return f"stage '{self.stage}' failed\n{body}"
