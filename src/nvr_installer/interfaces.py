# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/interfaces.py

from __future__ import annotations
from pathlib import Path
from typing import Optional, Protocol, Sequence

from nvr_installer.execution.runner import ExecutionOutcome


class PackageManager(Protocol):
    """Host package manager. Raises PackageInstallError on failure."""

    def refresh_index(self) -> None: ...

    def install_packages(self, names: Sequence[str]) -> None: ...


class ContainerRuntime(Protocol):
    """
    Control plane for a compose definition.
    Every call returns the outcome; callers decide what is fatal.
    """

    def pull(self, definition: Path) -> ExecutionOutcome: ...

    def build(self, definition: Path) -> ExecutionOutcome: ...

    def up(self, definition: Path) -> ExecutionOutcome: ...

    def status(self, definition: Path) -> str: ...

    def login(self, registry: str, user: str, secret: str) -> ExecutionOutcome: ...


class VersionControl(Protocol):
    """Raises CommandError on any failure."""

    def clone(self, url: str, path: Path, branch: Optional[str] = None) -> None: ...

    def fetch_all(self, path: Path) -> None: ...

    def reset_hard(self, path: Path, ref: str) -> None: ...


class InputSource(Protocol):
    """Where operator answers come from (terminal, or a script in tests)."""

    def prompt_line(self, label: str, default: Optional[str] = None) -> str: ...

    def prompt_secret(self, label: str) -> str: ...

    def confirm(self, label: str, default: bool = False) -> bool: ...


class Editor(Protocol):
    def open(self, path: Path) -> None: ...
