# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/host/apt.py
from __future__ import annotations

import os
from typing import List, Optional, Sequence

from nvr_installer.errors import PackageInstallError
from nvr_installer.execution.runner import CommandRunner


class AptPackageManager:
    """apt-get, forced onto IPv4 (dual-stack mirrors regularly hang on v6)."""

    def __init__(self, runner: Optional[CommandRunner] = None, apt: str = "apt-get"):
        self.runner = runner or CommandRunner(label="apt")
        self.apt = apt

    def _base(self) -> List[str]:
        return [self.apt, "-o", "Acquire::ForceIPv4=true"]

    def _run(self, argv: List[str]) -> None:
        out = self.runner.run(
            self._base() + argv,
            stream=True,
            env={**os.environ, "DEBIAN_FRONTEND": "noninteractive"},
            label="apt",
        )
        if not out.ok:
            raise PackageInstallError(out, f"apt-get {argv[0]} failed (rc={out.returncode})")

    def refresh_index(self) -> None:
        self._run(["update", "-y"])

    def install_packages(self, names: Sequence[str]) -> None:
        if not names:
            return
        self._run(["install", "-y", *names])
