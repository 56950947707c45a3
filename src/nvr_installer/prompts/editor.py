# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/prompts/editor.py
from __future__ import annotations

import os
import shlex
import shutil
from pathlib import Path
from typing import List, Optional

from nvr_installer.execution.runner import CommandRunner


def editor_command(env: Optional[dict] = None) -> List[str]:
    """nano when installed, else $EDITOR, else vi."""
    if shutil.which("nano"):
        return ["nano"]
    env = os.environ if env is None else env
    editor = env.get("EDITOR", "").strip()
    return shlex.split(editor) if editor else ["vi"]


class TerminalEditor:
    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner(label="editor")

    def open(self, path: Path) -> None:
        # an editor quitting non-zero is not a provisioning failure
        self.runner.run(editor_command() + [str(path)], interactive=True, label="editor")
