# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/prompts/terminal.py
from __future__ import annotations

from typing import Optional

import typer


class TerminalInputSource:
    """
    Operator input via typer/click prompts.
    Empty answers are returned as-is; callers own defaulting and re-prompting.
    """

    def prompt_line(self, label: str, default: Optional[str] = None) -> str:
        if default is not None:
            return typer.prompt(f"   {label}", default=default)
        return typer.prompt(f"   {label}", default="", show_default=False)

    def prompt_secret(self, label: str) -> str:
        return typer.prompt(f"   {label} (input will be hidden)", hide_input=True)

    def confirm(self, label: str, default: bool = False) -> bool:
        return typer.confirm(label, default=default)
