# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/observers/console.py
import typer

from .events import BaseEvent, StageCompleted, StageFailed, StageSkipped, StageStarted


class ConsoleObserver:
    """Operator-facing one-liners for stage transitions."""

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, StageStarted):
            typer.echo(f"\n[{event.stage}] ...")
        elif isinstance(event, StageSkipped):
            typer.echo(f"[{event.stage}] already satisfied: {event.reason}")
        elif isinstance(event, StageCompleted):
            typer.secho(f"[{event.stage}] {event.detail}", fg="green")
        elif isinstance(event, StageFailed):
            typer.secho(f"[{event.stage}] failed: {event.error}", fg="red", err=True)
