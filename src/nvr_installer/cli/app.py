# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from nvr_installer.compose.cli_runner import ComposeCliRunner
from nvr_installer.config.loader import load_config
from nvr_installer.errors import ProvisionError
from nvr_installer.execution.runner import CommandRunner
from nvr_installer.git.cli_runner import GitCliRunner
from nvr_installer.host.apt import AptPackageManager
from nvr_installer.host.preparer import HostPreparer
from nvr_installer.logging.log import default_log_dir, init_logging
from nvr_installer.observers.console import ConsoleObserver
from nvr_installer.observers.dispatcher import EventBus
from nvr_installer.observers.jsonfile import JsonFileObserver
from nvr_installer.observers.logger import LoggerObserver
from nvr_installer.prompts.editor import TerminalEditor
from nvr_installer.prompts.terminal import TerminalInputSource
from nvr_installer.provision.activation import format_summary
from nvr_installer.provision.workflow import Provisioner


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="RTSP NVR dashboard installer", add_completion=False)

EXIT_PROVISION_FAILED = 1


def build_overrides(
    *,
    repo_url: Optional[str],
    target_dir: Optional[Path],
    branch: Optional[str],
    non_interactive: bool,
    skip_build_fallback: bool,
    image_strategy: Optional[str],
    registry: Optional[str],
    no_edit: bool,
    no_synthesize: bool,
    prepare_host: bool,
    settle_seconds: Optional[float],
) -> dict:
    """
    CLI flags as a config overlay. Flags left at their defaults are omitted
    (None) so the config file keeps control of them.
    """
    return {
        "repo_url": repo_url,
        "target_dir": str(target_dir) if target_dir else None,
        "branch": branch,
        "interactive": False if non_interactive else None,
        "open_editor": False if no_edit else None,
        "skip_build_fallback": True if skip_build_fallback else None,
        "image_strategy": image_strategy,
        "synthesize_compose": False if no_synthesize else None,
        "prepare_host": True if prepare_host else None,
        "settle_seconds": settle_seconds,
        "registry": {"url": registry},
    }


# ------------------------------------------------------------------------------
# Install command
# ------------------------------------------------------------------------------

@app.command()
def install(
    repo_url: Optional[str] = typer.Option(None, "--repo-url", help="Dashboard git repository"),
    target_dir: Optional[Path] = typer.Option(None, "--target-dir", help="Checkout directory"),
    branch: Optional[str] = typer.Option(None, "--branch", help="Branch to track (default: main)"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    non_interactive: bool = typer.Option(
        False,
        "--non-interactive",
        help="Never prompt; fail when a required value is missing",
    ),
    skip_build_fallback: bool = typer.Option(
        False,
        "--skip-build-fallback",
        help="Fail instead of building images locally when the pull fails",
    ),
    image_strategy: Optional[str] = typer.Option(
        None,
        "--image-strategy",
        help="pull (pull, fall back to build) or build (always build locally)",
    ),
    registry: Optional[str] = typer.Option(None, "--registry", help="Registry to log in to (default: ghcr.io)"),
    no_edit: bool = typer.Option(False, "--no-edit", help="Do not open .env in an editor"),
    no_synthesize: bool = typer.Option(
        False,
        "--no-synthesize",
        help="Fail instead of generating a minimal compose file",
    ),
    prepare_host: bool = typer.Option(
        False,
        "--prepare-host",
        help="Install git, Docker Engine and the Compose plugin first (Ubuntu, root)",
    ),
    settle_seconds: Optional[float] = typer.Option(None, "--settle-seconds"),
    debug: bool = typer.Option(False, "--debug"),
):
    if image_strategy is not None and image_strategy not in ("pull", "build"):
        raise typer.BadParameter("must be 'pull' or 'build'", param_hint="--image-strategy")
    if config is not None and not config.is_file():
        raise typer.BadParameter(f"{config} does not exist", param_hint="--config")

    overrides = build_overrides(
        repo_url=repo_url,
        target_dir=target_dir,
        branch=branch,
        non_interactive=non_interactive,
        skip_build_fallback=skip_build_fallback,
        image_strategy=image_strategy,
        registry=registry,
        no_edit=no_edit,
        no_synthesize=no_synthesize,
        prepare_host=prepare_host,
        settle_seconds=settle_seconds,
    )
    try:
        cfg = load_config(config, overrides=overrides)
    except (ValidationError, ValueError) as exc:
        raise typer.BadParameter(str(exc))

    logger, run_id, log_path = init_logging(verbose=debug)

    typer.echo("")
    typer.secho("NVR Dashboard Installation Started", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Target   : {cfg.target_dir}")
    typer.echo(f"  Logs     : {log_path}")

    bus = EventBus(
        observers=[
            ConsoleObserver(),
            LoggerObserver(logger),
            JsonFileObserver(default_log_dir() / f"{run_id}.jsonl"),
        ]
    )

    runner = CommandRunner(logger=logger)
    interactive = cfg.interactive
    provisioner = Provisioner(
        cfg,
        git=GitCliRunner(runner),
        runtime=ComposeCliRunner(runner),
        input_source=TerminalInputSource() if interactive else None,
        editor=TerminalEditor(runner) if interactive else None,
        host_preparer=HostPreparer(AptPackageManager(runner), runner) if cfg.prepare_host else None,
        bus=bus,
        run_id=run_id,
    )

    try:
        report = provisioner.run()
    except ProvisionError as exc:
        logger.error(exc.details())
        typer.secho(f"\nInstaller stopped: {exc.details()}", fg="red", err=True)
        typer.echo(f"Full log: {log_path}", err=True)
        raise typer.Exit(EXIT_PROVISION_FAILED)

    activation = report.activation
    typer.echo("\nCurrent container status")
    typer.echo(activation.status_text.rstrip() or "(no status output)")
    typer.secho("\n" + format_summary(activation), fg="green")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
