# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/activation.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from nvr_installer.config.models import RegistrySpec
from nvr_installer.errors import CommandError
from nvr_installer.execution.runner import ExecutionOutcome
from nvr_installer.interfaces import ContainerRuntime, InputSource
from nvr_installer.observers.dispatcher import EventBus
from nvr_installer.observers.events import CommandFailed
from .models import ActivationReport, ComposeDefinition, EnvironmentFile

log = logging.getLogger("nvr_installer")


class StackActivator:
    """
    Resolves images and starts the stack.

    pull ok                      -> up
    pull failed, has credentials -> login, pull again (second failure fatal) -> up
    pull failed, no credentials  -> build (failure fatal) -> up

    image_strategy="build" skips the pull entirely.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        *,
        registry: Optional[RegistrySpec] = None,
        input_source: Optional[InputSource] = None,
        interactive: bool = True,
        image_strategy: str = "pull",
        skip_build_fallback: bool = False,
        settle_seconds: float = 5.0,
        ui_port: int = 3000,
        sleep: Callable[[float], None] = time.sleep,
        bus: Optional[EventBus] = None,
        event_ctx: Optional[dict] = None,
    ):
        self.runtime = runtime
        self.registry = registry or RegistrySpec()
        self.input = input_source
        self.interactive = interactive
        self.image_strategy = image_strategy
        self.skip_build_fallback = skip_build_fallback
        self.settle_seconds = settle_seconds
        self.ui_port = ui_port
        self.sleep = sleep
        self.bus = bus or EventBus()
        self.event_ctx = event_ctx or {}

    # ------------------------------------------------------------------
    # public
    # ------------------------------------------------------------------
    def activate(self, compose: ComposeDefinition, env_file: EnvironmentFile) -> ActivationReport:
        definition = compose.path
        bind_address = env_file.host_ip()
        report = ActivationReport(
            compose_file=definition,
            bind_address=bind_address,
            url=f"http://{bind_address}:{self.ui_port}",
            logs_command=self._logs_command(definition),
        )

        if self.image_strategy == "build":
            log.info("Image strategy 'build': building images locally")
            self._build(definition)
            report.built = True
        else:
            self._resolve_images(definition, report)

        log.info("Starting the stack (up -d)")
        self._require(self.runtime.up(definition), "docker compose up failed")

        if self.settle_seconds:
            log.info("Waiting %ss for containers to initialise", self.settle_seconds)
            self.sleep(self.settle_seconds)
        report.status_text = self.runtime.status(definition)
        return report

    # ------------------------------------------------------------------
    # image resolution
    # ------------------------------------------------------------------
    def _resolve_images(self, definition: Path, report: ActivationReport) -> None:
        log.info("Attempting to pull images referenced in %s", definition)
        outcome = self.runtime.pull(definition)
        if outcome.ok:
            log.info("All images pulled successfully")
            report.pulled = True
            return

        log.warning("Pull failed (rc=%s), images are probably private", outcome.returncode)
        self._emit_failed(outcome, recoverable=True)

        credentials = self._credentials()
        if credentials is not None:
            user, secret = credentials
            self._login(user, secret)
            report.authenticated = True
            log.info("Retrying image pull after login")
            self._require(self.runtime.pull(definition), "image pull failed after authentication")
            report.pulled = True
            return

        if self.skip_build_fallback:
            raise CommandError(outcome, "image pull failed and build fallback is disabled")

        log.warning("Skipping pull, building the images locally from their Dockerfiles")
        self._build(definition)
        report.built = True

    def _credentials(self) -> Optional[tuple[str, str]]:
        if not self.interactive:
            if self.registry.has_credentials():
                log.info("Using configured credentials for %s", self.registry.url)
                return self.registry.username, self.registry.token
            return None

        if self.input is None:
            return None
        if not self.input.confirm(
            f"Do you have credentials for {self.registry.url} (e.g. a token with read:packages)?",
            default=False,
        ):
            return None

        user = self.input.prompt_line("Registry username", self.registry.username).strip()
        while not user:
            user = self.input.prompt_line("Registry username (cannot be empty)").strip()
        secret = self.input.prompt_secret("Registry token")
        return user, secret

    def _login(self, user: str, secret: str) -> None:
        log.info("Logging in to %s as %s", self.registry.url, user)
        self._require(self.runtime.login(self.registry.url, user, secret), f"login to {self.registry.url} failed")

    def _build(self, definition: Path) -> None:
        self._require(self.runtime.build(definition), "local image build failed")
        log.info("Local build completed")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _require(self, outcome: ExecutionOutcome, message: str) -> ExecutionOutcome:
        if not outcome.ok:
            self._emit_failed(outcome, recoverable=False)
            raise CommandError(outcome, f"{message} (rc={outcome.returncode}): {outcome.command}")
        return outcome

    def _emit_failed(self, outcome: ExecutionOutcome, *, recoverable: bool) -> None:
        if not self.event_ctx:
            return
        self.bus.emit(
            CommandFailed(
                **self.event_ctx,
                command=outcome.command,
                returncode=outcome.returncode,
                recoverable=recoverable,
            )
        )

    def _logs_command(self, definition: Path) -> str:
        builder = getattr(self.runtime, "logs_command", None)
        if callable(builder):
            return builder(definition)
        return f'docker compose -f "{definition}" logs -f'


def format_summary(report: ActivationReport) -> str:
    lines = [
        "=" * 62,
        "Installation complete!",
        f"Open your browser at:   {report.url}",
        "-" * 62,
        "Follow the logs with:",
        f"  {report.logs_command}",
        "=" * 62,
    ]
    return "\n".join(lines)
