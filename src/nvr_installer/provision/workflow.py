# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/workflow.py
from __future__ import annotations

import logging
import time
from contextlib import ExitStack, contextmanager
from typing import Callable, Optional, TypeVar

from nvr_installer.config.models import ProvisionConfig
from nvr_installer.errors import ProvisionError
from nvr_installer.interfaces import ContainerRuntime, Editor, InputSource, VersionControl
from nvr_installer.observers.dispatcher import EventBus
from nvr_installer.observers.events import (
    ProvisionSummary,
    StageCompleted,
    StageFailed,
    StageSkipped,
    StageStarted,
    new_ctx,
)
from .activation import StackActivator
from .compose import ComposeLocator
from .environment import EnvironmentResolver
from .lock import target_lock
from .models import EnvironmentFile, ProvisionReport
from .repository import sync_repository

log = logging.getLogger("nvr_installer")

T = TypeVar("T")

STAGE_LOCK = "lock"
STAGE_HOST = "host"
STAGE_REPOSITORY = "repository"
STAGE_ENVIRONMENT = "environment"
STAGE_COMPOSE = "compose"
STAGE_ACTIVATION = "activation"


class Provisioner:
    """
    Runs the stages strictly in order:

      [host] -> repository -> environment -> compose -> activation

    Each stage re-checks the filesystem from scratch, so re-running on a
    provisioned (or half-provisioned) host converges to the same state.
    Any stage failure is re-raised as ProvisionError(stage, cause).
    """

    def __init__(
        self,
        config: ProvisionConfig,
        *,
        git: VersionControl,
        runtime: ContainerRuntime,
        input_source: Optional[InputSource] = None,
        editor: Optional[Editor] = None,
        host_preparer=None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = config
        self.git = git
        self.runtime = runtime
        self.input = input_source
        self.editor = editor
        self.host_preparer = host_preparer
        self.bus = bus or EventBus()
        self.event_ctx = new_ctx(target=str(config.target_dir), run_id=run_id)
        self.sleep = sleep
        self._stage_started_at = time.monotonic()

    # ------------------------------------------------------------------
    def run(self) -> ProvisionReport:
        with ExitStack() as stack:
            with self._stage_guard(STAGE_LOCK):
                stack.enter_context(target_lock(self.cfg.lock_path))
            return self._run_locked()

    def _run_locked(self) -> ProvisionReport:
        cfg = self.cfg
        target = cfg.target_dir

        if cfg.prepare_host:
            if self.host_preparer is None:
                raise ProvisionError(STAGE_HOST, RuntimeError("host preparation requested but no preparer configured"))
            done = self._stage(STAGE_HOST, lambda: ", ".join(self.host_preparer.run()))
            self._completed(STAGE_HOST, f"prepared: {done}")

        checkout = self._stage(
            STAGE_REPOSITORY,
            lambda: sync_repository(self.git, cfg.repo_url, target, cfg.branch),
        )
        report = ProvisionReport(checkout=checkout, stages=[STAGE_REPOSITORY])
        self._completed(STAGE_REPOSITORY, f"checkout ready at {target}")

        resolver = EnvironmentResolver(
            defaults=cfg.env,
            input_source=self.input,
            interactive=cfg.interactive,
            editor=self.editor if cfg.open_editor else None,
        )
        env = self._stage(STAGE_ENVIRONMENT, lambda: resolver.resolve(target))
        report.env_source = env.source
        report.stages.append(STAGE_ENVIRONMENT)
        if env.created:
            self._completed(STAGE_ENVIRONMENT, f"{env.path.name} from {env.source}")
        else:
            self._skipped(STAGE_ENVIRONMENT, f"{env.path} exists")

        locator = ComposeLocator(synthesize=cfg.synthesize_compose, ui_port=cfg.ui_port)
        compose = self._stage(STAGE_COMPOSE, lambda: locator.locate(target))
        report.compose = compose
        report.stages.append(STAGE_COMPOSE)
        detail = f"{compose.path} ({compose.origin})"
        if compose.version_stripped:
            detail += ", obsolete version key removed"
        if compose.origin in ("existing", "subfolder") and not compose.version_stripped:
            self._skipped(STAGE_COMPOSE, detail)
        else:
            self._completed(STAGE_COMPOSE, detail)

        activator = StackActivator(
            self.runtime,
            registry=cfg.registry,
            input_source=self.input,
            interactive=cfg.interactive,
            image_strategy=cfg.image_strategy,
            skip_build_fallback=cfg.skip_build_fallback,
            settle_seconds=cfg.settle_seconds,
            ui_port=cfg.ui_port,
            sleep=self.sleep,
            bus=self.bus,
            event_ctx=self.event_ctx,
        )
        activation = self._stage(
            STAGE_ACTIVATION,
            lambda: activator.activate(compose, EnvironmentFile(env.path)),
        )
        report.activation = activation
        report.stages.append(STAGE_ACTIVATION)
        self._completed(STAGE_ACTIVATION, f"stack running, UI at {activation.url}")

        self.bus.emit(
            ProvisionSummary(
                **self.event_ctx,
                url=activation.url,
                compose_file=str(compose.path),
                stages=list(report.stages),
            )
        )
        return report

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _stage(self, name: str, fn: Callable[[], T]) -> T:
        self._started(name)
        with self._stage_guard(name):
            return fn()

    @contextmanager
    def _stage_guard(self, name: str):
        try:
            yield
        except ProvisionError:
            raise
        except Exception as exc:
            log.error("[%s] failed: %s", name, exc)
            self.bus.emit(StageFailed(**self.event_ctx, stage=name, error=str(exc)))
            raise ProvisionError(name, exc) from exc

    def _started(self, stage: str) -> None:
        self._stage_started_at = time.monotonic()
        self.bus.emit(StageStarted(**self.event_ctx, stage=stage))

    def _completed(self, stage: str, detail: str) -> None:
        elapsed = int((time.monotonic() - self._stage_started_at) * 1000)
        self.bus.emit(StageCompleted(**self.event_ctx, stage=stage, detail=detail, duration_ms=elapsed))

    def _skipped(self, stage: str, reason: str) -> None:
        log.info("[%s] already satisfied: %s", stage, reason)
        self.bus.emit(StageSkipped(**self.event_ctx, stage=stage, reason=reason))

