# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single installer invocation
    target: str       # checkout directory being provisioned

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(target: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": now_ts(),
        "run_id": run_id or str(uuid.uuid4()),
        "target": target,
    }


# ---------------------------------------------------------------------
# Stage lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StageStarted(BaseEvent):
    stage: str

@dataclass(frozen=True)
class StageSkipped(BaseEvent):
    stage: str
    reason: str

@dataclass(frozen=True)
class StageCompleted(BaseEvent):
    stage: str
    detail: str
    duration_ms: int

@dataclass(frozen=True)
class StageFailed(BaseEvent):
    stage: str
    error: str


# ---------------------------------------------------------------------
# Commands & Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class CommandFailed(BaseEvent):
    command: str
    returncode: int
    recoverable: bool

@dataclass(frozen=True)
class ProvisionSummary(BaseEvent):
    url: str
    compose_file: str
    stages: List[str]
