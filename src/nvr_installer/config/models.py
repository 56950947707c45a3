# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/config/models.py

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_REPO_URL = "https://github.com/OneByJorah/rtsp-nvr-dashboard.git"
DEFAULT_TARGET_DIR = Path("/opt/rtsp-nvr-dashboard")


class EnvDefaults(BaseModel):
    """Values offered (or used unattended) when synthesizing .env."""

    host_ip: str = "0.0.0.0"
    nvr_url: Optional[str] = None       # no default: must be supplied
    admin_user: str = "admin"
    admin_password: str = "admin"


class RegistrySpec(BaseModel):
    url: str = "ghcr.io"
    username: Optional[str] = None
    token: Optional[str] = None

    def has_credentials(self) -> bool:
        return bool(self.username and self.token)


class ProvisionConfig(BaseModel):
    repo_url: str = DEFAULT_REPO_URL
    target_dir: Path = DEFAULT_TARGET_DIR
    branch: str = "main"

    interactive: bool = True
    open_editor: bool = True            # only honoured when interactive
    prepare_host: bool = False

    image_strategy: Literal["pull", "build"] = "pull"
    skip_build_fallback: bool = False
    synthesize_compose: bool = True

    settle_seconds: float = Field(default=5.0, ge=0)
    ui_port: int = Field(default=3000, gt=0, lt=65536)

    env: EnvDefaults = Field(default_factory=EnvDefaults)
    registry: RegistrySpec = Field(default_factory=RegistrySpec)

    @field_validator("repo_url", "branch")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("target_dir")
    @classmethod
    def _expand(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def lock_path(self) -> Path:
        # Sibling of the checkout so a fresh clone target stays empty.
        return self.target_dir.with_name(self.target_dir.name + ".lock")
