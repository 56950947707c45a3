# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/host/preparer.py
from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from nvr_installer.errors import CommandError
from nvr_installer.execution.runner import CommandRunner
from nvr_installer.interfaces import PackageManager

log = logging.getLogger("nvr_installer")

PREREQ_PACKAGES = [
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
    "software-properties-common",
    "git",
]
DOCKER_PACKAGES = ["docker-ce", "docker-ce-cli", "containerd.io"]

DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_APT_URL = "https://download.docker.com/linux/ubuntu"
COMPOSE_RELEASES_API = "https://api.github.com/repos/docker/compose/releases/latest"
COMPOSE_DOWNLOAD = "https://github.com/docker/compose/releases/download/{tag}/docker-compose-linux-{arch}"

# Docker publishes no archive for these yet; use the previous LTS.
CODENAME_FALLBACKS = {"noble": "jammy"}


@dataclass
class HostPrepOptions:
    keyring_path: Path = Path("/usr/share/keyrings/docker-archive-keyring.gpg")
    sources_list: Path = Path("/etc/apt/sources.list.d/docker.list")
    compose_plugin_path: Path = Path("/usr/local/lib/docker/cli-plugins/docker-compose")
    http_timeout: int = 60


class HostPreparer:
    """
    Installs the host prerequisites the workflow relies on:
    git, Docker Engine and the Compose v2 CLI plugin.
    Flat sequence, every failure is fatal.
    """

    def __init__(
        self,
        packages: PackageManager,
        runner: Optional[CommandRunner] = None,
        options: Optional[HostPrepOptions] = None,
        session: Optional[requests.Session] = None,
    ):
        self.packages = packages
        self.runner = runner or CommandRunner(label="host")
        self.opts = options or HostPrepOptions()
        self.session = session or requests.Session()

    def run(self) -> List[str]:
        done: List[str] = []

        codename = self.ubuntu_codename()
        log.info("Using Ubuntu codename: %s", codename)

        self.packages.refresh_index()
        self.packages.install_packages(PREREQ_PACKAGES)
        done.append("prerequisites")

        self.install_docker_repo(codename)
        self.packages.refresh_index()
        self.packages.install_packages(DOCKER_PACKAGES)
        self._check(["systemctl", "enable", "--now", "docker"])
        done.append("docker-engine")

        if self.compose_available():
            log.info("Docker Compose plugin already installed")
        else:
            self.install_compose_plugin()
            done.append("compose-plugin")
        return done

    # ------------------------------------------------------------------
    def _check(self, argv: List[str], **kw):
        return self.runner.run(argv, check=True, label="host", **kw)

    def ubuntu_codename(self) -> str:
        codename = self._check(["lsb_release", "-cs"]).stdout.strip()
        if codename in CODENAME_FALLBACKS:
            log.warning(
                "Ubuntu '%s' has no Docker archive yet, using '%s'",
                codename, CODENAME_FALLBACKS[codename],
            )
            codename = CODENAME_FALLBACKS[codename]
        return codename

    def dpkg_architecture(self) -> str:
        return self._check(["dpkg", "--print-architecture"]).stdout.strip()

    def install_docker_repo(self, codename: str) -> None:
        log.info("Adding Docker GPG key (overwrites any existing key)")
        resp = self.session.get(DOCKER_GPG_URL, timeout=self.opts.http_timeout)
        resp.raise_for_status()

        self.opts.keyring_path.parent.mkdir(parents=True, exist_ok=True)
        self._check(
            ["gpg", "--batch", "--yes", "--dearmor", "-o", str(self.opts.keyring_path)],
            input=resp.text,
        )

        arch = self.dpkg_architecture()
        line = (
            f"deb [arch={arch} signed-by={self.opts.keyring_path}] "
            f"{DOCKER_APT_URL} {codename} stable\n"
        )
        self.opts.sources_list.parent.mkdir(parents=True, exist_ok=True)
        self.opts.sources_list.write_text(line)
        log.info("Docker APT repository written to %s", self.opts.sources_list)

    def compose_available(self) -> bool:
        return self.runner.run(["docker", "compose", "version"], label="host").ok

    def latest_compose_tag(self) -> str:
        resp = self.session.get(COMPOSE_RELEASES_API, timeout=self.opts.http_timeout)
        resp.raise_for_status()
        tag = resp.json().get("tag_name")
        if not tag:
            raise RuntimeError("GitHub releases API returned no tag_name for docker/compose")
        return tag if tag.startswith("v") else f"v{tag}"

    def install_compose_plugin(self) -> None:
        tag = self.latest_compose_tag()
        url = COMPOSE_DOWNLOAD.format(tag=tag, arch=platform.machine())
        log.info("Downloading Docker Compose %s from %s", tag, url)

        resp = self.session.get(url, timeout=self.opts.http_timeout)
        resp.raise_for_status()

        dest = self.opts.compose_plugin_path
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(resp.content)
        dest.chmod(0o755)

        version = self.runner.run(["docker", "compose", "version"], label="host")
        if not version.ok:
            raise CommandError(version, f"docker compose {tag} installed but not runnable")
        log.info(version.stdout.splitlines()[0] if version.stdout else "docker compose installed")
