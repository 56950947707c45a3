# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/repository.py
from __future__ import annotations

import logging
from pathlib import Path

from nvr_installer.interfaces import VersionControl
from .models import RepositoryCheckout

log = logging.getLogger("nvr_installer")


def sync_repository(git: VersionControl, url: str, target: Path, branch: str = "main") -> RepositoryCheckout:
    """
    Make <target> a checkout of <url> at the tip of origin/<branch>.

    Existing checkout: fetch --all then reset --hard, discarding local edits
    so a half-finished previous run always converges.
    Otherwise: fresh clone. Any git failure propagates (fatal, not retried).
    """
    checkout = RepositoryCheckout(path=target)

    if checkout.has_metadata:
        log.info("Repo already exists at %s, updating to origin/%s", target, branch)
        git.fetch_all(target)
        git.reset_hard(target, f"origin/{branch}")
    else:
        log.info("Cloning %s into %s", url, target)
        target.parent.mkdir(parents=True, exist_ok=True)
        git.clone(url, target, branch)

    return checkout
