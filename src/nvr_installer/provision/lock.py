# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/lock.py
from __future__ import annotations

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path

from nvr_installer.errors import LockedError

log = logging.getLogger("nvr_installer")


def try_lock_exclusively(fileno: int) -> bool:
    # flock, not lockf: a second open() in the same process must also be refused
    try:
        fcntl.flock(fileno, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


@contextmanager
def target_lock(file: Path):
    """Advisory lock so two installer runs never share a checkout."""
    file.parent.mkdir(parents=True, exist_ok=True)
    file.touch(exist_ok=True)
    with file.open("rb") as fd:
        if not try_lock_exclusively(fd.fileno()):
            raise LockedError(f"another installer run holds {file}")
        log.debug("%s: locked exclusively", file)
        try:
            yield
        finally:
            fcntl.flock(fd.fileno(), fcntl.LOCK_UN)
            log.debug("%s: lock released", file)
