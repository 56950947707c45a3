# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/compose.py
from __future__ import annotations

import fnmatch
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterator, List, Optional

from nvr_installer.errors import ComposeNotFoundError
from .models import COMPOSE_FILENAME, ENV_FILENAME, ComposeDefinition
from .template_renderer import TemplateRenderer

log = logging.getLogger("nvr_installer")

COMPOSE_NAMES = {"docker-compose.yml", "docker-compose.yaml"}
SUBFOLDER_COMPOSE = Path("docker") / "docker-compose.yml"
TEMPLATE_PATTERNS = ("*compose*.example*", "*compose*.sample*", "*compose*.default*")

# Compose v2 ignores (and warns about) the top-level schema version.
VERSION_LINE = re.compile(rb"^[ \t]*version:", re.IGNORECASE)


def _walk_visible(root: Path) -> Iterator[Path]:
    """Files under root, skipping anything below a dot-directory and dot-files."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for name in filenames:
            if not name.startswith("."):
                yield Path(dirpath) / name


def _ordered(root: Path, paths: List[Path]) -> List[Path]:
    # shallowest first, then alphabetical: the same answer on every run
    return sorted(paths, key=lambda p: (len(p.relative_to(root).parts), str(p.relative_to(root))))


def find_compose_files(root: Path) -> List[Path]:
    return _ordered(root, [p for p in _walk_visible(root) if p.name.lower() in COMPOSE_NAMES])


def find_compose_templates(root: Path) -> List[Path]:
    found = [
        p for p in _walk_visible(root)
        if any(fnmatch.fnmatchcase(p.name.lower(), pat) for pat in TEMPLATE_PATTERNS)
    ]
    return _ordered(root, found)


def strip_version_key(path: Path) -> Optional[Path]:
    """
    Drop every `version:` line (any case, any indentation).
    The untouched original is written to <file>.bak first.
    Returns the backup path, or None when there was nothing to strip.
    """
    raw = path.read_bytes()
    # bytes: encoding unknown, every other line kept verbatim
    lines = raw.splitlines(keepends=True)
    kept = [line for line in lines if not VERSION_LINE.match(line)]
    if len(kept) == len(lines):
        return None

    backup = path.with_name(path.name + ".bak")
    backup.write_bytes(raw)
    path.write_bytes(b"".join(kept))
    log.warning("Removed obsolete `version:` line from %s (backup: %s)", path, backup)
    return backup


class ComposeLocator:
    """
    Finds, copies or synthesizes the compose definition, then normalizes it.

    1. docker-compose.y(a)ml anywhere in the checkout (not in dot-dirs)
    2. docker/docker-compose.yml
    3. *compose*.{example,sample,default}* copied to ./docker-compose.yml
    4. minimal two-service definition that builds locally
    """

    def __init__(
        self,
        *,
        synthesize: bool = True,
        ui_port: int = 3000,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.synthesize = synthesize
        self.ui_port = ui_port
        self.renderer = renderer or TemplateRenderer()

    def locate(self, root: Path) -> ComposeDefinition:
        definition = self._select(root)
        log.info("Using compose file: %s (%s)", definition.path, definition.origin)

        backup = strip_version_key(definition.path)
        if backup is not None:
            definition.version_stripped = True
            definition.backup = backup
        return definition

    def _select(self, root: Path) -> ComposeDefinition:
        found = find_compose_files(root)
        if found:
            return ComposeDefinition(path=found[0], origin="existing")

        subfolder = root / SUBFOLDER_COMPOSE
        if subfolder.is_file():
            log.info("Found compose file in sub-folder: %s", subfolder)
            return ComposeDefinition(path=subfolder, origin="subfolder")

        target = root / COMPOSE_FILENAME
        templates = find_compose_templates(root)
        if templates:
            shutil.copyfile(templates[0], target)
            log.info("Copied template %s -> %s", templates[0], target)
            return ComposeDefinition(path=target, origin="template", template=templates[0])

        if not self.synthesize:
            raise ComposeNotFoundError(
                f"no compose definition found under {root}. Searched: "
                f"{' / '.join(sorted(COMPOSE_NAMES))} (recursive), {SUBFOLDER_COMPOSE}, "
                f"{', '.join(TEMPLATE_PATTERNS)}. "
                f"Create {target} manually and re-run the installer."
            )

        log.warning("No compose file found, creating a minimal one that builds locally")
        target.write_text(self.render_minimal(), encoding="utf-8")
        return ComposeDefinition(path=target, origin="synthesized")

    def render_minimal(self) -> str:
        return self.renderer.render(
            "docker-compose.yml.j2",
            {"env_file": f"./{ENV_FILENAME}", "ui_port": self.ui_port},
        )
