# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/provision/environment.py
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from nvr_installer.config.models import EnvDefaults
from nvr_installer.errors import MissingValueError
from nvr_installer.interfaces import Editor, InputSource
from .models import ENV_TEMPLATES, REQUIRED_KEYS, EnvironmentFile, EnvKey
from .template_renderer import TemplateRenderer

log = logging.getLogger("nvr_installer")


@dataclass
class EnvResolution:
    path: Path
    source: str          # "existing" | "template:<name>" | "synthesized"

    @property
    def created(self) -> bool:
        return self.source != "existing"


class EnvironmentResolver:
    """
    Guarantees <checkout>/.env exists without ever clobbering one.

    CHECK -> TEMPLATE_SEARCH -> INTERACTIVE_SYNTHESIS -> DONE
    """

    def __init__(
        self,
        *,
        defaults: Optional[EnvDefaults] = None,
        input_source: Optional[InputSource] = None,
        interactive: bool = True,
        editor: Optional[Editor] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.defaults = defaults or EnvDefaults()
        self.input = input_source
        self.interactive = interactive
        self.editor = editor
        self.renderer = renderer or TemplateRenderer()

    def resolve(self, root: Path) -> EnvResolution:
        env_file = EnvironmentFile.in_checkout(root)

        if env_file.exists():
            log.info("%s already exists, leaving it untouched", env_file.path)
            return EnvResolution(env_file.path, "existing")

        template = self.find_template(root)
        if template is not None:
            shutil.copyfile(template, env_file.path)
            log.info("Copied %s -> %s", template.name, env_file.path.name)
            resolution = EnvResolution(env_file.path, f"template:{template.name}")
        else:
            log.warning("No .env template found in %s", root)
            values = self.gather_values()
            self.write(env_file.path, values)
            log.info(".env file created with keys: %s", ", ".join(values))
            resolution = EnvResolution(env_file.path, "synthesized")

        self._offer_edit(resolution)
        return resolution

    @staticmethod
    def find_template(root: Path) -> Optional[Path]:
        for name in ENV_TEMPLATES:
            candidate = root / name
            if candidate.is_file():
                return candidate
        return None

    def gather_values(self) -> Dict[str, str]:
        """One value per required key, in file order."""
        return {key.name: self._value_for(key) for key in REQUIRED_KEYS}

    def _value_for(self, key: EnvKey) -> str:
        default = getattr(self.defaults, key.field)

        if not self.interactive:
            if not default:
                raise MissingValueError(
                    key.name,
                    f"set env.{key.field} in the config file or export {key.name}",
                )
            return default

        if self.input is None:
            raise MissingValueError(key.name, "no input source available")

        if default:
            return self.input.prompt_line(key.label, default) or default

        value = self.input.prompt_line(key.label).strip()
        while not value:
            value = self.input.prompt_line(f"{key.label} (cannot be empty)").strip()
        return value

    def write(self, path: Path, values: Dict[str, str]) -> None:
        text = self.renderer.render("env.j2", {"values": values})
        path.write_text(text, encoding="utf-8")

    def _offer_edit(self, resolution: EnvResolution) -> None:
        # never reopen a file this run did not create
        if not (self.interactive and self.editor and resolution.created):
            return
        log.info("Opening %s for final manual edits", resolution.path)
        self.editor.open(resolution.path)
