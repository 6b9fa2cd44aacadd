"""Bundled theme for Quire.

The theme ships Jinja layouts, a stylesheet template, its named style
variables and a small set of SVG icons. A project can shadow any layout or
icon by placing a file with the same name in its own ``layouts/`` folder.

Key class:
- Theme: Locates theme files and resolves style variables and icons.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from markupsafe import Markup

THEME_DIR = Path(__file__).parent / "theme"

_ICON_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class Theme:
    """Locates the files of the bundled theme.

    Attributes:
        root: Theme root directory.
        layouts_dir: Theme layouts.
        assets_dir: Stylesheet templates.
        overrides_dir: Optional project layouts directory searched first.
    """

    def __init__(self, root: Path = THEME_DIR, overrides_dir: Path | None = None):
        self.root = root
        self.layouts_dir = root / "layouts"
        self.assets_dir = root / "assets"
        self.overrides_dir = overrides_dir
        self._icons: dict[str, Markup | None] = {}

    def layout_dirs(self) -> list[Path]:
        """Layout search path, project overrides first."""
        dirs = []
        if self.overrides_dir is not None and self.overrides_dir.exists():
            dirs.append(self.overrides_dir)
        dirs.append(self.layouts_dir)
        return dirs

    def variables(self, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Return the theme's style variables with site overrides applied."""
        with open(self.root / "variables.yaml", encoding="utf-8") as f:
            variables = yaml.safe_load(f) or {}
        if overrides:
            variables.update(overrides)
        return variables

    def icon(self, name: str) -> Markup | None:
        """Return inline SVG markup for an icon, or None when there is no such icon.

        Project icons under ``layouts/icons/`` win over bundled ones.
        """
        key = name.strip().lower()
        if key not in self._icons:
            self._icons[key] = self._load_icon(key)
        return self._icons[key]

    def _load_icon(self, key: str) -> Markup | None:
        if not _ICON_NAME_RE.match(key):
            return None
        candidates = [self.root / "icons" / f"{key}.svg"]
        if self.overrides_dir is not None:
            candidates.insert(0, self.overrides_dir / "icons" / f"{key}.svg")
        for candidate in candidates:
            if candidate.is_file():
                return Markup(candidate.read_text(encoding="utf-8").strip())
        return None
