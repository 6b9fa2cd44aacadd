"""Asset pipeline for Quire.

This module compiles the theme stylesheet from its named variables,
fingerprints the result, and copies the project's static files verbatim.

Key components:
- Stylesheet: A compiled stylesheet with its fingerprint and SRI hash.
- AssetPipeline: Compiles and writes the stylesheet and static files.
"""

from __future__ import annotations

import base64
import hashlib
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .renderers import pygments_css
from .theme import Theme

STYLESHEET_TEMPLATE = "style.css.jinja"
FINGERPRINT_LENGTH = 16


@dataclass(frozen=True)
class Stylesheet:
    """A compiled stylesheet.

    The output filename embeds a content hash, so a changed stylesheet
    always gets a new URL.
    """

    css: str

    @property
    def digest(self) -> bytes:
        return hashlib.sha256(self.css.encode("utf-8")).digest()

    @property
    def fingerprint(self) -> str:
        return self.digest.hex()[:FINGERPRINT_LENGTH]

    @property
    def integrity(self) -> str:
        """Subresource integrity value for the ``<link>`` tag."""
        return "sha256-" + base64.b64encode(self.digest).decode("ascii")

    @property
    def url(self) -> str:
        return f"/css/style.{self.fingerprint}.css"

    def write(self, output_dir: Path) -> Path:
        target = output_dir / self.url.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.css, encoding="utf-8")
        return target


class AssetPipeline:
    """Handles the stylesheet and static files for a build.

    Attributes:
        theme: Theme providing the stylesheet template and variables.
        static_dir: Project directory whose files are copied as-is.
        output_dir: Build output directory.
    """

    def __init__(self, theme: Theme, static_dir: Path, output_dir: Path):
        self.theme = theme
        self.static_dir = static_dir
        self.output_dir = output_dir

    def compile_stylesheet(self, overrides: Mapping[str, Any] | None = None) -> Stylesheet:
        """Render the stylesheet template with the merged style variables.

        Raises:
            jinja2.UndefinedError: If the template uses an unknown variable.
        """
        env = Environment(
            loader=FileSystemLoader(str(self.theme.assets_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        template = env.get_template(STYLESHEET_TEMPLATE)
        variables = self.theme.variables(overrides)
        variables.setdefault("pygments_css", pygments_css())
        return Stylesheet(template.render(**variables))

    def copy_static(self) -> list[Path]:
        """Copy every file under the static directory into the output root.

        Returns:
            Output paths that were written, in sorted order.
        """
        if not self.static_dir.exists():
            return []
        written = []
        for item in sorted(self.static_dir.rglob("*")):
            if item.is_dir():
                continue
            dest = self.output_dir / item.relative_to(self.static_dir)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, dest)
            written.append(dest)
        return written
