"""Site configuration for Quire.

The configuration lives in ``quire.yaml`` at the project root. Every option
has a documented default, so an empty or missing file yields a working site.
The loaded configuration is frozen and shared read-only by every stage of
a build.

Key pieces:
- DEFAULT_CONFIG: Defaults merged under the user's file.
- SiteConfig: Frozen view of the merged configuration.
- load_config: Read, merge and validate ``quire.yaml``.
- resolve_environment: Pick the build environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "quire.yaml"
ENVIRONMENT_VAR = "QUIRE_ENV"
DEFAULT_ENVIRONMENT = "development"

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "My Blog",
    "author": "John Doe",
    "description": "",
    "favicon": "/favicon.ico",
    "menu_item_separator": " | ",
    "menu": [],
    "social": [],
    "google_analytics": "",
    "analytics_environment": "production",
    "base_url": "",
    "language_code": "en",
    "main_sections": ["posts"],
    "summary_length": 160,
    "content_dir": "content",
    "static_dir": "static",
    "layouts_dir": "layouts",
    "output_dir": "public",
    "port": 1313,
    "style": {},
}


@dataclass(frozen=True)
class MenuEntry:
    name: str
    url: str


@dataclass(frozen=True)
class SocialLink:
    icon: str
    name: str
    url: str


@dataclass(frozen=True)
class SiteConfig:
    """Merged, validated site configuration.

    Attributes mirror the keys of DEFAULT_CONFIG. ``menu`` and ``social``
    keep the order the author wrote them in.
    """

    title: str = DEFAULT_CONFIG["title"]
    author: str = DEFAULT_CONFIG["author"]
    description: str = DEFAULT_CONFIG["description"]
    favicon: str = DEFAULT_CONFIG["favicon"]
    menu_item_separator: str = DEFAULT_CONFIG["menu_item_separator"]
    menu: tuple[MenuEntry, ...] = ()
    social: tuple[SocialLink, ...] = ()
    google_analytics: str = DEFAULT_CONFIG["google_analytics"]
    analytics_environment: str = DEFAULT_CONFIG["analytics_environment"]
    base_url: str = DEFAULT_CONFIG["base_url"]
    language_code: str = DEFAULT_CONFIG["language_code"]
    main_sections: tuple[str, ...] = ("posts",)
    summary_length: int = DEFAULT_CONFIG["summary_length"]
    content_dir: str = DEFAULT_CONFIG["content_dir"]
    static_dir: str = DEFAULT_CONFIG["static_dir"]
    layouts_dir: str = DEFAULT_CONFIG["layouts_dir"]
    output_dir: str = DEFAULT_CONFIG["output_dir"]
    port: int = DEFAULT_CONFIG["port"]
    style: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def analytics_enabled(self, environment: str) -> bool:
        """Whether the analytics snippet belongs in a build for ``environment``."""
        return bool(self.google_analytics) and environment == self.analytics_environment

    def with_base_url(self, base_url: str) -> SiteConfig:
        return replace(self, base_url=base_url)


def resolve_environment(explicit: str | None = None) -> str:
    """Return the build environment.

    Precedence: explicit argument, then ``QUIRE_ENV``, then "development".
    """
    return explicit or os.environ.get(ENVIRONMENT_VAR) or DEFAULT_ENVIRONMENT


def _require_str(config_path: Path, key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(config_path, f"'{key}' must be a string")
    return str(value)


def _parse_entries(
    config_path: Path, key: str, value: Any, fields: tuple[str, ...]
) -> list[dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(config_path, f"'{key}' must be a list")
    entries = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigError(config_path, f"'{key}[{index}]' must be a mapping")
        missing = [name for name in fields if not item.get(name)]
        if missing:
            raise ConfigError(
                config_path, f"'{key}[{index}]' is missing {', '.join(missing)}"
            )
        entries.append({name: str(item[name]) for name in fields})
    return entries


def parse_config(raw: dict[str, Any], config_path: Path) -> SiteConfig:
    """Validate a merged configuration mapping and build a SiteConfig.

    Raises:
        ConfigError: If an option has the wrong shape.
    """
    strings = {
        key: _require_str(config_path, key, raw.get(key))
        for key in (
            "title",
            "author",
            "description",
            "favicon",
            "menu_item_separator",
            "google_analytics",
            "analytics_environment",
            "base_url",
            "language_code",
            "content_dir",
            "static_dir",
            "layouts_dir",
            "output_dir",
        )
    }
    if not strings["favicon"]:
        strings["favicon"] = DEFAULT_CONFIG["favicon"]
    menu = _parse_entries(config_path, "menu", raw.get("menu"), ("name", "url"))
    social = _parse_entries(
        config_path, "social", raw.get("social"), ("icon", "name", "url")
    )

    sections = raw.get("main_sections") or []
    if isinstance(sections, str):
        sections = [sections]
    if not isinstance(sections, list):
        raise ConfigError(config_path, "'main_sections' must be a list")

    style = raw.get("style") or {}
    if not isinstance(style, dict):
        raise ConfigError(config_path, "'style' must be a mapping")

    try:
        summary_length = int(raw.get("summary_length"))
        port = int(raw.get("port"))
    except (TypeError, ValueError) as exc:
        raise ConfigError(config_path, f"Expected an integer: {exc}", exc) from exc

    return SiteConfig(
        menu=tuple(MenuEntry(**entry) for entry in menu),
        social=tuple(SocialLink(**entry) for entry in social),
        main_sections=tuple(str(s) for s in sections),
        summary_length=summary_length,
        port=port,
        style=MappingProxyType(dict(style)),
        **strings,
    )


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from quire.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with defaults applied for every missing option.

    Raises:
        ConfigError: If the file is not valid YAML, not a mapping, or an
            option is malformed.
    """
    config_path = project_root / CONFIG_FILENAME
    raw = dict(DEFAULT_CONFIG)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(config_path, f"Invalid YAML: {exc}", exc) from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(config_path, "Configuration must be a mapping")
        raw.update({k: v for k, v in loaded.items() if v is not None})
    return parse_config(raw, config_path)
