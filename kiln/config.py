"""Project configuration for Kiln.

Configuration lives in an optional ``kiln.yaml`` file at the project root.
Missing keys fall back to defaults; malformed values are fatal so that a
typo never silently changes what gets built.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .content import ContentTypeRule, PathPrefixMatcher
from .errors import ConfigError
from .extractors import normalize_meta_map, normalize_metadata, normalize_taxonomy_keys

CONFIG_FILENAME = "kiln.yaml"
MANIFEST_FILENAME = "build-manifest.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content",
    "template_dir": "templates",
    "static_dir": "static",
    "output_dir": "public",
    "cache_dir": "tmp/cache",
    "extensions_dir": "extensions",
    "page_template": "page",
}


@dataclass(frozen=True)
class SiteConfig:
    """Site-wide settings exposed to templates.

    Attributes:
        title: Site title.
        description: Default page description.
        base_url: Absolute site URL, used for the sitemap.
        meta: Default meta tags merged under page meta.
        sitemap: Whether to write sitemap.xml when base_url is set.
    """

    title: str = ""
    description: str | None = None
    base_url: str = ""
    meta: dict[str, str] = field(default_factory=dict)
    sitemap: bool = True


@dataclass(frozen=True)
class BuildConfig:
    """Immutable build configuration.

    Directory fields are relative to ``project_root``.
    """

    project_root: Path
    content_dir: str = "content"
    template_dir: str = "templates"
    static_dir: str = "static"
    output_dir: str = "public"
    cache_dir: str = "tmp/cache"
    extensions_dir: str = "extensions"
    page_template: str = "page"
    taxonomies: tuple[str, ...] = ("tags",)
    content_types: dict[str, ContentTypeRule] = field(default_factory=dict)
    site: SiteConfig = field(default_factory=SiteConfig)
    include_drafts: bool = False

    @property
    def config_path(self) -> Path:
        return self.project_root / CONFIG_FILENAME

    @property
    def content_path(self) -> Path:
        return self.project_root / self.content_dir

    @property
    def template_path(self) -> Path:
        return self.project_root / self.template_dir

    @property
    def static_path(self) -> Path:
        return self.project_root / self.static_dir

    @property
    def output_path(self) -> Path:
        return self.project_root / self.output_dir

    @property
    def cache_path(self) -> Path:
        return self.project_root / self.cache_dir

    @property
    def extensions_path(self) -> Path:
        return self.project_root / self.extensions_dir

    @property
    def manifest_path(self) -> Path:
        return self.cache_path / MANIFEST_FILENAME

    def with_drafts(self, include_drafts: bool) -> BuildConfig:
        """Return a copy with the draft flag overridden."""
        return replace(self, include_drafts=include_drafts)


def load_config(project_root: Path, include_drafts: bool = False) -> BuildConfig:
    """Load the build configuration from kiln.yaml.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether draft pages should be built.

    Returns:
        BuildConfig with defaults applied.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values.
    """
    root = Path(project_root).resolve()
    raw = read_project_config(root / CONFIG_FILENAME)
    values = DEFAULT_CONFIG.copy()
    for key in DEFAULT_CONFIG:
        if key in raw:
            values[key] = _directory_value(key, raw[key])

    return BuildConfig(
        project_root=root,
        content_dir=values["content_dir"],
        template_dir=values["template_dir"],
        static_dir=values["static_dir"],
        output_dir=values["output_dir"],
        cache_dir=values["cache_dir"],
        extensions_dir=values["extensions_dir"],
        page_template=values["page_template"],
        taxonomies=normalize_taxonomies(raw.get("taxonomies")),
        content_types=normalize_content_types(raw.get("content_types")),
        site=normalize_site(raw.get("site")),
        include_drafts=include_drafts,
    )


def read_project_config(path: Path) -> dict[str, Any]:
    """Read and decode the project configuration file.

    Args:
        path: Path to kiln.yaml.

    Returns:
        Decoded mapping; empty when the file does not exist.
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Unable to read project configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid project configuration in {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Invalid project configuration in {path}: expected a key/value mapping."
        )
    return loaded


def _directory_value(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f'Invalid project configuration: "{key}" must be a non-empty string.')
    return value.strip()


def normalize_taxonomies(value: Any) -> tuple[str, ...]:
    """Normalize configured taxonomy keys, defaulting to ``tags``."""
    if value is None:
        return ("tags",)
    if not isinstance(value, list):
        raise ConfigError('Invalid project configuration: "taxonomies" must be a list.')
    return tuple(normalize_taxonomy_keys(value)) or ("tags",)


def normalize_content_types(value: Any) -> dict[str, ContentTypeRule]:
    """Normalize configured content type rules.

    Each entry maps a type name to ``paths`` (strings or ``{match: ...}``
    mappings) and ``defaults`` (metadata mapping).

    Args:
        value: Raw ``content_types`` configuration.

    Returns:
        Rules by lower-case name, in configuration order.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(
            'Invalid project configuration: "content_types" must be a key/value mapping.'
        )

    rules: dict[str, ContentTypeRule] = {}
    for name, settings in value.items():
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(
                "Invalid project configuration: content type names must be non-empty strings."
            )
        type_name = name.strip().lower()
        if type_name in rules:
            raise ConfigError(
                f'Invalid project configuration: duplicate content type "{type_name}".'
            )
        if settings is None:
            settings = {}
        if not isinstance(settings, Mapping):
            raise ConfigError(
                f'Invalid project configuration: content type "{type_name}" must be a key/value mapping.'
            )
        rules[type_name] = ContentTypeRule(
            name=type_name,
            paths=_content_type_paths(type_name, settings.get("paths")),
            defaults=_content_type_defaults(type_name, settings.get("defaults")),
        )
    return rules


def _content_type_paths(type_name: str, paths: Any) -> tuple[PathPrefixMatcher, ...]:
    if paths is None:
        return ()
    if not isinstance(paths, list):
        raise ConfigError(
            f'Invalid project configuration: content type "{type_name}" paths must be a list.'
        )
    matchers: dict[str, PathPrefixMatcher] = {}
    for entry in paths:
        if isinstance(entry, Mapping):
            entry = entry.get("match")
        if not isinstance(entry, str):
            continue
        prefix = entry.replace("\\", "/").strip().strip("/")
        if prefix:
            matchers[prefix] = PathPrefixMatcher(prefix)
    return tuple(matchers.values())


def _content_type_defaults(type_name: str, defaults: Any) -> dict[str, Any]:
    if defaults is None:
        return {}
    if not isinstance(defaults, Mapping):
        raise ConfigError(
            f'Invalid project configuration: content type "{type_name}" defaults must be a key/value mapping.'
        )
    return normalize_metadata(defaults)


def normalize_site(value: Any) -> SiteConfig:
    """Normalize the ``site`` section."""
    if value is None:
        return SiteConfig()
    if not isinstance(value, Mapping):
        raise ConfigError('Invalid project configuration: "site" must be a key/value mapping.')

    def optional_string(key: str) -> str | None:
        item = value.get(key)
        if isinstance(item, str) and item.strip():
            return item.strip()
        return None

    raw_meta = value.get("meta")
    meta = normalize_meta_map(raw_meta) if isinstance(raw_meta, Mapping) else {}
    return SiteConfig(
        title=optional_string("title") or "",
        description=optional_string("description"),
        base_url=(optional_string("base_url") or "").rstrip("/"),
        meta={key: str(item) for key, item in meta.items() if item is not None},
        sitemap=bool(value.get("sitemap", True)),
    )
