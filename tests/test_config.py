from pathlib import Path

import pytest

from kiln.config import CONFIG_FILENAME, BuildConfig, load_config
from kiln.errors import ConfigError


def write_config(root: Path, text: str) -> None:
    (root / CONFIG_FILENAME).write_text(text, encoding="utf-8")


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path)
    root = tmp_path.resolve()
    assert config.project_root == root
    assert config.content_path == root / "content"
    assert config.template_path == root / "templates"
    assert config.static_path == root / "static"
    assert config.output_path == root / "public"
    assert config.extensions_path == root / "extensions"
    assert config.manifest_path == root / "tmp" / "cache" / "build-manifest.json"
    assert config.config_path == root / CONFIG_FILENAME
    assert config.page_template == "page"
    assert config.taxonomies == ("tags",)
    assert config.content_types == {}
    assert config.include_drafts is False
    assert config.site.base_url == ""


def test_config_file_overrides(tmp_path):
    write_config(
        tmp_path,
        """
output_dir: dist
cache_dir: .cache
page_template: default
taxonomies: [Tags, categories, tags]
site:
  title: My Site
  description: A site
  base_url: https://example.com/
  meta:
    robots: index
content_types:
  Blog:
    paths:
      - blog
      - match: /news/
      - 42
    defaults:
      template: post
      published: 2024-01-15
""",
    )
    config = load_config(tmp_path, include_drafts=True)

    assert config.output_path.name == "dist"
    assert config.manifest_path == config.project_root / ".cache" / "build-manifest.json"
    assert config.page_template == "default"
    assert config.taxonomies == ("tags", "categories")
    assert config.include_drafts is True
    assert config.site.title == "My Site"
    assert config.site.description == "A site"
    assert config.site.base_url == "https://example.com"
    assert config.site.meta == {"robots": "index"}

    rule = config.content_types["blog"]
    assert rule.name == "blog"
    assert [matcher.prefix for matcher in rule.paths] == ["blog", "news"]
    assert rule.defaults == {"template": "post", "published": "2024-01-15"}
    assert rule.matches("news/today.dj")


def test_empty_config_file_uses_defaults(tmp_path):
    write_config(tmp_path, "")
    assert load_config(tmp_path).output_dir == "public"


@pytest.mark.parametrize(
    "text, message",
    [
        ("- a\n- b\n", "key/value mapping"),
        ("output_dir: [unclosed\n", "Invalid project configuration"),
        ("output_dir: ''\n", '"output_dir" must be a non-empty string'),
        ("taxonomies: tags\n", '"taxonomies" must be a list'),
        ("content_types: [blog]\n", '"content_types" must be a key/value mapping'),
        ("content_types:\n  blog:\n    paths: blog\n", "paths must be a list"),
        ("content_types:\n  blog:\n    defaults: [1]\n", "defaults must be a key/value mapping"),
        ("content_types:\n  Blog: {}\n  blog: {}\n", 'duplicate content type "blog"'),
        ("site: nope\n", '"site" must be a key/value mapping'),
    ],
)
def test_invalid_config_is_fatal(tmp_path, text, message):
    write_config(tmp_path, text)
    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_with_drafts_returns_copy(tmp_path):
    config = BuildConfig(project_root=tmp_path)
    drafted = config.with_drafts(True)
    assert drafted.include_drafts is True
    assert config.include_drafts is False
