from pathlib import Path

import pytest

from kiln.assets import ContentAssetPublisher
from kiln.errors import BuildError


def create_tree(root: Path) -> None:
    (root / "blog" / "post").mkdir(parents=True)
    (root / "blog" / "post.dj").write_text("Post", encoding="utf-8")
    (root / "blog" / "post" / "photo.png").write_bytes(b"png")
    (root / "notes.md").write_text("Notes", encoding="utf-8")
    (root / "download.pdf").write_bytes(b"pdf")


def test_publish_copies_non_markup_files(tmp_path):
    content = tmp_path / "content"
    create_tree(content)
    out = tmp_path / "public"

    copied = ContentAssetPublisher().publish(content, out)

    assert copied == ["blog/post/photo.png", "download.pdf"]
    assert (out / "blog" / "post" / "photo.png").read_bytes() == b"png"
    assert not (out / "notes.md").exists()


def test_publish_only_selected_paths(tmp_path):
    content = tmp_path / "content"
    create_tree(content)
    out = tmp_path / "public"

    copied = ContentAssetPublisher().publish(content, out, only={"download.pdf"})

    assert copied == ["download.pdf"]
    assert not (out / "blog").exists()
    assert ContentAssetPublisher().publish(content, out, only=set()) == []


def test_publish_static_copies_everything(tmp_path):
    static = tmp_path / "static"
    (static / "js").mkdir(parents=True)
    (static / "js" / "app.js").write_text("1", encoding="utf-8")
    (static / "readme.md").write_text("kept", encoding="utf-8")
    out = tmp_path / "public"

    copied = ContentAssetPublisher().publish_static(static, out)

    assert copied == ["js/app.js", "readme.md"]
    assert (out / "readme.md").read_text(encoding="utf-8") == "kept"
    assert ContentAssetPublisher().publish_static(tmp_path / "missing", out) == []


def test_copy_failure_names_the_source(tmp_path):
    static = tmp_path / "static"
    (static / "css").mkdir(parents=True)
    source = static / "css" / "site.css"
    source.write_text("body{}", encoding="utf-8")
    out = tmp_path / "public"
    out.mkdir()
    (out / "css").write_text("a file where a directory should be", encoding="utf-8")

    with pytest.raises(BuildError) as excinfo:
        ContentAssetPublisher().publish_static(static, out)
    assert excinfo.value.source_path == source


def test_remove_outputs_prunes_empty_directories(tmp_path):
    out = tmp_path / "public"
    (out / "blog" / "old").mkdir(parents=True)
    (out / "blog" / "old" / "index.html").write_text("old", encoding="utf-8")
    (out / "blog" / "keep.html").write_text("keep", encoding="utf-8")
    (out / "gone").mkdir()
    (out / "gone" / "index.html").write_text("gone", encoding="utf-8")

    removed = ContentAssetPublisher().remove_outputs(
        out, {"gone/index.html", "blog/old/index.html", "never/existed.html"}
    )

    assert removed == ["blog/old/index.html", "gone/index.html"]
    assert not (out / "blog" / "old").exists()
    assert not (out / "gone").exists()
    assert (out / "blog" / "keep.html").exists()
    assert out.is_dir()


def test_remove_outputs_never_removes_output_root(tmp_path):
    out = tmp_path / "public"
    out.mkdir()
    (out / "index.html").write_text("x", encoding="utf-8")
    assert ContentAssetPublisher().remove_outputs(out, ["index.html"]) == ["index.html"]
    assert out.is_dir()


def test_remove_outputs_skips_paths_outside_output_root(tmp_path):
    out = tmp_path / "public"
    out.mkdir()
    sibling = tmp_path / "victim.txt"
    sibling.write_text("keep", encoding="utf-8")
    absolute = tmp_path / "abs_victim.txt"
    absolute.write_text("keep", encoding="utf-8")

    removed = ContentAssetPublisher().remove_outputs(
        out, ["../victim.txt", str(absolute), "nested/../../victim.txt"]
    )

    assert removed == []
    assert sibling.exists()
    assert absolute.exists()
