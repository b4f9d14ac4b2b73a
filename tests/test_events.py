import pytest

from kiln.errors import ExtensionError
from kiln.events import BuildEvent, EventRegistry, load_extensions


def test_dispatch_calls_handlers_in_order():
    registry = EventRegistry()
    calls = []
    registry.on(BuildEvent.BUILD_STARTED, lambda config: calls.append(("first", config)))
    registry.on(BuildEvent.BUILD_STARTED, lambda config: calls.append(("second", config)))

    registry.dispatch(BuildEvent.BUILD_STARTED, "cfg")

    assert calls == [("first", "cfg"), ("second", "cfg")]
    assert registry.listener_count(BuildEvent.BUILD_STARTED) == 2
    assert registry.listener_count(BuildEvent.PAGE_WRITTEN) == 0


def test_transform_folds_value_through_handlers():
    registry = EventRegistry()
    registry.on(BuildEvent.PAGE_RENDERED, lambda html, page: html + page)
    registry.on(BuildEvent.PAGE_RENDERED, lambda html, page: html.upper())

    assert registry.transform(BuildEvent.PAGE_RENDERED, "<p>", "x") == "<P>X"
    assert registry.transform(BuildEvent.CONTENT_DISCOVERED, [1], "cfg") == [1]


def test_on_returns_the_handler():
    registry = EventRegistry()

    def done(config, pages):
        return None

    assert registry.on(BuildEvent.BUILD_COMPLETED, done) is done
    assert registry.listener_count(BuildEvent.BUILD_COMPLETED) == 1


def test_load_extensions_calls_register_in_sorted_order(tmp_path):
    (tmp_path / "b_second.py").write_text(
        "from kiln.events import BuildEvent\n"
        "def register(registry):\n"
        "    registry.on(BuildEvent.PAGE_RENDERED, lambda html, page: html + 'b')\n",
        encoding="utf-8",
    )
    (tmp_path / "a_first.py").write_text(
        "from kiln.events import BuildEvent\n"
        "def register(registry):\n"
        "    registry.on(BuildEvent.PAGE_RENDERED, lambda html, page: html + 'a')\n",
        encoding="utf-8",
    )
    (tmp_path / "_helpers.py").write_text("raise RuntimeError('never imported')\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    registry = EventRegistry()

    loaded = load_extensions(tmp_path, registry)

    assert loaded == ["a_first", "b_second"]
    assert registry.transform(BuildEvent.PAGE_RENDERED, "", None) == "ab"


def test_load_extensions_missing_directory(tmp_path):
    assert load_extensions(tmp_path / "missing", EventRegistry()) == []


def test_extension_without_register_is_rejected(tmp_path):
    (tmp_path / "plain.py").write_text("register = 'not callable'\n", encoding="utf-8")
    with pytest.raises(ExtensionError, match="plain.py"):
        load_extensions(tmp_path, EventRegistry())


def test_extension_import_failure_is_wrapped(tmp_path):
    (tmp_path / "broken.py").write_text("import does_not_exist_anywhere\n", encoding="utf-8")
    with pytest.raises(ExtensionError, match="failed to import"):
        load_extensions(tmp_path, EventRegistry())
