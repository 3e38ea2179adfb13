"""Tests for the filesystem note store."""

import tempfile
from pathlib import Path

import pytest

from marginalia.adapters.exclusions import Exclusions
from marginalia.adapters.fs_storage import FsStorage
from marginalia.core.errors import NoteError


@pytest.fixture
def root():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.md").write_text("alpha\n")
        (root / "sub").mkdir()
        (root / "sub" / "b.md").write_text("beta mentions alpha\n")
        (root / ".obsidian").mkdir()
        (root / ".obsidian" / "app.json").write_text("{}")
        yield root


@pytest.fixture
def store(root):
    return FsStorage(root, Exclusions())


def test_list_paths(store):
    assert store.list_paths() == ["a.md", "sub/b.md"]
    assert store.list_paths(recursive=False) == ["a.md"]
    assert store.list_paths("sub") == ["sub/b.md"]
    assert store.list_paths("missing") == []


def test_read_and_exists(store):
    assert store.read("sub/b.md") == "beta mentions alpha\n"
    assert store.exists("a.md")
    assert not store.exists("nope.md")
    with pytest.raises(NoteError) as exc:
        store.read("nope.md")
    assert exc.value.kind == "not_found"


def test_excluded_paths_are_invisible(store):
    assert not store.exists(".obsidian/app.json")
    with pytest.raises(NoteError) as exc:
        store.read(".obsidian/app.json")
    assert exc.value.kind == "not_found"


def test_path_escape_rejected(store):
    with pytest.raises(NoteError) as exc:
        store.read("../outside.md")
    assert exc.value.kind == "validation"


def test_write_creates_parents(store, root):
    store.write("new/deep/c.md", "gamma")
    assert (root / "new" / "deep" / "c.md").read_text() == "gamma"
    assert not list(root.rglob("*.tmp"))


def test_write_failure_keeps_original_and_cleans_temp(store, root, monkeypatch):
    """If the final rename fails the original survives and no temp file is left."""
    def broken_replace(self, target):
        raise OSError("rename failed")

    monkeypatch.setattr(Path, "replace", broken_replace)
    with pytest.raises(NoteError) as exc:
        store.write("a.md", "changed")
    monkeypatch.undo()

    assert exc.value.kind == "io"
    assert (root / "a.md").read_text() == "alpha\n"
    assert not (root / "a.md.tmp").exists()


def test_delete_prunes_empty_folder(store, root):
    store.delete("sub/b.md")
    assert not (root / "sub").exists()
    store.delete("a.md")
    assert root.exists()


def test_move(store, root):
    store.move("a.md", "archive/a.md")
    assert (root / "archive" / "a.md").read_text() == "alpha\n"
    assert not (root / "a.md").exists()

    with pytest.raises(NoteError) as exc:
        store.move("sub/b.md", "archive/a.md")
    assert exc.value.kind == "validation"
    with pytest.raises(NoteError) as exc:
        store.move("missing.md", "x.md")
    assert exc.value.kind == "not_found"


def test_folder_operations(store, root):
    store.create_folder("projects/2024")
    assert (root / "projects" / "2024").is_dir()

    store.rename_folder("sub", "renamed")
    assert (root / "renamed" / "b.md").exists()

    with pytest.raises(NoteError):
        store.rename_folder("missing", "x")

    store.delete_folder("renamed")
    assert not (root / "renamed").exists()
    with pytest.raises(NoteError):
        store.delete_folder("")


def test_search_scores_names_above_content(store, root):
    (root / "alpha-notes.md").write_text("nothing here\n")
    results = store.search("ALPHA")
    assert [r["path"] for r in results] == ["alpha-notes.md", "a.md", "sub/b.md"]
    assert [r["score"] for r in results] == [2, 1, 1]
    assert results[0]["matches"][0]["type"] == "filename"
    assert results[2]["matches"][0] == {"line": 0, "type": "content"}
