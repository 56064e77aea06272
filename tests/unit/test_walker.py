from __future__ import annotations

import logging
import os
from pathlib import Path

import blake3
import pytest

from codexignore import CodexIgnore
from codexignore.walker import build_manifest, iter_files


@pytest.fixture
def project(tmp_path: Path) -> Path:
    files = {
        ".codexignore": "build/\n*.log\n!keep.log\nsecrets/\n",
        "README.md": "readme",
        "debug.log": "noise",
        "keep.log": "signal",
        "src/main.py": "print('hi')",
        "src/util/helpers.py": "pass",
        "src/util/trace.log": "noise",
        "build/app.bin": "binary",
        "build/deep/nested.txt": "nested",
        "secrets/token.txt": "hunter2",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path


def rel_set(root: Path, paths) -> set[str]:
    return {path.relative_to(root).as_posix() for path in paths}


def test_iter_files_skips_ignored_files_and_directories(project):
    ignore = CodexIgnore.load_from_root(project)

    kept = rel_set(project, iter_files(project, ignore))

    assert kept == {
        ".codexignore",
        "README.md",
        "keep.log",
        "src/main.py",
        "src/util/helpers.py",
    }


def test_iter_files_without_matcher_lists_everything(project):
    kept = rel_set(project, iter_files(project, None))

    assert "build/deep/nested.txt" in kept
    assert "secrets/token.txt" in kept
    assert len(kept) == 10


def test_iter_files_can_include_directories(project):
    ignore = CodexIgnore.load_from_root(project)

    kept = rel_set(project, iter_files(project, ignore, include_dirs=True))

    assert {"src", "src/util"} <= kept
    assert "build" not in kept
    assert "secrets" not in kept


def test_iter_files_never_descends_into_pruned_directories(project, monkeypatch):
    ignore = CodexIgnore.load_from_root(project)
    queried: list[str] = []
    original = CodexIgnore.is_file_ignored

    def spy(self, path):
        queried.append(Path(path).relative_to(project).as_posix())
        return original(self, path)

    monkeypatch.setattr(CodexIgnore, "is_file_ignored", spy)
    list(iter_files(project, ignore))

    assert not any(path.startswith("secrets/") for path in queried)
    assert "build/app.bin" in queried


def test_iter_files_order_is_deterministic(project):
    ignore = CodexIgnore.load_from_root(project)

    assert list(iter_files(project, ignore)) == list(iter_files(project, ignore))


def test_build_manifest_hashes_kept_files(project):
    ignore = CodexIgnore.load_from_root(project)

    manifest = build_manifest(project, ignore, workers=3)

    assert set(manifest) == {".codexignore", "README.md", "keep.log", "src/main.py", "src/util/helpers.py"}
    assert manifest["src/main.py"] == blake3.blake3(b"print('hi')").hexdigest()


def test_walk_completed_log_reports_counts(project, caplog):
    ignore = CodexIgnore.load_from_root(project)
    caplog.set_level(logging.INFO, logger="codexignore.walker")

    list(iter_files(project, ignore))

    completed = [record for record in caplog.records if record.getMessage() == "walk_completed"]
    assert len(completed) == 1
    assert completed[0].kept == 5
    assert completed[0].pruned_dirs == 1
    assert completed[0].skipped_files == 4


def test_iter_files_accepts_a_relative_root(tmp_path, monkeypatch):
    project = tmp_path / "proj"
    (project / "build").mkdir(parents=True)
    (project / "src").mkdir()
    (project / ".codexignore").write_text("/build/\n", encoding="utf-8")
    (project / "build" / "out.bin").write_text("b", encoding="utf-8")
    (project / "src" / "a.py").write_text("a", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    kept = rel_set(project, iter_files("proj", CodexIgnore.load_from_root("proj")))

    assert kept == {".codexignore", "src/a.py"}
    assert build_manifest("proj", CodexIgnore.load_from_root("proj")).keys() == {".codexignore", "src/a.py"}


def test_negation_reincludes_file_inside_ignored_directory(tmp_path):
    (tmp_path / "build").mkdir()
    (tmp_path / ".codexignore").write_text("build/\n!build/keep.txt\n", encoding="utf-8")
    (tmp_path / "build" / "keep.txt").write_text("k", encoding="utf-8")
    (tmp_path / "build" / "other.txt").write_text("o", encoding="utf-8")
    ignore = CodexIgnore.load_from_root(tmp_path)

    kept = rel_set(tmp_path, iter_files(tmp_path, ignore, include_dirs=True))

    assert not ignore.is_file_ignored(tmp_path / "build" / "keep.txt")
    assert kept == {".codexignore", "build/keep.txt"}
    assert "build/keep.txt" in build_manifest(tmp_path, ignore)


def test_build_manifest_skips_unreadable_files(tmp_path, caplog):
    (tmp_path / "a.txt").write_text("a", encoding="utf-8")
    os.symlink(tmp_path / "missing", tmp_path / "dangling")
    caplog.set_level(logging.WARNING, logger="codexignore.walker")

    manifest = build_manifest(tmp_path, None)

    assert manifest == {"a.txt": blake3.blake3(b"a").hexdigest()}
    errors = [record for record in caplog.records if record.getMessage() == "hash_error"]
    assert len(errors) == 1
    assert errors[0].path == str(tmp_path / "dangling")


def test_symlinked_directories_are_listed_but_not_followed(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.py").write_text("a", encoding="utf-8")
    os.symlink(tmp_path / "src", tmp_path / "link", target_is_directory=True)

    with_dirs = rel_set(tmp_path, iter_files(tmp_path, None, include_dirs=True))
    files_only = rel_set(tmp_path, iter_files(tmp_path, None))

    assert with_dirs == {"link", "src", "src/a.py"}
    assert files_only == {"src/a.py"}
