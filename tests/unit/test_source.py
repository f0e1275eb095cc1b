"""Unit tests for source providers and source-folder resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from docrag.config import Settings, resolve_source_dir
from docrag.errors import ConfigurationError, SourceEnumerationError, UnreadableSourceError
from docrag.ingestion.source import DirectorySource


@pytest.fixture()
def docs_dir(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    (root / "nested").mkdir(parents=True)
    (root / "b.pdf").write_bytes(b"%PDF-b")
    (root / "a.pdf").write_bytes(b"%PDF-a")
    (root / "nested" / "c.pdf").write_bytes(b"%PDF-c")
    (root / "notes.txt").write_text("ignored by default")
    return root


class TestDirectorySource:
    def test_lists_matching_files_recursively_sorted(self, docs_dir: Path) -> None:
        refs = DirectorySource(docs_dir).list_documents()
        assert [r.path for r in refs] == ["a.pdf", "b.pdf", "nested/c.pdf"]

    def test_multiple_patterns(self, docs_dir: Path) -> None:
        refs = DirectorySource(docs_dir, patterns=("*.pdf", "*.txt")).list_documents()
        assert "notes.txt" in [r.path for r in refs]

    def test_source_id_is_stable_and_names_the_directory(self, docs_dir: Path) -> None:
        assert DirectorySource(docs_dir).source_id == DirectorySource(str(docs_dir)).source_id
        assert DirectorySource(docs_dir).source_id.startswith("DirectorySource:")

    def test_mtime_version_follows_modification_time(self, docs_dir: Path) -> None:
        source = DirectorySource(docs_dir)
        before = {r.path: r.version for r in source.list_documents()}
        stat = (docs_dir / "a.pdf").stat()
        os.utime(docs_dir / "a.pdf", (stat.st_atime, stat.st_mtime + 60))
        after = {r.path: r.version for r in source.list_documents()}
        assert after["a.pdf"] != before["a.pdf"]
        assert after["b.pdf"] == before["b.pdf"]

    def test_sha256_version_follows_content(self, docs_dir: Path) -> None:
        source = DirectorySource(docs_dir, version_strategy="sha256")
        before = {r.path: r.version for r in source.list_documents()}
        (docs_dir / "a.pdf").write_bytes(b"%PDF-a-edited")
        after = {r.path: r.version for r in source.list_documents()}
        assert after["a.pdf"] != before["a.pdf"]
        assert after["nested/c.pdf"] == before["nested/c.pdf"]

    def test_unknown_version_strategy_rejected(self, docs_dir: Path) -> None:
        with pytest.raises(ValueError):
            DirectorySource(docs_dir, version_strategy="size")

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceEnumerationError):
            DirectorySource(tmp_path / "nope").list_documents()

    def test_open_bytes(self, docs_dir: Path) -> None:
        assert DirectorySource(docs_dir).open_bytes("nested/c.pdf") == b"%PDF-c"

    def test_open_bytes_missing_file(self, docs_dir: Path) -> None:
        with pytest.raises(UnreadableSourceError):
            DirectorySource(docs_dir).open_bytes("gone.pdf")


class TestResolveSourceDir:
    def _settings(self, tmp_path: Path, *, packaged: bool = True) -> Settings:
        if packaged:
            (tmp_path / "packaged").mkdir()
        return Settings(data_dir=tmp_path / "data", packaged_content_dir=tmp_path / "packaged")

    def test_falls_back_to_packaged_when_drop_folder_missing(self, tmp_path: Path) -> None:
        config = self._settings(tmp_path)
        assert resolve_source_dir(config) == tmp_path / "packaged"

    def test_falls_back_when_drop_folder_has_no_matching_files(self, tmp_path: Path) -> None:
        config = self._settings(tmp_path)
        config.content_dir.mkdir(parents=True)
        (config.content_dir / "readme.txt").write_text("not a pdf")
        assert resolve_source_dir(config) == tmp_path / "packaged"

    def test_prefers_drop_folder_with_files(self, tmp_path: Path) -> None:
        config = self._settings(tmp_path)
        (config.content_dir / "sub").mkdir(parents=True)
        (config.content_dir / "sub" / "cv.pdf").write_bytes(b"%PDF")
        assert resolve_source_dir(config) == config.content_dir

    def test_missing_packaged_folder_is_a_configuration_error(self, tmp_path: Path) -> None:
        config = self._settings(tmp_path, packaged=False)
        with pytest.raises(ConfigurationError, match="does not exist"):
            resolve_source_dir(config)

    def test_drop_folder_wins_even_without_packaged_folder(self, tmp_path: Path) -> None:
        config = self._settings(tmp_path, packaged=False)
        config.content_dir.mkdir(parents=True)
        (config.content_dir / "cv.pdf").write_bytes(b"%PDF")
        assert resolve_source_dir(config) == config.content_dir
