"""
Tests for keyword sources, precedence resolution and keyword file persistence.
"""

import pytest

from conftest import FailingCatalog, StaticCatalog, write_keyword_file
from newsrisk.keyword_sources import (
    CatalogKeywordSource,
    ExplicitKeywordSource,
    FileKeywordSource,
    KeywordProvenance,
    KeywordResolutionError,
    KeywordResolver,
    clean_keywords,
)
from newsrisk.repositories import ProviderKeywordCatalog


def make_resolver(keyword_file, catalog):
    return KeywordResolver(FileKeywordSource(keyword_file), CatalogKeywordSource(catalog))


class TestFileKeywordSource:
    """Tests for reading the keyword file"""

    def test_skips_comments_and_blank_lines(self, keyword_file):
        write_keyword_file(keyword_file, ["  recall  ", "", "# not a keyword", "ban"])
        assert FileKeywordSource(keyword_file).load() == ["recall", "ban"]

    def test_missing_file_is_empty(self, tmp_path):
        assert FileKeywordSource(tmp_path / "nope.txt").load() == []

    def test_custom_comment_marker(self, keyword_file):
        write_keyword_file(keyword_file, ["// comment", "#hashtag"], header=False)
        assert FileKeywordSource(keyword_file, comment_marker="//").load() == ["#hashtag"]

    def test_unreadable_file_is_empty(self, keyword_file):
        keyword_file.parent.mkdir(parents=True)
        keyword_file.write_bytes(b"\xff\xfe\xfa not utf-8")
        assert FileKeywordSource(keyword_file).load() == []

    def test_directory_instead_of_file_is_empty(self, tmp_path):
        assert FileKeywordSource(tmp_path).load() == []


class TestKeywordFileSave:
    """Tests for writing the keyword file"""

    def test_save_then_load(self, keyword_file):
        source = FileKeywordSource(keyword_file)
        assert source.save([" recall ", "", "召回"]) is True
        assert source.load() == ["recall", "召回"]

    def test_header_block(self, keyword_file):
        FileKeywordSource(keyword_file).save(["recall"])
        lines = keyword_file.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "# Cert news keyword list"
        assert lines[1].startswith("# One keyword per line")
        assert lines[2].startswith("# Generated at: ")
        assert lines[3] == ""
        assert lines[4] == "recall"

    def test_header_uses_custom_marker(self, keyword_file):
        source = FileKeywordSource(keyword_file, comment_marker=";")
        assert source.save(["recall", "ban"]) is True

        lines = keyword_file.read_text(encoding="utf-8").splitlines()
        assert all(line.startswith(";") for line in lines[:3])
        assert not any(line.startswith("#") for line in lines)
        assert source.load() == ["recall", "ban"]

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "a" / "b" / "keywords.txt"
        assert FileKeywordSource(path).save(["x"]) is True
        assert path.exists()

    def test_overwrites_existing_file(self, keyword_file):
        source = FileKeywordSource(keyword_file)
        source.save(["old"])
        source.save(["new"])
        assert source.load() == ["new"]

    def test_write_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        assert FileKeywordSource(blocker / "keywords.txt").save(["x"]) is False

    def test_info(self, keyword_file):
        source = FileKeywordSource(keyword_file)
        source.save(["a", "b"])
        info = source.info()
        assert info == {"keywords": ["a", "b"], "count": 2, "source_path": str(keyword_file)}


class TestCatalogKeywordSource:
    """Tests for the catalog-backed source"""

    def test_loads_enabled_keywords(self):
        assert CatalogKeywordSource(StaticCatalog(["recall", " "])).load() == ["recall"]

    def test_failure_raises_resolution_error(self):
        with pytest.raises(KeywordResolutionError):
            CatalogKeywordSource(FailingCatalog()).load()

    def test_database_catalog(self, provider, add_catalog_keywords):
        add_catalog_keywords(["recall", "ban"])
        add_catalog_keywords(["disabled"], enabled=False)
        source = CatalogKeywordSource(ProviderKeywordCatalog(provider))
        assert source.load() == ["recall", "ban"]


class TestKeywordResolver:
    """Tests for source precedence"""

    def test_explicit_wins(self, keyword_file):
        write_keyword_file(keyword_file, ["file-kw"])
        resolver = make_resolver(keyword_file, StaticCatalog(["catalog-kw"]))

        resolved = resolver.resolve(["explicit-kw"])

        assert resolved.keywords == ["explicit-kw"]
        assert resolved.provenance == KeywordProvenance.EXPLICIT

    def test_blank_explicit_falls_back_to_file(self, keyword_file):
        write_keyword_file(keyword_file, ["file-kw"])
        resolver = make_resolver(keyword_file, StaticCatalog(["catalog-kw"]))

        resolved = resolver.resolve(["  ", ""])

        assert resolved.keywords == ["file-kw"]
        assert resolved.provenance == KeywordProvenance.FILE

    def test_file_wins_over_catalog(self, keyword_file):
        write_keyword_file(keyword_file, ["file-kw"])
        resolved = make_resolver(keyword_file, StaticCatalog(["catalog-kw"])).resolve()
        assert resolved.provenance == KeywordProvenance.FILE

    def test_catalog_when_file_missing(self, keyword_file):
        resolved = make_resolver(keyword_file, StaticCatalog(["catalog-kw"])).resolve()
        assert resolved.keywords == ["catalog-kw"]
        assert resolved.provenance == KeywordProvenance.CATALOG

    def test_catalog_when_file_has_only_comments(self, keyword_file):
        write_keyword_file(keyword_file, ["# nothing here"])
        resolved = make_resolver(keyword_file, StaticCatalog(["catalog-kw"])).resolve()
        assert resolved.provenance == KeywordProvenance.CATALOG

    def test_all_empty_returns_empty_catalog_result(self, keyword_file):
        resolved = make_resolver(keyword_file, StaticCatalog([])).resolve()
        assert resolved.keywords == []
        assert resolved.count == 0
        assert resolved.provenance == KeywordProvenance.CATALOG
        assert not resolved

    def test_catalog_failure_raises(self, keyword_file):
        with pytest.raises(KeywordResolutionError):
            make_resolver(keyword_file, FailingCatalog()).resolve()

    def test_catalog_not_consulted_when_file_has_keywords(self, keyword_file):
        write_keyword_file(keyword_file, ["file-kw"])
        resolved = make_resolver(keyword_file, FailingCatalog()).resolve()
        assert resolved.keywords == ["file-kw"]


class TestHelpers:
    """Tests for keyword list cleaning"""

    def test_clean_keywords(self):
        assert clean_keywords([" a ", "", None, "b"]) == ["a", "b"]
        assert clean_keywords(None) == []

    def test_explicit_source_trims(self):
        assert ExplicitKeywordSource([" recall "]).load() == ["recall"]
