"""Tests for manifest discovery and dependency parsers."""

import json
from pathlib import Path

import pytest

from cpan_audit.core.discovery import DependencyParser
from cpan_audit.core.discovery.base import Dependency, ParsedDependencies
from cpan_audit.core.discovery.cpanfile import CpanfileParser
from cpan_audit.core.discovery.meta import MetaJsonParser
from cpan_audit.utils.path_utils import find_manifests, is_ignored_path


@pytest.fixture
def temp_cpanfile(tmp_path):
    """Create a temporary cpanfile."""
    cpanfile = tmp_path / "cpanfile"
    cpanfile.write_text(
        "requires 'perl', '5.010';\n"
        "requires 'Foo::Parser', '>= 1.5, < 2.0';\n"
        "requires \"Bar::Baz\" => 0.24; # inline comment\n"
        "requires 'Clean::Dist';\n"
        "recommends 'JSON::XS', '4.0';\n"
        "# requires 'Commented::Out';\n"
        "\n"
        "on 'test' => sub {\n"
        "    requires 'Test::More', '0.98';\n"
        "};\n"
        "\n"
        "feature 'sqlite', 'SQLite support' => sub {\n"
        "    requires 'DBD::SQLite', '== 1.70';\n"
        "};\n"
        "\n"
        "test_requires 'Test::Deep';\n"
        "author_requires 'Perl::Critic', '0';\n"
    )
    return cpanfile


@pytest.fixture
def temp_meta_json(tmp_path):
    """Create a temporary META.json file."""
    meta_file = tmp_path / "META.json"
    meta_file.write_text(json.dumps({
        "name": "My-App",
        "version": "1.02",
        "prereqs": {
            "runtime": {
                "requires": {"perl": "5.010", "Foo::Parser": ">= 1.5, < 2.0", "Clean::Dist": 0},
                "conflicts": {"Bar::Baz": "< 0.20"},
            },
            "test": {"requires": {"Test::More": "0.98"}, "suggests": {"Test::Pod": "1.41"}},
        },
    }))
    return meta_file


class TestDependency:
    """Test the Dependency model."""

    def test_strips_values(self):
        dependency = Dependency("  Foo::Bar ", " >= 1.0 ")
        assert dependency.module == "Foo::Bar"
        assert dependency.required_range == ">= 1.0"

    def test_empty_module(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            Dependency("  ")

    def test_missing_specifier_means_any(self):
        assert Dependency("Foo").required_range == ""

    def test_equality_ignores_location(self):
        assert Dependency("Foo", "1.0", line_number=1) == Dependency("Foo", "1.0", line_number=9)
        assert len({Dependency("Foo", "1.0"), Dependency("Foo", "1.0"), Dependency("Foo")}) == 2


class TestCpanfileParser:
    """Test the cpanfile parser."""

    def test_can_parse(self, temp_cpanfile, tmp_path):
        parser = CpanfileParser()
        assert parser.can_parse(temp_cpanfile)
        assert not parser.can_parse(tmp_path / "cpanfile.snapshot")

    def test_parse(self, temp_cpanfile):
        result = CpanfileParser().parse(temp_cpanfile)

        assert isinstance(result, ParsedDependencies)
        assert result.parser_type == "cpanfile"
        assert result.get_module_names() == {
            "Foo::Parser",
            "Bar::Baz",
            "Clean::Dist",
            "JSON::XS",
            "Test::More",
            "DBD::SQLite",
            "Test::Deep",
            "Perl::Critic",
        }

    def test_versions(self, temp_cpanfile):
        result = CpanfileParser().parse(temp_cpanfile)

        assert result.find_dependency("Foo::Parser").version_specifier == ">= 1.5, < 2.0"
        assert result.find_dependency("Bar::Baz").version_specifier == "0.24"
        assert result.find_dependency("Clean::Dist").required_range == ""
        assert result.find_dependency("Perl::Critic").required_range == ""
        assert result.find_dependency("DBD::SQLite").version_specifier == "== 1.70"

    def test_phases_and_features(self, temp_cpanfile):
        result = CpanfileParser().parse(temp_cpanfile)

        assert {dep.module for dep in result.filter_by_phase("test")} == {"Test::More", "Test::Deep"}
        assert result.find_dependency("JSON::XS").metadata["relationship"] == "recommends"
        assert result.find_dependency("Perl::Critic").metadata["phase"] == "develop"

        sqlite = result.find_dependency("DBD::SQLite")
        assert sqlite.metadata["feature"] == "sqlite"
        assert sqlite.metadata["phase"] == "runtime"

    def test_block_scope_ends(self, temp_cpanfile):
        result = CpanfileParser().parse(temp_cpanfile)
        assert "feature" not in result.find_dependency("Test::Deep").metadata

    def test_line_numbers(self, temp_cpanfile):
        result = CpanfileParser().parse(temp_cpanfile)
        assert result.find_dependency("Foo::Parser").line_number == 2
        assert result.find_dependency("Test::More").line_number == 9

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CpanfileParser().parse(tmp_path / "cpanfile")


class TestMetaJsonParser:
    """Test the META.json parser."""

    def test_can_parse(self, tmp_path):
        parser = MetaJsonParser()
        assert parser.can_parse(tmp_path / "META.json")
        assert parser.can_parse(tmp_path / "MYMETA.json")
        assert not parser.can_parse(tmp_path / "package.json")

    def test_parse(self, temp_meta_json):
        result = MetaJsonParser().parse(temp_meta_json)

        assert result.parser_type == "meta"
        assert result.metadata == {"name": "My-App", "version": "1.02"}
        assert result.get_module_names() == {"Foo::Parser", "Clean::Dist", "Test::More", "Test::Pod"}
        assert result.find_dependency("Clean::Dist").required_range == ""
        assert result.find_dependency("Test::Pod").metadata == {"phase": "test", "relationship": "suggests"}

    def test_conflicts_are_not_requirements(self, temp_meta_json):
        result = MetaJsonParser().parse(temp_meta_json)
        assert result.find_dependency("Bar::Baz") is None

    def test_invalid_json(self, tmp_path):
        meta_file = tmp_path / "META.json"
        meta_file.write_text("{")
        with pytest.raises(ValueError, match="Invalid JSON"):
            MetaJsonParser().parse(meta_file)


class TestParserRegistry:
    """Test the built-in parser registry."""

    def test_supported_types(self):
        assert set(DependencyParser.get_supported_parser_types()) == {"cpanfile", "meta"}

    def test_find_parser(self, temp_cpanfile, temp_meta_json, tmp_path):
        assert isinstance(DependencyParser.find_parser_for_file(temp_cpanfile), CpanfileParser)
        assert isinstance(DependencyParser.find_parser_for_file(temp_meta_json), MetaJsonParser)
        assert DependencyParser.find_parser_for_file(tmp_path / "Makefile.PL") is None

    def test_parse_file(self, temp_meta_json, tmp_path):
        assert DependencyParser.parse_file(temp_meta_json).parser_type == "meta"
        assert DependencyParser.parse_file(tmp_path / "README") is None


class TestManifestFinder:
    """Test manifest discovery in a project tree."""

    def test_finds_manifests(self, tmp_path):
        (tmp_path / "cpanfile").write_text("requires 'Foo';\n")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "META.json").write_text("{}")
        (tmp_path / "sub" / "MYMETA.json").write_text("{}")
        (tmp_path / "Makefile.PL").write_text("")

        manifests = find_manifests(tmp_path)

        assert [m.path.relative_to(tmp_path).as_posix() for m in manifests] == [
            "cpanfile",
            "sub/META.json",
            "sub/MYMETA.json",
        ]
        assert [m.parser_type for m in manifests] == ["cpanfile", "meta", "meta"]

    def test_skips_default_ignored_directories(self, tmp_path):
        for directory in ("local/lib", ".git", "blib"):
            (tmp_path / directory).mkdir(parents=True)
            (tmp_path / directory / "cpanfile").write_text("")
        (tmp_path / "cpanfile").write_text("")

        assert [m.path for m in find_manifests(tmp_path)] == [tmp_path / "cpanfile"]

    def test_extra_ignore_patterns(self, tmp_path):
        (tmp_path / "vendor").mkdir()
        (tmp_path / "vendor" / "cpanfile").write_text("")
        assert len(find_manifests(tmp_path)) == 1
        assert find_manifests(tmp_path, ["**/vendor/**"]) == []

    def test_single_file(self, temp_cpanfile):
        manifests = find_manifests(temp_cpanfile)
        assert [m.path for m in manifests] == [temp_cpanfile]

    def test_missing_root(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            find_manifests(tmp_path / "missing")

    def test_is_ignored_path(self):
        assert is_ignored_path(Path("/project/local/lib/perl5/cpanfile"))
        assert not is_ignored_path(Path("/project/lib/cpanfile"))
