"""Tests for dependency expressions and relation parsing."""

import pytest

from pkgsnap.domain import Dependency, parse_relation, ANY_ARCHITECTURE
from pkgsnap.domain.dependency import compare_versions, split_relations
from pkgsnap.exit_codes import MalformedDependency, DATA_ERROR


class TestDependencyParse:
    """Tests for Dependency.parse()."""

    def test_parse_name_only(self):
        dep = Dependency.parse("libc6")
        assert dep.name == "libc6"
        assert dep.architecture == ANY_ARCHITECTURE
        assert dep.operator is None
        assert dep.version is None
        assert not dep.has_version_constraint

    def test_parse_version_relation(self):
        dep = Dependency.parse("libc6 (>= 2.36)")
        assert dep.name == "libc6"
        assert dep.operator == ">="
        assert dep.version == "2.36"
        assert dep.has_version_constraint

    def test_parse_architecture(self):
        dep = Dependency.parse("libc6 {amd64}")
        assert dep.architecture == "amd64"
        assert dep.operator is None

    def test_parse_full_expression(self):
        dep = Dependency.parse("  nginx (<< 1:1.22-1) {i386} ")
        assert dep == Dependency("nginx", "i386", "<<", "1:1.22-1")

    @pytest.mark.parametrize("operator", ["<<", "<=", "=", ">=", ">>"])
    def test_parse_all_operators(self, operator):
        dep = Dependency.parse(f"pkg ({operator} 1.0)")
        assert dep.operator == operator

    def test_parse_empty_raises(self):
        with pytest.raises(MalformedDependency) as exc_info:
            Dependency.parse("   ")
        assert exc_info.value.exit_code == DATA_ERROR

    def test_parse_unknown_operator_raises(self):
        with pytest.raises(MalformedDependency) as exc_info:
            Dependency.parse("pkg (~= 1.0)")
        assert exc_info.value.reason == "bad version relation"

    def test_parse_unclosed_parenthesis_raises(self):
        with pytest.raises(MalformedDependency):
            Dependency.parse("pkg (>= 1.0")

    def test_parse_garbage_after_name_raises(self):
        with pytest.raises(MalformedDependency):
            Dependency.parse("pkg extra words")

    def test_str_roundtrip(self):
        for text in ["libc6", "libc6 (>= 2.36)", "libc6 {amd64}", "libc6 (= 2.36-1) {amd64}"]:
            assert str(Dependency.parse(text)) == text

    def test_equality_is_structural(self):
        assert Dependency.parse("a (>= 1)") == Dependency.parse("a  ( >=  1 )")
        assert len({Dependency.parse("a"), Dependency.parse("a"), Dependency.parse("a {i386}")}) == 2

    def test_with_architecture(self):
        dep = Dependency.parse("libc6 (>= 2.36)")
        bound = dep.with_architecture("arm64")
        assert bound.architecture == "arm64"
        assert bound.version == "2.36"
        assert dep.architecture == ANY_ARCHITECTURE

    def test_to_dict(self):
        assert Dependency.parse("a (= 1) {amd64}").to_dict() == {
            'name': 'a',
            'architecture': 'amd64',
            'operator': '=',
            'version': '1',
        }


class TestVersionConstraints:
    """Tests for Debian version comparison."""

    def test_compare_versions(self):
        assert compare_versions("1.0", "1.0") == 0
        assert compare_versions("1.0", "1.1") == -1
        assert compare_versions("1.10", "1.9") == 1
        assert compare_versions("1:0.1", "9.9") == 1
        assert compare_versions("1.0~rc1", "1.0") == -1

    def test_satisfied_by(self):
        assert Dependency.parse("a").satisfied_by("0.1")
        assert Dependency.parse("a (>= 2.0)").satisfied_by("2.0")
        assert not Dependency.parse("a (>> 2.0)").satisfied_by("2.0")
        assert Dependency.parse("a (<< 2.0)").satisfied_by("2.0~beta")
        assert Dependency.parse("a (<= 2.0)").satisfied_by("2.0")
        assert Dependency.parse("a (= 2.0-1)").satisfied_by("2.0-1")
        assert not Dependency.parse("a (= 2.0-1)").satisfied_by("2.0-2")


class TestParseRelation:
    """Tests for parse_relation() on control-file relation entries."""

    def test_simple_entry_binds_architecture(self):
        assert parse_relation("libc6 (>= 2.36)", "amd64") == [
            Dependency("libc6", "amd64", ">=", "2.36")
        ]

    def test_alternatives(self):
        deps = parse_relation("mail-transport-agent | exim4 | postfix (>= 3)", "i386")
        assert [d.name for d in deps] == ["mail-transport-agent", "exim4", "postfix"]
        assert all(d.architecture == "i386" for d in deps)

    def test_legacy_operators(self):
        assert parse_relation("a (< 2)", "amd64")[0].operator == "<="
        assert parse_relation("a (> 2)", "amd64")[0].operator == ">="

    def test_arch_qualifiers(self):
        assert parse_relation("python3:any", "arm64")[0].architecture == "arm64"
        assert parse_relation("gcc:native", "arm64")[0].architecture == "arm64"
        assert parse_relation("libc6:i386", "amd64")[0].architecture == "i386"

    def test_arch_restriction(self):
        assert parse_relation("libc6 [amd64 i386]", "amd64") == [Dependency("libc6", "amd64")]
        assert parse_relation("libc6 [amd64 i386]", "arm64") == []
        assert parse_relation("libc6 [!hurd-i386]", "amd64") == [Dependency("libc6", "amd64")]
        assert parse_relation("libc6 [!amd64]", "amd64") == []

    def test_build_profiles_ignored(self):
        assert parse_relation("debhelper <!nocheck>", "amd64") == [Dependency("debhelper", "amd64")]

    def test_malformed_entry_raises(self):
        with pytest.raises(MalformedDependency):
            parse_relation("libc6 (>= )", "amd64")
        with pytest.raises(MalformedDependency):
            parse_relation("a ||", "amd64")

    def test_split_relations(self):
        assert split_relations("a, b (>= 1) | c,, ") == ["a", "b (>= 1) | c"]
        assert split_relations(None) == []
