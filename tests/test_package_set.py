"""Tests for PackageSet indexing and dependency search."""

from pkgsnap.domain import Dependency, Package, PackageSet


def _pkg(name, version, arch='amd64', **kwargs):
    return Package(name, version, arch, **kwargs)


class TestMembership:
    """Tests for add/remove/contains."""

    def test_add_is_idempotent(self):
        packages = PackageSet()
        packages.add(_pkg('a', '1.0'))
        packages.add(_pkg('a', '1.0'))
        assert len(packages) == 1

    def test_remove_absent_is_noop(self):
        packages = PackageSet([_pkg('a', '1.0')])
        packages.remove(_pkg('b', '1.0'))
        assert len(packages) == 1

    def test_contains_package_and_key(self):
        package = _pkg('a', '1.0')
        packages = PackageSet([package])
        assert package in packages
        assert 'Pamd64 a 1.0' in packages
        assert _pkg('a', '2.0') not in packages

    def test_iteration_in_insertion_order(self):
        items = [_pkg('b', '1'), _pkg('a', '1'), _pkg('c', '1')]
        assert list(PackageSet(items)) == items
        assert PackageSet(items).keys() == [p.key for p in items]

    def test_iteration_is_over_a_copy(self):
        packages = PackageSet([_pkg('a', '1'), _pkg('b', '1')])
        for package in packages:
            packages.remove(package)
        assert len(packages) == 0


class TestIndex:
    """Tests for lazy index maintenance."""

    def test_mutation_marks_index_stale(self):
        packages = PackageSet([_pkg('a', '1.0')])
        packages.prepare_index()
        assert packages.indexed

        packages.add(_pkg('a', '2.0'))
        assert not packages.indexed

    def test_search_never_sees_stale_index(self):
        packages = PackageSet([_pkg('a', '1.0')])
        assert packages.search(Dependency.parse('a'))[0].version == '1.0'

        packages.add(_pkg('a', '2.0'))
        assert packages.search(Dependency.parse('a'))[0].version == '2.0'

        packages.remove(_pkg('a', '2.0'))
        assert packages.search(Dependency.parse('a'))[0].version == '1.0'

        packages.remove(_pkg('a', '1.0'))
        assert packages.search(Dependency.parse('a')) == []


class TestSearch:
    """Tests for PackageSet.search()."""

    def test_newest_version_wins(self):
        packages = PackageSet([_pkg('a', '1.9'), _pkg('a', '1.10'), _pkg('a', '1.2')])
        assert packages.search(Dependency.parse('a {amd64}')) == [_pkg('a', '1.10')]

    def test_all_matches_newest_first(self):
        packages = PackageSet([_pkg('a', '1.9'), _pkg('a', '1.10'), _pkg('a', '1.2')])
        result = packages.search(Dependency.parse('a (>= 1.5)'), all_matches=True)
        assert [p.version for p in result] == ['1.10', '1.9']

    def test_version_constraint(self):
        packages = PackageSet([_pkg('a', '1.0'), _pkg('a', '2.0')])
        assert packages.search(Dependency.parse('a (<< 2.0)')) == [_pkg('a', '1.0')]
        assert packages.search(Dependency.parse('a (>> 2.0)')) == []

    def test_architecture_filter(self):
        packages = PackageSet([_pkg('a', '1.0', 'i386'), _pkg('a', '1.0', 'amd64')])
        assert packages.search(Dependency.parse('a {i386}')) == [_pkg('a', '1.0', 'i386')]
        assert packages.search(Dependency.parse('a {arm64}')) == []

    def test_arch_all_serves_binary_architectures(self):
        packages = PackageSet([_pkg('docs', '1.0', 'all')])
        assert packages.search(Dependency.parse('docs {arm64}')) == [_pkg('docs', '1.0', 'all')]
        assert packages.search(Dependency.parse('docs {source}')) == []

    def test_equal_versions_first_inserted_wins(self):
        first = _pkg('a', '1.0', files_hash='aaa')
        second = _pkg('a', '1.0', files_hash='bbb')
        packages = PackageSet([first, second])
        assert packages.search(Dependency.parse('a'))[0].files_hash == 'aaa'

    def test_provider_fallback(self):
        postfix = _pkg('postfix', '3.7', provides=('mail-transport-agent',))
        packages = PackageSet([postfix])
        assert packages.search(Dependency.parse('mail-transport-agent {amd64}')) == [postfix]

    def test_provider_not_used_for_versioned_dependency(self):
        packages = PackageSet([_pkg('postfix', '3.7', provides=('mail-transport-agent',))])
        assert packages.search(Dependency.parse('mail-transport-agent (>= 1)')) == []

    def test_real_package_preferred_over_provider(self):
        real = _pkg('mta', '1.0')
        packages = PackageSet([_pkg('postfix', '3.7', provides=('mta',)), real])
        assert packages.search(Dependency.parse('mta'), all_matches=True) == [real]


class TestLookupAndArchitectures:
    """Tests for lookup() and architectures()."""

    def test_lookup_exact_architecture(self):
        packages = PackageSet([
            _pkg('a', '1.0'), _pkg('a', '2.0'), _pkg('a', '1.0', 'all'), _pkg('b', '1.0'),
        ])
        assert {p.version for p in packages.lookup('a', 'amd64')} == {'1.0', '2.0'}
        assert packages.lookup('a', 'all') == [_pkg('a', '1.0', 'all')]
        assert packages.lookup('a', 'i386') == []

    def test_architectures(self):
        packages = PackageSet([
            _pkg('a', '1', 'i386'), _pkg('b', '1', 'amd64'), _pkg('c', '1', 'all'), _pkg('d', '1', 'source'),
        ])
        assert packages.architectures() == ['amd64', 'i386']
        assert packages.architectures(include_source=True) == ['amd64', 'i386', 'source']

    def test_architectures_empty(self):
        assert PackageSet().architectures() == []
