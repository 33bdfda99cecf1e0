"""Tests for the Snapshot and Diagnostic domain objects."""

import json
from datetime import datetime

from pkgsnap.domain import Dependency, Diagnostic, DiagnosticKind, Package, PackageSet, Snapshot
from pkgsnap.domain.snapshot import SOURCE_KIND_PACKAGES, SOURCE_KIND_SNAPSHOT


class TestSnapshot:
    """Tests for Snapshot domain object."""

    def test_from_package_set(self):
        packages = PackageSet([Package('z', '1', 'amd64'), Package('a', '1', 'amd64')])
        parents = [Snapshot(name='base'), Snapshot(name='updates')]

        snapshot = Snapshot.from_package_set('new', parents, packages, 'pulled')

        assert snapshot.package_refs == ('Pamd64 a 1', 'Pamd64 z 1')
        assert snapshot.parents == ('base', 'updates')
        assert snapshot.source_kind == SOURCE_KIND_SNAPSHOT
        assert len(snapshot) == 2

    def test_frozen_against_later_changes(self):
        packages = PackageSet([Package('a', '1', 'amd64')])
        snapshot = Snapshot.from_package_set('snap', [], packages, 'test')

        packages.add(Package('b', '1', 'amd64'))

        assert len(snapshot) == 1

    def test_source_kind(self):
        snapshot = Snapshot.from_package_set('s', [], PackageSet(), 'x', SOURCE_KIND_PACKAGES)
        assert snapshot.source_kind == SOURCE_KIND_PACKAGES

    def test_to_dict(self):
        created = datetime(2026, 1, 2, 3, 4, 5)
        snapshot = Snapshot(name='snap', package_refs=('k1',), parents=('p',),
                            description='d', created_at=created)

        assert snapshot.to_dict() == {
            'name': 'snap',
            'description': 'd',
            'created_at': '2026-01-02T03:04:05',
            'source_kind': 'snapshot',
            'parents': ['p'],
            'package_count': 1,
        }

    def test_str(self):
        assert str(Snapshot(name='snap', description='Created as empty')) == '[snap]: Created as empty'


class TestDiagnostic:
    """Tests for Diagnostic domain object."""

    def test_messages(self):
        package = Package('a', '1.0', 'amd64')
        dep = Dependency('ghost', 'amd64')

        assert Diagnostic(DiagnosticKind.ADDED, 'amd64', package=package).message == 'a_1.0_amd64 added'
        assert Diagnostic(DiagnosticKind.REMOVED, 'amd64', package=package).message == 'a_1.0_amd64 removed'
        assert Diagnostic(DiagnosticKind.UNSATISFIABLE, 'amd64', dependency=dep, detail='main').message == \
            "Dependency ghost {amd64} can't be satisfied with source main"
        assert Diagnostic(DiagnosticKind.UNSATISFIABLE, 'amd64', dependency=dep).message == \
            "Dependency ghost {amd64} can't be satisfied"
        assert Diagnostic(DiagnosticKind.VERIFICATION_ERROR, 'amd64', package=package, detail='bad').message == \
            'Error while verifying dependencies for pkg a_1.0_amd64: bad'

    def test_is_problem(self):
        package = Package('a', '1.0', 'amd64')
        assert not Diagnostic(DiagnosticKind.ADDED, 'amd64', package=package).is_problem
        assert not Diagnostic(DiagnosticKind.REMOVED, 'amd64', package=package).is_problem
        assert Diagnostic(DiagnosticKind.UNSATISFIABLE, 'amd64').is_problem
        assert Diagnostic(DiagnosticKind.LIMIT_REACHED, 'amd64').is_problem

    def test_to_jsonl(self):
        diagnostic = Diagnostic(DiagnosticKind.ADDED, 'i386', package=Package('a', '1.0', 'i386'))

        line = diagnostic.to_jsonl()

        assert '\n' not in line
        assert json.loads(line) == {
            'type': 'added',
            'architecture': 'i386',
            'message': 'a_1.0_i386 added',
            'package': 'a_1.0_i386',
        }
