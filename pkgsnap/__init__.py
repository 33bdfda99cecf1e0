"""
pkgsnap - Immutable snapshots of Debian package sets.

pkgsnap stores named, frozen sets of packages and derives new snapshots by
pulling packages together with their dependency closure from one snapshot
into another.

Quick Start:
    from pkgsnap import Database, PullService, PullOptions

    service = PullService()
    with Database() as db:
        pull = service.pull_snapshots(
            db, "wheezy-main", "wheezy-backports", "wheezy-new",
            ["xorg", "nginx (>= 1.2)"], PullOptions(architectures=["amd64"]),
        )
        for diagnostic in pull:
            print(diagnostic)

    print(len(service.last_result.added), "packages added")

Domain Objects:
    Dependency - Parsed expression: name, version relation, architecture
    Package - One concrete package build and its relations
    PackageSet - Indexed working set used during resolution
    Snapshot - Immutable named set of package references

Services:
    DependencyVerifier - Unmet dependencies against a package set
    PullService - Dependency closure pull between snapshots
    SnapshotService - Import, load, assemble and verify snapshots
"""

__version__ = "0.3.0"

from .domain import (
    Dependency,
    Package,
    PackageSet,
    Snapshot,
    Diagnostic,
    DiagnosticKind,
    DependencyOptions,
)
from .services import (
    DependencyVerifier,
    PullService,
    PullOptions,
    PullResult,
    SnapshotService,
)
from .database import Database
from .config import load_config

__all__ = [
    '__version__',
    'Dependency',
    'Package',
    'PackageSet',
    'Snapshot',
    'Diagnostic',
    'DiagnosticKind',
    'DependencyOptions',
    'DependencyVerifier',
    'PullService',
    'PullOptions',
    'PullResult',
    'SnapshotService',
    'Database',
    'load_config',
]
