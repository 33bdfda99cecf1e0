"""
Domain layer for pkgsnap.

Contains pure domain objects with no I/O or side effects:
- Dependency: Parsed dependency expression (name, version relation, architecture)
- Package: One concrete package build and its declared relations
- PackageSet: Mutable, indexed working set used during resolution
- Snapshot: Immutable named set of package references with provenance
- Diagnostic: Event reported by the pull engine

Everything except PackageSet is immutable and provides
serialization methods for JSONL output.
"""

from .dependency import (
    Dependency,
    ANY_ARCHITECTURE,
    ARCHITECTURE_ALL,
    ARCHITECTURE_SOURCE,
    parse_relation,
)
from .package import Package, DependencyOptions
from .package_set import PackageSet
from .snapshot import Snapshot
from .diagnostic import Diagnostic, DiagnosticKind

__all__ = [
    'Dependency',
    'ANY_ARCHITECTURE',
    'ARCHITECTURE_ALL',
    'ARCHITECTURE_SOURCE',
    'parse_relation',
    'Package',
    'DependencyOptions',
    'PackageSet',
    'Snapshot',
    'Diagnostic',
    'DiagnosticKind',
]
