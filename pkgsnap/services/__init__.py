"""
Service layer for pkgsnap.

Contains the operations that combine domain objects with storage:
- DependencyVerifier: Unmet dependencies of packages against a package set
- PullService: Dependency closure pull between snapshots
- SnapshotService: Loading, importing, assembling and verifying snapshots

Services are the primary API for commands to use.
They handle coordination between infrastructure and domain layers.
"""

from .dependency_verifier import DependencyVerifier, VerificationResult
from .pull_service import PullService, PullOptions, PullResult
from .snapshot_service import SnapshotService, read_packages_file

__all__ = [
    'DependencyVerifier',
    'VerificationResult',
    'PullService',
    'PullOptions',
    'PullResult',
    'SnapshotService',
    'read_packages_file',
]
