"""
Pull service for pkgsnap.

Pulls packages and their transitive dependencies from a source package set
into a destination package set, and wraps that into the snapshot-level
operation: load two snapshots, pull, store the result as a new snapshot.

The closure runs independently per architecture, in sorted order. For each
architecture a work list is seeded with the requested expressions bound to
that architecture and processed front to back while it grows:

    1. search the source for the expression (nothing found: diagnose, skip)
    2. remove every destination package with the same name and architecture
    3. add the matches to the destination
    4. verify the matches against the destination and append unmet
       expressions not queued before

The work list only grows with distinct expressions drawn from a finite
universe, so the loop terminates.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Any, Generator, List, Optional, Sequence

from ..config import load_config, get_architectures
from ..database import Database
from ..domain import (
    Dependency,
    DependencyOptions,
    Diagnostic,
    DiagnosticKind,
    Package,
    PackageSet,
    Snapshot,
)
from ..exit_codes import InvalidRelation, NoArchitectures
from .dependency_verifier import DependencyVerifier
from .snapshot_service import SnapshotService

logger = logging.getLogger(__name__)


@dataclass
class PullOptions:
    """Options for pull operation."""
    no_deps: bool = False
    no_remove: bool = False
    all_matches: bool = False
    dry_run: bool = False
    architectures: List[str] = field(default_factory=list)
    max_iterations: int = 0
    dependency_options: DependencyOptions = field(default_factory=DependencyOptions)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]], **overrides) -> 'PullOptions':
        """Defaults from config; keyword arguments win."""
        config = config or {}
        options = cls(
            architectures=get_architectures(config),
            max_iterations=int((config.get('pull') or {}).get('max_iterations', 0) or 0),
            dependency_options=DependencyOptions.from_config(config),
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options


@dataclass
class PullResult:
    """Result of pull operation."""
    architectures: List[str] = field(default_factory=list)
    added: List[Package] = field(default_factory=list)
    removed: List[Package] = field(default_factory=list)
    unsatisfied: List[Dependency] = field(default_factory=list)
    errors: List[InvalidRelation] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    work_list_sizes: Dict[str, int] = field(default_factory=dict)
    snapshot: Optional[Snapshot] = None

    @property
    def success(self) -> bool:
        """True when every expression resolved and every relation parsed."""
        return not self.unsatisfied and not self.errors


class PullService:
    """
    Service for pulling packages with their dependencies.

    Example:
        service = PullService(config)
        for diagnostic in service.pull(destination, source, [Dependency.parse("xorg")],
                                       PullOptions(architectures=["amd64"])):
            print(diagnostic)

        result = service.last_result
        print(f"Added {len(result.added)} packages")
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize PullService.

        Args:
            config: Configuration dict (loads default if None)
        """
        self.config = config or load_config()
        self.snapshots = SnapshotService(self.config)
        self.last_result: Optional[PullResult] = None

    def pull(
        self,
        destination: PackageSet,
        source: PackageSet,
        initial: Sequence[Dependency],
        options: PullOptions,
        source_name: str = "",
    ) -> Generator[Diagnostic, None, PullResult]:
        """
        Grow ``destination`` with packages from ``source``.

        ``destination`` is mutated in place, ``source`` is only read.

        Args:
            destination: Package set receiving packages
            source: Package set packages are drawn from
            initial: Requested expressions (architecture is rebound)
            options: Pull options; ``options.architectures`` must be set
            source_name: Name of the source, used in diagnostics

        Yields:
            Diagnostic events in processing order

        Returns:
            PullResult

        Raises:
            NoArchitectures: ``options.architectures`` is empty
        """
        if not options.architectures:
            raise NoArchitectures()

        result = PullResult(architectures=sorted(set(options.architectures)))
        self.last_result = result
        verifier = DependencyVerifier(options.dependency_options)

        for architecture in result.architectures:
            yield from self._pull_architecture(
                architecture, destination, source, initial, options, verifier, source_name, result
            )

        return result

    def _pull_architecture(
        self,
        architecture: str,
        destination: PackageSet,
        source: PackageSet,
        initial: Sequence[Dependency],
        options: PullOptions,
        verifier: DependencyVerifier,
        source_name: str,
        result: PullResult,
    ) -> Generator[Diagnostic, None, None]:
        work_list: List[Dependency] = []
        queued = set()
        for dep in initial:
            bound = dep.with_architecture(architecture)
            if bound not in queued:
                queued.add(bound)
                work_list.append(bound)

        i = 0
        while i < len(work_list):
            if options.max_iterations and i >= options.max_iterations:
                yield self._emit(result, Diagnostic(
                    DiagnosticKind.LIMIT_REACHED, architecture,
                    detail=f"{len(work_list) - i} of {len(work_list)} dependencies not processed",
                ))
                break

            dep = work_list[i]
            i += 1
            logger.debug(f"[{architecture}] {i}/{len(work_list)}: {dep}")

            matches = source.search(dep, options.all_matches)
            if not matches:
                result.unsatisfied.append(dep)
                yield self._emit(result, Diagnostic(
                    DiagnosticKind.UNSATISFIABLE, architecture, dependency=dep, detail=source_name,
                ))
                continue

            if not options.no_remove:
                for match in matches:
                    yield from self._remove_versions(destination, match, architecture, result)

            for match in matches:
                destination.add(match)
                result.added.append(match)
                yield self._emit(result, Diagnostic(DiagnosticKind.ADDED, architecture, package=match))

            if options.no_deps:
                continue

            for match in matches:
                verification = verifier.verify([match], [architecture], destination)
                for error in verification.errors:
                    result.errors.append(error)
                    yield self._emit(result, Diagnostic(
                        DiagnosticKind.VERIFICATION_ERROR, architecture, package=match,
                        detail=f"{error.reason}: {error.relation!r}",
                    ))
                for missing in verification.missing:
                    if missing not in queued:
                        queued.add(missing)
                        work_list.append(missing)

        result.work_list_sizes[architecture] = len(work_list)

    def _remove_versions(
        self,
        destination: PackageSet,
        match: Package,
        architecture: str,
        result: PullResult,
    ) -> Generator[Diagnostic, None, None]:
        """Remove every destination package sharing ``match``'s name and architecture."""
        existing = destination.lookup(match.name, match.architecture)
        while existing:
            for package in existing:
                destination.remove(package)
                result.removed.append(package)
                yield self._emit(result, Diagnostic(DiagnosticKind.REMOVED, architecture, package=package))
            existing = destination.lookup(match.name, match.architecture)

    def _emit(self, result: PullResult, diagnostic: Diagnostic) -> Diagnostic:
        result.diagnostics.append(diagnostic)
        return diagnostic

    def pull_snapshots(
        self,
        db: Database,
        destination_name: str,
        source_name: str,
        new_name: str,
        expressions: Sequence[str],
        options: PullOptions,
    ) -> Generator[Diagnostic, None, PullResult]:
        """
        Pull into snapshot ``destination_name`` from ``source_name``, saving
        the outcome as snapshot ``new_name`` (unless ``options.dry_run``).

        All input errors surface before any package is moved.

        Raises:
            NotFound: destination or source snapshot missing
            MalformedDependency: an expression cannot be parsed
            NoArchitectures: no architecture given, configured or present
            DuplicateName: ``new_name`` is taken (work is discarded)
        """
        destination_snapshot = self.snapshots.load(db, destination_name)
        source_snapshot = self.snapshots.load(db, source_name)

        initial = [Dependency.parse(text) for text in expressions]

        logger.info(
            f"Loading packages ({len(destination_snapshot) + len(source_snapshot)})..."
        )
        destination = self.snapshots.load_package_set(db, destination_snapshot)
        source = self.snapshots.load_package_set(db, source_snapshot)

        architectures = list(options.architectures) or destination.architectures(False)
        if not architectures:
            raise NoArchitectures()
        options = replace(options, architectures=sorted(architectures))

        result = yield from self.pull(destination, source, initial, options, source_name=source_name)

        if not options.dry_run:
            description = (
                f"Pulled into '{destination_snapshot.name}' with '{source_snapshot.name}' "
                f"as source, pull request was: '{' '.join(expressions)}'"
            )
            result.snapshot = self.snapshots.assemble(
                db, new_name, [destination_snapshot, source_snapshot], destination, description
            )

        return result
