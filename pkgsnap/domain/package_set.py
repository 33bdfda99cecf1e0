"""
Indexed, mutable package collection for pkgsnap.

PackageSet is the working materialization of one or more snapshots during
dependency resolution. Membership is keyed by package key and kept in
insertion order. Lookup structures (by name, by provided virtual name) are
rebuilt lazily: every mutation marks the index dirty and every read rebuilds
it first, so a search can never observe a stale index.
"""

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .dependency import ARCHITECTURE_ALL, ARCHITECTURE_SOURCE, Dependency, parse_version
from .package import Package


class PackageSet:
    """
    Mutable set of packages with dependency search.

    Example:
        packages = PackageSet.from_packages(source_packages)
        best = packages.search(Dependency.parse("libc6 (>= 2.36) {amd64}"))
        every = packages.search(Dependency.parse("libc6 {amd64}"), all_matches=True)

    Not safe for concurrent mutation.
    """

    def __init__(self, packages: Optional[Iterable[Package]] = None):
        self._packages: Dict[str, Package] = {}
        self._by_name: Dict[str, List[Package]] = {}
        self._providers: Dict[str, List[Package]] = {}
        self._dirty = True

        for package in packages or ():
            self.add(package)

    @classmethod
    def from_packages(cls, packages: Iterable[Package]) -> 'PackageSet':
        return cls(packages)

    # -- membership --------------------------------------------------------

    def add(self, package: Package) -> None:
        """Add a package; adding a package already present is a no-op."""
        if package.key in self._packages:
            return
        self._packages[package.key] = package
        self._dirty = True

    def remove(self, package: Package) -> None:
        """Remove a package by key; removing an absent package is a no-op."""
        if self._packages.pop(package.key, None) is not None:
            self._dirty = True

    def keys(self) -> List[str]:
        """Package keys in insertion order."""
        return list(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(list(self._packages.values()))

    def __contains__(self, item: Union[Package, str]) -> bool:
        key = item.key if isinstance(item, Package) else item
        return key in self._packages

    def __repr__(self) -> str:
        return f"PackageSet({len(self)} packages)"

    # -- index -------------------------------------------------------------

    @property
    def indexed(self) -> bool:
        """True when the index reflects current membership."""
        return not self._dirty

    def prepare_index(self) -> None:
        """
        Build lookup structures for the current membership.

        Packages under one name are ordered by Debian version, newest first;
        packages with equal versions keep their insertion order.
        """
        by_name: Dict[str, List[Package]] = defaultdict(list)
        providers: Dict[str, List[Package]] = defaultdict(list)

        for package in self._packages.values():
            by_name[package.name].append(package)
            for virtual in package.provided_names:
                providers[virtual].append(package)

        for candidates in list(by_name.values()) + list(providers.values()):
            # list.sort is stable, also with reverse=True
            candidates.sort(key=lambda p: parse_version(p.version), reverse=True)

        self._by_name = dict(by_name)
        self._providers = dict(providers)
        self._dirty = False

    def _ensure_index(self) -> None:
        if self._dirty:
            self.prepare_index()

    # -- queries -----------------------------------------------------------

    def search(self, dep: Dependency, all_matches: bool = False) -> List[Package]:
        """
        Find packages satisfying ``dep``.

        Real packages named ``dep.name`` win; when none match and ``dep`` has
        no version constraint, packages providing ``dep.name`` are used.

        Args:
            dep: Dependency expression
            all_matches: Return every match instead of the newest one

        Returns:
            Matching packages, newest first; empty when nothing matches
        """
        self._ensure_index()

        results = [p for p in self._by_name.get(dep.name, ()) if p.matches_dependency(dep)]

        if not results and not dep.has_version_constraint:
            results = [
                p for p in self._providers.get(dep.name, ())
                if p.matches_architecture(dep.architecture)
            ]

        if not all_matches:
            return results[:1]
        return results

    def lookup(self, name: str, architecture: str) -> List[Package]:
        """All packages with exactly this name and architecture, any version."""
        self._ensure_index()
        return [p for p in self._by_name.get(name, ()) if p.architecture == architecture]

    def architectures(self, include_source: bool = False) -> List[str]:
        """
        Distinct architectures present, sorted.

        ``all`` is never listed; ``source`` only with ``include_source``.
        """
        result = set()
        for package in self._packages.values():
            if package.architecture == ARCHITECTURE_ALL:
                continue
            if package.architecture == ARCHITECTURE_SOURCE and not include_source:
                continue
            result.add(package.architecture)
        return sorted(result)
