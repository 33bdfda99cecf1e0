"""
Dependency verification for pkgsnap.

Given candidate packages and a context PackageSet, find the dependency
expressions of the candidates that the context cannot satisfy. Used by the
pull engine to discover transitive dependencies and by ``snapshot verify``.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..domain import Dependency, DependencyOptions, Package, PackageSet, parse_relation
from ..exit_codes import InvalidRelation, MalformedDependency

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Unmet dependencies (first-seen order, no duplicates) and per-package errors."""
    missing: List[Dependency] = field(default_factory=list)
    errors: List[InvalidRelation] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return not self.missing and not self.errors


class DependencyVerifier:
    """
    Checks declared relations of packages against a package set.

    For each relation entry, alternatives (``a | b``) are searched in the
    context. An entry is unmet when every alternative is missing; all of its
    missing alternatives are then reported. With ``follow_all_variants`` the
    missing alternatives are reported even if another one is satisfied.

    Example:
        verifier = DependencyVerifier(DependencyOptions(follow_recommends=True))
        result = verifier.verify([package], ["amd64"], destination)
        for dep in result.missing:
            print(dep)
    """

    def __init__(self, options: Optional[DependencyOptions] = None):
        self.options = options or DependencyOptions()

    def verify(
        self,
        candidate: Iterable[Package],
        architectures: Sequence[str],
        context: PackageSet,
        ignore: Optional[Iterable[Dependency]] = None,
    ) -> VerificationResult:
        """
        Compute unmet dependencies of ``candidate``.

        Args:
            candidate: Packages whose relations are checked
            architectures: Architectures to evaluate relations for
            context: Package set that has to satisfy the relations
            ignore: Expressions treated as satisfied

        Returns:
            VerificationResult; malformed relations are reported in
            ``errors`` and the offending package is skipped
        """
        result = VerificationResult()
        reported: Set[Dependency] = set()
        ignored = set(ignore or ())
        packages = list(candidate)

        for architecture in architectures:
            cache: Dict[Dependency, bool] = {}

            for package in packages:
                if not package.matches_architecture(architecture):
                    continue

                try:
                    groups = self._relation_groups(package, architecture)
                except MalformedDependency as e:
                    logger.debug(f"Invalid relation in {package}: {e}")
                    result.errors.append(InvalidRelation(str(package), e.text, e.reason))
                    continue

                for variants in groups:
                    for dep in self._unmet(variants, context, cache, ignored):
                        if dep not in reported:
                            reported.add(dep)
                            result.missing.append(dep)

        return result

    def _relation_groups(self, package: Package, architecture: str) -> List[List[Dependency]]:
        """Parse every followed relation entry before any of them is checked."""
        groups = []
        for entry in package.get_dependencies(self.options):
            variants = _deduplicate(parse_relation(entry, architecture))
            if variants:
                groups.append(variants)

        if self.options.follow_source and not package.is_source:
            groups.append([package.source_dependency()])

        return groups

    def _unmet(
        self,
        variants: List[Dependency],
        context: PackageSet,
        cache: Dict[Dependency, bool],
        ignored: Set[Dependency],
    ) -> List[Dependency]:
        missing = []
        for dep in variants:
            if dep in ignored:
                continue
            found = cache.get(dep)
            if found is None:
                found = bool(context.search(dep, all_matches=False))
                cache[dep] = found
            if not found:
                missing.append(dep)

        if self.options.follow_all_variants or len(missing) == len(variants):
            return missing
        return []


def _deduplicate(deps: List[Dependency]) -> List[Dependency]:
    seen = set()
    result = []
    for dep in deps:
        if dep not in seen:
            seen.add(dep)
            result.append(dep)
    return result
