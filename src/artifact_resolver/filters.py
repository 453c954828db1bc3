"""Filters deciding which dependencies take part in a dependency graph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from .models import Exclusion, Scope

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import Dependency


class DependencyFilter(ABC):
    """Decides whether a dependency is accepted into a dependency graph."""

    @abstractmethod
    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        """Check if ``dependency`` should be kept.

        Args:
            dependency: The candidate dependency, already merged with its managed dependency
            parents: The dependencies on the path from the candidate's parent (first) up to the root (last)

        """
        raise NotImplementedError

    def __and__(self, other: DependencyFilter) -> DependencyFilter:
        return AndDependencyFilter(self, other)

    def __or__(self, other: DependencyFilter) -> DependencyFilter:
        return OrDependencyFilter(self, other)

    def __invert__(self) -> DependencyFilter:
        return NotDependencyFilter(self)


FilterFunction = Callable[["Dependency", "Sequence[Dependency]"], bool]


class _FunctionFilter(DependencyFilter):
    def __init__(self, function: FilterFunction) -> None:
        self.function: FilterFunction = function

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        return bool(self.function(dependency, parents))


def as_filter(dependency_filter: DependencyFilter | FilterFunction | None) -> DependencyFilter:
    """Turn None, a filter or a plain ``(dependency, parents) -> bool`` function into a filter."""
    if dependency_filter is None:
        return AcceptAllFilter()
    if isinstance(dependency_filter, DependencyFilter):
        return dependency_filter
    return _FunctionFilter(dependency_filter)


class AcceptAllFilter(DependencyFilter):
    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:  # noqa: ARG002
        return True


class ScopeDependencyFilter(DependencyFilter):
    """Keeps dependencies whose scope is in ``included`` (if given) and not in ``excluded``."""

    def __init__(self, included: Iterable[Scope | str] = (), excluded: Iterable[Scope | str] = ()) -> None:
        self.included: frozenset[Scope] = frozenset(Scope(s) for s in included)
        self.excluded: frozenset[Scope] = frozenset(Scope(s) for s in excluded)

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:  # noqa: ARG002
        scope = dependency.effective_scope
        if self.included and scope not in self.included:
            return False
        return scope not in self.excluded


class ExclusionsDependencyFilter(DependencyFilter):
    """Rejects dependencies matching any of the given group:artifact wildcard patterns."""

    def __init__(self, exclusions: Iterable[Exclusion | str]) -> None:
        self.exclusions: tuple[Exclusion, ...] = tuple(
            e if isinstance(e, Exclusion) else Exclusion.from_string(e) for e in exclusions
        )

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:  # noqa: ARG002
        return not any(e.matches(dependency.coordinate) for e in self.exclusions)


class OptionalDependencyFilter(DependencyFilter):
    """Rejects optional dependencies below the root's direct dependencies."""

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        return len(parents) < 2 or not dependency.is_optional  # noqa: PLR2004


class AndDependencyFilter(DependencyFilter):
    def __init__(self, *filters: DependencyFilter) -> None:
        self.filters: tuple[DependencyFilter, ...] = filters

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        return all(f.accept(dependency, parents) for f in self.filters)


class OrDependencyFilter(DependencyFilter):
    def __init__(self, *filters: DependencyFilter) -> None:
        self.filters: tuple[DependencyFilter, ...] = filters

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        return any(f.accept(dependency, parents) for f in self.filters)


class NotDependencyFilter(DependencyFilter):
    def __init__(self, inner: DependencyFilter) -> None:
        self.inner: DependencyFilter = inner

    def accept(self, dependency: Dependency, parents: Sequence[Dependency]) -> bool:
        return not self.inner.accept(dependency, parents)
