"""Core data models: coordinates, dependencies, exclusions and artifacts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

from .errors import MalformedCoordinateError
from .versions import Version, is_range_expression, parse_version_range

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from .versions import VersionRange

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jar"


class Scope(str, Enum):
    """The lifecycle phase in which a dependency is needed."""

    compile = "compile"
    runtime = "runtime"
    provided = "provided"
    test = "test"
    system = "system"

    @classmethod
    def parse(cls, text: str | None) -> Scope | None:
        """Parse a declared scope, returning None when no scope was declared."""
        if text is None or not text.strip():
            return None
        try:
            return cls(text.strip().lower())
        except ValueError:
            logger.warning("Unknown dependency scope %r, treating it as compile", text)
            return cls.compile

    @property
    def is_transitive(self) -> bool:
        """Whether dependencies in this scope are inherited by consumers of the declaring artifact."""
        return self in (Scope.compile, Scope.runtime)


@dataclass(frozen=True)
class Coordinate:
    """Identifies one publishable unit. The version may be empty, a plain version or a range expression."""

    group: str
    artifact: str
    version: str = ""
    extension: str = DEFAULT_EXTENSION
    classifier: str = ""

    @classmethod
    def from_string(cls, description: str) -> Coordinate:
        return parse_coordinate(description)

    @property
    def key(self) -> tuple[str, str, str, str]:
        """Everything but the version."""
        return self.group, self.artifact, self.extension, self.classifier

    @property
    def conflict_id(self) -> str:
        """The identity used for cycle detection and conflict resolution."""
        return f"{self.group}:{self.artifact}"

    def same_artifact(self, other: Coordinate) -> bool:
        """Check if two coordinates are the same artifact, possibly in different versions."""
        return self.key == other.key

    def with_version(self, version: str | Version) -> Coordinate:
        return replace(self, version=str(version))

    def with_extension(self, extension: str, classifier: str = "") -> Coordinate:
        return replace(self, extension=extension, classifier=classifier)

    @property
    def has_range(self) -> bool:
        return is_range_expression(self.version)

    @property
    def version_range(self) -> VersionRange:
        """The version of this coordinate as a range.

        Raises:
            MalformedRangeError: if the version is not a valid range expression

        """
        return parse_version_range(self.version)

    @property
    def is_snapshot(self) -> bool:
        return bool(self.version) and not self.has_range and Version(self.version).is_snapshot

    def __str__(self) -> str:
        parts = [self.group, self.artifact, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)


def parse_coordinate(description: str) -> Coordinate:
    """Parse ``group:artifact[:extension[:classifier]]:version``.

    Raises:
        MalformedCoordinateError: if the number of segments is invalid or a segment is empty

    """
    segments = description.strip().split(":")
    if not 3 <= len(segments) <= 5:  # noqa: PLR2004
        msg = (
            f"Bad artifact coordinates {description!r}, expected format is "
            "<groupId>:<artifactId>[:<extension>[:<classifier>]]:<version>"
        )
        raise MalformedCoordinateError(msg)
    if not all(s.strip() for s in segments):
        msg = f"Bad artifact coordinates {description!r}, segments must not be empty"
        raise MalformedCoordinateError(msg)
    group, artifact, *middle, version = (s.strip() for s in segments)
    extension = middle[0] if middle else DEFAULT_EXTENSION
    classifier = middle[1] if len(middle) > 1 else ""
    return Coordinate(group=group, artifact=artifact, version=version, extension=extension, classifier=classifier)


@dataclass(frozen=True)
class Exclusion:
    """A group/artifact wildcard pattern that prunes matching transitive dependencies."""

    group: str = "*"
    artifact: str = "*"

    @classmethod
    def from_string(cls, description: str) -> Exclusion:
        group, _, artifact = description.partition(":")
        return cls(group=group or "*", artifact=artifact or "*")

    def matches(self, coordinate: Coordinate) -> bool:
        return fnmatchcase(coordinate.group, self.group) and fnmatchcase(coordinate.artifact, self.artifact)

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}"


@dataclass(frozen=True)
class Dependency:
    """A declared dependency on a coordinate.

    ``scope`` and ``optional`` are None when the declaration did not specify them; an empty ``exclusions`` set
    likewise means that no exclusions were declared. Unspecified fields may be supplied by a managed dependency,
    see :func:`merge_dependency`.
    """

    coordinate: Coordinate
    scope: Scope | None = None
    optional: bool | None = None
    exclusions: frozenset[Exclusion] = field(default_factory=frozenset)
    system_path: str | None = None

    @classmethod
    def from_string(
        cls,
        description: str,
        scope: Scope | str | None = None,
        exclusions: Iterable[Exclusion | str] = (),
        *,
        optional: bool | None = None,
    ) -> Dependency:
        if isinstance(scope, str):
            scope = Scope.parse(scope)
        return cls(
            coordinate=parse_coordinate(description),
            scope=scope,
            optional=optional,
            exclusions=frozenset(e if isinstance(e, Exclusion) else Exclusion.from_string(e) for e in exclusions),
        )

    @property
    def effective_scope(self) -> Scope:
        return self.scope or Scope.compile

    @property
    def is_optional(self) -> bool:
        return bool(self.optional)

    def excludes(self, coordinate: Coordinate) -> bool:
        return any(e.matches(coordinate) for e in self.exclusions)

    def with_version(self, version: str | Version) -> Dependency:
        return replace(self, coordinate=self.coordinate.with_version(version))

    def with_scope(self, scope: Scope) -> Dependency:
        return replace(self, scope=scope)

    def __str__(self) -> str:
        ret = f"{self.coordinate} ({self.effective_scope.value}"
        if self.is_optional:
            ret += "?"
        return ret + ")"


# A managed dependency is an ordinary Dependency consulted only for default values.
ManagedDependency = Dependency


def merge_dependency(declared: Dependency, managed: Dependency | None) -> Dependency:
    """Fill in the fields that ``declared`` leaves unspecified from ``managed``.

    A declared value always wins when present; otherwise the managed value is used.

    Raises:
        ValueError: if the two dependencies are not on the same group:artifact

    """
    if managed is None:
        return declared
    if declared.coordinate.conflict_id != managed.coordinate.conflict_id:
        msg = f"Can not manage {declared.coordinate} with {managed.coordinate}"
        raise ValueError(msg)
    version = declared.coordinate.version or managed.coordinate.version
    return Dependency(
        coordinate=declared.coordinate.with_version(version),
        scope=declared.scope if declared.scope is not None else managed.scope,
        optional=declared.optional if declared.optional is not None else managed.optional,
        exclusions=declared.exclusions or managed.exclusions,
        system_path=declared.system_path if declared.system_path is not None else managed.system_path,
    )


def index_managed(managed: Iterable[Dependency]) -> dict[str, Dependency]:
    """Key managed dependencies by group:artifact. The first declaration of a key wins."""
    ret: dict[str, Dependency] = {}
    for dep in managed:
        ret.setdefault(dep.coordinate.conflict_id, dep)
    return ret


@dataclass(frozen=True)
class Artifact:
    """A coordinate together with where it was materialized. Two artifacts are equal iff their coordinates are."""

    coordinate: Coordinate
    path: Path | None = field(default=None, compare=False)
    repository: str | None = field(default=None, compare=False)

    @property
    def is_resolved(self) -> bool:
        return self.path is not None

    def __str__(self) -> str:
        return str(self.coordinate)
