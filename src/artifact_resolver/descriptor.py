"""Artifact metadata lookup: the dependencies an artifact declares."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .errors import FetchError
from .models import DEFAULT_EXTENSION, Coordinate, Dependency, Exclusion, Scope

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from .index import RepositoryIndex
    from .materializer import ArtifactMaterializer
    from .repository import RemoteRepository

logger = logging.getLogger(__name__)

# POM packaging types whose file extension or classifier differs from the type name
TYPE_MAPPINGS: dict[str, tuple[str, str]] = {
    "test-jar": ("jar", "tests"),
    "ejb-client": ("jar", "client"),
    "java-source": ("jar", "sources"),
    "javadoc": ("jar", "javadoc"),
    "maven-plugin": ("jar", ""),
    "ejb": ("jar", ""),
    "bundle": ("jar", ""),
}


class ArtifactDescriptorReader(ABC):
    """Looks up the dependencies declared by an artifact."""

    @abstractmethod
    def get_declared_dependencies(self, coordinate: Coordinate) -> Sequence[Dependency]:
        """Return the dependencies declared by ``coordinate``, in declaration order.

        Raises:
            FetchError: if the metadata of ``coordinate`` can not be obtained

        """
        raise NotImplementedError

    def with_repositories(self, extra_repositories: Iterable[RemoteRepository]) -> ArtifactDescriptorReader:  # noqa: ARG002
        """Return a reader that also searches ``extra_repositories``."""
        return self


class InMemoryDescriptorReader(ArtifactDescriptorReader):
    """Serves declared dependencies from a mapping of coordinate strings, such as ``"junit:junit:4.12"``.

    Coordinates that are not in the mapping declare no dependencies, unless ``strict`` is set, in which case
    looking them up is a FetchError.
    """

    def __init__(self, descriptors: Mapping[str, Iterable[Dependency]] | None = None, *, strict: bool = False) -> None:
        self.descriptors: dict[tuple[str, str, str], list[Dependency]] = {}
        self.strict: bool = strict
        for key, deps in (descriptors or {}).items():
            self.add(Coordinate.from_string(key), deps)

    @staticmethod
    def _key(coordinate: Coordinate) -> tuple[str, str, str]:
        return coordinate.group, coordinate.artifact, coordinate.version

    def add(self, coordinate: Coordinate, dependencies: Iterable[Dependency]) -> None:
        self.descriptors[self._key(coordinate)] = list(dependencies)

    def get_declared_dependencies(self, coordinate: Coordinate) -> Sequence[Dependency]:
        try:
            return tuple(self.descriptors[self._key(coordinate)])
        except KeyError:
            if self.strict:
                msg = f"No descriptor for {coordinate}"
                raise FetchError(msg, coordinate) from None
            return ()


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _parse_dependency(element: ET.Element) -> Dependency | None:
    group = _text(element, "groupId")
    artifact = _text(element, "artifactId")
    if group is None or artifact is None:
        logger.warning("Ignoring a dependency without groupId or artifactId")
        return None
    packaging = _text(element, "type") or DEFAULT_EXTENSION
    extension, classifier = TYPE_MAPPINGS.get(packaging, (packaging, ""))
    classifier = _text(element, "classifier") or classifier
    exclusions = []
    exclusions_element = _child(element, "exclusions")
    if exclusions_element is not None:
        for exclusion in _children(exclusions_element, "exclusion"):
            exclusions.append(
                Exclusion(group=_text(exclusion, "groupId") or "*", artifact=_text(exclusion, "artifactId") or "*")
            )
    optional = _text(element, "optional")
    return Dependency(
        coordinate=Coordinate(
            group=group,
            artifact=artifact,
            version=_text(element, "version") or "",
            extension=extension,
            classifier=classifier,
        ),
        scope=Scope.parse(_text(element, "scope")),
        optional=None if optional is None else optional.lower() == "true",
        exclusions=frozenset(exclusions),
        system_path=_text(element, "systemPath"),
    )


def parse_pom_dependencies(data: bytes) -> list[Dependency]:
    """Read the ``project/dependencies/dependency`` declarations of a POM.

    Property placeholders such as ``${project.version}`` are returned verbatim.

    Raises:
        ValueError: if ``data`` is not well formed XML

    """
    try:
        root = ET.fromstring(data)  # noqa: S314
    except ET.ParseError as e:
        msg = f"Malformed POM: {e!s}"
        raise ValueError(msg) from e
    dependencies_element = _child(root, "dependencies")
    if dependencies_element is None:
        return []
    return [
        dep for dep in map(_parse_dependency, _children(dependencies_element, "dependency")) if dep is not None
    ]


class PomDescriptorReader(ArtifactDescriptorReader):
    """Reads declared dependencies from the POM published next to an artifact.

    With a ``materializer``, POM downloads share its in-flight fetches and its cache, so concurrent graph builds
    download each POM once.
    """

    def __init__(
        self,
        index: RepositoryIndex,
        extra_repositories: Iterable[RemoteRepository] = (),
        materializer: ArtifactMaterializer | None = None,
    ) -> None:
        self.index: RepositoryIndex = index
        self.extra_repositories: tuple[RemoteRepository, ...] = tuple(extra_repositories)
        self.materializer: ArtifactMaterializer | None = materializer

    def with_repositories(self, extra_repositories: Iterable[RemoteRepository]) -> PomDescriptorReader:
        extra = tuple(extra_repositories)
        if not extra:
            return self
        return PomDescriptorReader(self.index, (*self.extra_repositories, *extra), self.materializer)

    def _read(self, pom: Coordinate) -> bytes:
        if self.materializer is None:
            return self.index.read(pom, self.extra_repositories)
        self.materializer.resolve(pom, self.extra_repositories)
        data = self.index.local.read(pom)
        if data is None:
            msg = f"{pom} disappeared from the local repository"
            raise FetchError(msg, pom)
        return data

    def get_declared_dependencies(self, coordinate: Coordinate) -> Sequence[Dependency]:
        pom = coordinate.with_extension("pom")
        data = self._read(pom)
        try:
            return parse_pom_dependencies(data)
        except ValueError as e:
            msg = f"Could not read the POM of {coordinate}: {e!s}"
            raise FetchError(msg, coordinate) from e
