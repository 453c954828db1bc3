"""Local cache repositories that artifacts are installed into after a successful remote fetch."""

from __future__ import annotations

import hashlib
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Self

from .models import Artifact

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .models import Coordinate

LOCAL_REPOSITORY_ID = "local"


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()  # noqa: S324


class LocalRepository(ABC):
    """An abstract base class for a persistent store of artifacts keyed by coordinate."""

    def __init__(self) -> None:
        self._entries: int = 0

    def open(self) -> None:  # noqa: B027
        """Open the repository."""

    def close(self) -> None:  # noqa: B027
        """Close the repository."""

    def __enter__(self) -> Self:
        if self._entries == 0:
            self.open()
        self._entries += 1
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self._entries -= 1
        if self._entries == 0:
            self.close()

    @abstractmethod
    def find(self, coordinate: Coordinate) -> Artifact | None:
        """Return the cached artifact for ``coordinate``, or None if it has not been installed."""
        raise NotImplementedError

    @abstractmethod
    def read(self, coordinate: Coordinate) -> bytes | None:
        """Return the contents of the cached artifact for ``coordinate``, or None if it has not been installed."""
        raise NotImplementedError

    @abstractmethod
    def install(self, coordinate: Coordinate, data: bytes, origin: str | None = None) -> Artifact:
        """Store ``data`` for ``coordinate``, remembering the id of the repository it came from."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def __iter__(self) -> Iterator[Artifact]:
        raise NotImplementedError

    def __contains__(self, coordinate: Coordinate) -> bool:
        return self.find(coordinate) is not None


class InMemoryLocalRepository(LocalRepository):
    """Keeps artifact bytes in memory. Artifacts returned by it have no file path."""

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._files: dict[Coordinate, tuple[bytes, str | None]] = {}

    def find(self, coordinate: Coordinate) -> Artifact | None:
        with self._lock:
            entry = self._files.get(coordinate)
        if entry is None:
            return None
        return Artifact(coordinate=coordinate, repository=entry[1])

    def read(self, coordinate: Coordinate) -> bytes | None:
        with self._lock:
            entry = self._files.get(coordinate)
        return None if entry is None else entry[0]

    def install(self, coordinate: Coordinate, data: bytes, origin: str | None = None) -> Artifact:
        with self._lock:
            self._files[coordinate] = (data, origin)
        return Artifact(coordinate=coordinate, repository=origin)

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[Artifact]:
        with self._lock:
            items = list(self._files.items())
        return (Artifact(coordinate=c, repository=origin) for c, (_, origin) in items)

    def __str__(self) -> str:
        return "[" + ",".join(str(c) for c in self._files) + "]"
