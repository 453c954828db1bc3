"""Transports that read files from remote repositories."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

import requests

from .artifact_resolver import version
from .errors import ArtifactNotFoundError, FetchTimeoutError, RepositoryTransportError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .repository import RemoteRepository

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RepositoryTransport(ABC):
    """Fetches repository relative paths from a remote repository."""

    @abstractmethod
    def get(self, repository: RemoteRepository, path: str) -> bytes:
        """Return the contents of ``path`` in ``repository``.

        Raises:
            ArtifactNotFoundError: if the repository does not have ``path``
            FetchTimeoutError: if the repository did not answer in time
            RepositoryTransportError: for any other transport failure

        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the transport."""


class HttpTransport(RepositoryTransport):
    """Reads from http and https repositories."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None) -> None:
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = f"artifact-resolver/{version()}"
        self.session: requests.Session = session
        self.timeout: float = timeout

    def get(self, repository: RemoteRepository, path: str) -> bytes:
        url = repository.resolve(path)
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as e:
            msg = f"Timed out after {self.timeout}s fetching {url}"
            raise FetchTimeoutError(msg) from e
        except requests.RequestException as e:
            msg = f"Error fetching {url}: {e!s}"
            raise RepositoryTransportError(msg, repository_id=repository.id, path=path) from e
        if response.status_code == 404:  # noqa: PLR2004
            msg = f"{url} was not found"
            raise ArtifactNotFoundError(msg, repository_id=repository.id, path=path)
        if not response.ok:
            msg = f"Unexpected HTTP status {response.status_code} fetching {url}"
            raise RepositoryTransportError(msg, repository_id=repository.id, path=path)
        return response.content

    def close(self) -> None:
        self.session.close()


class FileTransport(RepositoryTransport):
    """Reads from ``file://`` repositories."""

    def get(self, repository: RemoteRepository, path: str) -> bytes:
        parsed = urlparse(repository.url)
        file_path = Path(unquote(parsed.path)) / path
        try:
            return file_path.read_bytes()
        except FileNotFoundError as e:
            msg = f"{file_path} does not exist"
            raise ArtifactNotFoundError(msg, repository_id=repository.id, path=path) from e
        except OSError as e:
            msg = f"Error reading {file_path}: {e!s}"
            raise RepositoryTransportError(msg, repository_id=repository.id, path=path) from e


class CompositeTransport(RepositoryTransport):
    """Dispatches to a transport by the URL scheme of the repository."""

    def __init__(self, transports: Mapping[str, RepositoryTransport]) -> None:
        self.transports: dict[str, RepositoryTransport] = dict(transports)

    @classmethod
    def default(cls, timeout: float = DEFAULT_TIMEOUT) -> CompositeTransport:
        http = HttpTransport(timeout=timeout)
        return cls({"http": http, "https": http, "file": FileTransport()})

    def get(self, repository: RemoteRepository, path: str) -> bytes:
        scheme = urlparse(repository.url).scheme.lower()
        try:
            transport = self.transports[scheme]
        except KeyError as e:
            msg = f"No transport for {scheme!r} repository {repository}"
            raise RepositoryTransportError(msg, repository_id=repository.id, path=path) from e
        return transport.get(repository, path)

    def close(self) -> None:
        for transport in set(self.transports.values()):
            transport.close()
