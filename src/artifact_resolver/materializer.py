"""Materializing coordinates into downloaded artifacts, with at most one fetch in flight per coordinate."""

from __future__ import annotations

import concurrent.futures
import functools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from tqdm import tqdm

from .errors import FetchTimeoutError, ResolutionCancelled, ResolutionError
from .models import Coordinate
from .versions import VersionRange, parse_version_range

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .index import RepositoryIndex
    from .models import Artifact
    from .repository import RemoteRepository
    from .versions import Version

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 60.0
# how often a cancellable wait checks its cancel event
CANCEL_POLL_INTERVAL = 0.05


class ArtifactMaterializer:
    """Resolves coordinates to artifacts in the local repository.

    Concurrent requests for the same coordinate share a single fetch and observe the same outcome. Successful
    results are cached for the lifetime of the materializer; failures are not, so the next request retries.
    """

    def __init__(
        self,
        index: RepositoryIndex,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_workers: int | None = None,
    ) -> None:
        self.index: RepositoryIndex = index
        self.fetch_timeout: float = fetch_timeout
        # guards _resolved and _in_flight; never held while fetching
        self._lock = threading.RLock()
        self._resolved: dict[Coordinate, Artifact] = {}
        self._in_flight: dict[Coordinate, Future[Artifact]] = {}
        self.max_workers: int | None = max_workers
        # created on first use, and again after close
        self._pool: ThreadPoolExecutor | None = None

    def _fetch(self, coordinate: Coordinate, extra_repositories: tuple[RemoteRepository, ...]) -> Artifact:
        return self.index.fetch_artifact(coordinate, extra_repositories)

    def _fetch_done(self, coordinate: Coordinate, future: Future[Artifact]) -> None:
        with self._lock:
            if self._in_flight.get(coordinate) is future:
                del self._in_flight[coordinate]
            if not future.cancelled() and future.exception() is None:
                self._resolved[coordinate] = future.result()

    def _release(self, coordinate: Coordinate, future: Future[Artifact]) -> None:
        with self._lock:
            if self._in_flight.get(coordinate) is future:
                del self._in_flight[coordinate]

    def in_flight(self) -> int:
        """The number of fetches currently outstanding."""
        with self._lock:
            return len(self._in_flight)

    def cached(self, coordinate: Coordinate) -> Artifact | None:
        with self._lock:
            return self._resolved.get(coordinate)

    def _wait(self, future: Future[Artifact], timeout: float, cancel: threading.Event | None) -> Artifact:
        if cancel is None:
            return future.result(timeout=timeout)
        deadline = time.monotonic() + timeout
        while True:
            if cancel.is_set():
                msg = "Resolution was cancelled while waiting for a fetch"
                raise ResolutionCancelled(msg)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise concurrent.futures.TimeoutError
            done, _ = concurrent.futures.wait([future], timeout=min(remaining, CANCEL_POLL_INTERVAL))
            if done:
                return future.result()

    def resolve(
        self,
        coordinate: Coordinate,
        extra_repositories: Iterable[RemoteRepository] = (),
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Artifact:
        """Resolve ``coordinate`` to an artifact, fetching it if no other caller is already doing so.

        Setting ``cancel`` only stops this caller from waiting; a fetch shared with other callers keeps running.

        Raises:
            FetchTimeoutError: if the fetch did not finish within ``timeout`` (default: ``fetch_timeout``)
            FetchError: if no repository has the artifact
            ResolutionCancelled: if ``cancel`` was set while waiting

        """
        if not coordinate.version or coordinate.has_range:
            msg = f"{coordinate} must have a concrete version to be resolved"
            raise ResolutionError(msg, coordinate)
        with self._lock:
            artifact = self._resolved.get(coordinate)
            if artifact is not None:
                return artifact
            future = self._in_flight.get(coordinate)
            if future is None:
                logger.debug("Fetching %s", coordinate)
                if self._pool is None:
                    self._pool = ThreadPoolExecutor(
                        max_workers=self.max_workers, thread_name_prefix="artifact-resolver-fetch"
                    )
                future = self._pool.submit(self._fetch, coordinate, tuple(extra_repositories))
                self._in_flight[coordinate] = future
                future.add_done_callback(functools.partial(self._fetch_done, coordinate))
            else:
                logger.debug("Waiting for the fetch of %s already in flight", coordinate)
        if timeout is None:
            timeout = self.fetch_timeout
        try:
            return self._wait(future, timeout, cancel)
        except concurrent.futures.TimeoutError as e:
            # let the next caller start over instead of waiting on a stuck fetch
            self._release(coordinate, future)
            msg = f"Timed out after {timeout}s waiting for {coordinate}"
            raise FetchTimeoutError(msg, coordinate) from e

    def resolve_version(
        self,
        group_id: str,
        artifact_id: str,
        version_prefix: str | None = None,
        *,
        want_snapshot: bool = False,
    ) -> list[Version]:
        """List the available versions of group_id:artifact_id starting with ``version_prefix``, ascending.

        Repositories that fail are logged and contribute no versions.

        Raises:
            MalformedRangeError: if ``version_prefix`` is not a valid version prefix

        """
        if version_prefix:
            version_range = parse_version_range(f"[{version_prefix}.*]")
        else:
            version_range = VersionRange.unbounded()
        coordinate = Coordinate(group=group_id, artifact=artifact_id, version=str(version_range))
        return self.index.list_versions(coordinate, version_range, want_snapshots=want_snapshot)

    def resolve_all(
        self,
        coordinates: Iterable[Coordinate],
        extra_repositories: Iterable[RemoteRepository] = (),
        *,
        max_workers: int | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[Coordinate, Artifact | ResolutionError]:
        """Resolve many coordinates concurrently.

        Returns:
            A mapping from every requested coordinate to its artifact, or to the error that prevented it

        """
        extra = tuple(extra_repositories)
        coordinates = list(dict.fromkeys(coordinates))
        results: dict[Coordinate, Artifact | ResolutionError] = {}
        with (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="artifact-resolver") as executor,
            tqdm(desc="resolving artifacts", leave=False, unit=" artifacts", total=len(coordinates)) as t,
        ):
            futures = {executor.submit(self.resolve, c, extra, cancel=cancel): c for c in coordinates}
            for future in as_completed(futures):
                coordinate = futures[future]
                t.update(1)
                try:
                    results[coordinate] = future.result()
                except ResolutionError as e:  # noqa: PERF203
                    logger.warning("Failed to resolve %s: %s", coordinate, e)
                    results[coordinate] = e
        return {c: results[c] for c in coordinates}

    def close(self) -> None:
        """Release the fetch threads. Fetches already running are allowed to finish.

        The materializer stays usable: the next fetch starts a new pool.
        """
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=False)
