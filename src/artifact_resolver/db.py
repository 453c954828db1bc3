"""A local repository that keeps files on disk and indexes them in SQLite."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import Column, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from .artifact_resolver import APP_DIRS
from .cache import LocalRepository, sha1_hex
from .models import Artifact, Coordinate
from .repository import artifact_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_DIR = Path(APP_DIRS.user_cache_dir) / "repository"
DEFAULT_DB_PATH = Path(APP_DIRS.user_cache_dir) / "artifacts.sqlite"


class Base(DeclarativeBase):
    """Base class for all database models."""


class DBArtifact(Base):
    """An artifact installed in the local repository."""

    __tablename__ = "artifacts"

    id = Column(Integer, primary_key=True)
    group_id = Column(String, nullable=False)
    artifact_id = Column(String, nullable=False)
    extension = Column(String, nullable=False)
    classifier = Column(String, nullable=False, default="")
    version = Column(String, nullable=False)
    repository = Column(String, nullable=True)
    path = Column(String, nullable=False)
    sha1 = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "group_id",
            "artifact_id",
            "extension",
            "classifier",
            "version",
            name="artifact_unique_constraint",
        ),
    )

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(
            group=self.group_id,  # type: ignore[arg-type]
            artifact=self.artifact_id,  # type: ignore[arg-type]
            version=self.version,  # type: ignore[arg-type]
            extension=self.extension,  # type: ignore[arg-type]
            classifier=self.classifier,  # type: ignore[arg-type]
        )


class DBLocalRepository(LocalRepository):
    """Stores artifact files under ``directory`` in repository layout and records them in a SQLite index.

    A recorded file that was deleted or modified behind our back is treated as not installed and its record is
    dropped, so that the next fetch downloads it again.
    """

    def __init__(self, directory: Path | str = DEFAULT_REPOSITORY_DIR, db: Path | str = ":memory:") -> None:
        super().__init__()
        self.directory: Path = Path(directory)
        if db in (":memory:", "sqlite:///:memory:"):
            db = "sqlite://"
        elif isinstance(db, str):
            if db.startswith("sqlite:///"):
                db = db[len("sqlite:///") :]
            db = Path(db)
        if isinstance(db, Path):
            db.parent.mkdir(parents=True, exist_ok=True)
            db = f"sqlite:///{db.absolute()!s}"
        self.db: str = db
        self._session: Session | None = None
        self._lock = threading.RLock()

    def open(self) -> None:
        # sessions are shared between worker threads, guarded by self._lock
        engine = create_engine(self.db, connect_args={"check_same_thread": False}, poolclass=StaticPool)
        Base.metadata.create_all(engine)
        self._session = sessionmaker(bind=engine)()
        self.directory.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None

    @property
    def session(self) -> Session:
        if self._session is None:
            msg = f"{self.__class__.__name__} must be opened before it is used"
            raise RuntimeError(msg)
        return self._session

    def _query(self, coordinate: Coordinate):  # noqa: ANN202
        return self.session.query(DBArtifact).filter(
            DBArtifact.group_id == coordinate.group,
            DBArtifact.artifact_id == coordinate.artifact,
            DBArtifact.extension == coordinate.extension,
            DBArtifact.classifier == coordinate.classifier,
            DBArtifact.version == coordinate.version,
        )

    def _verified(self, row: DBArtifact) -> Path | None:
        path = self.directory / row.path  # type: ignore[operator]
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.warning("%s is recorded in the local repository but %s is missing", row.coordinate, path)
            return None
        if sha1_hex(data) != row.sha1:
            logger.warning("%s in the local repository does not match its recorded checksum", row.coordinate)
            return None
        return path

    def find(self, coordinate: Coordinate) -> Artifact | None:
        with self._lock:
            row = self._query(coordinate).one_or_none()
            if row is None:
                return None
            path = self._verified(row)
            if path is None:
                self.session.delete(row)
                self.session.commit()
                return None
            return Artifact(coordinate=coordinate, path=path, repository=row.repository)  # type: ignore[arg-type]

    def read(self, coordinate: Coordinate) -> bytes | None:
        artifact = self.find(coordinate)
        if artifact is None or artifact.path is None:
            return None
        return artifact.path.read_bytes()

    def install(self, coordinate: Coordinate, data: bytes, origin: str | None = None) -> Artifact:
        relative = artifact_path(coordinate)
        path = self.directory / relative
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            row = self._query(coordinate).one_or_none()
            if row is None:
                row = DBArtifact(
                    group_id=coordinate.group,
                    artifact_id=coordinate.artifact,
                    extension=coordinate.extension,
                    classifier=coordinate.classifier,
                    version=coordinate.version,
                )
                self.session.add(row)
            row.repository = origin  # type: ignore[assignment]
            row.path = relative  # type: ignore[assignment]
            row.sha1 = sha1_hex(data)  # type: ignore[assignment]
            self.session.commit()
        logger.debug("Installed %s from %s into %s", coordinate, origin, path)
        return Artifact(coordinate=coordinate, path=path, repository=origin)

    def __len__(self) -> int:
        with self._lock:
            return self.session.query(DBArtifact).count()

    def __iter__(self) -> Iterator[Artifact]:
        with self._lock:
            # build a list before yielding so that the query does not linger
            rows = [(r.coordinate, r.path, r.repository) for r in self.session.query(DBArtifact).all()]
        for coordinate, relative, origin in rows:
            yield Artifact(coordinate=coordinate, path=self.directory / relative, repository=origin)
