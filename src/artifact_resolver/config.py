"""Configuration settings for an artifact-resolver Engine."""

from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .db import DEFAULT_REPOSITORY_DIR
from .repository import RemoteRepository

MAVEN_CENTRAL_ID = "central"
MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2/"
SUPPORTED_SCHEMES = ("http", "https", "file")


class EngineConfig(BaseSettings):
    """Settings for an Engine. Every field can also be set from an ``ARTIFACT_RESOLVER_*`` environment variable."""

    remote_repositories: dict[str, str] = Field(
        default={MAVEN_CENTRAL_ID: MAVEN_CENTRAL_URL},
        description="""Remote repositories as an ordered mapping of repository id to URL. The order is the
        search order. A URL whose last path segment is `snapshots` serves snapshots only; every other
        repository serves releases only.""",
    )
    local_repository: Path = Field(
        default=DEFAULT_REPOSITORY_DIR,
        description="""Directory of the local repository that downloaded artifacts are installed into.""",
    )
    database: str = Field(
        default=":memory:",
        description="""Path to the SQLite index of the local repository, or ':memory:' to keep the index
        in memory. Without a persistent index, artifacts are downloaded again by every new Engine.""",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="""Timeout in seconds of a single request to a remote repository.""",
    )
    fetch_timeout: float = Field(
        default=60.0,
        gt=0,
        description="""Maximum number of seconds to wait for an artifact, across every repository that is
        searched for it.""",
    )
    max_workers: int = Field(
        default=-1,
        description="""Maximum number of artifacts to fetch concurrently. If not positive, the number of
            logical CPUs is used.""",
    )
    log_level: str = Field(default="info", description="Log level")

    model_config = SettingsConfigDict(env_prefix="ARTIFACT_RESOLVER_")

    @field_validator("remote_repositories")
    @classmethod
    def check_repository_urls(cls, value: dict[str, str]) -> dict[str, str]:
        for repository_id, url in value.items():
            if not repository_id:
                msg = "Repository ids must not be empty"
                raise ValueError(msg)
            parsed = urlparse(url)
            if parsed.scheme not in SUPPORTED_SCHEMES:
                msg = f"Repository {repository_id} has unsupported URL {url!r}; expected one of {SUPPORTED_SCHEMES}"
                raise ValueError(msg)
            if parsed.scheme != "file" and not parsed.netloc:
                msg = f"Repository {repository_id} has no host in its URL {url!r}"
                raise ValueError(msg)
        return value

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        if value.upper() not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"):
            msg = f"Unknown log level {value!r}"
            raise ValueError(msg)
        return value

    @property
    def repositories(self) -> tuple[RemoteRepository, ...]:
        """The configured remote repositories in search order, with their snapshot/release policies applied."""
        return tuple(RemoteRepository.from_url(i, url) for i, url in self.remote_repositories.items())

    @property
    def workers(self) -> int | None:
        """``max_workers`` as accepted by a thread pool."""
        if self.max_workers > 0:
            return self.max_workers
        return os.cpu_count()
