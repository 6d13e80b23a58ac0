"""Client configuration.

``ClientSettings`` reads ``ORAMA_*`` environment variables (and a ``.env``
file); the manager config models can be built from it or directly.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import DEFAULT_JWT_URL, DEFAULT_READER_URL
from .errors import ConfigError

DEFAULT_TIMEOUT = 30.0
DEFAULT_STREAM_TIMEOUT = 300.0


class ClientSettings(BaseSettings):
    """Environment-driven settings.

    ``log_level`` is meant for ``configure_logging(settings.log_level)``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ORAMA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    master_api_key: str | None = None
    project_id: str | None = None
    collection_id: str | None = None
    collection_api_key: str | None = None

    reader_url: str | None = None
    writer_url: str | None = None
    auth_jwt_url: str = DEFAULT_JWT_URL

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    stream_timeout: float = Field(default=DEFAULT_STREAM_TIMEOUT, gt=0)
    log_level: str = "info"


class ClusterConfig(BaseModel):
    """Reader/writer endpoints of a cluster."""

    writer_url: str | None = None
    read_url: str | None = None


def _cluster_from(settings: ClientSettings) -> ClusterConfig | None:
    if settings.reader_url is None and settings.writer_url is None:
        return None
    return ClusterConfig(writer_url=settings.writer_url, read_url=settings.reader_url)


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ConfigError(f"ORAMA_{name.upper()} is not set")
    return value


class CollectionManagerConfig(BaseModel):
    """Configuration for a ``CollectionManager``.

    ``api_key`` may be a public/write key or a private key (``p_`` prefix),
    which is exchanged for a JWT.
    """

    collection_id: str
    api_key: str
    cluster: ClusterConfig | None = None
    auth_jwt_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    stream_timeout: float = DEFAULT_STREAM_TIMEOUT

    @property
    def reader_url(self) -> str:
        if self.cluster and self.cluster.read_url:
            return self.cluster.read_url
        return DEFAULT_READER_URL

    @property
    def writer_url(self) -> str | None:
        return self.cluster.writer_url if self.cluster else None

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "CollectionManagerConfig":
        return cls(
            collection_id=_require(settings.collection_id, "collection_id"),
            api_key=_require(settings.collection_api_key, "collection_api_key"),
            cluster=_cluster_from(settings),
            auth_jwt_url=settings.auth_jwt_url,
            timeout=settings.timeout,
            stream_timeout=settings.stream_timeout,
        )


class ProjectManagerConfig(BaseModel):
    """Configuration for an ``OramaCloud`` project client."""

    project_id: str
    api_key: str
    cluster: ClusterConfig | None = None
    auth_jwt_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    stream_timeout: float = DEFAULT_STREAM_TIMEOUT

    def to_collection_config(self) -> CollectionManagerConfig:
        return CollectionManagerConfig(
            collection_id=self.project_id,
            api_key=self.api_key,
            cluster=self.cluster,
            auth_jwt_url=self.auth_jwt_url,
            timeout=self.timeout,
            stream_timeout=self.stream_timeout,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "ProjectManagerConfig":
        return cls(
            project_id=_require(settings.project_id, "project_id"),
            api_key=_require(settings.collection_api_key, "collection_api_key"),
            cluster=_cluster_from(settings),
            auth_jwt_url=settings.auth_jwt_url,
            timeout=settings.timeout,
            stream_timeout=settings.stream_timeout,
        )


class OramaCoreManagerConfig(BaseModel):
    """Configuration for the management API, authenticated by the master key."""

    url: str
    master_api_key: str
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "OramaCoreManagerConfig":
        return cls(
            url=_require(settings.writer_url, "writer_url"),
            master_api_key=_require(settings.master_api_key, "master_api_key"),
            timeout=settings.timeout,
        )
