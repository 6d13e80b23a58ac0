"""Project-level client for the hosted service."""

from typing import Any

from .client import Dispatcher
from .collection import (
    AiNamespace,
    CollectionManager,
    CollectionsNamespace,
    HooksNamespace,
    Index,
    IndexNamespace,
    SystemPromptsNamespace,
    ToolsNamespace,
)
from .config import ProjectManagerConfig
from .types import CloudSearchParams, SearchResult


class DataSourceNamespace:
    """Document operations on one project datasource."""

    def __init__(self, index: Index) -> None:
        self._index = index

    @property
    def id(self) -> str:
        return self._index.index_id

    async def reindex(self) -> None:
        await self._index.reindex()

    async def insert_documents(self, documents: list[Any]) -> None:
        await self._index.insert_documents(documents)

    async def delete_documents(self, document_ids: list[str]) -> None:
        await self._index.delete_documents(document_ids)

    async def upsert_documents(self, documents: list[Any]) -> None:
        await self._index.upsert_documents(documents)


class OramaCloud:
    """Client for a hosted project, where indexes are called datasources.

    Example:
        >>> async with OramaCloud(ProjectManagerConfig(project_id="p", api_key="k")) as cloud:
        ...     result = await cloud.search(CloudSearchParams(term="shoes", datasources=["ds1"]))
    """

    def __init__(
        self, config: ProjectManagerConfig, *, dispatcher: Dispatcher | None = None
    ) -> None:
        self._manager = CollectionManager(
            config.to_collection_config(), dispatcher=dispatcher
        )

    async def __aenter__(self) -> "OramaCloud":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._manager.close()

    async def search(self, params: CloudSearchParams) -> SearchResult:
        """Search the project's datasources.

        Args:
            params: The search request; ``datasources`` selects the indexes.

        Returns:
            SearchResult with hits and client-measured elapsed time.
        """
        return await self._manager.search(params.to_search_params())

    def data_source(self, id: str) -> DataSourceNamespace:
        """Get a handle for document operations on datasource ``id``."""
        return DataSourceNamespace(self._manager.index.set(id))

    @property
    def ai(self) -> AiNamespace:
        return self._manager.ai

    @property
    def collections(self) -> CollectionsNamespace:
        return self._manager.collections

    @property
    def index(self) -> IndexNamespace:
        return self._manager.index

    @property
    def hooks(self) -> HooksNamespace:
        return self._manager.hooks

    @property
    def system_prompts(self) -> SystemPromptsNamespace:
        return self._manager.system_prompts

    @property
    def tools(self) -> ToolsNamespace:
        return self._manager.tools
