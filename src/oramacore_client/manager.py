"""Cluster management with the master API key."""

from .auth import StaticKey, Target
from .client import Dispatcher, RequestDescriptor, parse_as
from .config import OramaCoreManagerConfig
from .log import get_logger
from .types import CreateCollectionParams, GetCollectionsResponse, NewCollectionResponse
from .utils import create_random_string

GENERATED_KEY_LENGTH = 32

logger = get_logger(__name__)


class CollectionNamespace:
    """Create, list, inspect and delete collections."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    async def create(self, params: CreateCollectionParams) -> NewCollectionResponse:
        """Create a collection.

        Read and write keys are generated when not provided.

        Args:
            params: Collection ID, language, embeddings model and optional keys.

        Returns:
            The new collection's ID and keys.
        """
        body = params.to_body()
        body["description"] = params.description
        body.setdefault("write_api_key", create_random_string(GENERATED_KEY_LENGTH))
        body.setdefault("read_api_key", create_random_string(GENERATED_KEY_LENGTH))

        data = await self._dispatcher.request(
            RequestDescriptor.post("/v1/collections/create", Target.WRITER, body)
        )
        data = data if isinstance(data, dict) else {}
        logger.info("collection created", collection_id=params.id)
        return NewCollectionResponse(
            id=data.get("id") or "",
            description=data.get("description"),
            write_api_key=data.get("write_api_key") or "",
            readonly_api_key=data.get("read_api_key") or "",
        )

    async def list(self) -> list[GetCollectionsResponse]:
        """List all collections.

        Returns:
            List of collections with their indexes.
        """
        data = await self._dispatcher.request(
            RequestDescriptor.get("/v1/collections", Target.WRITER)
        )
        return parse_as(list[GetCollectionsResponse], data)

    async def get(self, collection_id: str) -> GetCollectionsResponse:
        """Get a collection by ID.

        Args:
            collection_id: The collection ID.

        Returns:
            The collection.
        """
        data = await self._dispatcher.request(
            RequestDescriptor.get(f"/v1/collections/{collection_id}", Target.WRITER)
        )
        return parse_as(GetCollectionsResponse, data)

    async def delete(self, collection_id: str) -> None:
        """Delete a collection.

        Args:
            collection_id: The collection ID.
        """
        await self._dispatcher.request(
            RequestDescriptor.post(
                "/v1/collections/delete",
                Target.WRITER,
                {"collection_id_to_delete": collection_id},
            )
        )
        logger.info("collection deleted", collection_id=collection_id)


class OramaCoreManager:
    """Management client for a self-hosted cluster.

    Example:
        >>> config = OramaCoreManagerConfig(url="http://localhost:8080", master_api_key="mk")
        >>> async with OramaCoreManager(config) as manager:
        ...     created = await manager.collection.create(CreateCollectionParams(id="books"))
    """

    def __init__(
        self, config: OramaCoreManagerConfig, *, dispatcher: Dispatcher | None = None
    ) -> None:
        if dispatcher is None:
            dispatcher = Dispatcher(
                StaticKey(config.master_api_key, writer_url=config.url),
                timeout=config.timeout,
            )
        self._dispatcher = dispatcher
        self.collection = CollectionNamespace(dispatcher)

    async def __aenter__(self) -> "OramaCoreManager":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._dispatcher.close()
