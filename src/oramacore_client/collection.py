"""Collection-scoped operations: search, indexes, documents, hooks, prompts, tools."""

from typing import Any

from .auth import Target, credential_for
from .client import ApiKeyPosition, Dispatcher, RequestDescriptor, parse_as
from .config import CollectionManagerConfig
from .log import get_logger
from .session import AiSession
from .types import (
    CreateIndexParams,
    Elapsed,
    ExecuteToolsBody,
    ExecuteToolsParsedResponse,
    Hook,
    InsertSystemPromptBody,
    InsertToolBody,
    LlmConfig,
    Message,
    NewHookResponse,
    NlpSearchParams,
    NlpSearchResult,
    SearchParams,
    SearchResult,
    SystemPrompt,
    SystemPromptValidationResponse,
    Tool,
    UpdateToolBody,
)
from .utils import current_time_millis, format_duration

logger = get_logger(__name__)


class _Namespace:
    def __init__(self, dispatcher: Dispatcher, collection_id: str) -> None:
        self._dispatcher = dispatcher
        self.collection_id = collection_id

    def _path(self, suffix: str) -> str:
        return f"/v1/collections/{self.collection_id}/{suffix}"

    async def _read(
        self, method: str, suffix: str, body: Any = None, query: dict[str, str] | None = None
    ) -> Any:
        return await self._dispatcher.request(
            RequestDescriptor(
                method,
                self._path(suffix),
                Target.READER,
                query=query,
                body=body,
                api_key_position=ApiKeyPosition.QUERY_PARAMS,
            )
        )

    async def _write(self, method: str, suffix: str, body: Any = None) -> Any:
        return await self._dispatcher.request(
            RequestDescriptor(method, self._path(suffix), Target.WRITER, body=body)
        )


# ─────────────────────────────────────────────────────────────────────────────
# AI
# ─────────────────────────────────────────────────────────────────────────────


class AiNamespace(_Namespace):
    def __init__(
        self, dispatcher: Dispatcher, collection_id: str, stream_timeout: float | None = None
    ) -> None:
        super().__init__(dispatcher, collection_id)
        self._stream_timeout = stream_timeout

    async def nlp_search(self, params: NlpSearchParams) -> list[NlpSearchResult]:
        """Search with a natural-language query translated by the LLM.

        Args:
            params: The query and optional LLM config.

        Returns:
            One result per generated query.
        """
        data = await self._read("POST", "nlp_search", params)
        return parse_as(list[NlpSearchResult], data)

    def create_ai_session(
        self,
        llm_config: LlmConfig | None = None,
        initial_messages: list[Message] | None = None,
    ) -> AiSession:
        """Start a new answer session.

        Args:
            llm_config: LLM used for every answer unless a request overrides it.
            initial_messages: Conversation history to start from.

        Returns:
            A fresh AiSession with its own session id.
        """
        return AiSession(
            self.collection_id,
            self._dispatcher,
            llm_config=llm_config,
            initial_messages=initial_messages,
            stream_timeout=self._stream_timeout,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Collections and Indexes
# ─────────────────────────────────────────────────────────────────────────────


class CollectionsNamespace(_Namespace):
    async def get_stats(self, collection_id: str) -> dict[str, Any]:
        """Get collection statistics.

        Args:
            collection_id: The collection ID.

        Returns:
            The raw statistics object.
        """
        return await self._dispatcher.request(
            RequestDescriptor.get(
                f"/v1/collections/{collection_id}/stats",
                Target.READER,
                api_key_position=ApiKeyPosition.QUERY_PARAMS,
            )
        )

    async def get_all_docs(self, id: str) -> list[Any]:
        """List every document stored in a collection.

        Args:
            id: The collection ID.

        Returns:
            The raw documents.
        """
        data = await self._dispatcher.request(
            RequestDescriptor.post("/v1/collections/list", Target.WRITER, {"id": id})
        )
        return parse_as(list[Any], data)


class Index(_Namespace):
    """Document operations on one index."""

    def __init__(self, dispatcher: Dispatcher, collection_id: str, index_id: str) -> None:
        super().__init__(dispatcher, collection_id)
        self.index_id = index_id

    async def reindex(self) -> None:
        """Rebuild the index from its stored documents."""
        await self._write("POST", f"indexes/{self.index_id}/reindex")

    async def insert_documents(self, documents: list[Any]) -> None:
        """Insert documents.

        Args:
            documents: JSON-serializable documents.
        """
        await self._write(
            "POST", f"indexes/{self.index_id}/documents/insert", {"documents": documents}
        )
        logger.info("documents inserted", index_id=self.index_id, count=len(documents))

    async def delete_documents(self, document_ids: list[str]) -> None:
        """Delete documents.

        Args:
            document_ids: IDs of the documents to remove.
        """
        await self._write(
            "POST",
            f"indexes/{self.index_id}/documents/delete",
            {"document_ids": document_ids},
        )
        logger.info("documents deleted", index_id=self.index_id, count=len(document_ids))

    async def upsert_documents(self, documents: list[Any]) -> None:
        """Insert documents, replacing any with the same ID.

        Args:
            documents: JSON-serializable documents.
        """
        await self._write(
            "POST", f"indexes/{self.index_id}/documents/upsert", {"documents": documents}
        )
        logger.info("documents upserted", index_id=self.index_id, count=len(documents))


class IndexNamespace(_Namespace):
    async def create(self, params: CreateIndexParams) -> None:
        """Create an index.

        Args:
            params: Index ID and embeddings selection.
        """
        await self._write(
            "POST", "indexes/create", {"id": params.id, "embedding": params.embeddings}
        )

    async def delete(self, index_id: str) -> None:
        """Delete an index.

        Args:
            index_id: The index ID.
        """
        await self._write("POST", "indexes/delete", {"index_id_to_delete": index_id})

    def set(self, index_id: str) -> Index:
        """Get a handle for document operations on one index.

        Args:
            index_id: The index ID.

        Returns:
            An Index bound to this collection.
        """
        return Index(self._dispatcher, self.collection_id, index_id)


# ─────────────────────────────────────────────────────────────────────────────
# Hooks
# ─────────────────────────────────────────────────────────────────────────────


class HooksNamespace(_Namespace):
    async def insert(self, name: Hook, code: str) -> NewHookResponse:
        """Set the code of a hook.

        Args:
            name: The hook to set.
            code: JavaScript source of the hook.

        Returns:
            The hook ID and code.
        """
        await self._write("POST", "hooks/set", {"name": name.value, "code": code})
        return NewHookResponse(hook_id=name.value, code=code)

    async def list(self) -> dict[str, str | None]:
        """List hooks.

        Returns:
            Map of hook name to its code (``None`` when unset).
        """
        data = await self._write("GET", "hooks/list")
        hooks = data.get("hooks") if isinstance(data, dict) else None
        if not isinstance(hooks, dict):
            return {}
        return {name: code if isinstance(code, str) else None for name, code in hooks.items()}

    async def delete(self, hook: Hook) -> None:
        """Remove a hook.

        Args:
            hook: The hook to remove.
        """
        await self._write("POST", "hooks/delete", {"name_to_delete": hook.value})


# ─────────────────────────────────────────────────────────────────────────────
# System Prompts
# ─────────────────────────────────────────────────────────────────────────────


class SystemPromptsNamespace(_Namespace):
    async def insert(self, system_prompt: InsertSystemPromptBody) -> Any:
        """Insert a system prompt.

        Args:
            system_prompt: The prompt to insert.

        Returns:
            The raw service response.
        """
        return await self._write("POST", "system_prompts/insert", system_prompt)

    async def get(self, id: str) -> SystemPrompt:
        """Get a system prompt by ID.

        Args:
            id: The system prompt ID.

        Returns:
            The system prompt.
        """
        data = await self._read("GET", "system_prompts/get", query={"system_prompt_id": id})
        return parse_as(SystemPrompt, _field(data, "system_prompt"))

    async def get_all(self) -> list[SystemPrompt]:
        """List all system prompts.

        Returns:
            List of system prompts.
        """
        data = await self._read("GET", "system_prompts/all")
        return parse_as(list[SystemPrompt], _field(data, "system_prompts"))

    async def delete(self, id: str) -> Any:
        """Delete a system prompt.

        Args:
            id: The system prompt ID.
        """
        return await self._write("POST", "system_prompts/delete", {"id": id})

    async def update(self, system_prompt: SystemPrompt) -> Any:
        """Replace a system prompt.

        Args:
            system_prompt: The prompt, identified by its ``id``.
        """
        return await self._write("POST", "system_prompts/update", system_prompt)

    async def validate(self, system_prompt: SystemPrompt) -> SystemPromptValidationResponse:
        """Check a system prompt for security and technical issues.

        Args:
            system_prompt: The prompt to validate.

        Returns:
            Security, technical and overall assessments.
        """
        data = await self._write("POST", "system_prompts/validate", system_prompt)
        return parse_as(SystemPromptValidationResponse, _field(data, "result"))


# ─────────────────────────────────────────────────────────────────────────────
# Tools
# ─────────────────────────────────────────────────────────────────────────────


class ToolsNamespace(_Namespace):
    async def insert(self, tool: InsertToolBody) -> None:
        """Insert a tool.

        Args:
            tool: The tool definition.
        """
        await self._write("POST", "tools/insert", tool)

    async def get(self, id: str) -> Tool:
        """Get a tool by ID.

        Args:
            id: The tool ID.

        Returns:
            The tool.
        """
        data = await self._read("GET", "tools/get", query={"tool_id": id})
        return parse_as(Tool, _field(data, "tool"))

    async def get_all(self) -> list[Tool]:
        """List all tools.

        Returns:
            List of tools.
        """
        data = await self._read("GET", "tools/all")
        return parse_as(list[Tool], _field(data, "tools"))

    async def delete(self, id: str) -> Any:
        """Delete a tool.

        Args:
            id: The tool ID.
        """
        return await self._write("POST", "tools/delete", {"id": id})

    async def update(self, tool: UpdateToolBody) -> Any:
        """Update a tool.

        Args:
            tool: The changed fields, identified by ``id``.
        """
        return await self._write("POST", "tools/update", tool)

    async def execute(self, tools: ExecuteToolsBody) -> ExecuteToolsParsedResponse:
        """Run tools against a conversation.

        Args:
            tools: Tool IDs, messages and optional LLM config.

        Returns:
            Function results or extracted parameters per tool.
        """
        data = await self._read("POST", "tools/run", tools)
        return parse_as(ExecuteToolsParsedResponse, data)


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, dict) else None


# ─────────────────────────────────────────────────────────────────────────────
# Manager
# ─────────────────────────────────────────────────────────────────────────────


class CollectionManager:
    """Async client for one collection.

    Example:
        >>> config = CollectionManagerConfig(collection_id="my-col", api_key="read-key")
        >>> async with CollectionManager(config) as manager:
        ...     result = await manager.search(SearchParams(term="rust", limit=10))
        ...     print(result.count)
    """

    def __init__(
        self, config: CollectionManagerConfig, *, dispatcher: Dispatcher | None = None
    ) -> None:
        """Initialize the manager.

        Args:
            config: Collection id, key and optional cluster endpoints.
            dispatcher: Optional preconfigured dispatcher (tests, shared pools).
        """
        self.collection_id = config.collection_id
        if dispatcher is None:
            credential = credential_for(
                config.api_key,
                config.collection_id,
                reader_url=config.reader_url,
                writer_url=config.writer_url,
                auth_jwt_url=config.auth_jwt_url,
            )
            dispatcher = Dispatcher(credential, timeout=config.timeout)
        self._dispatcher = dispatcher

        self.ai = AiNamespace(dispatcher, self.collection_id, config.stream_timeout)
        self.collections = CollectionsNamespace(dispatcher, self.collection_id)
        self.index = IndexNamespace(dispatcher, self.collection_id)
        self.hooks = HooksNamespace(dispatcher, self.collection_id)
        self.system_prompts = SystemPromptsNamespace(dispatcher, self.collection_id)
        self.tools = ToolsNamespace(dispatcher, self.collection_id)

    async def __aenter__(self) -> "CollectionManager":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._dispatcher.close()

    async def search(self, params: SearchParams) -> SearchResult:
        """Search the collection.

        Args:
            params: The search request.

        Returns:
            SearchResult with hits and client-measured elapsed time.
        """
        start = current_time_millis()
        data = await self._dispatcher.request(
            RequestDescriptor.post(
                f"/v1/collections/{self.collection_id}/search",
                Target.READER,
                params,
                api_key_position=ApiKeyPosition.QUERY_PARAMS,
            )
        )
        result = parse_as(SearchResult, data)
        elapsed = current_time_millis() - start
        result.elapsed = Elapsed(raw=elapsed, formatted=format_duration(elapsed))
        return result
