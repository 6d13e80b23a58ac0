"""oramacore-client Python SDK.

Provides a typed async HTTP client for Orama collections, search and AI
answer sessions.

Example:
    >>> import asyncio
    >>> from oramacore_client import AnswerConfig, CollectionManager, CollectionManagerConfig, SearchParams
    >>>
    >>> async def main():
    ...     config = CollectionManagerConfig(collection_id="my-collection", api_key="read-key")
    ...     async with CollectionManager(config) as manager:
    ...         # Search API
    ...         result = await manager.search(SearchParams(term="rust programming", limit=10))
    ...         print(f"Found {result.count} results in {result.elapsed.formatted}")
    ...
    ...         # AI answers, streamed
    ...         session = manager.ai.create_ai_session()
    ...         async with session.answer_stream(AnswerConfig(query="What is Orama?")) as events:
    ...             async for event in events:
    ...                 if event.kind == "chunk":
    ...                     print(event.text, end="")
    >>>
    >>> asyncio.run(main())
"""

from .auth import (
    AuthRef,
    Credential,
    PrivateKey,
    SessionToken,
    StaticKey,
    Target,
    TokenCache,
    credential_for,
)
from .client import ApiKeyPosition, Dispatcher, RequestDescriptor
from .cloud import DataSourceNamespace, OramaCloud
from .collection import CollectionManager, Index
from .config import (
    ClientSettings,
    ClusterConfig,
    CollectionManagerConfig,
    OramaCoreManagerConfig,
    ProjectManagerConfig,
)
from .errors import (
    ApiError,
    AuthError,
    ConfigError,
    DecodeError,
    OramaError,
    SessionError,
    TransportError,
    TransportTimeoutError,
)
from .log import configure_logging
from .manager import OramaCoreManager
from .session import AiSession
from .stream import Chunk, End, Raw, Status, StreamError, StreamEvent, decode
from .types import (
    AnswerConfig,
    CloudSearchParams,
    CreateCollectionParams,
    CreateIndexParams,
    EmbeddingsModel,
    ExecuteToolsBody,
    Hit,
    Hook,
    InsertSystemPromptBody,
    InsertToolBody,
    Interaction,
    Language,
    LlmConfig,
    LlmProvider,
    Message,
    NlpSearchParams,
    Role,
    SearchMode,
    SearchParams,
    SearchResult,
    SystemPrompt,
    SystemPromptUsageMode,
    Tool,
    UpdateToolBody,
)

__version__ = "1.2.0"
__all__ = [
    # Clients
    "CollectionManager",
    "OramaCloud",
    "OramaCoreManager",
    "AiSession",
    "Index",
    "DataSourceNamespace",
    # Dispatch and auth
    "Dispatcher",
    "RequestDescriptor",
    "ApiKeyPosition",
    "Target",
    "Credential",
    "StaticKey",
    "PrivateKey",
    "SessionToken",
    "TokenCache",
    "AuthRef",
    "credential_for",
    # Streaming
    "decode",
    "StreamEvent",
    "Chunk",
    "Status",
    "Raw",
    "StreamError",
    "End",
    # Configuration
    "ClientSettings",
    "ClusterConfig",
    "CollectionManagerConfig",
    "OramaCoreManagerConfig",
    "ProjectManagerConfig",
    "configure_logging",
    # Errors
    "OramaError",
    "AuthError",
    "ApiError",
    "TransportError",
    "TransportTimeoutError",
    "DecodeError",
    "ConfigError",
    "SessionError",
    # Types
    "AnswerConfig",
    "CloudSearchParams",
    "CreateCollectionParams",
    "CreateIndexParams",
    "EmbeddingsModel",
    "ExecuteToolsBody",
    "Hit",
    "Hook",
    "InsertSystemPromptBody",
    "InsertToolBody",
    "Interaction",
    "Language",
    "LlmConfig",
    "LlmProvider",
    "Message",
    "NlpSearchParams",
    "Role",
    "SearchMode",
    "SearchParams",
    "SearchResult",
    "SystemPrompt",
    "SystemPromptUsageMode",
    "Tool",
    "UpdateToolBody",
]
