"""Pydantic models mirroring the service DTOs."""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

AnyObject = Any

DEFAULT_SERVER_USER_ID = "server-user-default"


class ApiModel(BaseModel):
    """Base for request/response bodies with wire-name aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_body(self) -> dict[str, Any]:
        """Serialize for the wire, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Enumerations
# =============================================================================


class Language(str, Enum):
    """Supported languages for search operations."""

    ARABIC = "arabic"
    BULGARIAN = "bulgarian"
    CHINESE = "chinese"
    DANISH = "danish"
    DUTCH = "dutch"
    GERMAN = "german"
    GREEK = "greek"
    ENGLISH = "english"
    ESTONIAN = "estonian"
    SPANISH = "spanish"
    FINNISH = "finnish"
    FRENCH = "french"
    IRISH = "irish"
    HINDI = "hindi"
    HUNGARIAN = "hungarian"
    ARMENIAN = "armenian"
    INDONESIAN = "indonesian"
    ITALIAN = "italian"
    JAPANESE = "japanese"
    KOREAN = "korean"
    LITHUANIAN = "lithuanian"
    NEPALI = "nepali"
    NORWEGIAN = "norwegian"
    PORTUGUESE = "portuguese"
    ROMANIAN = "romanian"
    RUSSIAN = "russian"
    SANSKRIT = "sanskrit"
    SLOVENIAN = "slovenian"
    SERBIAN = "serbian"
    SWEDISH = "swedish"
    TAMIL = "tamil"
    TURKISH = "turkish"
    UKRAINIAN = "ukrainian"


class EmbeddingsModel(str, Enum):
    """Supported embeddings models."""

    E5_MULTILINGUAL_SMALL = "E5MultilangualSmall"
    E5_MULTILINGUAL_BASE = "E5MultilangualBase"
    E5_MULTILINGUAL_LARGE = "E5MultilangualLarge"
    BGE_SMALL = "BGESmall"
    BGE_BASE = "BGEBase"
    BGE_LARGE = "BGELarge"


class Hook(str, Enum):
    BEFORE_ANSWER = "BeforeAnswer"
    BEFORE_RETRIEVAL = "BeforeRetrieval"


class SearchMode(str, Enum):
    FULLTEXT = "fulltext"
    VECTOR = "vector"
    HYBRID = "hybrid"
    AUTO = "auto"


class SystemPromptUsageMode(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class LlmProvider(str, Enum):
    OPENAI = "openai"
    FIREWORKS = "fireworks"
    TOGETHER = "together"
    GOOGLE = "google"
    CLAUDE = "claude"


class Role(str, Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


class RelatedQuestionsFormat(str, Enum):
    QUESTION = "question"
    QUERY = "query"


# =============================================================================
# Shared Types
# =============================================================================


class LlmConfig(ApiModel):
    provider: LlmProvider
    model: str


class JwtResponse(ApiModel):
    """Body returned by the private key exchange endpoint."""

    jwt: str | None = Field(default=None, validation_alias=AliasChoices("jwt", "token"))
    expires_in: float | None = Field(
        default=None, validation_alias=AliasChoices("expiresIn", "expires_in")
    )
    reader_api_key: str | None = Field(default=None, alias="readerApiKey")
    reader_url: str | None = Field(default=None, alias="readerURL")
    writer_url: str | None = Field(default=None, alias="writerURL")


# =============================================================================
# Search API Types
# =============================================================================


class SearchParams(ApiModel):
    """Search request parameters."""

    term: str
    mode: SearchMode | None = None
    limit: int | None = None
    offset: int | None = None
    properties: list[str] | None = None
    where: dict[str, Any] | None = None
    facets: dict[str, Any] | None = None
    indexes: list[str] | None = None
    datasource_ids: list[str] | None = Field(default=None, alias="datasourceIDs")
    exact: bool | None = None
    threshold: float | None = None
    tolerance: int | None = None
    user_id: str | None = Field(default=None, alias="userID")


class CloudSearchParams(ApiModel):
    """Search parameters addressed to project datasources."""

    term: str
    datasources: list[str]
    mode: SearchMode | None = None
    limit: int | None = None
    offset: int | None = None
    properties: list[str] | None = None
    where: dict[str, Any] | None = None
    facets: dict[str, Any] | None = None
    exact: bool | None = None
    threshold: float | None = None
    tolerance: int | None = None
    user_id: str | None = Field(default=None, alias="userID")

    def to_search_params(self) -> SearchParams:
        """Map datasources onto collection indexes."""
        data = self.model_dump(exclude={"datasources"})
        return SearchParams(indexes=list(self.datasources), **data)


class Hit(ApiModel):
    """A single search hit."""

    id: str
    score: float
    document: AnyObject
    datasource_id: str | None = None


class Elapsed(ApiModel):
    """Client-measured search latency."""

    raw: int
    formatted: str


class SearchResult(ApiModel):
    """Response from a collection search."""

    count: int
    hits: list[Hit]
    facets: dict[str, Any] | None = None
    elapsed: Elapsed | None = None


class NlpSearchParams(ApiModel):
    query: str
    llm_config: LlmConfig | None = Field(default=None, alias="LLMConfig")
    user_id: str | None = Field(default=None, alias="userID")


class NlpSearchResult(ApiModel):
    """One generated query and its results from an NLP search."""

    original_query: str
    generated_query: SearchParams
    results: list[dict[str, Any]]


# =============================================================================
# Collection Management Types
# =============================================================================


class CreateCollectionParams(ApiModel):
    """Request to create a collection."""

    id: str
    description: str | None = None
    write_api_key: str | None = None
    read_api_key: str | None = None
    language: Language | None = None
    embeddings_model: EmbeddingsModel | None = None


class NewCollectionResponse(ApiModel):
    """Identifiers and keys of a freshly created collection."""

    id: str
    description: str | None = None
    write_api_key: str
    readonly_api_key: str


class CollectionIndexField(ApiModel):
    field_id: str
    field_path: str
    is_array: bool
    field_type: AnyObject


class CollectionIndex(ApiModel):
    id: str
    document_count: int
    fields: list[CollectionIndexField]
    automatically_chosen_properties: AnyObject = None


class GetCollectionsResponse(ApiModel):
    """A collection as listed by the management API."""

    id: str
    description: str | None = None
    document_count: int
    indexes: list[CollectionIndex]


class CreateIndexParams(ApiModel):
    """Request to create an index.

    ``embeddings`` may be ``"automatic"``, ``"all_properties"`` or a list of
    property names.
    """

    id: str | None = None
    embeddings: str | list[str] | None = None


# =============================================================================
# Hooks, System Prompts and Tools
# =============================================================================


class NewHookResponse(ApiModel):
    hook_id: str = Field(alias="hookID")
    code: str


class SystemPrompt(ApiModel):
    id: str
    name: str
    prompt: str
    usage_mode: SystemPromptUsageMode


class InsertSystemPromptBody(ApiModel):
    id: str | None = None
    name: str
    prompt: str
    usage_mode: SystemPromptUsageMode


class SecurityValidation(ApiModel):
    valid: bool
    reason: str
    violations: list[str]


class TechnicalValidation(ApiModel):
    valid: bool
    reason: str
    instruction_count: int


class OverallAssessment(ApiModel):
    valid: bool
    summary: str


class SystemPromptValidationResponse(ApiModel):
    """Result of validating a system prompt."""

    security: SecurityValidation
    technical: TechnicalValidation
    overall_assessment: OverallAssessment


class Tool(ApiModel):
    id: str
    name: str
    description: str
    parameters: str
    system_prompt: str | None = None


class InsertToolBody(ApiModel):
    """Request to insert a tool.

    ``parameters`` may be a JSON schema object or its string form.
    """

    id: str
    description: str
    parameters: AnyObject
    code: str | None = None
    system_prompt: str | None = None


class UpdateToolBody(ApiModel):
    id: str
    description: str | None = None
    parameters: AnyObject = None
    code: str | None = None


class FunctionResultData(ApiModel):
    tool_id: str
    result: AnyObject


class ExecuteToolsFunctionResult(ApiModel):
    function_result: FunctionResultData = Field(alias="functionResult")


class ExecuteToolsParametersResult(ApiModel):
    function_parameters: FunctionResultData = Field(alias="functionParameters")


class ExecuteToolsParsedResponse(ApiModel):
    """Response from running tools."""

    results: list[ExecuteToolsFunctionResult | ExecuteToolsParametersResult] | None = None


# =============================================================================
# AI Session Types
# =============================================================================


class Message(ApiModel):
    """A message in a conversation."""

    role: Role
    content: str


class RelatedQuestionsConfig(ApiModel):
    enabled: bool | None = None
    size: int | None = None
    format: RelatedQuestionsFormat | None = None


class ExecuteToolsBody(ApiModel):
    tool_ids: list[str] | None = None
    messages: list[Message]
    llm_config: LlmConfig | None = None


class AnswerConfig(ApiModel):
    """Request to answer a query within an AI session."""

    query: str
    interaction_id: str | None = None
    visitor_id: str | None = None
    session_id: str | None = None
    messages: list[Message] | None = None
    related: RelatedQuestionsConfig | None = None
    datasource_ids: list[str] | None = Field(default=None, alias="datasourceIDs")
    min_similarity: float | None = None
    max_documents: int | None = None
    ragat_notation: str | None = None
    llm_config: LlmConfig | None = Field(default=None, alias="LLMConfig")


class Interaction(BaseModel):
    """Client-side state of one question/answer exchange."""

    id: str
    query: str
    response: str = ""
    sources: AnyObject = None
    loading: bool = True
    error: bool = False
    error_message: str | None = None
    aborted: bool = False
    related: str | None = None
    current_step: str | None = "starting"
    current_step_verbose: str | None = None
    selected_llm: LlmConfig | None = None

