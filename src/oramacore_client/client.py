"""Authenticated async HTTP dispatcher."""

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Mapping, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .auth import Auth, AuthRef, Credential, SessionToken, Target
from .config import DEFAULT_TIMEOUT
from .errors import (
    ApiError,
    AuthError,
    DecodeError,
    extract_error_message,
    from_transport,
)
from .log import get_logger

USER_AGENT = "oramacore-client-python/1.2.0"

logger = get_logger(__name__)

T = TypeVar("T")


class ApiKeyPosition(str, Enum):
    """Where the bearer value goes on the outgoing request."""

    HEADER = "header"
    QUERY_PARAMS = "query_params"


@dataclass(frozen=True)
class RequestDescriptor:
    """An outgoing request, independent of credentials and base URL."""

    method: str
    path: str
    target: Target = Target.READER
    query: Mapping[str, str] | None = None
    body: Any = None
    requires_auth: bool = True
    api_key_position: ApiKeyPosition = ApiKeyPosition.HEADER
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    @classmethod
    def get(cls, path: str, target: Target, **kwargs: Any) -> "RequestDescriptor":
        return cls("GET", path, target, **kwargs)

    @classmethod
    def post(
        cls, path: str, target: Target, body: Any = None, **kwargs: Any
    ) -> "RequestDescriptor":
        return cls("POST", path, target, body=body, **kwargs)


def parse_as(type_: type[T] | Any, data: Any) -> T:
    """Validate decoded JSON against a model or type expression."""
    try:
        return TypeAdapter(type_).validate_python(data)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected response shape: {exc}") from exc


class Dispatcher:
    """Sends requests with the right credential attached.

    Private keys are exchanged for a session token on first use. A request
    rejected with 401 while carrying an exchanged token triggers one refresh
    and one retry; nothing else is retried.

    Example:
        >>> async with Dispatcher(StaticKey("sk_abc", reader_url=url)) as d:
        ...     stats = await d.request(RequestDescriptor.get("/v1/health", Target.READER))
    """

    def __init__(
        self,
        credential: Credential,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            credential: Static API key or private key to authenticate with.
            http: Optional preconfigured client; the dispatcher closes only
                clients it created itself.
            timeout: Default per-request timeout in seconds.
            clock: Monotonic time source used for token expiry.
        """
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": USER_AGENT}
        )
        self.auth = Auth(credential, self._http, clock)

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_http:
            await self._http.aclose()

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    async def send(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Execute ``descriptor`` and return the successful, fully read response.

        Raises:
            AuthError: Credential rejected, exchange failed or 401 after refresh.
            ApiError: Any other non-2xx status.
            TransportError: Connection-level failure or redirect loop.
            DecodeError: The body could not be content-decoded.
            TransportTimeoutError: The request timed out.
            ConfigError: No base URL is configured for the target.
        """
        return await self._dispatch(descriptor, stream=False)

    async def request(self, descriptor: RequestDescriptor) -> Any:
        """Execute ``descriptor`` and decode the JSON body (``None`` if empty)."""
        response = await self.send(descriptor)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"Failed to parse API response: {exc}") from exc

    @asynccontextmanager
    async def stream(self, descriptor: RequestDescriptor) -> AsyncIterator[httpx.Response]:
        """Open a streaming response; it is closed when the block exits."""
        response = await self._dispatch(descriptor, stream=True)
        try:
            yield response
        finally:
            await response.aclose()

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    async def _resolve(
        self, descriptor: RequestDescriptor, stale: SessionToken | None = None
    ) -> AuthRef:
        if not descriptor.requires_auth:
            return AuthRef(None, self.auth.base_url(descriptor.target))
        return await self.auth.resolve(descriptor.target, stale)

    async def _dispatch(
        self, descriptor: RequestDescriptor, *, stream: bool
    ) -> httpx.Response:
        auth_ref = await self._resolve(descriptor)
        response = await self._send_once(descriptor, auth_ref, stream)

        if response.status_code == 401:
            await response.aclose()
            if auth_ref.token is None:
                raise AuthError(
                    "Unauthorized: are you using the correct API Key?", status=401
                )
            logger.info(
                "request rejected, refreshing token",
                method=descriptor.method,
                path=descriptor.path,
            )
            auth_ref = await self._resolve(descriptor, stale=auth_ref.token)
            response = await self._send_once(descriptor, auth_ref, stream)
            if response.status_code == 401:
                await response.aclose()
                await self.auth.invalidate(auth_ref.token)
                logger.warning(
                    "request rejected after token refresh",
                    method=descriptor.method,
                    path=descriptor.path,
                )
                raise AuthError("Unauthorized: token rejected after refresh", status=401)

        await self._check_response(response)
        return response

    async def _send_once(
        self, descriptor: RequestDescriptor, auth_ref: AuthRef, stream: bool
    ) -> httpx.Response:
        headers = dict(descriptor.headers)
        params = dict(descriptor.query or {})
        if auth_ref.bearer is not None:
            if descriptor.api_key_position is ApiKeyPosition.HEADER:
                headers["Authorization"] = f"Bearer {auth_ref.bearer}"
            else:
                params["api-key"] = auth_ref.bearer

        body = descriptor.body
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json", by_alias=True, exclude_none=True)

        request = self._http.build_request(
            descriptor.method,
            f"{auth_ref.base_url.rstrip('/')}{descriptor.path}",
            params=params or None,
            json=body,
            headers=headers,
            timeout=descriptor.timeout
            if descriptor.timeout is not None
            else httpx.USE_CLIENT_DEFAULT,
        )
        logger.debug(
            "dispatching request",
            method=descriptor.method,
            path=descriptor.path,
            target=descriptor.target.value,
        )
        try:
            return await self._http.send(request, stream=stream)
        except httpx.RequestError as exc:
            logger.error("transport failure", path=descriptor.path, error=str(exc))
            raise from_transport(exc) from exc

    async def _check_response(self, res: httpx.Response) -> None:
        """Check response and raise ApiError if not successful."""
        if res.is_success:
            return
        try:
            await res.aread()
        except httpx.RequestError as exc:
            raise from_transport(exc) from exc
        finally:
            await res.aclose()

        message = extract_error_message(res)
        if res.status_code == 400:
            message = f"Bad Request: {message}"
        raise ApiError(res.status_code, message)
