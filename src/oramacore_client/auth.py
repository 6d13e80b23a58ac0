"""Credentials and the session token cache."""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Literal, Union

import httpx
from pydantic import ValidationError

from .errors import AuthError, ConfigError, extract_error_message, from_transport
from .log import get_logger
from .types import JwtResponse

DEFAULT_READER_URL = "https://collections.orama.com"
DEFAULT_JWT_URL = "https://app.orama.com/api/user/jwt"

PRIVATE_KEY_PREFIX = "p_"

# Tokens with a known lifetime are refreshed this many seconds early.
EXPIRY_LEEWAY_SECONDS = 10.0

logger = get_logger(__name__)


class Target(str, Enum):
    """Which cluster endpoint a request goes to."""

    READER = "reader"
    WRITER = "writer"


@dataclass(frozen=True)
class StaticKey:
    """An API key sent verbatim with every request."""

    api_key: str
    reader_url: str | None = None
    writer_url: str | None = None
    kind: Literal["static"] = field(default="static", init=False)

    def __repr__(self) -> str:
        return f"StaticKey(reader_url={self.reader_url!r}, writer_url={self.writer_url!r})"


@dataclass(frozen=True)
class PrivateKey:
    """A private key that is exchanged for a short-lived JWT.

    The key itself is only ever sent to ``auth_jwt_url``.
    """

    private_api_key: str
    collection_id: str
    auth_jwt_url: str = DEFAULT_JWT_URL
    reader_url: str | None = None
    writer_url: str | None = None
    scope: str = "write"
    kind: Literal["private"] = field(default="private", init=False)

    def __repr__(self) -> str:
        return (
            f"PrivateKey(collection_id={self.collection_id!r}, "
            f"auth_jwt_url={self.auth_jwt_url!r})"
        )


Credential = Union[StaticKey, PrivateKey]


def credential_for(
    api_key: str,
    collection_id: str,
    *,
    reader_url: str | None = None,
    writer_url: str | None = None,
    auth_jwt_url: str | None = None,
) -> Credential:
    """Build the credential matching the shape of ``api_key``."""
    if api_key.startswith(PRIVATE_KEY_PREFIX):
        return PrivateKey(
            private_api_key=api_key,
            collection_id=collection_id,
            auth_jwt_url=auth_jwt_url or DEFAULT_JWT_URL,
            reader_url=reader_url,
            writer_url=writer_url,
        )
    return StaticKey(api_key=api_key, reader_url=reader_url, writer_url=writer_url)


@dataclass(frozen=True)
class SessionToken:
    """A bearer value obtained from the token exchange endpoint."""

    value: str
    obtained_at: float
    ttl: float | None = None
    reader_api_key: str | None = None
    reader_url: str | None = None
    writer_url: str | None = None

    def expired(self, now: float) -> bool:
        # Without a server-provided TTL the token lives until a 401.
        if self.ttl is None:
            return False
        return now >= self.obtained_at + self.ttl - EXPIRY_LEEWAY_SECONDS

    def bearer_for(self, target: Target) -> str:
        if target is Target.READER and self.reader_api_key:
            return self.reader_api_key
        return self.value


@dataclass(frozen=True)
class AuthRef:
    """Resolved bearer value and base URL for one request.

    ``token`` is set when the bearer came from an exchanged session token.
    """

    bearer: str | None
    base_url: str
    token: SessionToken | None = None


class TokenCache:
    """Owns the session token for one private key.

    Updates are serialized by a lock. A caller asking for a refresh passes
    the token it saw rejected; when another caller has already replaced it
    the fresh token is returned without a second exchange.
    """

    def __init__(
        self,
        credential: PrivateKey,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credential = credential
        self._http = http
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: SessionToken | None = None
        self.exchange_count = 0

    @property
    def token(self) -> SessionToken | None:
        return self._token

    async def get(self, stale: SessionToken | None = None) -> SessionToken:
        """Return a valid token, exchanging the credential when needed."""
        async with self._lock:
            current = self._token
            if (
                current is not None
                and current is not stale
                and not current.expired(self._clock())
            ):
                return current
            try:
                token = await self._exchange()
            except AuthError:
                self._token = None
                raise
            self._token = token
            return token

    async def invalidate(self, token: SessionToken) -> None:
        """Drop ``token`` if it is still the cached one."""
        async with self._lock:
            if self._token is token:
                self._token = None

    async def _exchange(self) -> SessionToken:
        credential = self._credential
        payload = {
            "collectionId": credential.collection_id,
            "privateApiKey": credential.private_api_key,
            "scope": credential.scope,
        }
        self.exchange_count += 1
        try:
            response = await self._http.post(credential.auth_jwt_url, json=payload)
        except httpx.RequestError as exc:
            logger.error("token exchange transport failure", error=str(exc))
            raise from_transport(exc) from exc

        if not response.is_success:
            message = extract_error_message(response)
            logger.warning(
                "token exchange rejected", status_code=response.status_code
            )
            raise AuthError(
                f"JWT request to {credential.auth_jwt_url} failed: {message}",
                status=response.status_code,
            )

        try:
            body = JwtResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError(f"Malformed JWT response: {exc}") from exc
        if not body.jwt:
            raise AuthError("JWT response carries no token")

        token = SessionToken(
            value=body.jwt,
            obtained_at=self._clock(),
            ttl=body.expires_in,
            reader_api_key=body.reader_api_key,
            reader_url=body.reader_url,
            writer_url=body.writer_url,
        )
        logger.info("token exchanged", ttl=token.ttl)
        return token


class Auth:
    """Resolves the bearer value and base URL for a request target."""

    def __init__(
        self,
        credential: Credential,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.credential = credential
        self.tokens: TokenCache | None = None
        if isinstance(credential, PrivateKey):
            self.tokens = TokenCache(credential, http, clock)

    async def resolve(
        self, target: Target, stale: SessionToken | None = None
    ) -> AuthRef:
        """Return the bearer and base URL for ``target``."""
        credential = self.credential
        if isinstance(credential, StaticKey):
            return AuthRef(credential.api_key, self._url_for(target))

        token = await self.tokens.get(stale)
        return AuthRef(token.bearer_for(target), self._url_for(target, token), token)

    def base_url(self, target: Target) -> str:
        """Return the base URL for ``target`` without authenticating.

        Configured URLs win; otherwise the URLs of an already exchanged token
        are used.
        """
        token = self.tokens.token if self.tokens is not None else None
        return self._url_for(target, token)

    async def invalidate(self, token: SessionToken) -> None:
        if self.tokens is not None:
            await self.tokens.invalidate(token)

    def _url_for(self, target: Target, token: SessionToken | None = None) -> str:
        credential = self.credential
        if target is Target.READER:
            url = credential.reader_url or (token.reader_url if token else None)
        else:
            url = credential.writer_url or (token.writer_url if token else None)
        if not url:
            raise ConfigError(_missing_url_message(target))
        return url


def _missing_url_message(target: Target) -> str:
    if target is Target.WRITER:
        return (
            "Cannot perform a request to a writer without the writerURL. "
            "Use cluster.writer_url to configure it"
        )
    return (
        "Cannot perform a request to a reader without the readerURL. "
        "Use cluster.read_url to configure it"
    )
