"""Canonical Pydantic models shared across all cachegate modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`AppConfig`, :class:`RoutingConfig`, :class:`NetworkConfig`,
    :class:`FallbackConfig`, :class:`SyncConfig`, and :class:`GlobalConfig`.

**Traffic models** -- what flows through the engine and the sync queue:
    :class:`Request`, :class:`Response`, :class:`Category`,
    :class:`Namespace`, :class:`MutationKind`, :class:`SyncTag`, and
    :class:`PendingWriteRecord`.

Requests and responses are frozen. A cached response may be replaced
wholesale but is never mutated in place.
"""

from __future__ import annotations

import enum
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Enumerations ---


class Category(str, enum.Enum):
    """Semantic category of an intercepted request.

    Each category is served by exactly one caching strategy in
    :class:`~cachegate.engine.StrategyEngine`.
    """

    DATA_QUERY = "data_query"
    MEDIA_ASSET = "media_asset"
    GENERIC = "generic"


class Namespace(str, enum.Enum):
    """The three cache partitions owned by the engine.

    The concrete store name of each partition also carries the cache prefix
    and generation tag, see :meth:`AppConfig.namespace_name`.
    """

    PRIMARY = "primary"
    DATA = "data"
    MEDIA = "media"


class MutationKind(str, enum.Enum):
    """Kinds of user mutations that can be queued while offline."""

    WATCH_HISTORY_EVENT = "watch-history"
    LIST_CHANGE_EVENT = "list-change"


class SyncTag(str, enum.Enum):
    """Connectivity-restored triggers understood by the sync coordinator."""

    WATCH_HISTORY = "sync-watch-history"
    LIST_CHANGES = "sync-my-list"


# --- Traffic models ---


def _lower_keys(headers: dict[str, str]) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in headers.items()}


class Request(BaseModel):
    """An intercepted outbound request.

    Identified for caching purposes by ``(method, url)``; only ``GET``
    requests are ever looked up in or written to the cache.

    Attributes:
        method: Upper-cased HTTP method.
        url: Absolute request URL.
        headers: Request headers with lower-cased names.
        body: Raw request body.
        mode: Navigation intent. ``"navigate"`` marks a full-page
            navigation, which gets the offline page when the network fails.
    """

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    mode: str = "cors"

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        try:
            parsed = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(str(exc)) from exc
        if not parsed.scheme or not parsed.host:
            raise ValueError(f"Request URL must be absolute: {value!r}")
        return str(parsed)

    @field_validator("headers")
    @classmethod
    def _normalise_headers(cls, value: dict[str, str]) -> dict[str, str]:
        return _lower_keys(value)

    @property
    def parsed_url(self) -> httpx.URL:
        """The URL as an :class:`httpx.URL` (scheme, host, path, query)."""
        return httpx.URL(self.url)

    @property
    def origin(self) -> str:
        """``scheme://host[:port]`` of the request target."""
        parsed = self.parsed_url
        origin = f"{parsed.scheme}://{parsed.host}"
        if parsed.port is not None:
            origin = f"{origin}:{parsed.port}"
        return origin

    @property
    def path(self) -> str:
        """The URL path without query string."""
        return self.parsed_url.path

    @property
    def is_cacheable(self) -> bool:
        """Whether the request may be served from or stored in the cache."""
        return self.method == "GET"

    @property
    def is_navigation(self) -> bool:
        """Whether the request is a full-page navigation."""
        return self.mode == "navigate"


class Response(BaseModel):
    """A response returned by the network, the cache, or a fallback.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers with lower-cased names.
        body: Raw response body.
        url: URL the response was produced for, if known.
        reason_phrase: HTTP reason phrase, if known.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    url: Optional[str] = None
    reason_phrase: str = ""

    @field_validator("headers")
    @classmethod
    def _normalise_headers(cls, value: dict[str, str]) -> dict[str, str]:
        return _lower_keys(value)

    @property
    def ok(self) -> bool:
        """``True`` for 2xx status codes."""
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (undecodable bytes are replaced)."""
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingWriteRecord(BaseModel):
    """A mutation recorded while offline, awaiting a batch commit.

    Created by application code through
    :meth:`~cachegate.queue.PendingWriteQueue.enqueue` and consumed only by
    :class:`~cachegate.sync.SyncCoordinator`. A record is deleted only after
    the commit of the whole batch containing it succeeded.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: MutationKind
    payload: Any = None
    enqueued_at: datetime = Field(default_factory=_utcnow)


# --- Configuration models ---


class AppConfig(BaseModel):
    """Identity of the application whose traffic is intercepted.

    ``origin`` resolves the relative fallback paths (placeholder image,
    offline page) into cache keys. ``cache_prefix`` and ``generation``
    build the namespace names; bumping ``generation`` makes the next
    activation discard every namespace of the previous generation.
    """

    model_config = ConfigDict(validate_assignment=True)

    origin: str = Field(
        default="http://localhost:3000", description="Origin of the client application"
    )
    cache_prefix: str = Field(default="queenmovie", description="Namespace name prefix")
    generation: str = Field(default="v1", description="Cache generation tag")

    @field_validator("origin")
    @classmethod
    def _absolute_origin(cls, value: str) -> str:
        try:
            parsed = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(str(exc)) from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"Origin must be an absolute http(s) URL: {value!r}")
        return value

    def namespace_name(self, namespace: Namespace) -> str:
        """Return the store name of *namespace* for the current generation."""
        if namespace is Namespace.DATA:
            return f"{self.cache_prefix}-api-{self.generation}"
        if namespace is Namespace.MEDIA:
            return f"{self.cache_prefix}-images-{self.generation}"
        return f"{self.cache_prefix}-{self.generation}"

    def resolve(self, path: str) -> str:
        """Resolve a path such as ``/offline.html`` against :attr:`origin`."""
        return str(httpx.URL(self.origin).join(path))


class RoutingConfig(BaseModel):
    """Rules used by :func:`~cachegate.classifier.classify`."""

    api_prefixes: list[str] = Field(
        default_factory=lambda: ["/api/"],
        description="Path prefixes served stale-while-revalidate",
    )
    media_origins: list[str] = Field(
        default_factory=lambda: [
            "https://pub-cdn.sider.ai",
            "https://images.unsplash.com",
            "https://via.placeholder.com",
        ],
        description="Remote origins whose responses are treated as media",
    )
    image_extensions: list[str] = Field(
        default_factory=lambda: ["jpg", "jpeg", "png", "gif", "webp", "svg"],
        description="File extensions treated as media (case-insensitive)",
    )

    @field_validator("image_extensions")
    @classmethod
    def _normalise_extensions(cls, value: list[str]) -> list[str]:
        return [ext.lower().lstrip(".") for ext in value]

    @field_validator("media_origins")
    @classmethod
    def _strip_origins(cls, value: list[str]) -> list[str]:
        return [origin.rstrip("/") for origin in value]


class NetworkConfig(BaseModel):
    """HTTP settings for :class:`~cachegate.network.HttpxNetwork`."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class FallbackConfig(BaseModel):
    """Paths of the pre-seeded responses served when the network fails."""

    placeholder_path: str = Field(
        default="/placeholder.jpg", description="Image returned for failed media loads"
    )
    offline_page_path: str = Field(
        default="/offline.html", description="Page returned for failed navigations"
    )


class SyncConfig(BaseModel):
    """Commit endpoints for each kind of pending write."""

    watch_history_endpoint: str = Field(default="/api/user/watch-history")
    list_changes_endpoint: str = Field(default="/api/user/my-list/sync")

    def endpoint_for(self, kind: MutationKind) -> str:
        if kind is MutationKind.WATCH_HISTORY_EVENT:
            return self.watch_history_endpoint
        return self.list_changes_endpoint


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/cachegate/config.json``.

    Loaded and saved by :func:`~cachegate.config.load_global_config` and
    :func:`~cachegate.config.save_global_config`. See
    :func:`~cachegate.config.resolve_config` for the precedence chain.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    fallbacks: FallbackConfig = Field(default_factory=FallbackConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
