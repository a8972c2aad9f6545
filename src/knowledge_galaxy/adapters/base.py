"""
Source adapter abstractions.

Every raw source kind (HTTP endpoint, JSON file, ...) is translated into the
canonical `GraphData` shape by one `SourceAdapter` subclass. Optional
behaviour is opted into through capability mixins, which callers detect
with `isinstance`:

- `StatisticsCapability` -> `await adapter.get_statistics()`
- `RefreshCapability`    -> `await adapter.refresh()`
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, ClassVar, Generic, Literal, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..errors import GalaxyError, InvalidSourceFormat, SourceUnavailable
from ..graph.models import Connection, ConnectionKind, GraphData, Node
from ..records import RawConnection
from ..settings import settings
from .http import HttpClientFactory, transient_retry

logger = logging.getLogger(__name__)

SourceType = Literal["api", "file", "memory"]
T = TypeVar("T")


class AdapterConfig(BaseModel):
    api_endpoint: str | None = None
    file_path: str | None = None
    cache_enabled: bool = True
    cache_ttl_ms: int = Field(default_factory=lambda: settings.cache_ttl_ms)
    custom: dict[str, Any] = Field(default_factory=dict)

    def with_defaults(self, **defaults: Any) -> AdapterConfig:
        """Fill fields the caller left unset; explicit values win."""
        update = {k: v for k, v in defaults.items() if getattr(self, k) is None}
        return self.model_copy(update=update)


@dataclass
class TTLCache(Generic[T]):
    """Keyed cache with a time-to-live.

    Expired entries are evicted lazily on the next `get`, never swept.
    """

    ttl_ms: int
    enabled: bool = True
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, tuple[float, T]] = field(default_factory=dict, repr=False)

    def get(self, key: str) -> T | None:
        if not self.enabled:
            return None
        hit = self._entries.get(key)
        if hit is None:
            return None
        stored_at, value = hit
        if (self.clock() - stored_at) * 1000.0 > self.ttl_ms:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T) -> None:
        if not self.enabled:
            return
        self._entries[key] = (self.clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class AdapterStatistics:
    node_count: int
    connection_count: int
    categories: list[str]
    last_updated: datetime | None = None


def parse_connection_kind(value: Any, default: ConnectionKind = ConnectionKind.RELATED) -> ConnectionKind:
    try:
        return ConnectionKind(value)
    except ValueError:
        return default


class SourceAdapter(ABC):
    """Translates one raw source kind into `GraphData`."""

    name: ClassVar[str]
    display_name: ClassVar[str]
    description: ClassVar[str]
    source_type: ClassVar[SourceType]
    cache_key: ClassVar[str] = "graph-data"

    def __init__(self, config: AdapterConfig | None = None):
        self.config = config or AdapterConfig()
        self.cache: TTLCache[GraphData] = TTLCache(
            ttl_ms=self.config.cache_ttl_ms, enabled=self.config.cache_enabled
        )

    async def fetch_data(self) -> GraphData:
        """Fetch, validate and transform the source.

        Raises SourceUnavailable on transport/read failure and
        InvalidSourceFormat when the payload fails `validate_data`.
        """
        cached = self.cache.get(self.cache_key)
        if cached is not None:
            logger.debug("[%s] Returning cached data", self.name)
            return GraphData(nodes=list(cached.nodes), connections=list(cached.connections))

        raw = await self.load_raw()
        if not self.validate_data(raw):
            raise InvalidSourceFormat(self.name)

        data = self.transform(raw)
        self.cache.set(self.cache_key, data)
        logger.info("[%s] Loaded %d nodes, %d connections", self.name, len(data.nodes), len(data.connections))
        return GraphData(nodes=list(data.nodes), connections=list(data.connections))

    @abstractmethod
    async def load_raw(self) -> Any:
        """Return the decoded raw payload of the source."""

    @abstractmethod
    def transform(self, raw: Any) -> GraphData:
        """Turn a validated payload into graph data."""

    @abstractmethod
    def parse_node(self, raw: Any) -> Node: ...

    def parse_connection(self, raw: Any) -> Connection:
        rec = RawConnection.model_validate(raw)
        return Connection(
            source=rec.source,
            target=rec.target,
            kind=parse_connection_kind(rec.kind),
            strength=rec.strength,
        )

    def validate_data(self, raw: Any) -> bool:
        """Structural check only: both arrays present and actually lists."""
        return (
            isinstance(raw, Mapping)
            and isinstance(raw.get("nodes"), list)
            and isinstance(raw.get("connections"), list)
        )

    def _parse_each(self, items: list[Any], parse: Callable[[Any], T], what: str) -> list[T]:
        """Parse a batch, logging and omitting the items that fail."""
        out: list[T] = []
        for i, item in enumerate(items):
            try:
                out.append(parse(item))
            except (ValidationError, ValueError, TypeError, KeyError) as e:
                logger.warning("[%s] Skipping malformed %s #%d: %s", self.name, what, i, e)
        return out


class StatisticsCapability(ABC):
    """Adapters that can summarize their data."""

    async def get_statistics(self) -> AdapterStatistics:
        data = await self.fetch_data()  # type: ignore[attr-defined]
        return AdapterStatistics(
            node_count=len(data.nodes),
            connection_count=len(data.connections),
            categories=self.categories(data),
            last_updated=datetime.now(UTC),
        )

    @abstractmethod
    def categories(self, data: GraphData) -> list[str]: ...


class RefreshCapability:
    """Adapters that can drop their cache and refetch.

    A failed refresh is reported as False; it never raises.
    """

    async def refresh(self) -> bool:
        self.cache.clear()  # type: ignore[attr-defined]
        try:
            await self.fetch_data()  # type: ignore[attr-defined]
        except GalaxyError as e:
            logger.warning("[%s] Refresh failed: %s", self.name, e)  # type: ignore[attr-defined]
            return False
        return True


class HttpSourceAdapter(SourceAdapter):
    """Adapter whose raw payload is a JSON document behind an HTTP GET."""

    default_endpoint: ClassVar[str]

    def __init__(self, config: AdapterConfig | None = None, *, client: httpx.AsyncClient | None = None):
        super().__init__((config or AdapterConfig()).with_defaults(api_endpoint=self.default_endpoint))
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = HttpClientFactory.client()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self) -> Any:
        r = await self.client.get(self.config.api_endpoint)
        r.raise_for_status()
        return r.json()

    async def load_raw(self) -> Any:
        attempts = int(self.config.custom.get("retries", 5))
        try:
            return await transient_retry(attempts)(self._get_json)()
        except httpx.HTTPError as e:
            raise SourceUnavailable(self.name, f"{type(e).__name__}: {e}") from e
        except json.JSONDecodeError as e:
            raise InvalidSourceFormat(self.name, f"response is not JSON: {e}") from e
