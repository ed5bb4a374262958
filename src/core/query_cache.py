"""
Normalized client-side cache of server resources with tag-based invalidation.

Every query result is stored in a `CacheEntry` keyed by endpoint name plus the
serialized argument, so identical calls share one entry and one in-flight
request. Queries declare the tags they provide; mutations declare the tags
they invalidate. A successful mutation marks every entry whose provided tags
intersect the invalidated set as stale before the mutation returns. Entries
with active subscriptions are then re-fetched in the background while keeping
their previous data visible (stale-while-revalidate); entries nobody watches
are re-fetched on their next read.

A failed mutation invalidates nothing. A failed fetch records the error on the
entry and keeps any previous data.

Writes are last-completion-wins per key; responses are not version-checked.
"""
import asyncio
import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

from core.tags import Tag, TagSet, TagsSpec, intersects, resolve_tags
from schemas.envelope import ApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Requester(Protocol):
    """The transport the cache issues requests through."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> ApiResponse:
        ...


@dataclass(frozen=True)
class RequestSpec:
    """What to send for one endpoint call."""

    method: str
    url: str
    params: dict[str, Any] | None = None
    json: dict[str, Any] | None = None


def _default_transform(response: ApiResponse) -> Any:
    return response.data


@dataclass(frozen=True)
class QueryEndpoint(Generic[T]):
    """A read operation and the tags its cached result provides."""

    name: str
    build_request: Callable[[Any], RequestSpec]
    provides: TagsSpec | None = None
    transform: Callable[[ApiResponse], T] = _default_transform


@dataclass(frozen=True)
class MutationEndpoint(Generic[T]):
    """A write operation and the tags it invalidates on success."""

    name: str
    build_request: Callable[[Any], RequestSpec]
    invalidates: TagsSpec | None = None
    transform: Callable[[ApiResponse], T] = _default_transform


class QueryStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items() if v is not None}
    if isinstance(value, list | tuple):
        return [_to_jsonable(v) for v in value]
    return value


def serialize_query_args(endpoint_name: str, arg: Any) -> str:
    """
    Build the cache key for an endpoint call: `name(<json>)`.

    Keys are sorted and None values dropped so `{"a": 1, "b": None}` and
    `{"a": 1}` share an entry.
    """
    if arg is None:
        return f"{endpoint_name}(undefined)"
    payload = json.dumps(_to_jsonable(arg), sort_keys=True, separators=(",", ":"), default=str)
    return f"{endpoint_name}({payload})"


@dataclass(eq=False)
class CacheEntry:
    """State of one cached query."""

    key: str
    endpoint: QueryEndpoint
    arg: Any
    status: QueryStatus = QueryStatus.UNINITIALIZED
    data: Any = None
    error: BaseException | None = None
    provided_tags: TagSet = frozenset()
    is_stale: bool = False
    fulfilled_at: float | None = None
    # Bumped by every invalidation; a fetch that started before the bump
    # completes stale.
    version: int = 0
    inflight: asyncio.Task | None = None
    eviction: asyncio.TimerHandle | None = None
    subscribers: set["QuerySubscription"] = field(default_factory=set)

    @property
    def has_data(self) -> bool:
        return self.fulfilled_at is not None

    @property
    def is_fresh(self) -> bool:
        return self.status == QueryStatus.FULFILLED and not self.is_stale


def _consume_task_result(task: asyncio.Task) -> None:
    """Mark a task's exception as retrieved; errors are recorded on the entry."""
    if not task.cancelled():
        task.exception()


class QuerySubscription(Generic[T]):
    """
    A live view of one cache entry.

    While at least one subscription exists the entry is re-fetched
    automatically after invalidation and is never evicted.
    """

    def __init__(
        self,
        cache: "QueryCache",
        entry: CacheEntry,
        on_change: Callable[["QuerySubscription[T]"], None] | None = None,
    ) -> None:
        self._cache = cache
        self._entry = entry
        self._on_change = on_change
        self._active = True

    @property
    def key(self) -> str:
        return self._entry.key

    @property
    def data(self) -> T | None:
        """Last successfully fetched data, also while a re-fetch is in flight."""
        return self._entry.data

    @property
    def error(self) -> BaseException | None:
        return self._entry.error

    @property
    def status(self) -> QueryStatus:
        return self._entry.status

    @property
    def is_loading(self) -> bool:
        """First load: fetching with no data yet."""
        return self._entry.inflight is not None and not self._entry.has_data

    @property
    def is_fetching(self) -> bool:
        return self._entry.inflight is not None

    @property
    def is_error(self) -> bool:
        return self._entry.status == QueryStatus.REJECTED

    @property
    def is_stale(self) -> bool:
        return self._entry.is_stale

    @property
    def active(self) -> bool:
        return self._active

    async def wait(self) -> T | None:
        """Wait for the in-flight fetch (if any) and return the current data."""
        task = self._entry.inflight
        if task is not None:
            await asyncio.wait({task})
        return self._entry.data

    async def refetch(self) -> T:
        """Force a re-fetch regardless of staleness."""
        return await self._cache.query(self._entry.endpoint, self._entry.arg, force=True)

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cache._remove_subscription(self)

    def _notify(self) -> None:
        if self._active and self._on_change is not None:
            self._on_change(self)

    async def __aenter__(self) -> "QuerySubscription[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class QueryCache:
    """Process-wide cache of query results with a tag subscription registry."""

    def __init__(self, requester: Requester, keep_unused_data_for: float = 60.0) -> None:
        self._requester = requester
        self._keep_unused_data_for = keep_unused_data_for
        self._entries: dict[str, CacheEntry] = {}
        self._background: set[asyncio.Task] = set()

    # --- Reads ---

    def get_entry(self, endpoint: QueryEndpoint, arg: Any = None) -> CacheEntry | None:
        return self._entries.get(serialize_query_args(endpoint.name, arg))

    def _get_or_create_entry(self, endpoint: QueryEndpoint, arg: Any) -> CacheEntry:
        key = serialize_query_args(endpoint.name, arg)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, endpoint=endpoint, arg=arg)
            self._entries[key] = entry
        return entry

    async def query(self, endpoint: QueryEndpoint[T], arg: Any = None, *, force: bool = False) -> T:
        """
        Return the endpoint's data for `arg`, fetching only when needed.

        Concurrent calls for the same key share one request. Fresh cached
        data is returned without a request unless `force` is set.
        """
        entry = self._get_or_create_entry(endpoint, arg)
        if entry.inflight is not None:
            logger.debug("query_cache_dedupe key=%s", entry.key)
            return await asyncio.shield(entry.inflight)
        if not force and entry.is_fresh:
            logger.debug("query_cache_hit key=%s", entry.key)
            return entry.data
        logger.debug("query_cache_miss key=%s stale=%s", entry.key, entry.is_stale)
        return await asyncio.shield(self._start_fetch(entry))

    def subscribe(
        self,
        endpoint: QueryEndpoint[T],
        arg: Any = None,
        *,
        on_change: Callable[[QuerySubscription[T]], None] | None = None,
    ) -> QuerySubscription[T]:
        """
        Register a view of `endpoint(arg)`.

        Starts a background fetch when the entry has no fresh data. Must be
        called from within a running event loop.
        """
        entry = self._get_or_create_entry(endpoint, arg)
        if entry.eviction is not None:
            entry.eviction.cancel()
            entry.eviction = None
        subscription: QuerySubscription[T] = QuerySubscription(self, entry, on_change)
        entry.subscribers.add(subscription)
        if entry.inflight is None and not entry.is_fresh:
            self._revalidate_in_background(entry)
        return subscription

    def _remove_subscription(self, subscription: QuerySubscription) -> None:
        entry = subscription._entry
        entry.subscribers.discard(subscription)
        if not entry.subscribers and self._entries.get(entry.key) is entry:
            self._schedule_eviction(entry)

    # --- Fetching ---

    def _start_fetch(self, entry: CacheEntry) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_fetch(entry))
        task.add_done_callback(_consume_task_result)
        entry.inflight = task
        return task

    async def _run_fetch(self, entry: CacheEntry) -> Any:
        started_version = entry.version
        endpoint = entry.endpoint
        spec = endpoint.build_request(entry.arg)
        entry.status = QueryStatus.PENDING
        self._notify(entry)
        try:
            response = await self._requester.request(
                spec.method, spec.url, params=spec.params, json=spec.json,
            )
            result = endpoint.transform(response)
        except asyncio.CancelledError:
            entry.inflight = None
            entry.status = QueryStatus.FULFILLED if entry.has_data else QueryStatus.UNINITIALIZED
            raise
        except Exception as e:
            entry.inflight = None
            entry.error = e
            entry.status = QueryStatus.REJECTED
            # Keep previous tags so the prior data still gets invalidated.
            entry.provided_tags = entry.provided_tags | resolve_tags(
                endpoint.provides, None, e, entry.arg,
            )
            logger.info("query_cache_fetch_failed key=%s error=%s", entry.key, e)
            self._after_fetch(entry, succeeded=False)
            raise

        entry.inflight = None
        entry.data = result
        entry.error = None
        entry.status = QueryStatus.FULFILLED
        entry.fulfilled_at = time.monotonic()
        entry.provided_tags = resolve_tags(endpoint.provides, result, None, entry.arg)
        entry.is_stale = entry.version != started_version
        logger.debug("query_cache_fulfilled key=%s tags=%s", entry.key, sorted(map(repr, entry.provided_tags)))
        self._after_fetch(entry, succeeded=True)
        return result

    def _after_fetch(self, entry: CacheEntry, succeeded: bool) -> None:
        self._notify(entry)
        if not entry.subscribers:
            self._schedule_eviction(entry)
        elif succeeded and entry.is_stale:
            # Invalidated while in flight: the response may predate the write.
            self._revalidate_in_background(entry)

    def _revalidate_in_background(self, entry: CacheEntry) -> None:
        """Start a tracked fetch; its failure is recorded on the entry."""
        if entry.inflight is not None or self._entries.get(entry.key) is not entry:
            return
        task = self._start_fetch(entry)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # --- Writes ---

    async def mutate(self, endpoint: MutationEndpoint[T], arg: Any = None) -> T:
        """
        Perform a mutation and invalidate its tags on success.

        Invalidation is issued before this coroutine returns; re-fetches of
        subscribed entries run afterwards in the background.
        """
        spec = endpoint.build_request(arg)
        try:
            response = await self._requester.request(
                spec.method, spec.url, params=spec.params, json=spec.json,
            )
            result = endpoint.transform(response)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.info("mutation_failed endpoint=%s error=%s", endpoint.name, e)
            raise
        tags = resolve_tags(endpoint.invalidates, result, None, arg)
        invalidated = self.invalidate_tags(tags)
        logger.debug(
            "mutation_succeeded endpoint=%s invalidated=%d", endpoint.name, len(invalidated),
        )
        return result

    @staticmethod
    def _match_tags(entry: CacheEntry) -> TagSet:
        """
        Tags an invalidation is checked against.

        A fetch in flight also answers to the tags its endpoint provides
        without a result (the list tag, the entity tag of its argument), so a
        first fetch racing a write still completes stale.
        """
        if entry.inflight is None:
            return entry.provided_tags
        return entry.provided_tags | resolve_tags(entry.endpoint.provides, None, None, entry.arg)

    def invalidate_tags(self, tags: Iterable[Tag]) -> list[str]:
        """
        Mark every entry providing a matching tag as stale.

        Subscribed entries are re-fetched in the background. Returns the keys
        of the affected entries.
        """
        tags = tuple(tags)
        if not tags:
            return []
        affected = [e for e in self._entries.values() if intersects(tags, self._match_tags(e))]
        for entry in affected:
            entry.is_stale = True
            entry.version += 1
            logger.debug("query_cache_invalidated key=%s", entry.key)
            if entry.subscribers and entry.inflight is None:
                self._revalidate_in_background(entry)
            self._notify(entry)
        return [e.key for e in affected]

    # --- Lifecycle ---

    def _schedule_eviction(self, entry: CacheEntry) -> None:
        if entry.eviction is not None:
            entry.eviction.cancel()
        entry.eviction = asyncio.get_running_loop().call_later(
            self._keep_unused_data_for, self._evict_if_unused, entry.key,
        )

    def _evict_if_unused(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is None or entry.subscribers or entry.inflight is not None:
            return
        del self._entries[key]
        logger.debug("query_cache_evicted key=%s", key)

    def _notify(self, entry: CacheEntry) -> None:
        for subscription in list(entry.subscribers):
            subscription._notify()

    async def settle(self) -> None:
        """Wait until all background re-fetches have finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def reset(self) -> None:
        """
        Drop every entry, cancelling in-flight fetches and eviction timers.

        A fetch calling this from inside its own request (the 401 handler) is
        not cancelled; it finishes against its detached entry.
        """
        current = asyncio.current_task()
        for entry in self._entries.values():
            if entry.inflight is not None and entry.inflight is not current:
                entry.inflight.cancel()
            if entry.eviction is not None:
                entry.eviction.cancel()
            entry.data = None
            entry.fulfilled_at = None
            entry.status = QueryStatus.UNINITIALIZED
            entry.provided_tags = frozenset()
            entry.subscribers.clear()
        self._entries.clear()
        for task in list(self._background):
            if task is not current:
                task.cancel()
        logger.debug("query_cache_reset")

    async def close(self) -> None:
        self.reset()
        await self.settle()

    def keys(self) -> list[str]:
        return list(self._entries)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Plain-data view of every entry (status, data, tags, staleness)."""
        return {
            key: {
                "status": str(entry.status),
                "data": _to_jsonable(entry.data),
                "tags": sorted(repr(t) for t in entry.provided_tags),
                "is_stale": entry.is_stale,
            }
            for key, entry in self._entries.items()
        }
