"""
Base service class for resource CRUD operations against the backend.

Provides the shared list/get/create/update/delete endpoints for Service,
Staff and Appointment resources, with their cache tags. Resource-specific
behavior is defined via class attributes and extra endpoints in subclasses.
"""
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter

from core.query_cache import (
    MutationEndpoint,
    QueryCache,
    QueryEndpoint,
    QuerySubscription,
    RequestSpec,
)
from core.tags import Tag, TagType, entity_tag, list_tag, provides_entity, provides_list, whole
from schemas.base import CamelModel
from schemas.envelope import ApiResponse

T = TypeVar("T", bound=BaseModel)


def validate_data(model: Any):  # noqa: ANN201
    """Build a transform validating `response.data` into `model` (any type pydantic accepts)."""
    adapter = TypeAdapter(model)

    def _transform(response: ApiResponse) -> Any:
        return adapter.validate_python(response.data)

    return _transform


def to_params(arg: Any) -> dict[str, Any] | None:
    """Turn a filter model or dict into query-string params."""
    if arg is None:
        return None
    if isinstance(arg, CamelModel):
        return arg.to_wire() or None
    return {k: v for k, v in dict(arg).items() if v is not None} or None


class BaseResourceService(Generic[T]):
    """
    CRUD endpoints for one REST collection.

    Subclasses must define:
    - path: Collection path (e.g., "/services")
    - tag_type: Cache partition of the resource
    - model: Pydantic model of one item
    - endpoint_prefix: Name used for endpoint cache keys (e.g., "Service")

    Subclasses may define:
    - cross_invalidates: Other resource types derived from this one on the
      server; every successful write stales them entirely.
    - extra_list_ids: Additional collection tag ids written by create/update
      (e.g., the detailed appointment list).

    Invalidation on success:
    - create: list tag(s) + cross_invalidates (no entity id is known yet)
    - update/delete: entity tag + list tag(s) + cross_invalidates
    """

    path: ClassVar[str]
    tag_type: ClassVar[TagType]
    model: ClassVar[type[BaseModel]]
    endpoint_prefix: ClassVar[str]
    cross_invalidates: ClassVar[tuple[TagType, ...]] = ()
    extra_list_ids: ClassVar[tuple[str, ...]] = ()

    def __init__(self, cache: QueryCache) -> None:
        self._cache = cache
        prefix = self.endpoint_prefix

        self.list_endpoint: QueryEndpoint[list[T]] = QueryEndpoint(
            name=f"get{prefix}List",
            build_request=lambda arg: RequestSpec("GET", self.path, params=to_params(arg)),
            provides=provides_list(self.tag_type),
            transform=validate_data(list[self.model]),
        )
        self.get_endpoint: QueryEndpoint[T] = QueryEndpoint(
            name=f"get{prefix}ById",
            build_request=lambda entity_id: RequestSpec("GET", f"{self.path}/{entity_id}"),
            provides=provides_entity(self.tag_type),
            transform=validate_data(self.model),
        )
        self.create_endpoint: MutationEndpoint[T] = MutationEndpoint(
            name=f"create{prefix}",
            build_request=lambda payload: RequestSpec("POST", self.path, json=payload.to_wire()),
            invalidates=self._collection_tags() + whole(*self.cross_invalidates),
            transform=validate_data(self.model),
        )
        self.update_endpoint: MutationEndpoint[T] = MutationEndpoint(
            name=f"update{prefix}",
            build_request=lambda arg: RequestSpec(
                "PATCH", f"{self.path}/{arg[0]}", json=arg[1].to_wire(),
            ),
            invalidates=lambda _result, _error, arg: self.entity_invalidation(arg[0]),
            transform=validate_data(self.model),
        )
        self.delete_endpoint: MutationEndpoint[None] = MutationEndpoint(
            name=f"delete{prefix}",
            build_request=lambda entity_id: RequestSpec("DELETE", f"{self.path}/{entity_id}"),
            invalidates=lambda _result, _error, entity_id: self.entity_invalidation(entity_id),
            transform=lambda _response: None,
        )

    def _collection_tags(self) -> list[Tag]:
        return [list_tag(self.tag_type)] + [Tag(self.tag_type, i) for i in self.extra_list_ids]

    def entity_invalidation(self, entity_id: Any) -> list[Tag]:
        """Tags staled by a write to one entity."""
        return (
            [entity_tag(self.tag_type, entity_id)]
            + self._collection_tags()
            + whole(*self.cross_invalidates)
        )

    # --- Queries ---

    async def get_list(self, filters: Any = None) -> list[T]:
        return await self._cache.query(self.list_endpoint, filters)

    def watch_list(self, filters: Any = None, on_change=None) -> QuerySubscription[list[T]]:  # noqa: ANN001
        return self._cache.subscribe(self.list_endpoint, filters, on_change=on_change)

    async def get(self, entity_id: str) -> T:
        return await self._cache.query(self.get_endpoint, entity_id)

    def watch(self, entity_id: str, on_change=None) -> QuerySubscription[T]:  # noqa: ANN001
        return self._cache.subscribe(self.get_endpoint, entity_id, on_change=on_change)

    # --- Mutations ---

    async def create(self, payload: CamelModel) -> T:
        return await self._cache.mutate(self.create_endpoint, payload)

    async def update(self, entity_id: str, payload: CamelModel) -> T:
        return await self._cache.mutate(self.update_endpoint, (entity_id, payload))

    async def delete(self, entity_id: str) -> None:
        await self._cache.mutate(self.delete_endpoint, entity_id)
