"""
Cache tags identifying categories or instances of cached server data.

A query *provides* tags describing what its cached result represents; a
mutation *invalidates* tags describing what it may have changed.

Matching rules:
- An invalidated tag with an id (`Tag(STAFF, "42")`, `Tag(STAFF, "LIST")`)
  hits entries that provided exactly that tag.
- An invalidated whole-type tag (`Tag(STAFF)`) hits every entry that provided
  any tag of that type.
"""
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

LIST_ID = "LIST"


class TagType(StrEnum):
    """Named cache partitions, one per server resource type."""

    APPOINTMENT = "APPOINTMENT"
    SERVICE = "SERVICE"
    STAFF = "STAFF"
    QUEUE = "QUEUE"
    DASHBOARD = "DASHBOARD"
    USER = "USER"


@dataclass(frozen=True, slots=True)
class Tag:
    """A cache tag; `id=None` means the whole resource type."""

    type: TagType
    id: str | None = None

    def __repr__(self) -> str:
        return f"Tag({self.type}/{self.id})" if self.id is not None else f"Tag({self.type})"


TagSet = frozenset[Tag]

# Static tag list, or a function of (result, error, arg) computing one.
TagsSpec = Sequence[Tag] | Callable[[Any, BaseException | None, Any], Iterable[Tag]]


def list_tag(tag_type: TagType) -> Tag:
    return Tag(tag_type, LIST_ID)


def entity_tag(tag_type: TagType, entity_id: Any) -> Tag:
    return Tag(tag_type, str(entity_id))


def whole(*tag_types: TagType) -> list[Tag]:
    """Whole-type tags for cross-resource invalidation."""
    return [Tag(t) for t in tag_types]


def provides_list(tag_type: TagType) -> Callable[[Any, BaseException | None, Any], list[Tag]]:
    """
    Tags for a collection fetch: one entity tag per item plus the list tag.

    On error, or when the result is not a list, only the list tag is provided
    so a later create still triggers a re-fetch.
    """

    def _provides(result: Any, _error: BaseException | None, _arg: Any) -> list[Tag]:
        if not isinstance(result, list):
            return [list_tag(tag_type)]
        tags = [entity_tag(tag_type, item.id) for item in result if getattr(item, "id", None)]
        tags.append(list_tag(tag_type))
        return tags

    return _provides


def provides_entity(tag_type: TagType) -> Callable[[Any, BaseException | None, Any], list[Tag]]:
    """Tags for a single-entity fetch whose argument is the entity id."""

    def _provides(_result: Any, _error: BaseException | None, entity_id: Any) -> list[Tag]:
        return [entity_tag(tag_type, entity_id)]

    return _provides


def resolve_tags(spec: TagsSpec | None, result: Any, error: BaseException | None, arg: Any) -> TagSet:
    """Evaluate a static or callable tags spec into a tag set."""
    if spec is None:
        return frozenset()
    if callable(spec):
        return frozenset(spec(result, error, arg))
    return frozenset(spec)


def tag_matches(invalidated: Tag, provided: Tag) -> bool:
    if invalidated.type != provided.type:
        return False
    return invalidated.id is None or invalidated.id == provided.id


def intersects(invalidated: Iterable[Tag], provided: Iterable[Tag]) -> bool:
    """True when any invalidated tag hits any provided tag."""
    provided = tuple(provided)
    return any(tag_matches(inv, prov) for inv in invalidated for prov in provided)
