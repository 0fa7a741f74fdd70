"""In-memory topology model.

A topology is a tree of named entities (network -> subnetworks -> delegations).
Attribute values are resolved into one of four tagged variants when the
topology is built, so comparison code never has to inspect raw types again.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union


class EntityKind(str, Enum):
    """Kinds of entity that can appear in a topology."""

    NETWORK = "Network"
    SUBNETWORK = "Subnetwork"
    DELEGATION = "Delegation"


@dataclass(frozen=True)
class ScalarValue:
    """A single string attribute."""

    value: str

    def to_plain(self) -> str:
        return self.value


@dataclass(frozen=True)
class ListValue:
    """A list-of-strings attribute such as address prefixes."""

    items: Tuple[str, ...]

    def to_plain(self) -> list:
        return list(self.items)


@dataclass(frozen=True)
class NestedValue:
    """A nested attribute set such as a delegation's service delegation."""

    attributes: Mapping[str, "AttributeValue"]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NestedValue):
            return NotImplemented
        return dict(self.attributes) == dict(other.attributes)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.attributes.items(), key=lambda item: item[0])))

    def to_plain(self) -> dict:
        return {name: value.to_plain() for name, value in self.attributes.items()}


@dataclass(frozen=True, eq=False)
class OpaqueValue:
    """An unrecognized declaration field, kept verbatim and never compared."""

    raw: Any

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OpaqueValue):
            return NotImplemented
        return self.raw == other.raw

    def to_plain(self) -> Any:
        return self.raw


AttributeValue = Union[ScalarValue, ListValue, NestedValue, OpaqueValue]


class EntityPath(tuple):
    """Declaration keys from the root of the topology down to one entity."""

    def __new__(cls, *segments: str) -> "EntityPath":
        return super().__new__(cls, segments)

    def __getnewargs__(self) -> Tuple[str, ...]:
        return tuple(self)

    def child(self, key: str) -> "EntityPath":
        return EntityPath(*self, key)

    @property
    def parent(self) -> Optional["EntityPath"]:
        if len(self) <= 1:
            return None
        return EntityPath(*self[:-1])

    def __str__(self) -> str:
        return "/".join(self)

    def __repr__(self) -> str:
        return f"EntityPath({str(self)!r})"


@dataclass(frozen=True)
class Entity:
    """A named node of the topology tree.

    ``key`` is the declaration key the entity is addressed by; ``name`` is the
    human-readable resource name and may repeat under different parents.
    """

    kind: EntityKind
    key: str
    name: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)
    children: Mapping[str, "Entity"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.key == other.key
            and self.name == other.name
            and dict(self.attributes) == dict(other.attributes)
            and dict(self.children) == dict(other.children)
        )

    def comparable_attributes(self) -> Dict[str, AttributeValue]:
        """Attributes that the validator checks, i.e. everything except opaque ones."""
        return {
            name: value
            for name, value in self.attributes.items()
            if not isinstance(value, OpaqueValue)
        }

    def opaque_attributes(self) -> Dict[str, Any]:
        return {
            name: value.raw
            for name, value in self.attributes.items()
            if isinstance(value, OpaqueValue)
        }


class Topology:
    """Immutable set of top-level network entities keyed by declaration key."""

    def __init__(self, networks: Optional[Mapping[str, Entity]] = None):
        self._networks: Mapping[str, Entity] = MappingProxyType(dict(networks or {}))

    @property
    def networks(self) -> Mapping[str, Entity]:
        return self._networks

    def __len__(self) -> int:
        return len(self._networks)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topology):
            return NotImplemented
        return dict(self._networks) == dict(other._networks)

    def __repr__(self) -> str:
        return f"Topology(networks={sorted(self._networks)})"

    def find(self, path: EntityPath) -> Optional[Entity]:
        """Return the entity addressed by ``path``, or None."""
        if not path:
            return None
        entity = self._networks.get(path[0])
        for key in path[1:]:
            if entity is None:
                return None
            entity = entity.children.get(key)
        return entity

    def walk(self) -> Iterator[Tuple[EntityPath, Entity]]:
        """Yield every entity depth first, siblings in sorted key order."""
        for key in sorted(self._networks):
            yield from _walk(EntityPath(key), self._networks[key])


def _walk(path: EntityPath, entity: Entity) -> Iterator[Tuple[EntityPath, Entity]]:
    yield path, entity
    for key in sorted(entity.children):
        yield from _walk(path.child(key), entity.children[key])
