"""Topology model for declared virtual network layouts.

Public API:
    - build_topology: Build a Topology from a declaration mapping
    - load_topology_file: Build a Topology from a YAML or JSON file
    - serialize_topology: Render a Topology back to its declaration
    - Topology, Entity, EntityKind, EntityPath: Tree types
    - ScalarValue, ListValue, NestedValue, OpaqueValue: Attribute variants
"""

from .builder import build_topology, load_topology_file
from .models import (
    AttributeValue,
    Entity,
    EntityKind,
    EntityPath,
    ListValue,
    NestedValue,
    OpaqueValue,
    ScalarValue,
    Topology,
)
from .serializer import serialize_entity, serialize_topology

__all__ = [
    "AttributeValue",
    "Entity",
    "EntityKind",
    "EntityPath",
    "ListValue",
    "NestedValue",
    "OpaqueValue",
    "ScalarValue",
    "Topology",
    "build_topology",
    "load_topology_file",
    "serialize_entity",
    "serialize_topology",
]
