"""Render a Topology back into its declarative form."""

import copy
from typing import Any, Dict

from .models import Entity, Topology
from .schema import children_field


def serialize_topology(topology: Topology) -> Dict[str, Any]:
    """Return the declaration mapping that builds an equivalent topology.

    Example:
        >>> raw = {"vnet1": {"name": "vnet1", "subnetworks": {}}}
        >>> serialize_topology(build_topology(raw))
        {'vnet1': {'name': 'vnet1', 'subnetworks': {}}}
    """
    return {key: serialize_entity(entity) for key, entity in topology.networks.items()}


def serialize_entity(entity: Entity) -> Dict[str, Any]:
    declaration: Dict[str, Any] = {
        name: copy.deepcopy(value.to_plain()) for name, value in entity.attributes.items()
    }

    field = children_field(entity.kind)
    if field is None:
        return declaration

    children = {key: serialize_entity(child) for key, child in entity.children.items()}
    # Children keyed by their own name came from a list declaration
    if children and field == "delegations" and all(
        key == child.name for key, child in entity.children.items()
    ):
        declaration[field] = list(children.values())
    else:
        declaration[field] = children
    return declaration
