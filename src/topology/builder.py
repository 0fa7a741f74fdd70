"""Build a Topology from a loosely typed declaration.

The declaration is a string-keyed mapping of networks, each holding a
``subnetworks`` mapping, each holding ``delegations``. Recognized fields are
coerced into tagged attribute values; unrecognized fields are preserved as
opaque attributes so newer declarations are never rejected.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from src.exceptions import SchemaError

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
from .schema import KIND_SCHEMAS

logger = structlog.get_logger(__name__)


def build_topology(raw: Mapping[str, Any]) -> Topology:
    """Build an immutable Topology from a declaration mapping.

    Args:
        raw: Mapping of network declaration key to network declaration

    Returns:
        The resulting Topology

    Raises:
        SchemaError: If a required field is missing or a field has the wrong shape

    Example:
        >>> topology = build_topology({"vnet1": {"name": "vnet1", "addressSpace": ["10.0.0.0/16"]}})
        >>> topology.networks["vnet1"].attributes["addressSpace"]
        ListValue(items=('10.0.0.0/16',))
    """
    if not isinstance(raw, Mapping):
        raise SchemaError(
            f"Topology declaration must be a mapping of networks, got {type(raw).__name__}"
        )

    networks: Dict[str, Entity] = {}
    for key, declaration in raw.items():
        _check_key(key, EntityPath())
        networks[key] = _build_entity(EntityKind.NETWORK, key, declaration, EntityPath(key))

    logger.debug("Built topology", networks=len(networks))
    return Topology(networks)


def load_topology_file(path: Union[str, Path]) -> Topology:
    """Read a YAML or JSON declaration file and build it.

    Raises:
        SchemaError: If the file cannot be read or parsed, or is not a valid topology
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise SchemaError(f"Cannot read topology file {path}: {e}", cause=e) from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError(f"Cannot parse topology file {path}: {e}", cause=e) from e

    return build_topology(data or {})


def _check_key(key: Any, parent: EntityPath) -> None:
    if not isinstance(key, str) or not key:
        raise SchemaError(
            f"Declaration keys must be non-empty strings, got {key!r}", path=parent
        )


def _build_entity(
    kind: EntityKind, key: str, declaration: Any, path: EntityPath
) -> Entity:
    if not isinstance(declaration, Mapping):
        raise SchemaError(
            f"{kind.value} declaration '{key}' must be a mapping, "
            f"got {type(declaration).__name__}",
            path=path,
        )

    schema = KIND_SCHEMAS[kind]
    fields = dict(declaration)
    children_raw = None
    if schema.children_field:
        children_raw = fields.pop(schema.children_field, None)

    try:
        spec = schema.model.model_validate(fields)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise SchemaError(
            f"Invalid {kind.value} declaration '{key}': {field}: {error['msg']}",
            path=path,
            field=field,
            cause=e,
        ) from e

    children: Dict[str, Entity] = {}
    if schema.child_kind is not None and children_raw is not None:
        for child_key, child_declaration in _iter_children(
            children_raw, schema.children_field, path
        ):
            children[child_key] = _build_entity(
                schema.child_kind, child_key, child_declaration, path.child(child_key)
            )

    return Entity(
        kind=kind,
        key=key,
        name=spec.name,  # type: ignore[attr-defined]
        attributes=_attributes_from_spec(spec),
        children=children,
    )


def _iter_children(
    container: Any, field: Optional[str], path: EntityPath
) -> Tuple[Tuple[str, Any], ...]:
    """Resolve a child container into (key, declaration) pairs.

    A mapping is keyed by its own keys. A list is keyed by each item's ``name``.
    """
    if isinstance(container, Mapping):
        for child_key in container:
            _check_key(child_key, path)
        return tuple(container.items())

    if isinstance(container, list):
        pairs: Dict[str, Any] = {}
        for index, item in enumerate(container):
            name = item.get("name") if isinstance(item, Mapping) else None
            if not isinstance(name, str) or not name:
                raise SchemaError(
                    f"Item {index} of '{field}' needs a non-empty 'name'",
                    path=path,
                    field=f"{field}.{index}.name",
                )
            if name in pairs:
                raise SchemaError(
                    f"Duplicate '{field}' entry '{name}'", path=path, field=field
                )
            pairs[name] = item
        return tuple(pairs.items())

    raise SchemaError(
        f"'{field}' must be a mapping or a list, got {type(container).__name__}",
        path=path,
        field=field,
    )


def _attributes_from_spec(spec: BaseModel) -> Dict[str, AttributeValue]:
    attributes: Dict[str, AttributeValue] = {}
    for field_name, field_info in type(spec).model_fields.items():
        value = getattr(spec, field_name)
        if value is None:
            continue
        attributes[field_info.alias or field_name] = _to_attribute(value)

    for field_name, value in (spec.model_extra or {}).items():
        attributes[field_name] = OpaqueValue(copy.deepcopy(value))

    return attributes


def _to_attribute(value: Any) -> AttributeValue:
    if isinstance(value, BaseModel):
        return NestedValue(_attributes_from_spec(value))
    if isinstance(value, dict):
        return NestedValue({k: _to_attribute(v) for k, v in value.items()})
    if isinstance(value, list):
        return ListValue(tuple(value))
    return ScalarValue(value)
