"""Provisioner contract and output key resolution."""

from typing import Any, Mapping, Protocol, Sequence, Tuple, Union, runtime_checkable

from src.topology.models import Topology

OutputKey = Union[str, Sequence[str]]

_NOT_FOUND = object()


@runtime_checkable
class Provisioner(Protocol):
    """Deploys a topology and exposes the resulting outputs.

    ``output`` returns ``(value, found)``; it never raises for an absent key.
    Transport or tool failures are raised as ProviderError.
    """

    def deploy(self, topology: Topology) -> None: ...

    def output(self, key: OutputKey) -> Tuple[Any, bool]: ...


def split_output_key(key: OutputKey) -> Tuple[str, ...]:
    """Turn a dotted string or a segment sequence into a tuple of segments."""
    if isinstance(key, str):
        return tuple(key.split(".")) if key else ()
    return tuple(key)


def format_output_key(key: OutputKey) -> str:
    return key if isinstance(key, str) else ".".join(key)


def resolve_output_path(outputs: Any, key: OutputKey) -> Tuple[Any, bool]:
    """Follow ``key`` through nested mappings and lists.

    A segment applied to a list selects the item whose ``name`` equals the
    segment, falling back to a numeric index.

    Example:
        >>> resolve_output_path({"vnet1": {"subnetworks": [{"name": "a"}]}}, "vnet1.subnetworks.a.name")
        ('a', True)
    """
    current = outputs
    for segment in split_output_key(key):
        if isinstance(current, Mapping):
            current = current.get(segment, _NOT_FOUND)
        elif isinstance(current, (list, tuple)):
            current = _select_item(current, segment)
        else:
            return None, False
        if current is _NOT_FOUND:
            return None, False
    return current, True


def _select_item(items: Sequence[Any], segment: str) -> Any:
    for item in items:
        if isinstance(item, Mapping) and item.get("name") == segment:
            return item
    if segment.isdigit() and int(segment) < len(items):
        return items[int(segment)]
    return _NOT_FOUND
