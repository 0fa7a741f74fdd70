"""Provisioner backed by an in-memory output mapping.

Used for dry runs and for exercising validators without touching Azure.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from src.topology.models import Topology
from src.topology.serializer import serialize_topology

from .base import OutputKey, resolve_output_path, split_output_key

logger = structlog.get_logger(__name__)


class InMemoryProvisioner:
    """Serve outputs from a mapping.

    With ``mirror=True`` every deployed topology is published as its own
    declaration, i.e. the observed state equals the declared state.
    """

    def __init__(
        self,
        outputs: Optional[Mapping[str, Any]] = None,
        mirror: bool = False,
        output_root: Optional[str] = None,
    ):
        self._outputs: Dict[str, Any] = copy.deepcopy(dict(outputs or {}))
        self.mirror = mirror
        self.output_root = output_root
        self.deployed: List[Topology] = []

    @property
    def outputs(self) -> Dict[str, Any]:
        return copy.deepcopy(self._outputs)

    def deploy(self, topology: Topology) -> None:
        self.deployed.append(topology)
        if not self.mirror:
            return
        rendered = serialize_topology(topology)
        if self.output_root:
            self._outputs[self.output_root] = rendered
        else:
            self._outputs.update(rendered)
        logger.debug("Mirrored topology into outputs", networks=len(rendered))

    def set_output(self, key: OutputKey, value: Any) -> None:
        """Set a value at ``key``, creating intermediate mappings as needed."""
        segments = split_output_key(key)
        if not segments:
            raise ValueError("Output key must not be empty")
        current = self._outputs
        for segment in segments[:-1]:
            current = current.setdefault(segment, {})
        current[segments[-1]] = copy.deepcopy(value)

    def remove_output(self, key: OutputKey) -> None:
        """Delete the value at ``key`` if present."""
        segments = split_output_key(key)
        parent, found = resolve_output_path(self._outputs, segments[:-1])
        if found and isinstance(parent, dict):
            parent.pop(segments[-1], None)

    def output(self, key: OutputKey) -> Tuple[Any, bool]:
        return resolve_output_path(self._outputs, key)
