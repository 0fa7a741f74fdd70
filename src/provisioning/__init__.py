"""Provisioners and observed state access.

Public API:
    - Provisioner: Protocol every provisioner satisfies
    - InMemoryProvisioner: Outputs from a mapping, optionally mirroring deployments
    - TerraformProvisioner: Outputs from ``terraform output -json``
    - OutputStateAccessor: Maps entity paths to provisioner output keys
    - resolve_output_path: Key-path resolution over nested outputs
"""

from .accessor import ObservedStateAccessor, OutputStateAccessor, to_snake_case
from .base import (
    OutputKey,
    Provisioner,
    format_output_key,
    resolve_output_path,
    split_output_key,
)
from .memory import InMemoryProvisioner
from .terraform import TerraformProvisioner

__all__ = [
    "InMemoryProvisioner",
    "ObservedStateAccessor",
    "OutputKey",
    "OutputStateAccessor",
    "Provisioner",
    "TerraformProvisioner",
    "format_output_key",
    "resolve_output_path",
    "split_output_key",
    "to_snake_case",
]
