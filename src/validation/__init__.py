"""Validation of deployed topologies against their declarations.

Public API:
    - validate_topology: Validate a topology against an observed state accessor
    - validate_deployment: Validate a topology against a deployed provisioner
    - StructuralValidator: Depth-first validator with optional fan-out
    - AttributeComparator: Scalar, list and nested-set comparison rules
    - ValidationReport: Findings of a run plus text, markdown and JSON output
    - Finding, Outcome: One attribute check and its result
"""

from .comparator import AttributeComparator, normalize_scalar
from .report import (
    Finding,
    Outcome,
    ValidationReport,
    generate_json_report,
    generate_markdown_report,
)
from .validator import StructuralValidator, validate_deployment, validate_topology

__all__ = [
    "AttributeComparator",
    "Finding",
    "Outcome",
    "StructuralValidator",
    "ValidationReport",
    "generate_json_report",
    "generate_markdown_report",
    "normalize_scalar",
    "validate_deployment",
    "validate_topology",
]
