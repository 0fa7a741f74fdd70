"""Attribute comparison rules.

Compares one declared attribute value against what the deployment reports:

- scalars: exact, case-sensitive string equality, no trimming
- lists: every declared item present (CONTAINS_ALL) or the same items with the
  same multiplicity in any order (EXACT)
- nested sets: attribute by attribute with the same rules
"""

import copy
import logging
from collections import Counter
from typing import Any, List, Mapping, Optional

from src.config.models import ComparisonMode, ValidatorConfig
from src.topology.models import (
    AttributeValue,
    EntityPath,
    ListValue,
    NestedValue,
    OpaqueValue,
    ScalarValue,
)

from .report import Finding, Outcome

logger = logging.getLogger(__name__)


def normalize_scalar(value: Any) -> Optional[str]:
    """Render an observed scalar as a string, or None if it is not a scalar."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


class AttributeComparator:
    """Turn (declared, observed) attribute pairs into findings."""

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def compare(
        self,
        path: EntityPath,
        attribute: str,
        expected: AttributeValue,
        observed: Any,
        found: bool,
    ) -> List[Finding]:
        """Compare one attribute.

        Args:
            path: Entity the attribute belongs to
            attribute: Attribute name (dotted inside nested sets)
            expected: Declared value
            observed: Observed value, ignored when not found
            found: Whether the observed value exists at all

        Returns:
            One finding for scalars and lists, one per leaf for nested sets,
            none for opaque attributes
        """
        if isinstance(expected, OpaqueValue):
            return []

        if not found:
            return [
                Finding(path, attribute, Outcome.MISSING, expected.to_plain(), None)
            ]

        if isinstance(expected, ScalarValue):
            return [self._compare_scalar(path, attribute, expected, observed)]
        if isinstance(expected, ListValue):
            return [self._compare_list(path, attribute, expected, observed)]
        if isinstance(expected, NestedValue):
            return self._compare_nested(path, attribute, expected, observed)

        raise TypeError(f"Unsupported attribute value {expected!r}")

    def _compare_scalar(
        self, path: EntityPath, attribute: str, expected: ScalarValue, observed: Any
    ) -> Finding:
        normalized = normalize_scalar(observed)
        if normalized is None:
            return Finding(
                path,
                attribute,
                Outcome.MISMATCH,
                expected.value,
                copy.deepcopy(observed),
                message=f"expected a scalar, observed {type(observed).__name__}",
            )
        outcome = Outcome.MATCH if normalized == expected.value else Outcome.MISMATCH
        return Finding(path, attribute, outcome, expected.value, normalized)

    def _compare_list(
        self, path: EntityPath, attribute: str, expected: ListValue, observed: Any
    ) -> Finding:
        declared = list(expected.items)
        if not isinstance(observed, (list, tuple)):
            return Finding(
                path,
                attribute,
                Outcome.MISMATCH,
                declared,
                copy.deepcopy(observed),
                message=f"expected a list, observed {type(observed).__name__}",
            )

        items = [normalize_scalar(item) for item in observed]
        plain_observed = [
            item if normalized is None else normalized
            for item, normalized in zip(copy.deepcopy(list(observed)), items)
        ]

        mode = self.config.list_mode_for(attribute)
        if mode is ComparisonMode.EXACT:
            absent = list((Counter(declared) - Counter(items)).elements())
            unexpected = [
                item for item in (Counter(items) - Counter(declared)).elements()
            ]
            if not absent and not unexpected:
                return Finding(path, attribute, Outcome.MATCH, declared, plain_observed)
            details = []
            if absent:
                details.append(f"missing items: {', '.join(absent)}")
            if unexpected:
                details.append(
                    f"unexpected items: {', '.join(str(item) for item in unexpected)}"
                )
            return Finding(
                path,
                attribute,
                Outcome.MISMATCH,
                declared,
                plain_observed,
                message="; ".join(details),
            )

        present = set(item for item in items if item is not None)
        absent = [item for item in declared if item not in present]
        if not absent:
            return Finding(path, attribute, Outcome.MATCH, declared, plain_observed)
        return Finding(
            path,
            attribute,
            Outcome.MISMATCH,
            declared,
            plain_observed,
            message=f"missing items: {', '.join(absent)}",
        )

    def _compare_nested(
        self, path: EntityPath, attribute: str, expected: NestedValue, observed: Any
    ) -> List[Finding]:
        # Block outputs are often rendered as a one-element list
        if (
            isinstance(observed, (list, tuple))
            and len(observed) == 1
            and isinstance(observed[0], Mapping)
        ):
            observed = observed[0]

        if not isinstance(observed, Mapping):
            return [
                Finding(
                    path,
                    attribute,
                    Outcome.MISMATCH,
                    expected.to_plain(),
                    copy.deepcopy(observed),
                    message=f"expected a mapping, observed {type(observed).__name__}",
                )
            ]

        findings: List[Finding] = []
        for name in sorted(expected.attributes):
            findings.extend(
                self.compare(
                    path,
                    f"{attribute}.{name}",
                    expected.attributes[name],
                    observed.get(name),
                    name in observed,
                )
            )
        if not findings:
            # Nothing comparable inside, the mapping itself is the check
            findings.append(
                Finding(
                    path,
                    attribute,
                    Outcome.MATCH,
                    expected.to_plain(),
                    copy.deepcopy(dict(observed)),
                )
            )
        logger.debug(f"Compared nested set {path}:{attribute} ({len(findings)} leaves)")
        return findings
