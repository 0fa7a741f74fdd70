"""Validation report for a topology deployment.

One finding is recorded per (entity path, attribute) pair examined. The text
rendering is deterministic so reports diff cleanly between runs; the markdown
and JSON renderings are meant for CI artifacts.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import groupby
from typing import Any, Dict, List, Optional, Tuple

from src.exceptions import ProviderError
from src.topology.models import EntityPath

NOT_FOUND = "not found"


class Outcome(str, Enum):
    """Result of comparing one declared attribute with the observed one."""

    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING = "missing"
    ERROR = "error"


@dataclass(frozen=True)
class Finding:
    """Outcome of one attribute check.

    Attributes:
        path: Entity the attribute belongs to
        attribute: Attribute name, dotted for nested sets (``serviceDelegation.name``)
        outcome: Match, mismatch, missing, or provider error
        expected: Declared value in plain form
        observed: Observed value, None when not found
        message: Extra detail, e.g. which list items are missing
    """

    path: EntityPath
    attribute: str
    outcome: Outcome
    expected: Any
    observed: Any = None
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.MATCH

    def sort_key(self) -> Tuple[EntityPath, str, str]:
        return (self.path, self.attribute, self.outcome.value)

    def describe(self) -> str:
        observed = (
            NOT_FOUND
            if self.outcome in (Outcome.MISSING, Outcome.ERROR) and self.observed is None
            else _render(self.observed)
        )
        line = (
            f"[{self.outcome.value.upper()}] {self.attribute}: "
            f"expected {_render(self.expected)}, observed {observed}"
        )
        if self.message:
            line += f" ({self.message})"
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "attribute": self.attribute,
            "outcome": self.outcome.value,
            "expected": self.expected,
            "observed": self.observed,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Every finding of one validation run.

    Attributes:
        findings: Findings in traversal order
        provider_errors: Provider failures that aborted a subtree
    """

    findings: List[Finding] = field(default_factory=list)
    provider_errors: List[ProviderError] = field(default_factory=list, compare=False)

    def all_passed(self) -> bool:
        """True iff there are no failures."""
        return not self.failures()

    def failures(self) -> List[Finding]:
        """Findings whose outcome is not a match."""
        return [finding for finding in self.findings if not finding.passed]

    def findings_for(self, path: EntityPath) -> List[Finding]:
        return [finding for finding in self.findings if finding.path == path]

    def count(self, outcome: Outcome) -> int:
        return sum(1 for finding in self.findings if finding.outcome is outcome)

    def grouped(self, failures_only: bool = False) -> List[Tuple[EntityPath, List[Finding]]]:
        """Findings grouped by entity path, both in lexicographic order."""
        findings = self.failures() if failures_only else self.findings
        ordered = sorted(findings, key=Finding.sort_key)
        return [(path, list(group)) for path, group in groupby(ordered, key=lambda f: f.path)]

    def raise_for_provider_errors(self) -> None:
        """Re-raise the first provider error recorded during the run."""
        if self.provider_errors:
            raise self.provider_errors[0]

    def summary(self) -> str:
        status = "PASSED" if self.all_passed() else "FAILED"
        return (
            f"Topology validation {status}: {len(self.findings)} checks, "
            f"{self.count(Outcome.MISMATCH)} mismatched, "
            f"{self.count(Outcome.MISSING)} missing, "
            f"{self.count(Outcome.ERROR)} errors"
        )

    def format(self, failures_only: bool = False) -> str:
        """Human-readable multi-line report grouped by entity path."""
        lines = [self.summary()]
        for path, findings in self.grouped(failures_only):
            lines.append(str(path))
            lines.extend(f"  {finding.describe()}" for finding in findings)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "all_passed": self.all_passed(),
            "summary": {
                "checks": len(self.findings),
                "matched": self.count(Outcome.MATCH),
                "mismatched": self.count(Outcome.MISMATCH),
                "missing": self.count(Outcome.MISSING),
                "errors": self.count(Outcome.ERROR),
            },
            "findings": [f.to_dict() for f in sorted(self.findings, key=Finding.sort_key)],
            "provider_errors": [e.to_dict() for e in self.provider_errors],
        }


def _render(value: Any) -> str:
    if value is None:
        return "null"
    return json.dumps(value, sort_keys=True, default=str)


def _cell(text: Any) -> str:
    """Escape a value for use inside a markdown table cell."""
    return str(text).replace("|", "\\|").replace("\n", " ")


def generate_markdown_report(
    report: ValidationReport,
    title: str = "Topology Validation Report",
    generated_at: Optional[datetime] = None,
) -> str:
    """Generate a markdown report suitable for CI job summaries.

    Example:
        >>> markdown = generate_markdown_report(ValidationReport())
        >>> assert "PASSED" in markdown
    """
    timestamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    status = "PASSED" if report.all_passed() else "FAILED"

    markdown = f"""# {title}

**Generated**: {timestamp}
**Status**: {status}

## Summary

- **Checks**: {len(report.findings)}
- **Matched**: {report.count(Outcome.MATCH)}
- **Mismatched**: {report.count(Outcome.MISMATCH)}
- **Missing**: {report.count(Outcome.MISSING)}
- **Provider Errors**: {report.count(Outcome.ERROR)}

"""

    if report.all_passed():
        markdown += "All declared attributes were observed with matching values.\n"
        return markdown

    markdown += """## Failures

| Entity | Attribute | Outcome | Expected | Observed |
|--------|-----------|---------|----------|----------|
"""
    for path, findings in report.grouped(failures_only=True):
        for finding in findings:
            observed = (
                NOT_FOUND if finding.observed is None else _render(finding.observed)
            )
            expected = _cell(_render(finding.expected))
            markdown += (
                f"| {_cell(path)} | {_cell(finding.attribute)} "
                f"| {finding.outcome.value.upper()} "
                f"| `{expected}` | `{_cell(observed)}` |\n"
            )

    if report.provider_errors:
        markdown += "\n## Provider Errors\n\n"
        for error in report.provider_errors:
            markdown += f"- {error}\n"

    return markdown


def generate_json_report(report: ValidationReport) -> dict:
    """Generate a JSON-serializable report."""
    data = report.to_dict()
    data["timestamp"] = datetime.now().isoformat()
    data["validation_status"] = "passed" if report.all_passed() else "failed"
    return data
