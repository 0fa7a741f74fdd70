"""pytest helpers for topology deployment tests."""

from typing import Optional

from src.config.models import ValidatorConfig
from src.provisioning.base import Provisioner
from src.topology.models import Topology
from src.validation.report import ValidationReport
from src.validation.validator import validate_deployment


def assert_topology_matches(report: ValidationReport) -> None:
    """Fail the calling test with every failure in ``report``."""
    if not report.all_passed():
        raise AssertionError(report.format(failures_only=True))


def deploy_and_validate(
    topology: Topology,
    provisioner: Provisioner,
    config: Optional[ValidatorConfig] = None,
) -> ValidationReport:
    """Deploy ``topology``, validate it and assert that everything matched."""
    provisioner.deploy(topology)
    report = validate_deployment(topology, provisioner, config)
    assert_topology_matches(report)
    return report
