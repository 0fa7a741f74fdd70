"""Structural validation of a deployed topology.

Walks the declared topology depth first and checks every declared attribute
against the observed state. Mismatches and missing values are recorded, never
raised, so a single run reports every problem. A provider failure aborts only
the subtree being validated when it happens.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import structlog

from src.config.models import ValidatorConfig
from src.exceptions import ProviderError
from src.provisioning.accessor import ObservedStateAccessor, OutputStateAccessor
from src.provisioning.base import Provisioner
from src.topology.models import Entity, EntityPath, Topology

from .comparator import AttributeComparator
from .report import Finding, Outcome, ValidationReport

logger = structlog.get_logger(__name__)

SubtreeResult = Tuple[List[Finding], List[ProviderError]]


class StructuralValidator:
    """Compare a topology with the observed state of its deployment.

    Top-level networks share no data, so with ``config.max_workers > 1`` they
    are validated on a bounded thread pool. Each worker collects its own
    findings; results are merged in network key order afterwards.
    """

    def __init__(
        self,
        observed: ObservedStateAccessor,
        config: Optional[ValidatorConfig] = None,
    ):
        self.observed = observed
        self.config = config or ValidatorConfig()
        self.comparator = AttributeComparator(self.config)

    def validate(self, topology: Topology) -> ValidationReport:
        keys = sorted(topology.networks)
        workers = min(self.config.max_workers, len(keys))
        logger.info("Validating topology", networks=len(keys), workers=workers)

        if workers <= 1:
            results = [
                self._validate_network(EntityPath(key), topology.networks[key])
                for key in keys
            ]
        else:
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="topology-validator"
            ) as executor:
                futures = [
                    executor.submit(
                        self._validate_network, EntityPath(key), topology.networks[key]
                    )
                    for key in keys
                ]
                results = [future.result() for future in futures]

        report = ValidationReport()
        for findings, errors in results:
            report.findings.extend(findings)
            report.provider_errors.extend(errors)

        logger.info(
            "Topology validation complete",
            checks=len(report.findings),
            failures=len(report.failures()),
            provider_errors=len(report.provider_errors),
        )
        return report

    def _validate_network(self, path: EntityPath, network: Entity) -> SubtreeResult:
        findings: List[Finding] = []
        errors: List[ProviderError] = []
        self._validate_entity(path, network, findings, errors)
        return findings, errors

    def _validate_entity(
        self,
        path: EntityPath,
        entity: Entity,
        findings: List[Finding],
        errors: List[ProviderError],
    ) -> None:
        attributes = entity.comparable_attributes()
        for attribute in sorted(attributes):
            expected = attributes[attribute]
            try:
                observed, found = self.observed.lookup(path, attribute)
            except ProviderError as e:
                logger.warning(
                    "Observed state unavailable, skipping subtree",
                    path=str(path),
                    attribute=attribute,
                    error=str(e),
                )
                findings.append(
                    Finding(
                        path,
                        attribute,
                        Outcome.ERROR,
                        expected.to_plain(),
                        None,
                        message=e.message,
                    )
                )
                errors.append(e)
                return
            findings.extend(
                self.comparator.compare(path, attribute, expected, observed, found)
            )

        for key in sorted(entity.children):
            self._validate_entity(path.child(key), entity.children[key], findings, errors)


def validate_topology(
    topology: Topology,
    observed: ObservedStateAccessor,
    config: Optional[ValidatorConfig] = None,
) -> ValidationReport:
    """Validate ``topology`` against an observed state accessor.

    Example:
        >>> provisioner = InMemoryProvisioner(mirror=True)
        >>> provisioner.deploy(topology)
        >>> report = validate_topology(topology, OutputStateAccessor(provisioner))
        >>> assert report.all_passed()
    """
    return StructuralValidator(observed, config).validate(topology)


def validate_deployment(
    topology: Topology,
    provisioner: Provisioner,
    config: Optional[ValidatorConfig] = None,
) -> ValidationReport:
    """Validate ``topology`` against the outputs of an already deployed provisioner."""
    config = config or ValidatorConfig()
    with OutputStateAccessor(provisioner, config) as accessor:
        return validate_topology(topology, accessor, config)
