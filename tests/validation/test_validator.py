"""Tests for the structural validator."""

import subprocess
import sys
import threading
import time
from pathlib import Path
from unittest.mock import Mock

import pytest

from src.config import KeyStyle, ValidatorConfig
from src.exceptions import ProviderError, ProviderTimeoutError
from src.provisioning import InMemoryProvisioner, OutputStateAccessor
from src.topology import EntityPath, build_topology
from src.validation import (
    Outcome,
    StructuralValidator,
    validate_deployment,
    validate_topology,
)


def _validate(topology, provisioner, **config):
    return validate_deployment(topology, provisioner, ValidatorConfig(**config))


class TestStructuralValidator:
    """Tests for validate_topology / validate_deployment."""

    def test_matching_state_passes(self, delegated_topology, mirrored_provisioner):
        report = _validate(delegated_topology, mirrored_provisioner(delegated_topology))

        assert report.all_passed()
        assert report.failures() == []
        assert report.count(Outcome.MATCH) == len(report.findings)

    def test_checks_every_level(self, delegated_topology, mirrored_provisioner):
        report = _validate(delegated_topology, mirrored_provisioner(delegated_topology))
        checked = {(str(f.path), f.attribute) for f in report.findings}

        assert ("hub", "addressSpace") in checked
        assert ("hub", "tags.environment") in checked
        assert ("hub/aci", "privateEndpointNetworkPolicies") in checked
        assert ("hub/aci/aci-delegation", "serviceDelegation.name") in checked
        assert ("hub/aci/aci-delegation", "serviceDelegation.actions") in checked

    def test_one_altered_attribute_gives_one_mismatch(
        self, two_vnet_topology, mirrored_provisioner
    ):
        provisioner = mirrored_provisioner(two_vnet_topology)
        provisioner.set_output(
            "vnet1.subnetworks.subnet1.addressPrefixes", ["10.0.2.0/24"]
        )

        report = _validate(two_vnet_topology, provisioner)

        assert not report.all_passed()
        [failure] = report.failures()
        assert failure.outcome is Outcome.MISMATCH
        assert failure.path == EntityPath("vnet1", "subnet1")
        assert failure.attribute == "addressPrefixes"
        assert failure.expected == ["10.0.1.0/24"]
        assert failure.observed == ["10.0.2.0/24"]

    def test_missing_entity_does_not_stop_siblings(
        self, two_vnet_topology, mirrored_provisioner
    ):
        """Test that a missing entity is reported and siblings are still checked."""
        provisioner = mirrored_provisioner(two_vnet_topology)
        provisioner.remove_output("vnet1.subnetworks.subnet1")

        report = _validate(two_vnet_topology, provisioner)

        missing = [f for f in report.failures() if f.outcome is Outcome.MISSING]
        assert {f.path for f in missing} == {EntityPath("vnet1", "subnet1")}
        assert {f.attribute for f in missing} == {"name", "addressPrefixes"}
        assert report.findings_for(EntityPath("vnet2", "subnet2"))
        assert all(f.passed for f in report.findings_for(EntityPath("vnet2", "subnet2")))

    def test_missing_entity_children_still_checked(
        self, delegated_topology, mirrored_provisioner
    ):
        provisioner = mirrored_provisioner(delegated_topology)
        provisioner.remove_output("hub.subnetworks.aci")

        report = _validate(delegated_topology, provisioner)

        delegation = report.findings_for(EntityPath("hub", "aci", "aci-delegation"))
        assert delegation
        assert all(f.outcome is Outcome.MISSING for f in delegation)
        assert all(f.passed for f in report.findings_for(EntityPath("hub")))

    def test_every_problem_reported(self, two_vnet_topology, mirrored_provisioner):
        provisioner = mirrored_provisioner(two_vnet_topology)
        provisioner.set_output("vnet1.location", "westus")
        provisioner.set_output("vnet2.addressSpace", ["10.9.0.0/16"])
        provisioner.remove_output("vnet2.subnetworks.subnet2.name")

        report = _validate(two_vnet_topology, provisioner)

        assert {(str(f.path), f.attribute, f.outcome) for f in report.failures()} == {
            ("vnet1", "location", Outcome.MISMATCH),
            ("vnet2", "addressSpace", Outcome.MISMATCH),
            ("vnet2/subnet2", "name", Outcome.MISSING),
        }

    def test_zero_children_checks_own_attributes(self):
        topology = build_topology(
            {"vnet": {"name": "vnet", "addressSpace": ["10.0.0.0/16"]}}
        )
        provisioner = InMemoryProvisioner(
            {"vnet": {"name": "vnet", "addressSpace": ["10.0.0.0/16"]}}
        )

        report = _validate(topology, provisioner)

        assert {f.path for f in report.findings} == {EntityPath("vnet")}
        assert len(report.findings) == 2
        assert report.all_passed()

    def test_empty_tags_reported(self):
        topology = build_topology({"vnet": {"name": "vnet", "tags": {}}})
        provisioner = InMemoryProvisioner({"vnet": {"name": "vnet", "tags": {}}})

        report = _validate(topology, provisioner)

        assert [f.attribute for f in report.findings] == ["name", "tags"]
        assert report.all_passed()

    def test_opaque_attributes_not_checked(self, mirrored_provisioner):
        topology = build_topology({"vnet": {"name": "vnet", "futureField": "x"}})
        provisioner = InMemoryProvisioner({"vnet": {"name": "vnet"}})

        report = _validate(topology, provisioner)

        assert report.all_passed()
        assert [f.attribute for f in report.findings] == ["name"]

    def test_idempotent(self, delegated_topology, mirrored_provisioner):
        provisioner = mirrored_provisioner(delegated_topology)
        provisioner.set_output("hub.location", "northeurope")

        first = _validate(delegated_topology, provisioner)
        second = _validate(delegated_topology, provisioner)

        assert first == second
        assert first.format() == second.format()

    def test_empty_topology(self):
        report = _validate(build_topology({}), InMemoryProvisioner())
        assert report.all_passed()
        assert report.findings == []

    def test_output_root(self, two_vnet_topology):
        provisioner = InMemoryProvisioner(mirror=True, output_root="networks")
        provisioner.deploy(two_vnet_topology)

        report = _validate(two_vnet_topology, provisioner, output_root="networks")

        assert report.all_passed()

    def test_snake_case_outputs(self, delegated_topology):
        provisioner = InMemoryProvisioner(
            {
                "hub": {
                    "name": "vnet-hub",
                    "location": "westeurope",
                    "resource_group": "rg-hub",
                    "address_space": ["10.10.0.0/16"],
                    "dns_servers": ["10.10.0.4"],
                    "tags": {"environment": "test"},
                    "subnetworks": {
                        "aci": {
                            "name": "snet-aci",
                            "address_prefixes": ["10.10.1.0/24"],
                            "nsg_name": "nsg-aci",
                            "service_endpoints": ["Microsoft.Storage"],
                            "private_endpoint_network_policies": "Disabled",
                            "delegations": [
                                {
                                    "name": "aci-delegation",
                                    "service_delegation": [
                                        {
                                            "name": "Microsoft.ContainerInstance/containerGroups",
                                            "actions": [
                                                "Microsoft.Network/virtualNetworks/subnets/action"
                                            ],
                                        }
                                    ],
                                }
                            ],
                        }
                    },
                }
            }
        )

        report = _validate(delegated_topology, provisioner, key_style=KeyStyle.SNAKE)

        assert report.all_passed(), report.format(failures_only=True)

    def test_concurrent_matches_sequential(self, two_vnet_topology, mirrored_provisioner):
        provisioner = mirrored_provisioner(two_vnet_topology)
        provisioner.set_output("vnet2.location", "westus")

        sequential = _validate(two_vnet_topology, provisioner, max_workers=1)
        concurrent = _validate(two_vnet_topology, provisioner, max_workers=4)

        assert sequential == concurrent

    def test_concurrent_workers_run_in_parallel(self, two_vnet_topology):
        barrier = threading.Barrier(2, timeout=5)
        seen_networks = set()
        lock = threading.Lock()

        class BarrierAccessor:
            def lookup(self, path, attribute):
                with lock:
                    first_visit = path[0] not in seen_networks
                    seen_networks.add(path[0])
                if first_visit:
                    barrier.wait()
                return None, False

        report = StructuralValidator(
            BarrierAccessor(), ValidatorConfig(max_workers=2)
        ).validate(two_vnet_topology)

        assert seen_networks == {"vnet1", "vnet2"}
        assert all(f.outcome is Outcome.MISSING for f in report.findings)


class TestProviderErrors:
    """Tests for provider failures during traversal."""

    def test_error_aborts_only_the_subtree(self, two_vnet_topology, mirrored_provisioner):
        backing = mirrored_provisioner(two_vnet_topology)

        def output(key):
            if key[0] == "vnet1":
                raise ConnectionError("connection reset")
            return backing.output(key)

        provisioner = Mock()
        provisioner.output.side_effect = output

        report = _validate(two_vnet_topology, provisioner)

        errors = [f for f in report.findings if f.outcome is Outcome.ERROR]
        assert len(errors) == 1
        assert errors[0].path == EntityPath("vnet1")
        assert not report.findings_for(EntityPath("vnet1", "subnet1"))
        assert all(f.passed for f in report.findings_for(EntityPath("vnet2")))
        assert not report.all_passed()
        assert len(report.provider_errors) == 1
        assert isinstance(report.provider_errors[0].cause, ConnectionError)

    def test_partial_findings_preserved(self, two_vnet_topology, mirrored_provisioner):
        backing = mirrored_provisioner(two_vnet_topology)

        def output(key):
            if key == ("vnet1", "subnetworks", "subnet1", "name"):
                raise ProviderError("backend unavailable", key=".".join(key))
            return backing.output(key)

        provisioner = Mock()
        provisioner.output.side_effect = output

        report = _validate(two_vnet_topology, provisioner)

        subnet_findings = report.findings_for(EntityPath("vnet1", "subnet1"))
        assert [(f.attribute, f.outcome) for f in subnet_findings] == [
            ("addressPrefixes", Outcome.MATCH),
            ("name", Outcome.ERROR),
        ]
        assert all(f.passed for f in report.findings_for(EntityPath("vnet1")))

    def test_raise_for_provider_errors(self, two_vnet_topology):
        provisioner = Mock()
        provisioner.output.side_effect = ProviderError("down")

        report = _validate(two_vnet_topology, provisioner)

        with pytest.raises(ProviderError, match="down"):
            report.raise_for_provider_errors()

    def test_hanging_lookup_times_out(self, two_vnet_topology):
        release = threading.Event()

        def output(key):
            release.wait(5)
            return None, False

        provisioner = Mock()
        provisioner.output.side_effect = output

        try:
            report = _validate(
                two_vnet_topology, provisioner, lookup_timeout_seconds=0.05
            )
        finally:
            release.set()

        assert len(report.provider_errors) == 2
        assert all(isinstance(e, ProviderTimeoutError) for e in report.provider_errors)
        assert report.count(Outcome.ERROR) == 2

    @pytest.mark.parametrize("max_workers", [1, 2])
    def test_slow_network_does_not_fail_healthy_sibling(
        self, two_vnet_topology, mirrored_provisioner, max_workers
    ):
        backing = mirrored_provisioner(two_vnet_topology)
        release = threading.Event()

        def output(key):
            if key[0] == "vnet1":
                release.wait(5)
            return backing.output(key)

        provisioner = Mock()
        provisioner.output.side_effect = output

        try:
            report = _validate(
                two_vnet_topology,
                provisioner,
                lookup_timeout_seconds=0.2,
                max_workers=max_workers,
            )
        finally:
            release.set()

        errors = [f for f in report.findings if f.outcome is Outcome.ERROR]
        assert [str(f.path) for f in errors] == ["vnet1"]
        assert len(report.provider_errors) == 1
        assert report.findings_for(EntityPath("vnet2"))
        assert all(f.passed for f in report.findings_for(EntityPath("vnet2")))
        assert all(f.passed for f in report.findings_for(EntityPath("vnet2", "subnet2")))

    def test_timed_out_lookup_is_abandoned_on_close(self, two_vnet_topology):
        release = threading.Event()

        def output(key):
            release.wait(5)
            return None, False

        provisioner = Mock()
        provisioner.output.side_effect = output
        accessor = OutputStateAccessor(
            provisioner, ValidatorConfig(lookup_timeout_seconds=0.05)
        )

        try:
            with pytest.raises(ProviderTimeoutError):
                accessor.lookup(EntityPath("vnet1"), "name")
            assert len(accessor._abandoned) == 1
            assert accessor._abandoned[0].daemon
            accessor.close()
            assert accessor._abandoned == []
        finally:
            release.set()


HUNG_PROVIDER_SCRIPT = """
import time

from src.config import ValidatorConfig
from src.topology import build_topology
from src.validation import validate_deployment


class HungProvisioner:
    def deploy(self, topology):
        pass

    def output(self, key):
        time.sleep(30)
        return None, False


report = validate_deployment(
    build_topology({"vnet1": {"name": "vnet1"}}),
    HungProvisioner(),
    ValidatorConfig(lookup_timeout_seconds=0.2),
)
assert not report.all_passed()
"""


def test_hung_lookup_does_not_block_interpreter_exit():
    """A lookup that never returns must not keep the process alive after the report."""
    root = Path(__file__).resolve().parents[2]

    started = time.monotonic()
    result = subprocess.run(
        [sys.executable, "-c", HUNG_PROVIDER_SCRIPT],
        cwd=root,
        capture_output=True,
        text=True,
        timeout=60,
    )
    elapsed = time.monotonic() - started

    assert result.returncode == 0, result.stderr
    assert elapsed < 15


def test_validate_topology_with_custom_accessor(two_vnet_topology):
    class StaticAccessor:
        def lookup(self, path, attribute):
            return two_vnet_topology.find(path).attributes[attribute].to_plain(), True

    report = validate_topology(two_vnet_topology, StaticAccessor())

    assert report.all_passed()


