from typing import Any, Dict

import pytest

from src.provisioning import InMemoryProvisioner
from src.topology import build_topology
from src.topology.serializer import serialize_topology

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_addoption(parser):
    """Add custom pytest options for live deployment tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that deploy to Azure with Terraform",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: deploys real infrastructure (needs --run-integration)"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(reason="needs --run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Topology Fixtures
# ============================================================================


@pytest.fixture
def two_vnet_declaration() -> Dict[str, Any]:
    """Two networks with one subnetwork each."""
    return {
        "vnet1": {
            "name": "vnet1",
            "location": "eastus",
            "resourceGroup": "rg-network",
            "addressSpace": ["10.0.0.0/16"],
            "subnetworks": {
                "subnet1": {"name": "subnet1", "addressPrefixes": ["10.0.1.0/24"]},
            },
        },
        "vnet2": {
            "name": "vnet2",
            "location": "eastus",
            "resourceGroup": "rg-network",
            "addressSpace": ["10.1.0.0/16"],
            "subnetworks": {
                "subnet2": {"name": "subnet2", "addressPrefixes": ["10.1.1.0/24"]},
            },
        },
    }


@pytest.fixture
def delegated_declaration() -> Dict[str, Any]:
    """One network whose subnetwork carries every recognized field."""
    return {
        "hub": {
            "name": "vnet-hub",
            "location": "westeurope",
            "resourceGroup": "rg-hub",
            "addressSpace": ["10.10.0.0/16"],
            "dnsServers": ["10.10.0.4"],
            "tags": {"environment": "test"},
            "subnetworks": {
                "aci": {
                    "name": "snet-aci",
                    "addressPrefixes": ["10.10.1.0/24"],
                    "nsgName": "nsg-aci",
                    "serviceEndpoints": ["Microsoft.Storage"],
                    "privateEndpointNetworkPolicies": "Disabled",
                    "delegations": [
                        {
                            "name": "aci-delegation",
                            "serviceDelegation": {
                                "name": "Microsoft.ContainerInstance/containerGroups",
                                "actions": [
                                    "Microsoft.Network/virtualNetworks/subnets/action"
                                ],
                            },
                        }
                    ],
                },
            },
        },
    }


@pytest.fixture
def two_vnet_topology(two_vnet_declaration):
    return build_topology(two_vnet_declaration)


@pytest.fixture
def delegated_topology(delegated_declaration):
    return build_topology(delegated_declaration)


@pytest.fixture
def mirrored_provisioner():
    """Factory for a provisioner whose outputs equal the declared topology."""

    def _make(topology) -> InMemoryProvisioner:
        return InMemoryProvisioner(outputs=serialize_topology(topology))

    return _make
