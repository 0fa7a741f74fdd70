# pyright: reportUntypedBaseClass=false
"""Declaration schema for each entity kind.

The pydantic models describe the recognized fields of a declaration and their
expected shapes. Child containers (``subnetworks``, ``delegations``) are not
part of the models; the builder walks them itself so that errors carry the
full entity path.
"""

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from .models import EntityKind

_DECLARATION_CONFIG = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class ServiceDelegationSpec(BaseModel):
    """
    The service a subnet is delegated to.

    Fields:
        name: Service name, e.g. Microsoft.ContainerInstance/containerGroups.
        actions: Actions the service may perform on the subnet.
    """

    name: str = Field(..., description="Delegated service name.")
    actions: Optional[List[str]] = Field(
        None, description="Actions permitted to the delegated service."
    )

    model_config = _DECLARATION_CONFIG


class DelegationSpec(BaseModel):
    """
    A subnet delegation.

    Fields:
        name: Delegation name.
        service_delegation: Nested service delegation block.
    """

    name: str = Field(..., description="Delegation name.")
    service_delegation: Optional[ServiceDelegationSpec] = Field(
        None, description="Nested service delegation.", alias="serviceDelegation"
    )

    model_config = _DECLARATION_CONFIG


class SubnetworkSpec(BaseModel):
    """
    A subnetwork inside a virtual network.

    Fields:
        name: Subnet name.
        address_prefixes: CIDR prefixes assigned to the subnet.
        nsg_name: Name of the associated network security group.
        service_endpoints: Enabled service endpoints.
        private_endpoint_network_policies: Enabled or Disabled.
    """

    name: str = Field(..., description="Subnet name.")
    address_prefixes: Optional[List[str]] = Field(
        None, description="CIDR prefixes of the subnet.", alias="addressPrefixes"
    )
    nsg_name: Optional[str] = Field(
        None, description="Associated network security group.", alias="nsgName"
    )
    service_endpoints: Optional[List[str]] = Field(
        None, description="Enabled service endpoints.", alias="serviceEndpoints"
    )
    private_endpoint_network_policies: Optional[Literal["Enabled", "Disabled"]] = (
        Field(
            None,
            description="Private endpoint network policy state.",
            alias="privateEndpointNetworkPolicies",
        )
    )

    model_config = _DECLARATION_CONFIG


class NetworkSpec(BaseModel):
    """
    A virtual network.

    Fields:
        name: Virtual network name.
        location: Azure region.
        resource_group: Resource group holding the network.
        address_space: CIDR blocks of the network.
        dns_servers: Custom DNS servers.
        tags: Resource tags.
    """

    name: str = Field(..., description="Virtual network name.")
    location: Optional[str] = Field(None, description="Azure region.")
    resource_group: Optional[str] = Field(
        None, description="Resource group name.", alias="resourceGroup"
    )
    address_space: Optional[List[str]] = Field(
        None, description="CIDR blocks of the network.", alias="addressSpace"
    )
    dns_servers: Optional[List[str]] = Field(
        None, description="Custom DNS servers.", alias="dnsServers"
    )
    tags: Optional[Dict[str, str]] = Field(None, description="Resource tags.")

    model_config = _DECLARATION_CONFIG


@dataclass(frozen=True)
class KindSchema:
    """Declaration model of one entity kind and where its children live."""

    model: Type[BaseModel]
    children_field: Optional[str] = None
    child_kind: Optional[EntityKind] = None


KIND_SCHEMAS: Dict[EntityKind, KindSchema] = {
    EntityKind.NETWORK: KindSchema(NetworkSpec, "subnetworks", EntityKind.SUBNETWORK),
    EntityKind.SUBNETWORK: KindSchema(
        SubnetworkSpec, "delegations", EntityKind.DELEGATION
    ),
    EntityKind.DELEGATION: KindSchema(DelegationSpec),
}


def children_field(kind: EntityKind) -> Optional[str]:
    """Name of the declaration field holding the children of ``kind``."""
    return KIND_SCHEMAS[kind].children_field
