"""
VNet Topology Validator

Deploys declared Azure virtual network topologies through a provisioner and
checks that every declared network, subnetwork and delegation was created
with the declared attributes.
"""
