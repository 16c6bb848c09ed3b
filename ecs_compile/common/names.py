# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Logical names of the resources in the template.

CloudFormation relies on the logical names of the resources to find the dependencies, so every
builder gets its resource title from here and never formats one itself. The names are a plain
concatenation of the normalized compose names and a suffix, so the same project always gets the
same names.

You can change the suffixes so long as you keep them alphanumerical [a-zA-Z0-9]
"""

from __future__ import annotations

from ecs_compile.common import NONALPHANUM
from ecs_compile.exceptions import ConfigurationError

SERVICE = "service"
TASK_DEFINITION = "task_definition"
TASK_ROLE = "task_role"
TASK_EXECUTION_ROLE = "task_execution_role"
TARGET_GROUP = "target_group"
LISTENER = "listener"
INGRESS = "ingress"
NFS_INGRESS = "nfs_ingress"
DISCOVERY_ENTRY = "discovery_entry"
SECRET = "secret"
NETWORK = "network"
VOLUME = "volume"
ACCESS_POINT = "access_point"
MOUNT_TARGET = "mount_target"
SCALING_ROLE = "scaling_role"
SCALABLE_TARGET = "scalable_target"
SCALING_POLICY = "scaling_policy"

IDENTITY = "identity"
PROTOCOL = "protocol"
PORT = "port"

PATTERNS = {
    SERVICE: ("{}Service", (IDENTITY,)),
    TASK_DEFINITION: ("{}TaskDefinition", (IDENTITY,)),
    TASK_ROLE: ("{}TaskRole", (IDENTITY,)),
    TASK_EXECUTION_ROLE: ("{}TaskExecutionRole", (IDENTITY,)),
    TARGET_GROUP: ("{}{}{}TargetGroup", (IDENTITY, PROTOCOL, PORT)),
    LISTENER: ("{}{}{}Listener", (IDENTITY, PROTOCOL, PORT)),
    INGRESS: ("{}{}Ingress", (IDENTITY, PORT)),
    NFS_INGRESS: ("{}NFSIngress", (IDENTITY,)),
    DISCOVERY_ENTRY: ("{}ServiceDiscoveryEntry", (IDENTITY,)),
    SECRET: ("{}Secret", (IDENTITY,)),
    NETWORK: ("{}Network", (IDENTITY,)),
    VOLUME: ("{}Volume", (IDENTITY,)),
    ACCESS_POINT: ("{}AccessPoint", (IDENTITY,)),
    MOUNT_TARGET: ("{}NFSMountTargetOn{}", (IDENTITY, IDENTITY)),
    SCALING_ROLE: ("{}AutoScalingRole", (IDENTITY,)),
    SCALABLE_TARGET: ("{}ScalableTarget", (IDENTITY,)),
    SCALING_POLICY: ("{}ScalingPolicy", (IDENTITY,)),
}

LOG_GROUP_T = "LogGroup"
CLOUDMAP_T = "CloudMap"
CLUSTER_T = "Cluster"
LOAD_BALANCER_T = "LoadBalancer"


def normalize_resource_name(name: str, capitalize: bool = False) -> str:
    """
    Strips all non alphanumerical characters from the name.
    With capitalize, the first character of the resulting token is upper-cased, as the
    separators are already gone, no other character changes.

    :param str name:
    :param bool capitalize:
    :rtype: str
    """
    normalized = NONALPHANUM.sub("", str(name))
    if not normalized:
        raise ConfigurationError(
            f"{name} cannot be used to name a resource. It must contain at least one alphanumerical character"
        )
    if capitalize:
        return normalized[0].upper() + normalized[1:]
    return normalized


class NameAllocator:
    """
    Class to allocate the logical names of the template resources

    :ivar bool capitalize: whether the compose names get their first character upper-cased
    """

    def __init__(self, capitalize: bool = False):
        self.capitalize = capitalize

    def __repr__(self):
        return f"NameAllocator(capitalize={self.capitalize})"

    def render_part(self, part_type: str, value) -> str:
        if part_type == PROTOCOL:
            return str(value or "").upper()
        if part_type == PORT:
            return str(int(value))
        return normalize_resource_name(value, self.capitalize)

    def name(self, kind: str, *parts) -> str:
        """
        Returns the logical name for the given kind of resource

        :param str kind: one of the kinds defined in PATTERNS
        :param parts: the compose names / protocol / port the name is built from
        :rtype: str
        """
        if kind not in PATTERNS:
            raise KeyError(f"Unknown resource kind {kind}. Valid kinds", list(PATTERNS))
        pattern, parts_types = PATTERNS[kind]
        if len(parts) != len(parts_types):
            raise ValueError(
                f"{kind} name requires {len(parts_types)} parts. Got {len(parts)}",
                parts,
            )
        return pattern.format(
            *[
                self.render_part(part_type, part)
                for part_type, part in zip(parts_types, parts)
            ]
        )

    def service(self, service_name: str) -> str:
        return self.name(SERVICE, service_name)

    def task_definition(self, service_name: str) -> str:
        return self.name(TASK_DEFINITION, service_name)

    def task_role(self, service_name: str) -> str:
        return self.name(TASK_ROLE, service_name)

    def task_execution_role(self, service_name: str) -> str:
        return self.name(TASK_EXECUTION_ROLE, service_name)

    def target_group(self, service_name: str, protocol: str, published: int) -> str:
        return self.name(TARGET_GROUP, service_name, protocol, published)

    def listener(self, service_name: str, protocol: str, target: int) -> str:
        return self.name(LISTENER, service_name, protocol, target)

    def ingress(self, network_name: str, target: int) -> str:
        return self.name(INGRESS, network_name, target)

    def nfs_ingress(self, network_name: str) -> str:
        return self.name(NFS_INGRESS, network_name)

    def discovery_entry(self, service_name: str) -> str:
        return self.name(DISCOVERY_ENTRY, service_name)

    def secret(self, secret_name: str) -> str:
        return self.name(SECRET, secret_name)

    def network(self, network_name: str) -> str:
        return self.name(NETWORK, network_name)

    def volume(self, volume_name: str) -> str:
        return self.name(VOLUME, volume_name)

    def access_point(self, volume_name: str) -> str:
        return self.name(ACCESS_POINT, volume_name)

    def mount_target(self, volume_name: str, subnet: str) -> str:
        return self.name(MOUNT_TARGET, volume_name, subnet)

    def scaling_role(self, service_name: str) -> str:
        return self.name(SCALING_ROLE, service_name)

    def scalable_target(self, service_name: str) -> str:
        return self.name(SCALABLE_TARGET, service_name)

    def scaling_policy(self, service_name: str) -> str:
        return self.name(SCALING_POLICY, service_name)
