#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
AWS Cloud Map private DNS namespace of the project and the services discovery entries, so that
services resolve each other as <service>.<project>.local
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from troposphere import GetAtt, Ref
from troposphere.ecs import ServiceRegistry
from troposphere.servicediscovery import (
    DnsConfig,
    DnsRecord,
    HealthCheckCustomConfig,
    PrivateDnsNamespace,
)
from troposphere.servicediscovery import Service as DiscoveryService

from ecs_compile.common.names import CLOUDMAP_T

DNS_RECORD_TYPE = "A"
DNS_RECORD_TTL = 60
ROUTING_POLICY = "MULTIVALUE"
FAILURE_THRESHOLD = 1


def add_namespace(
    graph: ResourceGraph, project: ComposeProject, resources: AwsResources
) -> PrivateDnsNamespace:
    return graph.add(
        PrivateDnsNamespace(
            CLOUDMAP_T,
            Description=f"Service Map for Docker Compose project {project.name}",
            Name=f"{project.name}.local",
            Vpc=resources.vpc,
        )
    )


def add_service_registry(
    graph: ResourceGraph, service: ComposeService, names: NameAllocator
) -> ServiceRegistry:
    """
    Creates the discovery entry of the service in the namespace. The health of the tasks is not
    checked by Cloud Map but reported by ECS, hence the custom health check config.

    :return: the ECS service registry pointing to the entry
    """
    entry = graph.add(
        DiscoveryService(
            names.discovery_entry(service.name),
            Description=f'"{service.name}" service discovery entry in Cloud Map',
            Name=service.name,
            NamespaceId=Ref(CLOUDMAP_T),
            DnsConfig=DnsConfig(
                DnsRecords=[DnsRecord(Type=DNS_RECORD_TYPE, TTL=DNS_RECORD_TTL)],
                RoutingPolicy=ROUTING_POLICY,
            ),
            HealthCheckCustomConfig=HealthCheckCustomConfig(
                FailureThreshold=FAILURE_THRESHOLD
            ),
        )
    )
    return ServiceRegistry(RegistryArn=GetAtt(entry, "Arn"))
