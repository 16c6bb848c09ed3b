#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The ECS Service of a compose service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere.ecs import (
        DeploymentConfiguration,
        ServiceRegistry,
        TaskDefinition,
    )

    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService
    from ecs_compile.elbv2 import ServiceExposure

from troposphere import NoValue, Ref
from troposphere.ecs import (
    AwsvpcConfiguration,
    CapacityProviderStrategyItem,
    DeploymentController,
    NetworkConfiguration,
    Service,
)

from ecs_compile.common.tagging import service_tags
from ecs_compile.ecs.ecs_params import (
    DEPLOYMENT_CONTROLLER,
    EC2,
    FARGATE,
    FARGATE_PLATFORM_VERSION,
    PROPAGATE_TAGS,
    SCHEDULING_STRATEGY,
)
from ecs_compile.exceptions import ConfigurationError


def define_service_dependencies(
    project: ComposeProject,
    service: ComposeService,
    resources: AwsResources,
    names: NameAllocator,
    exposure: ServiceExposure,
) -> list:
    """
    Lists what the ECS Service must be created after: the listeners of its target groups, the
    services it depends on and the mount targets of its volumes.

    :raises ConfigurationError: when depends_on names an undefined service
    """
    depends_on = list(exposure.listeners)
    for dependency in service.depends_on:
        if dependency not in project.services:
            raise ConfigurationError(
                f"services.{service.name} - depends_on {dependency} is not a defined service"
            )
        depends_on.append(names.service(dependency))
    for mount in service.volumes:
        depends_on += resources.mount_targets.get(mount.source, [])
    if service.requires_ec2 and resources.capacity_provider_association:
        depends_on.append(resources.capacity_provider_association)
    return depends_on


def define_network_configuration(
    project: ComposeProject, service: ComposeService, resources: AwsResources
) -> NetworkConfiguration:
    return NetworkConfiguration(
        AwsvpcConfiguration=AwsvpcConfiguration(
            AssignPublicIp="DISABLED" if service.requires_ec2 else "ENABLED",
            SecurityGroups=resources.service_security_groups(project, service),
            Subnets=resources.subnets,
        )
    )


def define_launch_settings(service: ComposeService, resources: AwsResources) -> dict:
    """
    Fargate services use the FARGATE launch type and platform version 1.4.0, the first supporting
    EFS volumes. Services needing EC2 hosts (i.e. GPUs) have no platform version, and are placed
    with the EC2 capacity provider when the template creates one.
    """
    if not service.requires_ec2:
        return {"LaunchType": FARGATE, "PlatformVersion": FARGATE_PLATFORM_VERSION}
    if resources.capacity_provider:
        return {
            "PlatformVersion": NoValue,
            "CapacityProviderStrategy": [
                CapacityProviderStrategyItem(
                    CapacityProvider=resources.capacity_provider, Weight=1
                )
            ],
        }
    return {"LaunchType": EC2, "PlatformVersion": NoValue}


def define_ecs_service(
    project: ComposeProject,
    service: ComposeService,
    resources: AwsResources,
    names: NameAllocator,
    task_definition: TaskDefinition,
    exposure: ServiceExposure,
    service_registry: ServiceRegistry,
    deployment: DeploymentConfiguration,
) -> Service:
    """
    Defines the ECS Service. Services needing EC2 hosts cannot have a public IP.

    :rtype: troposphere.ecs.Service
    """
    return Service(
        names.service(service.name),
        Cluster=resources.cluster,
        DesiredCount=service.desired_count,
        DeploymentController=DeploymentController(Type=DEPLOYMENT_CONTROLLER),
        DeploymentConfiguration=deployment,
        **define_launch_settings(service, resources),
        LoadBalancers=exposure.load_balancers,
        NetworkConfiguration=define_network_configuration(project, service, resources),
        PropagateTags=PROPAGATE_TAGS,
        SchedulingStrategy=SCHEDULING_STRATEGY,
        ServiceRegistries=[service_registry],
        Tags=service_tags(project, service),
        TaskDefinition=Ref(task_definition),
    )
