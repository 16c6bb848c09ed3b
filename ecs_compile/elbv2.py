#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Exposure of the services ports: security group ingress on the service networks, and the load
balancer target group and listener of each port.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_networks import ComposeNetwork
    from ecs_compile.compose.compose_services import ComposeService, ServicePort

from troposphere import Ref
from troposphere.ec2 import SecurityGroupIngress
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.elasticloadbalancingv2 import (
    Action,
    ForwardConfig,
    Listener,
    TargetGroup,
    TargetGroupTuple,
)

from ecs_compile.common.logging import LOG
from ecs_compile.common.tagging import project_tags
from ecs_compile.exceptions import DuplicateResourceError

ALL_PROTOCOLS = "-1"
ANYWHERE_IPV4 = "0.0.0.0/0"
HTTP = "HTTP"
DEFAULT_LB_PROTOCOL = "TCP"
INGRESS_RULE_PROPERTIES = ("CidrIp", "GroupId", "FromPort", "ToPort", "IpProtocol")


class ServiceExposure:
    """
    Class to hold what the service gets from exposing its ports

    :ivar list[str] listeners: logical names of the listeners, which the service must depend on
    :ivar list[troposphere.ecs.LoadBalancer] load_balancers: the service load balancers registrations
    """

    def __init__(self):
        self.listeners = []
        self.load_balancers = []

    def __repr__(self):
        return f"listeners={self.listeners}"


def define_lb_protocol(port: ServicePort, resources: AwsResources) -> str:
    """
    Protocol of the listener and target group. Application load balancers use HTTP, as HTTPS listeners
    require a certificate.
    """
    if resources.is_application_lb:
        return HTTP
    return port.protocol.upper() if port.protocol else DEFAULT_LB_PROTOCOL


def same_ingress_rule(existing: SecurityGroupIngress, ingress: SecurityGroupIngress) -> bool:
    """
    Whether both ingress open the same port to the same group. The description is not compared.
    """
    existing_props = existing.to_dict()["Properties"]
    new_props = ingress.to_dict()["Properties"]
    return all(
        existing_props.get(key) == new_props.get(key) for key in INGRESS_RULE_PROPERTIES
    )


def add_ingress(
    graph: ResourceGraph,
    service: ComposeService,
    network: ComposeNetwork,
    port: ServicePort,
    resources: AwsResources,
    names: NameAllocator,
) -> str:
    """
    Allows inbound traffic from anywhere to the port on the network. When another service already
    opened the same port on the network, the existing ingress is kept.

    :return: the ingress logical name
    :raises DuplicateResourceError: when the name is already used by an ingress with another rule
    """
    title = names.ingress(network.name, port.target)
    ingress = SecurityGroupIngress(
        title,
        CidrIp=ANYWHERE_IPV4,
        Description=f"{service.name}:{port.target}/{port.protocol} on {network.name} network",
        GroupId=resources.security_groups[network.name],
        FromPort=port.target,
        ToPort=port.target,
        IpProtocol=port.protocol.upper() if port.protocol else ALL_PROTOCOLS,
    )
    if title in graph:
        if not same_ingress_rule(graph[title], ingress):
            raise DuplicateResourceError(
                f"services.{service.name} - {title} is already defined for another network or port",
                graph[title].to_dict()["Properties"],
            )
        LOG.debug(
            f"services.{service.name} - {title} already allows {port.target} on {network.name}"
        )
        return title
    graph.add(ingress)
    return title


def add_target_group(
    graph: ResourceGraph,
    project: ComposeProject,
    service: ComposeService,
    port: ServicePort,
    protocol: str,
    resources: AwsResources,
    names: NameAllocator,
) -> TargetGroup:
    return graph.add(
        TargetGroup(
            names.target_group(service.name, port.protocol, port.published),
            Port=port.target,
            Protocol=protocol,
            TargetType="ip",
            VpcId=resources.vpc,
            Tags=project_tags(project),
        )
    )


def add_listener(
    graph: ResourceGraph,
    service: ComposeService,
    port: ServicePort,
    protocol: str,
    target_group: TargetGroup,
    resources: AwsResources,
    names: NameAllocator,
) -> Listener:
    """
    Creates the listener forwarding to the target group. ECS requires the target group to be
    associated to a load balancer, through the listener, before the service is created.
    """
    return graph.add(
        Listener(
            names.listener(service.name, port.protocol, port.target),
            LoadBalancerArn=resources.load_balancer,
            Port=port.target,
            Protocol=protocol,
            DefaultActions=[
                Action(
                    Type="forward",
                    ForwardConfig=ForwardConfig(
                        TargetGroups=[TargetGroupTuple(TargetGroupArn=Ref(target_group))]
                    ),
                )
            ],
        )
    )


def expose_service(
    graph: ResourceGraph,
    project: ComposeProject,
    service: ComposeService,
    resources: AwsResources,
    names: NameAllocator,
) -> ServiceExposure:
    """
    For every port of the service, opens it on every network of the service and creates its
    target group and listener.

    :rtype: ServiceExposure
    """
    exposure = ServiceExposure()
    networks = project.service_networks(service)
    for port in service.ports:
        for network in networks:
            add_ingress(graph, service, network, port, resources, names)
        protocol = define_lb_protocol(port, resources)
        target_group = add_target_group(
            graph, project, service, port, protocol, resources, names
        )
        listener = add_listener(
            graph, service, port, protocol, target_group, resources, names
        )
        exposure.listeners.append(listener.title)
        exposure.load_balancers.append(
            EcsLoadBalancer(
                ContainerName=service.name,
                ContainerPort=port.target,
                TargetGroupArn=Ref(target_group),
            )
        )
    return exposure
