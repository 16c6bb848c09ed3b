#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Project level AWS resources the services are deployed onto: VPC, subnets, ECS Cluster, security
groups of the networks and the load balancer. Existing resources given with the x-aws extensions
are used as-is, the others are created in the template.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from compose_x_common.aws.elasticloadbalancing import LB_V2_LB_ARN_RE
from troposphere import Ref
from troposphere.ec2 import SecurityGroup
from troposphere.ecs import Cluster
from troposphere.elasticloadbalancingv2 import LoadBalancer

from ecs_compile.common.cfn_params import SUBNETS, VPC_ID
from ecs_compile.common.logging import LOG
from ecs_compile.common.names import CLUSTER_T, LOAD_BALANCER_T
from ecs_compile.common.tagging import network_tags, project_tags

APPLICATION_LB = "application"
NETWORK_LB = "network"
LOAD_BALANCER_TYPES = (APPLICATION_LB, NETWORK_LB)


def define_load_balancer_type(project: ComposeProject) -> str:
    """
    Type of the existing load balancer when its ARN is given. Otherwise, application load balancer
    when all the ports of all the services serve HTTP, network load balancer if not.

    :rtype: str
    """
    arn = project.extensions.loadbalancer
    if arn:
        parts = LB_V2_LB_ARN_RE.match(arn)
        if parts:
            return APPLICATION_LB if parts.group("type") == "app" else NETWORK_LB
        LOG.warning(
            f"{project.name} - {arn} is not a load balancer ARN. Its type is guessed from the ports"
        )
    ports = [port for service in project.services.values() for port in service.ports]
    if ports and all(port.is_http for port in ports):
        return APPLICATION_LB
    return NETWORK_LB


class AwsResources:
    """
    Class to hold the pointers to the project level resources the builders use.

    :ivar vpc: VPC ID or Ref() to the VpcId parameter
    :ivar subnets: list of subnets IDs or Ref() to the SubnetIds parameter
    :ivar cluster: ECS cluster name or Ref() to the Cluster resource
    :ivar load_balancer: load balancer ARN, Ref() to the LoadBalancer resource, or None
    :ivar str load_balancer_type: application or network
    :ivar dict security_groups: network name to security group ID or Ref()
    :ivar dict filesystems: volume name to EFS FileSystem ID, copied from the resolved volumes, or Ref()
        to the FileSystem created in the template
    :ivar dict access_points: volume name to the AccessPoint logical name
    :ivar dict mount_targets: volume name to the MountTarget logical names
    :ivar capacity_provider: Ref() to the EC2 capacity provider of the services requiring EC2 hosts, or None
    :ivar str capacity_provider_association: logical name of the cluster capacity providers association
    """

    def __init__(
        self,
        project: ComposeProject,
        filesystems: dict = None,
        load_balancer_type: str = None,
    ):
        extensions = project.extensions
        self.vpc = extensions.vpc if extensions.vpc else Ref(VPC_ID)
        self.explicit_subnets = list(extensions.subnets) if extensions.subnets else None
        self.subnets = self.explicit_subnets if self.explicit_subnets else Ref(SUBNETS)
        self.cluster = extensions.cluster if extensions.cluster else Ref(CLUSTER_T)
        self.load_balancer = extensions.loadbalancer
        self.load_balancer_type = (
            load_balancer_type
            if load_balancer_type
            else define_load_balancer_type(project)
        )
        self.security_groups = {}
        self.filesystems = dict(filesystems) if filesystems else {}
        self.access_points = {}
        self.mount_targets = {}
        self.capacity_provider = None
        self.capacity_provider_association = None

    def __repr__(self):
        return f"vpc={self.vpc}, cluster={self.cluster}, lb={self.load_balancer}"

    @property
    def is_application_lb(self) -> bool:
        return self.load_balancer_type == APPLICATION_LB

    def service_security_groups(
        self, project: ComposeProject, service: ComposeService
    ) -> list:
        """
        :return: the security groups of the networks the service is attached to
        :rtype: list
        """
        return [
            self.security_groups[network.name]
            for network in project.service_networks(service)
        ]


def add_vpc_parameters(graph: ResourceGraph, resources: AwsResources) -> None:
    if isinstance(resources.vpc, Ref):
        graph.add_parameter(VPC_ID)
    if isinstance(resources.subnets, Ref):
        graph.add_parameter(SUBNETS)


def add_cluster(graph: ResourceGraph, project: ComposeProject) -> None:
    if project.extensions.cluster:
        LOG.info(f"{project.name} - Using existing ECS Cluster {project.extensions.cluster}")
        return
    graph.add(Cluster(CLUSTER_T, ClusterName=project.name, Tags=project_tags(project)))


def add_networks(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    names: NameAllocator,
) -> None:
    """
    Creates the security group of each network, unless the network is external and its name is
    the ID of an existing security group.
    """
    for network in project.networks.values():
        if network.external:
            resources.security_groups[network.name] = network.security_group_id
            continue
        security_group = graph.add(
            SecurityGroup(
                names.network(network.name),
                GroupDescription=f"{project.name} Security Group for {network.name} network",
                VpcId=resources.vpc,
                Tags=network_tags(project, network.name),
            )
        )
        resources.security_groups[network.name] = Ref(security_group)


def add_load_balancer(
    graph: ResourceGraph, project: ComposeProject, resources: AwsResources
) -> None:
    """
    Creates the load balancer when a service exposes ports and no existing load balancer is given.
    """
    if resources.load_balancer:
        LOG.info(f"{project.name} - Using existing load balancer {resources.load_balancer}")
        return
    if not any(service.ports for service in project.services.values()):
        return
    props = {
        "Scheme": "internet-facing",
        "Subnets": resources.subnets,
        "Type": resources.load_balancer_type,
        "Tags": project_tags(project),
    }
    if resources.is_application_lb:
        props["SecurityGroups"] = list(resources.security_groups.values())
    load_balancer = graph.add(LoadBalancer(LOAD_BALANCER_T, **props))
    resources.load_balancer = Ref(load_balancer)


def ensure_resources(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    names: NameAllocator,
) -> None:
    """
    Adds the project level resources and parameters the services need to the template.
    """
    add_vpc_parameters(graph, resources)
    add_cluster(graph, project)
    add_networks(graph, project, resources, names)
    add_load_balancer(graph, project, resources)
