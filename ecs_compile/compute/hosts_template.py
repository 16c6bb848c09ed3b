#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the EC2 hosts of the services requiring GPUs: the Launch Template with its security
group and IAM Role (with Instance Profile), the Auto Scaling group and the ECS Capacity Provider
associated to the cluster.

The hosts register to the cluster from their UserData. The capacity provider managed scaling
starts and stops the hosts with the tasks placed onto it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.compose import ComposeProject

from compose_x_common.compose_x_common import set_else_none
from troposphere import Base64, GetAtt, Join, Ref, Sub
from troposphere.autoscaling import AutoScalingGroup, LaunchTemplateSpecification
from troposphere.autoscaling import Tags as AsgTags
from troposphere.ec2 import (
    IamInstanceProfile,
    LaunchTemplate,
    LaunchTemplateData,
    SecurityGroup,
    TagSpecifications,
)
from troposphere.ecs import (
    AutoScalingGroupProvider,
    CapacityProvider,
    CapacityProviderStrategy,
    ClusterCapacityProviderAssociations,
    ManagedScaling,
)
from troposphere.iam import InstanceProfile, Role

from ecs_compile.common import COMPOSE_PROJECT_TAG
from ecs_compile.common.logging import LOG
from ecs_compile.common.names import CLUSTER_T
from ecs_compile.common.tagging import project_tags
from ecs_compile.compute.compute_params import (
    AUTOSCALING_GROUP_T,
    CAPACITY_PROVIDER_T,
    CLUSTER_CAPACITY_PROVIDERS_T,
    ECS_GPU_AMI_ID,
    GPU_INSTANCE_TYPES,
    HOST_MANAGED_POLICIES,
    HOST_PROFILE_T,
    HOST_ROLE_T,
    HOSTS_SG_T,
    LAUNCH_TEMPLATE_T,
)
from ecs_compile.ecs.docker_tools import define_fargate_compute
from ecs_compile.ecs.ecs_params import FARGATE
from ecs_compile.exceptions import ConfigurationError
from ecs_compile.iam import policy_document


def define_max_hosts(services: list) -> int:
    """
    One host per task at most: the sum of the services desired count, or of their x-aws-autoscaling
    max when set.
    """
    max_hosts = 0
    for service in services:
        scaling = service.extensions.autoscaling
        max_count = (
            set_else_none("max", scaling, service.desired_count, True)
            if scaling
            else service.desired_count
        )
        max_hosts += max(int(max_count), service.desired_count)
    return max(max_hosts, 1)


def define_instance_type(services: list) -> str:
    """
    Smallest GPU instance type fitting the GPUs, CPU and memory of the largest task.

    :param list[ComposeService] services:
    :rtype: str
    :raises ConfigurationError: when no instance type can host the tasks
    """
    gpus = max(service.gpus for service in services)
    cpu, memory = 0, 0
    for service in services:
        limits = service.deploy.limits if service.deploy else {}
        service_cpu, service_memory = define_fargate_compute(limits)
        cpu = max(cpu, service_cpu)
        memory = max(memory, service_memory)
    for instance_type, instance_gpus, vcpus, instance_memory in GPU_INSTANCE_TYPES:
        # the ECS agent reserves some of the host memory
        if instance_gpus >= gpus and vcpus * 1024 >= cpu and instance_memory > memory:
            return instance_type
    raise ConfigurationError(
        f"No GPU instance type can run tasks with {gpus} GPUs, {cpu} CPU units and {memory}MB"
    )


def add_hosts_profile(graph: ResourceGraph, project: ComposeProject) -> InstanceProfile:
    role = graph.add(
        Role(
            HOST_ROLE_T,
            AssumeRolePolicyDocument=policy_document(
                [
                    {
                        "Effect": "Allow",
                        "Principal": {"Service": [Sub("ec2.${AWS::URLSuffix}")]},
                        "Action": ["sts:AssumeRole"],
                    }
                ]
            ),
            ManagedPolicyArns=HOST_MANAGED_POLICIES,
            Tags=project_tags(project),
        )
    )
    return graph.add(InstanceProfile(HOST_PROFILE_T, Roles=[Ref(role)]))


def add_launch_template(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    instance_type: str,
    profile: InstanceProfile,
) -> LaunchTemplate:
    """
    The hosts security group only allows outbound traffic: in awsvpc network mode the tasks have
    their own network interfaces, with the security groups of their networks.
    """
    hosts_sg = graph.add(
        SecurityGroup(
            HOSTS_SG_T,
            GroupDescription=f"{project.name} ECS hosts",
            VpcId=resources.vpc,
            Tags=project_tags(project),
        )
    )
    graph.add_parameter(ECS_GPU_AMI_ID)
    return graph.add(
        LaunchTemplate(
            LAUNCH_TEMPLATE_T,
            LaunchTemplateData=LaunchTemplateData(
                ImageId=Ref(ECS_GPU_AMI_ID),
                InstanceType=instance_type,
                IamInstanceProfile=IamInstanceProfile(Arn=GetAtt(profile, "Arn")),
                SecurityGroupIds=[GetAtt(hosts_sg, "GroupId")],
                TagSpecifications=[
                    TagSpecifications(
                        ResourceType="instance", Tags=project_tags(project)
                    )
                ],
                UserData=Base64(
                    Join(
                        "\n",
                        [
                            "#!/usr/bin/env bash",
                            Sub(f"echo ECS_CLUSTER=${{{CLUSTER_T}}} >> /etc/ecs/ecs.config"),
                            "echo ECS_ENABLE_TASK_IAM_ROLE=true >> /etc/ecs/ecs.config",
                            "# EOF",
                        ],
                    )
                ),
            ),
        )
    )


def add_capacity_provider(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    launch_template: LaunchTemplate,
    max_hosts: int,
) -> CapacityProvider:
    autoscaling_group = graph.add(
        AutoScalingGroup(
            AUTOSCALING_GROUP_T,
            LaunchTemplate=LaunchTemplateSpecification(
                LaunchTemplateId=Ref(launch_template),
                Version=GetAtt(launch_template, "LatestVersionNumber"),
            ),
            MinSize="0",
            MaxSize=str(max_hosts),
            VPCZoneIdentifier=resources.subnets,
            Tags=AsgTags(**{COMPOSE_PROJECT_TAG: project.name}),
        )
    )
    return graph.add(
        CapacityProvider(
            CAPACITY_PROVIDER_T,
            AutoScalingGroupProvider=AutoScalingGroupProvider(
                AutoScalingGroupArn=Ref(autoscaling_group),
                ManagedScaling=ManagedScaling(Status="ENABLED", TargetCapacity=100),
                ManagedTerminationProtection="DISABLED",
            ),
            Tags=project_tags(project),
        )
    )


def add_ec2_capacity(
    graph: ResourceGraph, project: ComposeProject, resources: AwsResources
) -> None:
    """
    Adds the EC2 capacity provider of the services requiring EC2 hosts to the cluster created in
    the template. Fargate remains the default capacity of the cluster.
    With an existing cluster, its EC2 instances are used as-is.

    :raises ConfigurationError: when no instance type can run the services tasks
    """
    services = [
        service for service in project.services.values() if service.requires_ec2
    ]
    if not services:
        return
    if project.extensions.cluster:
        LOG.warning(
            f"{project.name} - services {[service.name for service in services]} need GPU "
            f"instances registered in the cluster {project.extensions.cluster}"
        )
        return
    instance_type = define_instance_type(services)
    max_hosts = define_max_hosts(services)
    LOG.info(f"{project.name} - up to {max_hosts} {instance_type} hosts for GPU services")
    profile = add_hosts_profile(graph, project)
    launch_template = add_launch_template(
        graph, project, resources, instance_type, profile
    )
    capacity_provider = add_capacity_provider(
        graph, project, resources, launch_template, max_hosts
    )
    associations = graph.add(
        ClusterCapacityProviderAssociations(
            CLUSTER_CAPACITY_PROVIDERS_T,
            Cluster=Ref(CLUSTER_T),
            CapacityProviders=[FARGATE, Ref(capacity_provider)],
            DefaultCapacityProviderStrategy=[
                CapacityProviderStrategy(CapacityProvider=FARGATE, Weight=1)
            ],
        )
    )
    resources.capacity_provider = Ref(capacity_provider)
    resources.capacity_provider_association = associations.title
