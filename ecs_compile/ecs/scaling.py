#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Service auto scaling from x-aws-autoscaling: a target tracking policy on the service average
CPU or memory utilization.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from compose_x_common.compose_x_common import set_else_none
from troposphere import GetAtt, Join, Ref
from troposphere.applicationautoscaling import (
    PredefinedMetricSpecification,
    ScalableTarget,
    ScalingPolicy,
    TargetTrackingScalingPolicyConfiguration,
)
from troposphere.iam import Policy, Role

from ecs_compile.common.logging import LOG
from ecs_compile.common.tagging import service_tags
from ecs_compile.exceptions import ConfigurationError
from ecs_compile.iam import policy_document, service_role_trust_policy

SCALING_MANAGED_POLICY = (
    "arn:aws:iam::aws:policy/service-role/AmazonEC2ContainerServiceAutoscaleRole"
)
CPU_METRIC = "ECSServiceAverageCPUUtilization"
MEMORY_METRIC = "ECSServiceAverageMemoryUtilization"
COOLDOWN = 60


def define_scaling_metric(service: ComposeService, config: dict) -> tuple:
    """
    :return: the predefined metric type and its target value
    :rtype: tuple(str, float)
    """
    cpu = set_else_none("cpu", config, None, True)
    memory = set_else_none("memory", config, None, True)
    if cpu is not None and memory is not None:
        raise ConfigurationError(
            f"services.{service.name} - x-aws-autoscaling can only scale on one of cpu or memory"
        )
    if cpu is not None:
        return CPU_METRIC, float(cpu)
    if memory is not None:
        return MEMORY_METRIC, float(memory)
    raise ConfigurationError(
        f"services.{service.name} - x-aws-autoscaling requires one of cpu or memory"
    )


def define_scaling_role(
    project: ComposeProject,
    service: ComposeService,
    names: NameAllocator,
    ecs_service_title: str,
) -> Role:
    return Role(
        names.scaling_role(service.name),
        AssumeRolePolicyDocument=service_role_trust_policy("application-autoscaling"),
        ManagedPolicyArns=[SCALING_MANAGED_POLICY],
        Policies=[
            Policy(
                PolicyName="service-autoscaling",
                PolicyDocument=policy_document(
                    [
                        {
                            "Effect": "Allow",
                            "Action": [
                                "application-autoscaling:*",
                                "ecs:DescribeServices",
                                "ecs:UpdateService",
                                "cloudwatch:GetMetricStatistics",
                            ],
                            "Resource": [Ref(ecs_service_title)],
                        }
                    ]
                ),
            )
        ],
        Tags=service_tags(project, service),
    )


def add_autoscaling(
    graph: ResourceGraph,
    project: ComposeProject,
    service: ComposeService,
    resources: AwsResources,
    names: NameAllocator,
) -> None:
    """
    Adds the scaling role, scalable target and target tracking policy of the service when
    x-aws-autoscaling is set. The ECS Service must already be in the template.

    :raises ConfigurationError: when the autoscaling configuration is invalid
    """
    config = service.extensions.autoscaling
    if config is None:
        return
    max_count = set_else_none("max", config, None, True)
    if max_count is None:
        raise ConfigurationError(
            f"services.{service.name} - x-aws-autoscaling.max must be set"
        )
    min_count = set_else_none("min", config, service.desired_count, True)
    if min_count > max_count:
        raise ConfigurationError(
            f"services.{service.name} - x-aws-autoscaling.min ({min_count}) must be lower than max ({max_count})"
        )
    metric, target_value = define_scaling_metric(service, config)
    ecs_service_title = names.service(service.name)
    role = graph.add(define_scaling_role(project, service, names, ecs_service_title))
    target = graph.add(
        ScalableTarget(
            names.scalable_target(service.name),
            MaxCapacity=max_count,
            MinCapacity=min_count,
            ResourceId=Join(
                "/", ["service", resources.cluster, GetAtt(ecs_service_title, "Name")]
            ),
            RoleARN=GetAtt(role, "Arn"),
            ScalableDimension="ecs:service:DesiredCount",
            ServiceNamespace="ecs",
        ),
        depends_on=[ecs_service_title],
    )
    graph.add(
        ScalingPolicy(
            names.scaling_policy(service.name),
            PolicyName=names.scaling_policy(service.name),
            PolicyType="TargetTrackingScaling",
            ScalingTargetId=Ref(target),
            TargetTrackingScalingPolicyConfiguration=TargetTrackingScalingPolicyConfiguration(
                PredefinedMetricSpecification=PredefinedMetricSpecification(
                    PredefinedMetricType=metric
                ),
                ScaleInCooldown=COOLDOWN,
                ScaleOutCooldown=COOLDOWN,
                TargetValue=target_value,
            ),
        )
    )
    LOG.debug(f"services.{service.name} - scaling on {metric} {target_value}")
