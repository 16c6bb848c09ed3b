#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Describe the existing load balancer set with x-aws-loadbalancer, so the listeners and target groups
use the protocols of its actual type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ecs_compile.compose import ComposeProject

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError
from compose_x_common.aws.elasticloadbalancing import LB_V2_LB_ARN_RE

from ecs_compile.aws_resources import LOAD_BALANCER_TYPES
from ecs_compile.common.logging import LOG
from ecs_compile.exceptions import ConfigurationError, ProvisioningError


class LookupLoadBalancer:
    """Class to look up existing ELBv2 load balancers"""

    def __init__(self, session: Session = None):
        self.session = session if session else Session()
        self.client = self.session.client("elbv2")

    def __repr__(self):
        return f"LookupLoadBalancer({self.session.region_name})"

    def find_type(self, arn: str) -> str:
        """
        :param str arn: the load balancer ARN
        :return: application or network
        :rtype: str
        :raises ProvisioningError: if the load balancer cannot be described
        """
        try:
            load_balancers = self.client.describe_load_balancers(
                LoadBalancerArns=[arn]
            )["LoadBalancers"]
        except (ClientError, BotoCoreError) as error:
            raise ProvisioningError(
                f"Failed to describe load balancer {arn}", str(error)
            ) from error
        if not load_balancers:
            raise ProvisioningError(f"No load balancer found for {arn}")
        lb_type = load_balancers[0]["Type"]
        if lb_type not in LOAD_BALANCER_TYPES:
            raise ConfigurationError(
                f"{arn} is a {lb_type} load balancer. Expected one of {LOAD_BALANCER_TYPES}"
            )
        return lb_type


def resolve_load_balancer_type(
    project: ComposeProject, lookup: LookupLoadBalancer = None
) -> Union[str, None]:
    """
    Finds the type of the existing load balancer of the project.
    Without lookup, the type is left for the compilation to define from the ARN.

    :param ComposeProject project:
    :param LookupLoadBalancer lookup:
    :return: the load balancer type, None when there is nothing to look up
    """
    arn = project.extensions.loadbalancer
    if not arn or lookup is None:
        return None
    if not LB_V2_LB_ARN_RE.match(arn):
        raise ConfigurationError(
            f"{project.name} - x-aws-loadbalancer {arn} is not a valid load balancer ARN"
        )
    lb_type = lookup.find_type(arn)
    LOG.info(f"{project.name} - existing load balancer {arn} is of type {lb_type}")
    return lb_type
