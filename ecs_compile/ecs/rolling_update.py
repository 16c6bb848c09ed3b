#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Resolve the ECS Service DeploymentConfiguration bounds from the deploy settings of the service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.compose.compose_services import ComposeService

from troposphere.ecs import DeploymentConfiguration

from ecs_compile.common.logging import LOG
from ecs_compile.ecs.ecs_params import DEFAULT_MAX_PERCENT, DEFAULT_MIN_PERCENT
from ecs_compile.exceptions import ConfigurationError


def compute_rolling_update_limits(service: ComposeService) -> tuple:
    """
    Computes the MinimumHealthyPercent and MaximumPercent of the service deployments.

    Defaults to 100 / 200, which replaces the tasks one at a time without downtime.
    When both x-aws-min_percent and x-aws-max_percent are set, they are used as-is.
    Otherwise, with update_config.parallelism set, the bounds not set explicitly are computed from
    the number of replicas, so that no more than parallelism tasks are replaced at once.

    :param ComposeService service:
    :return: minimum and maximum percent
    :rtype: tuple(int, int)
    :raises ConfigurationError: when parallelism cannot be applied to the replicas
    """
    update_config = service.update_config
    if update_config is None:
        return DEFAULT_MIN_PERCENT, DEFAULT_MAX_PERCENT
    min_percent = update_config.extensions.min_percent
    max_percent = update_config.extensions.max_percent
    if min_percent is not None and max_percent is not None:
        LOG.debug(
            f"services.{service.name} - using min/max percent {min_percent}/{max_percent}"
        )
        return min_percent, max_percent
    parallelism = update_config.parallelism
    if parallelism is None:
        return (
            min_percent if min_percent is not None else DEFAULT_MIN_PERCENT,
            max_percent if max_percent is not None else DEFAULT_MAX_PERCENT,
        )
    replicas = service.replicas
    if replicas is None:
        raise ConfigurationError(
            f"services.{service.name} - deploy.replicas must be set to use update_config.parallelism"
        )
    if replicas < parallelism:
        raise ConfigurationError(
            f"services.{service.name} - replicas must be greater than parallelism",
            replicas,
            parallelism,
        )
    if replicas == 0:
        raise ConfigurationError(
            f"services.{service.name} - deploy.replicas must be greater than 0 to use update_config.parallelism"
        )
    if min_percent is None:
        min_percent = (replicas - parallelism) * 100 // replicas
    if max_percent is None:
        max_percent = (replicas + parallelism) * 100 // replicas
    return min_percent, max_percent


def define_deployment_configuration(service: ComposeService) -> DeploymentConfiguration:
    min_percent, max_percent = compute_rolling_update_limits(service)
    return DeploymentConfiguration(
        MinimumHealthyPercent=min_percent, MaximumPercent=max_percent
    )
