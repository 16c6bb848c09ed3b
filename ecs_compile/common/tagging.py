# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Tags set on all the resources supporting AWS Tags, so resources can be traced back to the compose project.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from troposphere import Tags

from ecs_compile.common import (
    COMPOSE_NETWORK_TAG,
    COMPOSE_PROJECT_TAG,
    COMPOSE_SERVICE_TAG,
    COMPOSE_VOLUME_TAG,
)


def project_tags(project: ComposeProject) -> Tags:
    return Tags({COMPOSE_PROJECT_TAG: project.name})


def service_tags(project: ComposeProject, service: ComposeService) -> Tags:
    return Tags({COMPOSE_PROJECT_TAG: project.name, COMPOSE_SERVICE_TAG: service.name})


def network_tags(project: ComposeProject, network_name: str) -> Tags:
    return Tags({COMPOSE_PROJECT_TAG: project.name, COMPOSE_NETWORK_TAG: network_name})


def filesystem_tags(project: ComposeProject, volume_name: str) -> dict:
    """
    Tags identifying the EFS FileSystem of a volume, used to find it back on later deployments
    """
    return {COMPOSE_PROJECT_TAG: project.name, COMPOSE_VOLUME_TAG: volume_name}
