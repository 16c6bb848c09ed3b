#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Checks the compose project only uses features that can be deployed to ECS, before compiling it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_compile.common.logging import LOG
from ecs_compile.exceptions import IncompatibleProjectError


def check_service(project: ComposeProject, service: ComposeService) -> list:
    """
    :return: the reasons the service cannot be deployed
    :rtype: list[str]
    """
    errors = []
    prefix = f"services.{service.name}"
    if not service.image:
        if keyisset("build", service.definition):
            errors.append(f"{prefix} - build is not supported. Set image")
        else:
            errors.append(f"{prefix} - image must be set")
    network_mode = set_else_none("network_mode", service.definition, None)
    if network_mode and network_mode != "awsvpc":
        errors.append(f"{prefix} - network_mode {network_mode} is not supported")
    for network_name in service.networks:
        if network_name not in project.networks:
            errors.append(f"{prefix} - network {network_name} is not defined")
    for mount in service.volumes:
        if mount.type == "bind":
            errors.append(f"{prefix} - bind mount {mount} is not supported")
        elif mount.type != "volume":
            errors.append(f"{prefix} - {mount.type} mount {mount.target} is not supported")
        elif not mount.source:
            errors.append(
                f"{prefix} - anonymous volume {mount.target} is not supported"
            )
        elif mount.source not in project.volumes:
            errors.append(f"{prefix} - volume {mount.source} is not defined in volumes")
    for service_secret in service.secrets:
        if service_secret.source not in project.secrets:
            errors.append(
                f"{prefix} - secret {service_secret.source} is not defined in secrets"
            )
    for dependency in service.depends_on:
        if dependency not in project.services:
            errors.append(f"{prefix} - depends_on {dependency} is not a defined service")
    return errors


def check_listeners_ports(project: ComposeProject) -> list:
    """
    All the services share the load balancer, so two services cannot listen on the same port.
    """
    errors = []
    listeners = {}
    for service in project.services.values():
        for port in service.ports:
            if port.target in listeners:
                errors.append(
                    f"services.{service.name} - port {port.target} is already used by "
                    f"services.{listeners[port.target]} on the load balancer"
                )
            else:
                listeners[port.target] = service.name
    return errors


def check_compatibility(project: ComposeProject) -> None:
    """
    Checks the whole project and reports all the incompatibilities at once.

    :raises IncompatibleProjectError:
    """
    errors = []
    for service in project.services.values():
        errors += check_service(project, service)
    errors += check_listeners_ports(project)
    for secret in project.secrets.values():
        if not secret.external and not secret.file:
            errors.append(f"secrets.{secret.name} - file must be set unless external")
    if errors:
        for error in errors:
            LOG.error(error)
        raise IncompatibleProjectError(
            f"{project.name} cannot be deployed to ECS: {len(errors)} error(s)", errors
        )
    LOG.debug(f"{project.name} - compatibility checked")
