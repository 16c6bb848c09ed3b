#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The compose project: services, networks, volumes and secrets imported from the compose content.
"""

from __future__ import annotations

import re

from compose_x_common.compose_x_common import set_else_none

from ecs_compile.common.logging import LOG
from ecs_compile.compose.compose_networks import ComposeNetwork
from ecs_compile.compose.compose_secrets import ComposeSecret
from ecs_compile.compose.compose_services import DEFAULT_NETWORK, ComposeService
from ecs_compile.compose.compose_volumes import ComposeVolume
from ecs_compile.compose.extensions import ProjectExtensions
from ecs_compile.exceptions import ConfigurationError

PROJECT_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class ComposeProject:
    """
    Class to represent the compose project

    :ivar str name:
    :ivar dict[str, ComposeService] services: in the order they are defined
    :ivar dict[str, ComposeNetwork] networks:
    :ivar dict[str, ComposeVolume] volumes:
    :ivar dict[str, ComposeSecret] secrets:
    :ivar ProjectExtensions extensions:
    :ivar str working_dir: directory relative paths (i.e. secrets files) are relative to
    """

    def __init__(self, name: str, content: dict, working_dir: str = None):
        if not isinstance(name, str) or not PROJECT_NAME_RE.match(name.lower()):
            raise ConfigurationError(
                f"Project name {name} is invalid. Must match {PROJECT_NAME_RE.pattern}"
            )
        if not isinstance(content, dict):
            raise ConfigurationError(
                f"The compose content must be a mapping. Got {type(content)}"
            )
        self.name = name
        self.content = content
        self.working_dir = working_dir
        self.services = {
            service_name: ComposeService(service_name, definition)
            for service_name, definition in set_else_none(
                ComposeService.main_key, content, {}
            ).items()
        }
        self.networks = {
            network_name: ComposeNetwork(network_name, definition)
            for network_name, definition in set_else_none(
                ComposeNetwork.main_key, content, {}
            ).items()
        }
        self.volumes = {
            volume_name: ComposeVolume(volume_name, definition)
            for volume_name, definition in set_else_none(
                ComposeVolume.main_key, content, {}
            ).items()
        }
        self.secrets = {
            secret_name: ComposeSecret(secret_name, definition)
            for secret_name, definition in set_else_none(
                ComposeSecret.main_key, content, {}
            ).items()
        }
        self.extensions = ProjectExtensions(content, "x-aws")
        self.set_default_network()

    def __repr__(self):
        return self.name

    def set_default_network(self) -> None:
        """
        Services without networks are attached to the default network, which exists even when
        not declared.
        """
        if DEFAULT_NETWORK in self.networks:
            return
        if any(
            DEFAULT_NETWORK in service.networks for service in self.services.values()
        ):
            LOG.debug(f"{self.name} - adding implicit network {DEFAULT_NETWORK}")
            self.networks[DEFAULT_NETWORK] = ComposeNetwork(DEFAULT_NETWORK)

    def service_networks(self, service: ComposeService) -> list:
        """
        :return: the networks of the service
        :rtype: list[ComposeNetwork]
        """
        networks = []
        for network_name in service.networks:
            if network_name not in self.networks:
                raise ConfigurationError(
                    f"services.{service.name} - network {network_name} is not defined in networks"
                )
            networks.append(self.networks[network_name])
        return networks

    def get_secret(self, service: ComposeService, secret_name: str) -> ComposeSecret:
        if secret_name not in self.secrets:
            raise ConfigurationError(
                f"services.{service.name} - secret {secret_name} is not defined in secrets"
            )
        return self.secrets[secret_name]
