#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to import the services defined in compose files and import / transform the settings into
usable properties for the template builders.
"""

from __future__ import annotations

import re
import shlex
from copy import deepcopy
from typing import Union

from compose_x_common.compose_x_common import keyisset, keypresent, set_else_none

from ecs_compile.common.logging import LOG
from ecs_compile.compose.extensions import (
    PortExtensions,
    ServiceExtensions,
    UpdateConfigExtensions,
)
from ecs_compile.exceptions import ConfigurationError

DEFAULT_NETWORK = "default"
PORT_SHORT_RE = re.compile(
    r"^(?:(?P<host_ip>\d+\.\d+\.\d+\.\d+):)?(?:(?P<published>\d+):)?(?P<target>\d+)(?:/(?P<protocol>tcp|udp))?$"
)
HTTP_PORTS = (80, 443)


def _as_int(value, owner: str, key: str) -> Union[int, None]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{owner} - {key} must be an integer. Got {value}")
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise ConfigurationError(
            f"{owner} - {key} must be an integer. Got {value}"
        ) from error


class ServicePort:
    """
    Class to represent a port exposed by a service

    :ivar int target: the container port
    :ivar int published: the port exposed on the load balancer side. Defaults to target
    :ivar str protocol: tcp, udp or empty string (any)
    """

    def __init__(self, definition: Union[str, int, dict], service_name: str = None):
        owner = f"services.{service_name}.ports" if service_name else "ports"
        if isinstance(definition, bool):
            raise ConfigurationError(f"{owner} - invalid port {definition}")
        if isinstance(definition, int):
            definition = str(definition)
        if isinstance(definition, str):
            if "-" in definition:
                raise ConfigurationError(
                    f"{owner} - {definition} - port ranges are not supported, define each port"
                )
            parts = PORT_SHORT_RE.match(definition.strip())
            if not parts:
                raise ConfigurationError(
                    f"{owner} - {definition} does not match the expected pattern {PORT_SHORT_RE.pattern}"
                )
            self.target = int(parts.group("target"))
            self.published = (
                int(parts.group("published"))
                if parts.group("published")
                else self.target
            )
            self.protocol = parts.group("protocol") or "tcp"
            self.extensions = PortExtensions({}, owner)
        elif isinstance(definition, dict):
            if not keyisset("target", definition):
                raise ConfigurationError(
                    f"{owner} - The ports must always at least define the target."
                )
            self.target = _as_int(definition["target"], owner, "target")
            published = _as_int(
                set_else_none("published", definition, None, True), owner, "published"
            )
            self.published = published if published is not None else self.target
            self.protocol = str(set_else_none("protocol", definition, "")).lower()
            self.extensions = PortExtensions(definition, owner)
        else:
            raise ConfigurationError(
                f"{owner} - port must be a string, int or mapping. Got {type(definition)}"
            )
        if self.protocol not in ("tcp", "udp", ""):
            raise ConfigurationError(
                f"{owner} - protocol must be one of tcp, udp. Got {self.protocol}"
            )

    def __repr__(self):
        return f"{self.published}:{self.target}/{self.protocol}"

    @property
    def is_http(self) -> bool:
        """
        Whether the port serves HTTP, from the x-aws-protocol hint or the well-known HTTP ports
        """
        if self.extensions.protocol:
            return self.extensions.protocol.lower() in ("http", "https")
        return self.target in HTTP_PORTS


class UpdateConfig:
    """
    Class to represent deploy.update_config

    :ivar int parallelism: None when not set.
    :ivar UpdateConfigExtensions extensions:
    """

    def __init__(self, definition: dict, service_name: str):
        owner = f"services.{service_name}.deploy.update_config"
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"{owner} must be a mapping. Got {type(definition)}"
            )
        self.parallelism = _as_int(
            set_else_none("parallelism", definition, None, True), owner, "parallelism"
        )
        self.failure_action = set_else_none("failure_action", definition, None)
        self.extensions = UpdateConfigExtensions(definition, owner)

    def __repr__(self):
        return f"parallelism={self.parallelism}, {self.extensions}"


class DeployConfig:
    """
    Class to represent the deploy section of a service

    :ivar int replicas: None when not set
    :ivar UpdateConfig update_config: None when not set
    :ivar dict resources: deploy.resources
    """

    def __init__(self, definition: dict, service_name: str):
        owner = f"services.{service_name}.deploy"
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"{owner} must be a mapping. Got {type(definition)}"
            )
        self.replicas = _as_int(
            set_else_none("replicas", definition, None, True), owner, "replicas"
        )
        if self.replicas is not None and self.replicas < 0:
            raise ConfigurationError(
                f"{owner}.replicas must be positive. Got {self.replicas}"
            )
        self.update_config = (
            UpdateConfig(definition["update_config"], service_name)
            if keypresent("update_config", definition)
            and definition["update_config"] is not None
            else None
        )
        self.resources = set_else_none("resources", definition, {})
        self.labels = set_else_none("labels", definition, {})

    @property
    def limits(self) -> dict:
        return set_else_none("limits", self.resources, {})

    @property
    def reservations(self) -> dict:
        return set_else_none("reservations", self.resources, {})


class ServiceVolume:
    """
    Class to represent a volume mounted into a service container

    :ivar str source: the volume name, or host path for bind mounts
    :ivar str target: path in the container
    :ivar bool read_only:
    :ivar str subpath: optional sub directory of the volume to mount
    :ivar str type: volume, bind or tmpfs
    """

    def __init__(self, definition: Union[str, dict], service_name: str):
        owner = f"services.{service_name}.volumes"
        self.subpath = None
        if isinstance(definition, str):
            parts = definition.split(":")
            if len(parts) == 1:
                self.source = None
                self.target = parts[0]
                self.read_only = False
            else:
                self.source = parts[0]
                self.target = parts[1]
                self.read_only = len(parts) > 2 and "ro" in parts[2].split(",")
            self.type = (
                "bind"
                if self.source and self.source.startswith((".", "/", "~"))
                else "volume"
            )
        elif isinstance(definition, dict):
            if not keyisset("target", definition):
                raise ConfigurationError(f"{owner} - volumes must define the target")
            self.type = set_else_none("type", definition, "volume")
            self.source = set_else_none("source", definition, None)
            self.target = definition["target"]
            self.read_only = keyisset("read_only", definition)
            volume_opts = set_else_none("volume", definition, {})
            self.subpath = set_else_none("subpath", volume_opts, None)
        else:
            raise ConfigurationError(
                f"{owner} - volume must be a string or mapping. Got {type(definition)}"
            )

    def __repr__(self):
        return f"{self.source}:{self.target}"


class ServiceSecret:
    """
    Class to represent a secret the service uses, pointing to the top level secrets

    :ivar str source: name of the project secret
    :ivar str target: name of the secret in the container
    """

    def __init__(self, definition: Union[str, dict], service_name: str):
        if isinstance(definition, str):
            self.source = definition
            self.target = definition
        elif isinstance(definition, dict) and keyisset("source", definition):
            self.source = definition["source"]
            self.target = set_else_none("target", definition, self.source)
        else:
            raise ConfigurationError(
                f"services.{service_name}.secrets - could not identify the secret source",
                definition,
            )

    def __repr__(self):
        return self.source


class ComposeService:
    """
    Class to represent a docker-compose singleton service

    :ivar str name:
    :ivar list[ServicePort] ports:
    :ivar list[str] depends_on:
    :ivar list[str] networks:
    :ivar DeployConfig deploy: None when the service has no deploy section
    :ivar list[ServiceVolume] volumes:
    :ivar list[ServiceSecret] secrets:
    :ivar ServiceExtensions extensions:
    """

    main_key = "services"

    def __init__(self, name: str, definition: dict):
        if definition is None:
            definition = {}
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"services.{name} must be a mapping. Got {type(definition)}"
            )
        self.name = name
        self._definition = deepcopy(definition)
        self.image = set_else_none("image", self.definition, None)
        self.command = self.as_command_list(set_else_none("command", self.definition))
        self.entrypoint = self.as_command_list(
            set_else_none("entrypoint", self.definition)
        )
        self.working_dir = set_else_none("working_dir", self.definition)
        self.user = set_else_none("user", self.definition)
        self.healthcheck = set_else_none("healthcheck", self.definition)
        self.environment = self.import_environment(
            set_else_none("environment", self.definition, {})
        )
        self.ports = [
            ServicePort(port, name) for port in set_else_none("ports", self.definition, [])
        ]
        self.depends_on = self.import_depends_on(
            set_else_none("depends_on", self.definition, [])
        )
        self.networks = self.import_networks(
            set_else_none("networks", self.definition, None)
        )
        self.deploy = (
            DeployConfig(self.definition["deploy"], name)
            if keypresent("deploy", self.definition)
            and self.definition["deploy"] is not None
            else None
        )
        self.volumes = [
            ServiceVolume(volume, name)
            for volume in set_else_none("volumes", self.definition, [])
        ]
        self.secrets = [
            ServiceSecret(secret, name)
            for secret in set_else_none("secrets", self.definition, [])
        ]
        self.extensions = ServiceExtensions(self.definition, f"services.{name}")
        LOG.debug(f"Imported service {name} - {self.extensions}")

    def __repr__(self):
        return self.name

    @property
    def definition(self) -> dict:
        return self._definition

    @property
    def replicas(self) -> Union[int, None]:
        """
        deploy.replicas, None when not set.
        """
        if self.deploy is None:
            return None
        return self.deploy.replicas

    @property
    def desired_count(self) -> int:
        return self.replicas if self.replicas is not None else 1

    @property
    def update_config(self) -> Union[UpdateConfig, None]:
        if self.deploy is None:
            return None
        return self.deploy.update_config

    @property
    def gpus(self) -> int:
        """
        Number of GPUs reserved by the service, from deploy.resources.reservations
        generic_resources (kind gpus) or devices (capabilities [gpu])
        """
        if self.deploy is None:
            return 0
        reservations = self.deploy.reservations
        for resource in set_else_none("generic_resources", reservations, []):
            spec = set_else_none("discrete_resource_spec", resource, {})
            if set_else_none("kind", spec) == "gpus":
                return int(set_else_none("value", spec, 0))
        for device in set_else_none("devices", reservations, []):
            if set_else_none("capabilities", device, []) == ["gpu"]:
                return int(set_else_none("count", device, 1))
        return 0

    @property
    def requires_ec2(self) -> bool:
        """
        Whether the service needs host-level placement (EC2) rather than Fargate
        """
        return self.gpus > 0

    @staticmethod
    def as_command_list(command) -> Union[list, None]:
        if command is None:
            return None
        if isinstance(command, str):
            return shlex.split(command)
        return [str(part) for part in command]

    @staticmethod
    def import_environment(environment) -> dict:
        """
        Imports environment defined as a list of KEY=VALUE or a mapping.
        """
        if isinstance(environment, dict):
            return {
                key: "" if value is None else str(value)
                for key, value in environment.items()
            }
        env_vars = {}
        for env_var in environment:
            key, _, value = str(env_var).partition("=")
            env_vars[key] = value
        return env_vars

    @staticmethod
    def import_depends_on(depends_on) -> list:
        if isinstance(depends_on, dict):
            return list(depends_on.keys())
        return list(depends_on)

    @staticmethod
    def import_networks(networks) -> list:
        if not networks:
            return [DEFAULT_NETWORK]
        if isinstance(networks, dict):
            return list(networks.keys())
        return list(networks)
