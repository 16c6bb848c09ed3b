#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Represent a network from the docker-compose networks. Each network is a security group.
"""

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_compile.exceptions import ConfigurationError


class ComposeNetwork:
    """
    Class to represent a Compose network

    :ivar str name:
    :ivar bool external: the network is an existing security group, which ID is the network name
    """

    main_key = "networks"

    def __init__(self, name: str, definition: dict = None):
        if definition is None:
            definition = {}
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"networks.{name} must be a mapping. Got {type(definition)}"
            )
        self.name = name
        self.definition = definition
        self.external = keyisset("external", definition)
        self.security_group_id = (
            set_else_none("name", definition, name) if self.external else None
        )

    def __repr__(self):
        return self.name
