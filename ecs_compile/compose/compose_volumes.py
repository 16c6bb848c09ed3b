#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Represent a volume from the docker-compose volumes. Each volume is an AWS EFS FileSystem.
"""

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_compile.exceptions import ConfigurationError


def evaluate_plugin_efs_properties(definition: dict, driver_opts_key: str) -> dict:
    """
    Function to parse the driver_opts of the volume into the EFS FileSystem properties

    :param dict definition: the volume definition
    :param str driver_opts_key: key of the driver options
    :rtype: dict
    """
    efs_keys = {
        "performance_mode": ("PerformanceMode", str),
        "throughput_mode": ("ThroughputMode", str),
        "provisioned_throughput": (
            "ProvisionedThroughputInMibps",
            (int, float),
        ),
    }
    props = {}
    opts = set_else_none(driver_opts_key, definition, {})
    if not opts:
        return props
    lifecycle_policy = set_else_none("lifecycle_policy", opts)
    backup_policy = set_else_none("backup_policy", opts)
    if lifecycle_policy:
        props["LifecyclePolicies"] = [{"TransitionToIA": lifecycle_policy}]
    if backup_policy:
        props["BackupPolicy"] = {"Status": backup_policy}
    for name, config in efs_keys.items():
        if not keyisset(name, opts):
            continue
        elif not isinstance(opts[name], config[1]):
            raise ConfigurationError(
                f"Property {name} is of type {type(opts[name])}. Expected {config[1]}"
            )
        else:
            props[config[0]] = opts[name]
    return props


class ComposeVolume:
    """
    Class to represent a Compose volume

    :ivar str name:
    :ivar bool external: the volume is an existing EFS FileSystem, which ID is the volume name
    :ivar dict efs_properties: properties to create the FileSystem with
    """

    main_key = "volumes"
    driver_opts_key = "driver_opts"

    def __init__(self, name: str, definition: dict = None):
        if definition is None:
            definition = {}
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"volumes.{name} must be a mapping. Got {type(definition)}"
            )
        self.name = name
        self.definition = definition
        self.external = keyisset("external", definition)
        self.filesystem_id = (
            set_else_none("name", definition, name) if self.external else None
        )
        self.efs_properties = evaluate_plugin_efs_properties(
            definition, self.driver_opts_key
        )

    def __repr__(self):
        return self.name
