# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the CompilerSettings class
"""

from __future__ import annotations

from os import getcwd

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_compile.exceptions import ConfigurationError


class CompilerSettings:
    """
    Class to handle the settings of the compilation, from the CLI arguments.

    :ivar str name: the compose project name
    :ivar list[str] input_files: the compose files, merged in order
    :ivar str output_dir:
    :ivar str format: json or yaml
    :ivar str region: AWS region to look up / create the EFS FileSystems in
    :ivar bool offline: when set, no call is made to AWS and the FileSystems are created in the template
    :ivar bool capitalize_names: upper-case the first character of the compose names in the logical names
    """

    name_arg = "ProjectName"
    input_file_arg = "DockerComposeFiles"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    region_arg = "RegionName"
    offline_arg = "Offline"
    capitalize_arg = "CapitalizeNames"
    command_arg = "command"
    render_arg = "render"

    default_format = "json"
    allowed_formats = ["json", "yaml"]

    active_commands = [
        {
            "name": render_arg,
            "help": "Compiles the docker-compose files into the CFN template, written locally",
        },
    ]
    neutral_commands = [{"name": "version", "help": "ecs-compile version"}]

    def __init__(self, **kwargs):
        if not keyisset(self.name_arg, kwargs):
            raise ConfigurationError("The project name must be set")
        self.name = kwargs[self.name_arg]
        self.input_files = list(set_else_none(self.input_file_arg, kwargs, []))
        self.output_dir = set_else_none(self.output_dir_arg, kwargs, getcwd())
        self.format = set_else_none(self.format_arg, kwargs, self.default_format)
        if self.format not in self.allowed_formats:
            raise ConfigurationError(
                f"Format {self.format} is invalid. Must be one of {self.allowed_formats}"
            )
        self.region = set_else_none(self.region_arg, kwargs, None)
        self.offline = keyisset(self.offline_arg, kwargs)
        self.capitalize_names = keyisset(self.capitalize_arg, kwargs)

    def __repr__(self):
        return f"{self.name} - {self.input_files}"

    @property
    def output_file(self) -> str:
        return f"{self.name}.{self.format}"
