# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the ResourceGraph, the template being compiled and the dependencies between its resources.
"""

from __future__ import annotations

from typing import Iterator, Union

from troposphere import AWSObject, Parameter, Template

from ecs_compile.common.logging import LOG
from ecs_compile.exceptions import DanglingDependencyError, DuplicateResourceError


def get_depends_on(resource: AWSObject) -> list:
    """
    Returns the DependsOn of a resource as a list, whether it was set as a string, list or not at all.

    :param troposphere.AWSObject resource:
    :rtype: list[str]
    """
    if not hasattr(resource, "DependsOn"):
        return []
    depends_on = getattr(resource, "DependsOn")
    if isinstance(depends_on, str):
        return [depends_on]
    return [
        dependency.title if isinstance(dependency, AWSObject) else dependency
        for dependency in depends_on
    ]


class ResourceGraph:
    """
    Class owning the troposphere Template the builders add their resources to.
    Builders only ever add resources, never remove nor rename one.

    :ivar troposphere.Template template:
    """

    def __init__(self, description: str = None):
        self.template = Template(Description=description)
        self.template.set_version()

    def __repr__(self):
        return f"ResourceGraph({len(self.template.resources)} resources)"

    def __contains__(self, title: str) -> bool:
        return title in self.template.resources

    def __getitem__(self, title: str) -> AWSObject:
        return self.template.resources[title]

    def __iter__(self) -> Iterator[str]:
        return iter(self.template.resources)

    def __len__(self) -> int:
        return len(self.template.resources)

    @property
    def resources(self) -> dict:
        return self.template.resources

    @property
    def parameters(self) -> dict:
        return self.template.parameters

    def add(self, resource: AWSObject, depends_on: list = None) -> AWSObject:
        """
        Adds the resource to the template, setting its DependsOn when given.

        :param troposphere.AWSObject resource:
        :param list[str] depends_on: logical names the resource depends on
        :raises DuplicateResourceError: when a resource with the same title already exists
        :return: the resource
        """
        if resource.title in self.template.resources:
            raise DuplicateResourceError(
                f"Resource {resource.title} is already defined in the template",
                self.template.resources[resource.title].resource_type,
                resource.resource_type,
            )
        if depends_on:
            setattr(resource, "DependsOn", list(depends_on))
        LOG.debug(f"Adding {resource.resource_type} {resource.title}")
        self.template.add_resource(resource)
        return resource

    def add_parameter(self, parameter: Parameter) -> Parameter:
        """
        Adds the parameter to the template unless one with the same title is already there.
        """
        if parameter.title not in self.template.parameters:
            self.template.add_parameter(parameter)
        return self.template.parameters[parameter.title]

    def dependencies(self, title: str) -> list:
        """
        :param str title: logical name of the resource
        :return: the logical names the resource DependsOn
        :rtype: list[str]
        """
        return get_depends_on(self.template.resources[title])

    def resources_of_type(self, resource_type: Union[str, type]) -> dict:
        """
        Returns the resources matching the CFN type (i.e. AWS::ECS::Service) or troposphere class.
        """
        if isinstance(resource_type, str):
            return {
                title: resource
                for title, resource in self.template.resources.items()
                if resource.resource_type == resource_type
            }
        return {
            title: resource
            for title, resource in self.template.resources.items()
            if isinstance(resource, resource_type)
        }

    def check_closure(self) -> None:
        """
        Checks that every DependsOn of every resource points to a resource of the template.

        :raises DanglingDependencyError:
        """
        for title, resource in self.template.resources.items():
            for dependency in get_depends_on(resource):
                if dependency not in self.template.resources:
                    raise DanglingDependencyError(
                        f"{title} depends on {dependency} which is not defined in the template"
                    )

    def to_dict(self) -> dict:
        return self.template.to_dict()

    def to_json(self) -> str:
        return self.template.to_json()

    def to_yaml(self) -> str:
        """Renders the intrinsic functions in long form, so any YAML parser can read the template"""
        return self.template.to_yaml(long_form=True)
