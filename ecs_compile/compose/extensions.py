# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Typed views over the x-aws extension fields of the compose definitions.

Each view is decoded once, when the compose object is imported, so the builders only ever read
typed attributes and a value of the wrong type fails before any resource is generated.
"""

from __future__ import annotations

import jsonschema
from compose_x_common.compose_x_common import keypresent

from ecs_compile.exceptions import ConfigurationError
from ecs_compile.specs import load_spec


class ExtensionField:
    """
    Class to represent one extension setting, its accepted keys and expected type

    :ivar str key: the canonical key, i.e. x-aws-pull_credentials
    :ivar tuple aliases: other keys accepted for the same setting
    :ivar type|tuple expected: the python type(s) expected
    :ivar str attribute: attribute name set onto the view
    """

    def __init__(self, key, expected, attribute, aliases=None, items=None, spec=None):
        self.key = key
        self.expected = expected
        self.attribute = attribute
        self.aliases = aliases if aliases else ()
        self.items = items
        self.spec = spec

    def __repr__(self):
        return self.key

    @property
    def keys(self) -> tuple:
        return (self.key,) + tuple(self.aliases)

    def find(self, definition: dict):
        """
        Returns the key and value set in the definition, or (None, None)
        """
        found = [key for key in self.keys if keypresent(key, definition)]
        if len(found) > 1:
            raise ConfigurationError(
                f"{self.key} is defined more than once with {found}. Only use one of them"
            )
        if not found:
            return None, None
        return found[0], definition[found[0]]

    def validate(self, key: str, value, owner: str):
        if isinstance(value, bool) and bool not in (
            self.expected if isinstance(self.expected, tuple) else (self.expected,)
        ):
            raise ConfigurationError(
                f"{owner} - {key} is of type {type(value)}. Expected {self.expected}"
            )
        if not isinstance(value, self.expected):
            raise ConfigurationError(
                f"{owner} - {key} is of type {type(value)}. Expected {self.expected}"
            )
        if self.items and not all(isinstance(item, self.items) for item in value):
            raise ConfigurationError(
                f"{owner} - all items of {key} must be of type {self.items}. Got {value}"
            )
        if self.spec:
            try:
                jsonschema.validate(value, load_spec(self.spec))
            except jsonschema.exceptions.ValidationError as error:
                raise ConfigurationError(
                    f"{owner} - {key} is invalid: {error.message}"
                ) from error
        return value


class ExtensionsView:
    """
    Base class for the typed extension views. Subclasses define the fields they decode.
    """

    fields = ()

    def __init__(self, definition: dict, owner: str):
        self.owner = owner
        self.defined_keys = []
        definition = definition if definition else {}
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"{owner} - expected a mapping. Got {type(definition)}"
            )
        for field in self.fields:
            key, value = field.find(definition)
            if key is None or value is None:
                setattr(self, field.attribute, None)
                continue
            setattr(self, field.attribute, field.validate(key, value, owner))
            self.defined_keys.append(field.key)

    def __repr__(self):
        return f"{self.owner}: {self.defined_keys}"

    def is_set(self, attribute: str) -> bool:
        return getattr(self, attribute, None) is not None


class ProjectExtensions(ExtensionsView):
    """
    Top level x-aws settings of the compose project
    """

    fields = (
        ExtensionField(
            "x-aws-logs_retention",
            int,
            "logs_retention",
            aliases=("retention-in-days", "x-aws-retention-in-days"),
        ),
        ExtensionField("x-aws-vpc", str, "vpc"),
        ExtensionField("x-aws-subnets", list, "subnets", items=str),
        ExtensionField("x-aws-cluster", str, "cluster"),
        ExtensionField("x-aws-loadbalancer", str, "loadbalancer"),
    )


class UpdateConfigExtensions(ExtensionsView):
    """
    x-aws settings of deploy.update_config
    """

    fields = (
        ExtensionField(
            "x-aws-min_percent",
            int,
            "min_percent",
            aliases=("min-percent", "x-aws-min-percent"),
        ),
        ExtensionField(
            "x-aws-max_percent",
            int,
            "max_percent",
            aliases=("max-percent", "x-aws-max-percent"),
        ),
    )


class ServiceExtensions(ExtensionsView):
    """
    x-aws settings of a compose service
    """

    fields = (
        ExtensionField(
            "x-aws-role", dict, "role_policy", aliases=("role-policy", "x-aws-role-policy")
        ),
        ExtensionField(
            "x-aws-policies",
            list,
            "managed_policies",
            aliases=("managed-policies", "x-aws-managed-policies"),
            items=str,
        ),
        ExtensionField(
            "x-aws-pull_credentials",
            str,
            "pull_credentials",
            aliases=("pull-credentials", "x-aws-pull-credentials"),
        ),
        ExtensionField(
            "x-aws-autoscaling",
            dict,
            "autoscaling",
            aliases=("autoscaling",),
            spec="x-aws-autoscaling",
        ),
    )


class PortExtensions(ExtensionsView):
    """
    x-aws settings of a service port
    """

    fields = (ExtensionField("x-aws-protocol", str, "protocol"),)
