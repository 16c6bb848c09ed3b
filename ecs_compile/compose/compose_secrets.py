#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Represent a secret from the docker-compose secrets
"""

from __future__ import annotations

from typing import Union

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import AWSHelperFn, Ref

from ecs_compile.common.logging import LOG
from ecs_compile.exceptions import ConfigurationError


class ComposeSecret:
    """
    Class to represent a Compose secret.

    :ivar str name: name of the secret in the compose file
    :ivar bool external: whether the secret already exists in AWS
    :ivar str file: path to the file holding the secret value, for non external secrets
    :ivar reference: what IAM policies and containers use to point to the secret. The secret name/ARN
        for external secrets. Once the secret resource is created for non external secrets,
        it is rewritten to Ref() the resource, see bind_resource.
    """

    main_key = "secrets"

    def __init__(self, name: str, definition: dict):
        if definition is None:
            definition = {}
        if not isinstance(definition, dict):
            raise ConfigurationError(
                f"secrets.{name} must be a mapping. Got {type(definition)}"
            )
        self.name = name
        self.definition = definition
        self.external = keyisset("external", definition)
        self.file = set_else_none("file", definition, None)
        self.resource_title = None
        self.reference: Union[str, AWSHelperFn] = set_else_none(
            "name", definition, name
        )

    def __repr__(self):
        return self.name

    @property
    def is_materialized(self) -> bool:
        return self.resource_title is not None

    def bind_resource(self, resource_title: str) -> None:
        """
        Rewrites the secret reference to point to the secret resource created in the template.
        This is the one change made to the compose project during compilation: the IAM and container
        definitions generated afterwards use the reference, and must point to the new resource.
        Binding again to the same resource, when compiling the project again, changes nothing.

        :param str resource_title: logical name of the AWS::SecretsManager::Secret
        """
        if self.external:
            raise ConfigurationError(
                f"secrets.{self.name} is external. It cannot be bound to {resource_title}"
            )
        LOG.debug(f"secrets.{self.name} - reference rewritten to Ref({resource_title})")
        self.resource_title = resource_title
        self.reference = Ref(resource_title)
