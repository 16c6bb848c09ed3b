#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Creates the AWS Secrets Manager secrets for the compose secrets defined with a file.
"""

from __future__ import annotations

from os import path
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_secrets import ComposeSecret

from troposphere.secretsmanager import Secret

from ecs_compile.common.logging import LOG
from ecs_compile.common.tagging import project_tags
from ecs_compile.exceptions import SecretFileError


def read_secret_file(project: ComposeProject, secret: ComposeSecret) -> str:
    """
    Reads the secret value from its file. Relative paths are relative to the project directory.

    :raises SecretFileError: if the file cannot be read
    """
    file_path = secret.file
    if project.working_dir and not path.isabs(file_path):
        file_path = path.join(project.working_dir, file_path)
    try:
        with open(file_path) as secret_fd:
            return secret_fd.read()
    except (OSError, UnicodeDecodeError) as error:
        raise SecretFileError(
            f"secrets.{secret.name} - failed to read {file_path}", str(error)
        ) from error


def create_secret(
    graph: ResourceGraph,
    project: ComposeProject,
    secret: ComposeSecret,
    names: NameAllocator,
) -> Union[Secret, None]:
    """
    Creates the secret in the template from the secret file, and binds the compose secret to it.
    External secrets are left untouched.

    :return: the secret, None for external secrets
    """
    if secret.external:
        LOG.debug(f"secrets.{secret.name} - external secret {secret.reference}")
        return None
    value = read_secret_file(project, secret)
    cfn_secret = graph.add(
        Secret(
            names.secret(secret.name),
            Description=f"Secret {secret.name}",
            SecretString=value,
            Tags=project_tags(project),
        )
    )
    secret.bind_resource(cfn_secret.title)
    return cfn_secret
