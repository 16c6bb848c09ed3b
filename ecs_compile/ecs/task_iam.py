#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module managing the IAM roles of the ECS task of a compose service: the Task Execution role, used
by ECS to pull images and fetch secrets, and the Task role, used by the application itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService

from troposphere.iam import Policy, Role

from ecs_compile.common.logging import LOG
from ecs_compile.common.names import normalize_resource_name
from ecs_compile.common.tagging import service_tags
from ecs_compile.ecs.ecs_params import (
    ECS_TASKS_PRINCIPAL,
    EXECUTION_ROLE_MANAGED_POLICIES,
    SECRETS_ACCESS_ACTIONS,
)
from ecs_compile.iam import define_iam_policy, policy_document, service_role_trust_policy


def get_secrets_references(project: ComposeProject, service: ComposeService) -> list:
    """
    Lists what the execution role must be able to read: the pull credentials and the secrets
    the service uses. Secrets created in the template are already rewritten to Ref() them.

    :rtype: list
    """
    references = []
    if service.extensions.pull_credentials:
        references.append(service.extensions.pull_credentials)
    for service_secret in service.secrets:
        references.append(project.get_secret(service, service_secret.source).reference)
    return references


def define_execution_role(
    project: ComposeProject, service: ComposeService, names: NameAllocator
) -> Role:
    """
    Creates the Task Execution role of the service. Always required.
    """
    props = {
        "AssumeRolePolicyDocument": service_role_trust_policy(ECS_TASKS_PRINCIPAL),
        "ManagedPolicyArns": list(EXECUTION_ROLE_MANAGED_POLICIES),
        "Tags": service_tags(project, service),
    }
    references = get_secrets_references(project, service)
    if references:
        props["Policies"] = [
            Policy(
                PolicyName=f"{normalize_resource_name(service.name, names.capitalize)}GrantAccessToSecrets",
                PolicyDocument=policy_document(
                    [
                        {
                            "Effect": "Allow",
                            "Action": list(SECRETS_ACCESS_ACTIONS),
                            "Resource": references,
                        }
                    ]
                ),
            )
        ]
    return Role(names.task_execution_role(service.name), **props)


def define_task_role(
    project: ComposeProject, service: ComposeService, names: NameAllocator
) -> Union[Role, None]:
    """
    Creates the Task role of the service, only when the service defines an inline policy or managed
    policies for it.

    :return: the role, or None
    """
    role_policy = service.extensions.role_policy
    managed_policies = service.extensions.managed_policies
    if not role_policy and not managed_policies:
        LOG.debug(f"services.{service.name} - No task role required")
        return None
    props = {
        "AssumeRolePolicyDocument": service_role_trust_policy(ECS_TASKS_PRINCIPAL),
        "Tags": service_tags(project, service),
    }
    if role_policy:
        props["Policies"] = [
            Policy(
                PolicyName=f"{normalize_resource_name(service.name, names.capitalize)}Policy",
                PolicyDocument=role_policy,
            )
        ]
    if managed_policies:
        props["ManagedPolicyArns"] = [
            define_iam_policy(policy) for policy in managed_policies
        ]
    return Role(names.task_role(service.name), **props)


def add_task_roles(
    graph: ResourceGraph,
    project: ComposeProject,
    service: ComposeService,
    names: NameAllocator,
) -> tuple:
    """
    Adds the IAM roles of the service to the template.

    :return: the execution role and the task role (or None)
    :rtype: tuple(troposphere.iam.Role, troposphere.iam.Role)
    """
    exec_role = graph.add(define_execution_role(project, service, names))
    task_role = define_task_role(project, service, names)
    if task_role:
        graph.add(task_role)
    return exec_role, task_role
