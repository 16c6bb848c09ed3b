#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Transforms the compose service into the ECS Task Definition and its container definition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService, ServiceVolume

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import AWS_REGION, NoValue, Ref
from troposphere.ecs import (
    AuthorizationConfig,
    ContainerDefinition,
    EFSVolumeConfiguration,
    Environment,
    HealthCheck,
    LogConfiguration,
    MountPoint,
    PortMapping,
    RepositoryCredentials,
    ResourceRequirement,
)
from troposphere.ecs import Secret as EcsSecret
from troposphere.ecs import TaskDefinition, Volume
from troposphere.iam import Role

from ecs_compile.common import NONALPHANUM
from ecs_compile.common.logging import LOG
from ecs_compile.common.names import LOG_GROUP_T
from ecs_compile.common.tagging import service_tags
from ecs_compile.ecs.docker_tools import define_fargate_compute, import_healthcheck
from ecs_compile.ecs.ecs_params import EC2, FARGATE, LOGS_DRIVER, NETWORK_MODE
from ecs_compile.exceptions import ConfigurationError


def task_volume_name(mount: ServiceVolume) -> str:
    """
    Name of the task volume for the mount. Mounts of a volume sub path get their own task volume.
    """
    if mount.subpath:
        return f"{mount.source}_{NONALPHANUM.sub('', mount.subpath)}"
    return mount.source


def define_healthcheck(service: ComposeService) -> Union[HealthCheck, None]:
    healthcheck = service.healthcheck
    if not healthcheck or keyisset("disable", healthcheck):
        return None
    if not keyisset("test", healthcheck) or healthcheck["test"] in (["NONE"], "NONE"):
        return None
    return HealthCheck(**import_healthcheck(healthcheck))


def define_container_secrets(project: ComposeProject, service: ComposeService) -> list:
    """
    The secrets exposed to the container, pointing to the secret reference, which is the Ref() to
    the secret for the secrets created in the template.
    """
    return [
        EcsSecret(
            Name=service_secret.target,
            ValueFrom=project.get_secret(service, service_secret.source).reference,
        )
        for service_secret in service.secrets
    ]


def define_container(project: ComposeProject, service: ComposeService) -> ContainerDefinition:
    """
    Defines the container of the service, which is the only and essential container of the task.
    """
    props = {
        "Name": service.name,
        "Image": service.image,
        "Essential": True,
        "Command": service.command if service.command else NoValue,
        "EntryPoint": service.entrypoint if service.entrypoint else NoValue,
        "WorkingDirectory": service.working_dir if service.working_dir else NoValue,
        "User": str(service.user) if service.user else NoValue,
        "Environment": [
            Environment(Name=key, Value=value)
            for key, value in service.environment.items()
        ],
        "PortMappings": [
            PortMapping(
                ContainerPort=port.target,
                Protocol=port.protocol if port.protocol else NoValue,
            )
            for port in service.ports
        ],
        "Secrets": define_container_secrets(project, service),
        "MountPoints": [
            MountPoint(
                ContainerPath=mount.target,
                SourceVolume=task_volume_name(mount),
                ReadOnly=mount.read_only,
            )
            for mount in service.volumes
        ],
        "LogConfiguration": LogConfiguration(
            LogDriver=LOGS_DRIVER,
            Options={
                "awslogs-group": Ref(LOG_GROUP_T),
                "awslogs-region": Ref(AWS_REGION),
                "awslogs-stream-prefix": project.name,
            },
        ),
    }
    healthcheck = define_healthcheck(service)
    if healthcheck:
        props["HealthCheck"] = healthcheck
    if service.extensions.pull_credentials:
        props["RepositoryCredentials"] = RepositoryCredentials(
            CredentialsParameter=service.extensions.pull_credentials
        )
    if service.gpus:
        props["ResourceRequirements"] = [
            ResourceRequirement(Type="GPU", Value=str(service.gpus))
        ]
    return ContainerDefinition(**props)


def define_task_volumes(
    service: ComposeService, resources: AwsResources, task_role: Union[Role, None]
) -> list:
    """
    Defines the EFS volumes of the task. The volumes are mounted through their access point, with
    IAM authorization when the task has a role. A mount of a sub path of the volume uses it as
    root directory instead.
    """
    volumes = {}
    for mount in service.volumes:
        name = task_volume_name(mount)
        if name in volumes:
            continue
        if mount.source not in resources.filesystems:
            raise ConfigurationError(
                f"services.{service.name} - volume {mount.source} has no FileSystem"
            )
        efs_props = {
            "FilesystemId": resources.filesystems[mount.source],
            "TransitEncryption": "ENABLED",
        }
        if mount.subpath:
            efs_props["RootDirectory"] = mount.subpath
        else:
            efs_props["AuthorizationConfig"] = AuthorizationConfig(
                AccessPointId=Ref(resources.access_points[mount.source]),
                IAM="ENABLED" if task_role else "DISABLED",
            )
        volumes[name] = Volume(
            Name=name, EFSVolumeConfiguration=EFSVolumeConfiguration(**efs_props)
        )
    return list(volumes.values())


def define_task_definition(
    project: ComposeProject,
    service: ComposeService,
    resources: AwsResources,
    names: NameAllocator,
    exec_role: Role,
    task_role: Union[Role, None] = None,
) -> TaskDefinition:
    """
    Defines the Task Definition of the service, with the execution role and, when set, the task role.

    :param ComposeProject project:
    :param ComposeService service:
    :param AwsResources resources:
    :param NameAllocator names:
    :param troposphere.iam.Role exec_role: the task execution role
    :param troposphere.iam.Role task_role: the task role, None when the service has none
    :rtype: troposphere.ecs.TaskDefinition
    """
    limits = service.deploy.limits if service.deploy else {}
    cpu, memory = define_fargate_compute(limits)
    LOG.debug(f"services.{service.name} - CPU {cpu}, RAM {memory}")
    props = {
        "Family": f"{project.name}-{service.name}",
        "NetworkMode": NETWORK_MODE,
        "RequiresCompatibilities": [EC2 if service.requires_ec2 else FARGATE],
        "Cpu": str(cpu),
        "Memory": str(memory),
        "ContainerDefinitions": [define_container(project, service)],
        "ExecutionRoleArn": Ref(exec_role),
        "Volumes": define_task_volumes(service, resources, task_role),
        "Tags": service_tags(project, service),
    }
    if task_role:
        props["TaskRoleArn"] = Ref(task_role)
    return TaskDefinition(names.task_definition(service.name), **props)
