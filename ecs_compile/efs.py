#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
EFS resources of the compose volumes: mount targets in the subnets, access points, the NFS ingress
of the networks and, when the FileSystem was not resolved beforehand, the FileSystem itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.aws_resources import AwsResources
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.names import NameAllocator
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_volumes import ComposeVolume

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import Ref, Tags
from troposphere.ec2 import SecurityGroupIngress
from troposphere.efs import (
    AccessPoint,
    BackupPolicy,
    CreationInfo,
    FileSystem,
    LifecyclePolicy,
    MountTarget,
    PosixUser,
    RootDirectory,
)

from ecs_compile.common.logging import LOG
from ecs_compile.common.tagging import filesystem_tags
from ecs_compile.ecs.ecs_params import EFS_VOLUME_DRIVER_PORT
from ecs_compile.exceptions import ConfigurationError


def define_filesystem(project: ComposeProject, volume: ComposeVolume, title: str) -> FileSystem:
    """
    Defines the FileSystem of the volume, using its driver_opts properties
    """
    props = {
        "Encrypted": True,
        "FileSystemTags": Tags(filesystem_tags(project, volume.name)),
    }
    for key, value in volume.efs_properties.items():
        if key == "LifecyclePolicies":
            props[key] = [LifecyclePolicy(**policy) for policy in value]
        elif key == "BackupPolicy":
            props[key] = BackupPolicy(**value)
        else:
            props[key] = value
    return FileSystem(title, **props)


def define_access_point(
    project: ComposeProject, volume: ComposeVolume, title: str, filesystem
) -> AccessPoint:
    """
    Defines the AccessPoint to the volume, with the POSIX user and root directory set in the
    driver_opts (uid, gid, root_directory, permissions) when defined.
    """
    opts = set_else_none(volume.driver_opts_key, volume.definition, {})
    props = {
        "FileSystemId": filesystem,
        "AccessPointTags": Tags(filesystem_tags(project, volume.name)),
    }
    uid = set_else_none("uid", opts, None, True)
    gid = set_else_none("gid", opts, None, True)
    if uid is not None and gid is not None:
        props["PosixUser"] = PosixUser(Uid=str(uid), Gid=str(gid))
    if keyisset("root_directory", opts):
        root_props = {"Path": opts["root_directory"]}
        if uid is not None and gid is not None:
            root_props["CreationInfo"] = CreationInfo(
                OwnerUid=str(uid),
                OwnerGid=str(gid),
                Permissions=str(set_else_none("permissions", opts, "0755")),
            )
        props["RootDirectory"] = RootDirectory(**root_props)
    return AccessPoint(title, **props)


def add_nfs_ingress(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    names: NameAllocator,
) -> None:
    """
    Allows NFS traffic between the members of each network security group, so the services can
    reach the mount targets.
    """
    for network in project.networks.values():
        if network.external:
            continue
        security_group = resources.security_groups[network.name]
        graph.add(
            SecurityGroupIngress(
                names.nfs_ingress(network.name),
                Description=f"Allow NFS traffic within {network.name} network",
                GroupId=security_group,
                SourceSecurityGroupId=security_group,
                IpProtocol="tcp",
                FromPort=EFS_VOLUME_DRIVER_PORT,
                ToPort=EFS_VOLUME_DRIVER_PORT,
            )
        )


def add_efs_resources(
    graph: ResourceGraph,
    project: ComposeProject,
    resources: AwsResources,
    names: NameAllocator,
) -> None:
    """
    Adds the EFS resources of every volume of the project. One mount target is created per subnet,
    so the subnets must be explicitly set with x-aws-subnets.

    :raises ConfigurationError: when the project has volumes but no x-aws-subnets
    """
    if not project.volumes:
        return
    if not resources.explicit_subnets:
        raise ConfigurationError(
            f"{project.name} - x-aws-subnets must be set to create the volumes mount targets"
        )
    add_nfs_ingress(graph, project, resources, names)
    security_groups = list(resources.security_groups.values())
    for volume in project.volumes.values():
        if volume.name not in resources.filesystems:
            filesystem = graph.add(
                define_filesystem(project, volume, names.volume(volume.name))
            )
            resources.filesystems[volume.name] = Ref(filesystem)
        filesystem_id = resources.filesystems[volume.name]
        mount_targets = []
        for subnet in resources.explicit_subnets:
            mount_target = graph.add(
                MountTarget(
                    names.mount_target(volume.name, subnet),
                    FileSystemId=filesystem_id,
                    SubnetId=subnet,
                    SecurityGroups=security_groups,
                )
            )
            mount_targets.append(mount_target.title)
        resources.mount_targets[volume.name] = mount_targets
        access_point = graph.add(
            define_access_point(
                project, volume, names.access_point(volume.name), filesystem_id
            )
        )
        resources.access_points[volume.name] = access_point.title
        LOG.debug(
            f"volumes.{volume.name} - {len(mount_targets)} mount targets, access point {access_point.title}"
        )
