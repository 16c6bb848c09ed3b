#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Find or create the EFS FileSystems backing the compose volumes.

It runs once per volume, before the template is built, and the results are memoized.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ecs_compile.compose import ComposeProject

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError

from ecs_compile.common.logging import LOG
from ecs_compile.common.tagging import filesystem_tags
from ecs_compile.exceptions import ProvisioningError

CREATE_PROPERTIES = (
    "PerformanceMode",
    "ThroughputMode",
    "ProvisionedThroughputInMibps",
)


class EfsStorage:
    """
    Class to look up and create EFS FileSystems identified by their tags.

    :ivar boto3.session.Session session:
    """

    def __init__(self, session: Session = None):
        self.session = session if session else Session()
        self.client = self.session.client("efs")

    def __repr__(self):
        return f"EfsStorage({self.session.region_name})"

    def find_filesystem(self, tags: dict) -> Union[str, None]:
        """
        Finds the FileSystem which has all the given tags

        :param dict tags:
        :return: the FileSystem ID, None if not found
        """
        try:
            paginator = self.client.get_paginator("describe_file_systems")
            for page in paginator.paginate():
                for filesystem in page["FileSystems"]:
                    fs_tags = {
                        tag["Key"]: tag["Value"]
                        for tag in filesystem.get("Tags", [])
                    }
                    if all(fs_tags.get(key) == value for key, value in tags.items()):
                        return filesystem["FileSystemId"]
        except (ClientError, BotoCoreError) as error:
            raise ProvisioningError(
                f"Failed to look up EFS FileSystem with tags {tags}", str(error)
            ) from error
        return None

    def create_filesystem(self, tags: dict, properties: dict = None) -> str:
        """
        Creates an encrypted FileSystem with the given tags

        :param dict tags:
        :param dict properties: EFS properties of the volume. Only the ones supported at creation are used
        :return: the FileSystem ID
        :rtype: str
        """
        create_args = {
            "CreationToken": "-".join(str(value) for value in tags.values())[:64],
            "Encrypted": True,
            "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
        }
        if properties:
            create_args.update(
                {
                    key: value
                    for key, value in properties.items()
                    if key in CREATE_PROPERTIES
                }
            )
        try:
            filesystem = self.client.create_file_system(**create_args)
        except (ClientError, BotoCoreError) as error:
            raise ProvisioningError(
                f"Failed to create EFS FileSystem with tags {tags}", str(error)
            ) from error
        LOG.info(f"Created EFS FileSystem {filesystem['FileSystemId']}")
        return filesystem["FileSystemId"]


def resolve_filesystems(
    project: ComposeProject, storage: EfsStorage = None, filesystems: dict = None
) -> dict:
    """
    Resolves the FileSystem ID of every volume of the project, once.
    External volumes use their name as the FileSystem ID. Other volumes are looked up by tags
    with the storage and created when not found. Without storage, the volumes are left unresolved
    and the FileSystem is created in the template.

    :param ComposeProject project:
    :param EfsStorage storage:
    :param dict filesystems: volumes already resolved
    :return: volume name to FileSystem ID
    :rtype: dict
    """
    if filesystems is None:
        filesystems = {}
    for volume in project.volumes.values():
        if volume.name in filesystems:
            continue
        if volume.external:
            LOG.info(f"volumes.{volume.name} - using FileSystem {volume.filesystem_id}")
            filesystems[volume.name] = volume.filesystem_id
            continue
        if storage is None:
            LOG.debug(f"volumes.{volume.name} - FileSystem will be created in the template")
            continue
        tags = filesystem_tags(project, volume.name)
        LOG.debug(f"volumes.{volume.name} - searching for existing FileSystem with {tags}")
        filesystem_id = storage.find_filesystem(tags)
        if filesystem_id is None:
            LOG.info(f"volumes.{volume.name} - no FileSystem found. Creating a new one")
            filesystem_id = storage.create_filesystem(tags, volume.efs_properties)
        LOG.info(f"volumes.{volume.name} - attaching FileSystem {filesystem_id}")
        filesystems[volume.name] = filesystem_id
    return filesystems
