#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import placebo
from boto3.session import Session
from pytest import fixture, raises

from ecs_compile.compiler import convert
from ecs_compile.compose import ComposeProject
from ecs_compile.exceptions import ProvisioningError
from ecs_compile.storage import EfsStorage, resolve_filesystems

HERE = path.abspath(path.dirname(__file__))


@fixture
def volumes_content():
    return {
        "x-aws-subnets": ["subnet-abc"],
        "services": {"web": {"image": "nginx", "volumes": ["data:/data"]}},
        "volumes": {"data": {"driver_opts": {"performance_mode": "maxIO"}}},
    }


def get_storage(placebo_dir: str) -> EfsStorage:
    session = Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=path.join(HERE, "placebos", placebo_dir))
    # pill.record()
    pill.playback()
    return EfsStorage(session)


class CountingStorage:
    def __init__(self):
        self.lookups = 0
        self.creations = 0

    def find_filesystem(self, tags):
        self.lookups += 1
        return None

    def create_filesystem(self, tags, properties=None):
        self.creations += 1
        return f"fs-{tags['com.docker.compose.volume']}"


def test_find_existing_filesystem(volumes_content):
    project = ComposeProject("shop", volumes_content)
    filesystems = resolve_filesystems(project, get_storage("efs_existing"))
    assert filesystems == {"data": "fs-0123456789abcdef0"}


def test_create_filesystem(volumes_content):
    project = ComposeProject("shop", volumes_content)
    filesystems = resolve_filesystems(project, get_storage("efs_new"))
    assert filesystems == {"data": "fs-0fedcba9876543210"}


def test_lookup_failure(volumes_content):
    project = ComposeProject("shop", volumes_content)
    with raises(ProvisioningError):
        resolve_filesystems(project, get_storage("efs_error"))


def test_offline_resolution(volumes_content):
    project = ComposeProject("shop", volumes_content)
    assert resolve_filesystems(project) == {}


def test_external_volume(volumes_content):
    volumes_content["volumes"]["data"] = {"external": True, "name": "fs-0external"}
    project = ComposeProject("shop", volumes_content)
    storage = CountingStorage()
    assert resolve_filesystems(project, storage) == {"data": "fs-0external"}
    assert storage.lookups == 0


def test_resolved_once(volumes_content):
    volumes_content["volumes"]["logs"] = {}
    project = ComposeProject("shop", volumes_content)
    storage = CountingStorage()
    filesystems = resolve_filesystems(project, storage)
    assert filesystems == {"data": "fs-data", "logs": "fs-logs"}
    resolve_filesystems(project, storage, filesystems)
    assert storage.lookups == 2
    assert storage.creations == 2


def test_convert_with_storage(volumes_content):
    project = ComposeProject("shop", volumes_content)
    graph = convert(project, storage=get_storage("efs_existing"))
    assert "dataVolume" not in graph
    assert graph.to_dict()["Resources"]["dataAccessPoint"]["Properties"][
        "FileSystemId"
    ] == "fs-0123456789abcdef0"
