#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from pytest import fixture, raises

from ecs_compile.common.names import (
    INGRESS,
    LISTENER,
    SERVICE,
    TARGET_GROUP,
    NameAllocator,
    normalize_resource_name,
)
from ecs_compile.exceptions import ConfigurationError


@fixture
def names():
    return NameAllocator()


def test_normalize_resource_name():
    assert normalize_resource_name("my-web_app.v2") == "mywebappv2"
    assert normalize_resource_name("my-web_app", capitalize=True) == "Mywebapp"
    assert normalize_resource_name("Web") == "Web"
    with raises(ConfigurationError):
        normalize_resource_name("--_")


def test_service_resources_names(names):
    assert names.service("web") == "webService"
    assert names.task_definition("web") == "webTaskDefinition"
    assert names.task_role("web") == "webTaskRole"
    assert names.task_execution_role("web") == "webTaskExecutionRole"
    assert names.discovery_entry("web") == "webServiceDiscoveryEntry"
    assert names.scaling_role("web") == "webAutoScalingRole"
    assert names.scalable_target("web") == "webScalableTarget"
    assert names.scaling_policy("web") == "webScalingPolicy"


def test_ports_resources_names(names):
    assert names.target_group("web", "tcp", 8080) == "webTCP8080TargetGroup"
    assert names.listener("web", "tcp", 80) == "webTCP80Listener"
    assert names.listener("web", "", 80) == "web80Listener"
    assert names.ingress("default", 80) == "default80Ingress"
    assert names.name(TARGET_GROUP, "web", "udp", "53") == "webUDP53TargetGroup"
    assert names.name(LISTENER, "web", None, 53) == "web53Listener"
    assert names.name(INGRESS, "front-net", 443) == "frontnet443Ingress"


def test_project_resources_names(names):
    assert names.secret("db_password") == "dbpasswordSecret"
    assert names.network("front-net") == "frontnetNetwork"
    assert names.volume("data") == "dataVolume"
    assert names.access_point("data") == "dataAccessPoint"
    assert names.mount_target("data", "subnet-abcd") == "dataNFSMountTargetOnsubnetabcd"
    assert names.nfs_ingress("default") == "defaultNFSIngress"


def test_capitalized_names():
    names = NameAllocator(capitalize=True)
    assert names.service("web-app") == "WebappService"
    assert names.target_group("web", "tcp", 8080) == "WebTCP8080TargetGroup"
    assert names.ingress("default", 80) == "Default80Ingress"


def test_names_are_deterministic(names):
    assert names.service("web") == NameAllocator().service("web")
    assert names.name(SERVICE, "web") == names.service("web")


def test_invalid_name_requests(names):
    with raises(KeyError):
        names.name("bucket", "web")
    with raises(ValueError):
        names.name(SERVICE, "web", "extra")
    with raises(ConfigurationError):
        names.service("...")
