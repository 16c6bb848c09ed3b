#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

from pytest import raises

from ecs_compile.compose import ComposeProject
from ecs_compile.compose.compose_services import ComposeService, ServicePort
from ecs_compile.compose.loader import load_compose_files, load_project
from ecs_compile.exceptions import ConfigurationError


def test_ports_short_syntax():
    port = ServicePort("8080:80")
    assert (port.published, port.target, port.protocol) == (8080, 80, "tcp")
    port = ServicePort("53/udp")
    assert (port.published, port.target, port.protocol) == (53, 53, "udp")
    port = ServicePort(5000)
    assert (port.published, port.target, port.protocol) == (5000, 5000, "tcp")
    port = ServicePort("127.0.0.1:8443:443")
    assert (port.published, port.target) == (8443, 443)
    with raises(ConfigurationError):
        ServicePort("http")
    for port_range in ("8000-8001:80-81", "80-81", "127.0.0.1:8000-8001:80-81/tcp"):
        with raises(ConfigurationError):
            ServicePort(port_range)
    with raises(ConfigurationError):
        ServicePort({"target": 80, "published": "8000-8001"})
    service = ComposeService(
        "web", {"volumes": ["db-data:/var/db"], "secrets": ["db-password"]}
    )
    assert service.volumes[0].source == "db-data"
    assert service.secrets[0].source == "db-password"


def test_ports_long_syntax():
    port = ServicePort({"target": 80, "published": 8080, "protocol": "TCP"})
    assert (port.published, port.target, port.protocol) == (8080, 80, "tcp")
    port = ServicePort({"target": 5000})
    assert (port.published, port.target, port.protocol) == (5000, 5000, "")
    with raises(ConfigurationError):
        ServicePort({"published": 80})
    with raises(ConfigurationError):
        ServicePort({"target": 80, "protocol": "sctp"})
    with raises(ConfigurationError):
        ServicePort(True)


def test_http_ports():
    assert ServicePort("80").is_http
    assert ServicePort("8443:443").is_http
    assert not ServicePort("5432").is_http
    assert ServicePort({"target": 5000, "x-aws-protocol": "http"}).is_http
    assert not ServicePort({"target": 80, "x-aws-protocol": "grpc"}).is_http


def test_service_definition():
    service = ComposeService(
        "web",
        {
            "image": "nginx",
            "command": "nginx -g 'daemon off;'",
            "environment": ["A=1", "B=two=2", "EMPTY"],
            "depends_on": {"db": {"condition": "service_started"}},
            "networks": {"front": {}, "back": None},
            "volumes": ["data:/var/data:ro", "/host/path:/mnt", "/anonymous"],
            "secrets": ["token", {"source": "db_password", "target": "DB_PASSWORD"}],
        },
    )
    assert service.command == ["nginx", "-g", "daemon off;"]
    assert service.environment == {"A": "1", "B": "two=2", "EMPTY": ""}
    assert service.depends_on == ["db"]
    assert service.networks == ["front", "back"]
    assert [(vol.source, vol.type, vol.read_only) for vol in service.volumes] == [
        ("data", "volume", True),
        ("/host/path", "bind", False),
        (None, "volume", False),
    ]
    assert [(secret.source, secret.target) for secret in service.secrets] == [
        ("token", "token"),
        ("db_password", "DB_PASSWORD"),
    ]
    assert service.replicas is None
    assert service.desired_count == 1


def test_service_defaults():
    service = ComposeService("web", {"image": "nginx"})
    assert service.networks == ["default"]
    assert service.deploy is None
    assert service.update_config is None
    assert not service.requires_ec2


def test_service_replicas():
    assert ComposeService("web", {"deploy": {"replicas": 0}}).desired_count == 0
    assert ComposeService("web", {"deploy": {"replicas": "3"}}).replicas == 3
    with raises(ConfigurationError):
        ComposeService("web", {"deploy": {"replicas": -1}})
    with raises(ConfigurationError):
        ComposeService("web", {"deploy": {"replicas": "many"}})


def test_service_gpus():
    service = ComposeService(
        "ml",
        {
            "image": "tensorflow",
            "deploy": {
                "resources": {
                    "reservations": {
                        "generic_resources": [
                            {"discrete_resource_spec": {"kind": "gpus", "value": 2}}
                        ]
                    }
                }
            },
        },
    )
    assert service.gpus == 2
    assert service.requires_ec2
    service = ComposeService(
        "ml",
        {
            "image": "tensorflow",
            "deploy": {
                "resources": {"reservations": {"devices": [{"capabilities": ["gpu"]}]}}
            },
        },
    )
    assert service.gpus == 1


def test_service_extensions():
    service = ComposeService(
        "web",
        {
            "image": "nginx",
            "x-aws-policies": ["arn:aws:iam::aws:policy/ReadOnlyAccess"],
            "pull-credentials": "arn:aws:secretsmanager:eu-west-1:123456789012:secret:creds",
        },
    )
    assert service.extensions.managed_policies == [
        "arn:aws:iam::aws:policy/ReadOnlyAccess"
    ]
    assert service.extensions.pull_credentials.endswith(":secret:creds")
    assert service.extensions.role_policy is None
    assert service.extensions.is_set("managed_policies")
    assert not service.extensions.is_set("autoscaling")


def test_service_extensions_types():
    with raises(ConfigurationError):
        ComposeService("web", {"x-aws-policies": "ReadOnlyAccess"})
    with raises(ConfigurationError):
        ComposeService("web", {"x-aws-policies": [1]})
    with raises(ConfigurationError):
        ComposeService("web", {"x-aws-role": ["not", "a", "document"]})
    with raises(ConfigurationError):
        ComposeService(
            "web",
            {"x-aws-pull_credentials": "arn1", "pull-credentials": "arn2"},
        )


def test_project_extensions():
    project = ComposeProject(
        "shop",
        {
            "services": {"web": {"image": "nginx"}},
            "retention-in-days": 7,
            "x-aws-vpc": "vpc-123456",
            "x-aws-subnets": ["subnet-abc", "subnet-def"],
        },
    )
    assert project.extensions.logs_retention == 7
    assert project.extensions.vpc == "vpc-123456"
    assert project.extensions.subnets == ["subnet-abc", "subnet-def"]
    assert project.extensions.cluster is None
    with raises(ConfigurationError):
        ComposeProject("shop", {"x-aws-logs_retention": True})
    with raises(ConfigurationError):
        ComposeProject("shop", {"x-aws-subnets": "subnet-abc"})


def test_project_networks():
    project = ComposeProject(
        "shop",
        {
            "services": {"web": {"image": "nginx"}, "api": {"networks": ["back"]}},
            "networks": {"back": {}, "shared": {"external": True, "name": "sg-123"}},
        },
    )
    assert list(project.networks) == ["back", "shared", "default"]
    assert project.networks["shared"].security_group_id == "sg-123"
    assert not project.networks["back"].external
    assert [net.name for net in project.service_networks(project.services["api"])] == [
        "back"
    ]
    no_default = ComposeProject("shop", {"services": {"api": {"networks": ["back"]}}})
    assert "default" not in no_default.networks
    with raises(ConfigurationError):
        no_default.service_networks(no_default.services["api"])


def test_project_secrets_and_volumes():
    project = ComposeProject(
        "shop",
        {
            "volumes": {
                "data": {"driver_opts": {"performance_mode": "maxIO"}},
                "shared": {"external": True, "name": "fs-123"},
            },
            "secrets": {
                "db_password": {"file": "./db_password.txt"},
                "token": {"external": True, "name": "arn:aws:secretsmanager:token"},
                "other": {"external": True},
            },
        },
    )
    assert project.volumes["data"].efs_properties == {"PerformanceMode": "maxIO"}
    assert project.volumes["shared"].filesystem_id == "fs-123"
    assert project.secrets["db_password"].reference == "db_password"
    assert project.secrets["token"].reference == "arn:aws:secretsmanager:token"
    assert project.secrets["other"].reference == "other"
    assert not project.secrets["db_password"].is_materialized


def test_project_name():
    assert ComposeProject("My-Shop_2", {}).name == "My-Shop_2"
    for name in ("", "-shop", "shop.local", "my shop", None):
        with raises(ConfigurationError):
            ComposeProject(name, {})


def test_load_compose_files(tmp_path):
    base_file = tmp_path / "docker-compose.yml"
    base_file.write_text("services:\n  web:\n    image: nginx\n    ports:\n      - 80\n")
    override_file = tmp_path / "docker-compose.override.yml"
    override_file.write_text("services:\n  web:\n    deploy:\n      replicas: 2\n")
    content = load_compose_files([str(base_file), str(override_file)])
    assert content["services"]["web"]["image"] == "nginx"
    assert content["services"]["web"]["deploy"] == {"replicas": 2}
    assert content["services"]["web"]["ports"] == [{"protocol": "tcp", "target": 80}]
    project = load_project("shop", [str(base_file)])
    assert project.working_dir == path.abspath(str(tmp_path))
    assert list(project.services) == ["web"]
    with raises(FileNotFoundError):
        load_compose_files([str(tmp_path / "missing.yml")])
    invalid = tmp_path / "invalid.yml"
    invalid.write_text("- not\n- a mapping\n")
    with raises(ConfigurationError):
        load_compose_files([str(invalid)])
    with raises(ConfigurationError):
        load_compose_files([])


def test_load_compose_files_keeps_base_ports(tmp_path):
    base_file = tmp_path / "docker-compose.yml"
    base_file.write_text(
        "services:\n  web:\n    image: nginx\n    ports:\n      - \"80:80\"\n"
    )
    override_file = tmp_path / "docker-compose.override.yml"
    override_file.write_text("services:\n  web:\n    ports:\n      - \"443:443\"\n")
    project = load_project("shop", [str(base_file), str(override_file)])
    ports = project.services["web"].ports
    assert sorted(port.target for port in ports) == [80, 443]
    assert sorted(port.published for port in ports) == [80, 443]


def test_load_compose_files_interpolation(tmp_path, monkeypatch):
    monkeypatch.setenv("SHOP_DB_HOST", "db.internal")
    monkeypatch.delenv("SHOP_UNSET_VARIABLE", raising=False)
    compose_file = tmp_path / "docker-compose.yml"
    compose_file.write_text(
        "services:\n"
        "  web:\n"
        "    image: nginx\n"
        "    environment:\n"
        "      DB_HOST: ${SHOP_DB_HOST}\n"
        "      DB_NAME: ${SHOP_UNSET_VARIABLE}\n"
    )
    content = load_compose_files([str(compose_file)])
    assert content["services"]["web"]["environment"] == {
        "DB_HOST": "db.internal",
        "DB_NAME": "",
    }


def test_load_compose_files_invalid_content(tmp_path):
    no_image = tmp_path / "no-image.yml"
    no_image.write_text("services:\n  web:\n    command: serve\n")
    with raises(ConfigurationError):
        load_compose_files([str(no_image)])
    not_yaml = tmp_path / "not-yaml.yml"
    not_yaml.write_text("services:\n  web: [image\n")
    with raises(ConfigurationError):
        load_compose_files([str(not_yaml)])
    port_range = tmp_path / "port-range.yml"
    port_range.write_text(
        "services:\n  web:\n    image: nginx\n    ports:\n      - \"8000-8001:80-81\"\n"
    )
    with raises(ConfigurationError):
        load_compose_files([str(port_range)])
