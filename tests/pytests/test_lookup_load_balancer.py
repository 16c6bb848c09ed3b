#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import placebo
from boto3.session import Session
from pytest import fixture, raises

from ecs_compile.compiler import TemplateCompiler, convert
from ecs_compile.compose import ComposeProject
from ecs_compile.exceptions import ConfigurationError, ProvisioningError
from ecs_compile.lookup_load_balancer import (
    LookupLoadBalancer,
    resolve_load_balancer_type,
)

HERE = path.abspath(path.dirname(__file__))
NLB_ARN = "arn:aws:elasticloadbalancing:eu-west-1:123456789012:loadbalancer/net/shop/0123456789abcdef"


@fixture
def existing_lb_content():
    return {
        "x-aws-vpc": "vpc-123456",
        "x-aws-subnets": ["subnet-abc"],
        "x-aws-loadbalancer": NLB_ARN,
        "services": {"web": {"image": "nginx", "ports": ["80"]}},
    }


def get_lookup(placebo_dir: str) -> LookupLoadBalancer:
    session = Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=path.join(HERE, "placebos", placebo_dir))
    # pill.record()
    pill.playback()
    return LookupLoadBalancer(session)


class StaticLookup:
    def __init__(self, lb_type: str):
        self.lb_type = lb_type
        self.lookups = 0

    def find_type(self, arn: str) -> str:
        self.lookups += 1
        return self.lb_type


def get_properties(graph, title: str) -> dict:
    return graph.to_dict()["Resources"][title]["Properties"]


def test_find_type():
    assert get_lookup("elbv2_network").find_type(NLB_ARN) == "network"


def test_lookup_failure(existing_lb_content):
    project = ComposeProject("shop", existing_lb_content)
    with raises(ProvisioningError):
        resolve_load_balancer_type(project, get_lookup("elbv2_error"))


def test_convert_with_lookup(existing_lb_content):
    project = ComposeProject("shop", existing_lb_content)
    graph = convert(project, lookup=get_lookup("elbv2_network"))
    assert "LoadBalancer" not in graph
    listener = get_properties(graph, "webTCP80Listener")
    assert listener["Protocol"] == "TCP"
    assert listener["LoadBalancerArn"] == NLB_ARN
    assert get_properties(graph, "webTCP80TargetGroup")["Protocol"] == "TCP"


def test_lookup_type_prevails(existing_lb_content):
    existing_lb_content["x-aws-loadbalancer"] = NLB_ARN.replace("/net/", "/app/")
    project = ComposeProject("shop", existing_lb_content)
    lookup = StaticLookup("network")
    graph = convert(project, lookup=lookup)
    assert lookup.lookups == 1
    assert get_properties(graph, "webTCP80Listener")["Protocol"] == "TCP"


def test_offline_type_from_arn(existing_lb_content):
    project = ComposeProject("shop", existing_lb_content)
    assert resolve_load_balancer_type(project) is None
    graph = TemplateCompiler(project).compile()
    assert get_properties(graph, "webTCP80Listener")["Protocol"] == "TCP"
    existing_lb_content["x-aws-loadbalancer"] = NLB_ARN.replace("/net/", "/app/")
    graph = TemplateCompiler(ComposeProject("shop", existing_lb_content)).compile()
    assert get_properties(graph, "webTCP80Listener")["Protocol"] == "HTTP"


def test_invalid_load_balancer(existing_lb_content):
    existing_lb_content["x-aws-loadbalancer"] = "shop-lb"
    project = ComposeProject("shop", existing_lb_content)
    lookup = StaticLookup("network")
    with raises(ConfigurationError):
        resolve_load_balancer_type(project, lookup)
    assert lookup.lookups == 0


def test_no_existing_load_balancer():
    project = ComposeProject(
        "shop", {"services": {"web": {"image": "nginx", "ports": ["80"]}}}
    )
    lookup = StaticLookup("network")
    assert resolve_load_balancer_type(project, lookup) is None
    assert lookup.lookups == 0
