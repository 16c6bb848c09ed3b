#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

from behave import given, then, when

from ecs_compile.compiler import convert
from ecs_compile.compose.loader import load_project
from ecs_compile.exceptions import IncompatibleProjectError


def here():
    return path.abspath(path.dirname(__file__))


def use_case_path(file_path: str) -> str:
    return path.abspath(f"{here()}/../../../{file_path}")


@given("I use {file_path} as my docker-compose file")
def step_impl(context, file_path):
    """
    Function to import the Docker file from use-cases.

    :param context:
    :param str file_path:
    """
    context.project = load_project("test", [use_case_path(file_path)])


@given(
    "I use {file_path} as my docker-compose file and {override_file} as override file"
)
def step_impl(context, file_path, override_file):
    context.project = load_project(
        "test", [use_case_path(file_path), use_case_path(override_file)]
    )


@given("I compile the project offline")
def step_impl(context):
    context.graph = convert(context.project)


@when("I compile the project offline expecting an error")
def step_impl(context):
    try:
        convert(context.project)
    except IncompatibleProjectError as error:
        context.error = error


@then("I should have resource {resource_title} of type {resource_type}")
def step_impl(context, resource_title, resource_type):
    assert resource_title in context.graph
    assert context.graph[resource_title].resource_type == resource_type


@then("I should not have resource {resource_title}")
def step_impl(context, resource_title):
    assert resource_title not in context.graph


@then("the service {service_title} should have {count:d} tasks")
def step_impl(context, service_title, count):
    assert context.graph[service_title].DesiredCount == count


@then("all the resources dependencies should be in the template")
def step_impl(context):
    for title in context.graph:
        for dependency in context.graph.dependencies(title):
            assert dependency in context.graph, f"{title} depends on {dependency}"


@then("compiling the project twice should render the same template")
def step_impl(context):
    assert convert(context.project).to_json() == convert(context.project).to_json()


@then("the compilation should fail with {count:d} errors")
def step_impl(context, count):
    assert hasattr(context, "error")
    assert len(context.error.args[1]) == count
