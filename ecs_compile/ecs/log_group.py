#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
CloudWatch log group the services containers logs are sent to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.compose import ComposeProject

from troposphere.logs import LogGroup

from ecs_compile.common.names import LOG_GROUP_T


def log_group_name(project: ComposeProject) -> str:
    return f"/docker-compose/{project.name}"


def add_log_group(graph: ResourceGraph, project: ComposeProject) -> LogGroup:
    """
    Creates the project log group. Logs never expire unless x-aws-logs_retention is set.
    """
    props = {"LogGroupName": log_group_name(project)}
    if project.extensions.logs_retention is not None:
        props["RetentionInDays"] = project.extensions.logs_retention
    return graph.add(LogGroup(LOG_GROUP_T, **props))
