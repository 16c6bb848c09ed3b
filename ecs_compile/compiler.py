#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Compiles the compose project into the CloudFormation template of its ECS services.

The TemplateCompiler owns the ResourceGraph for the duration of the compilation and hands it to
each builder in turn. Project level resources are created first, then every service in the order
they are defined in the compose files. Any error aborts the compilation, no template is returned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ecs_compile.compose import ComposeProject
    from ecs_compile.compose.compose_services import ComposeService
    from ecs_compile.lookup_load_balancer import LookupLoadBalancer
    from ecs_compile.storage import EfsStorage

from ecs_compile import __version__
from ecs_compile.aws_resources import AwsResources, ensure_resources
from ecs_compile.cloudmap import add_namespace, add_service_registry
from ecs_compile.common import unique_ordered
from ecs_compile.common.graph import ResourceGraph
from ecs_compile.common.logging import LOG
from ecs_compile.common.names import NameAllocator
from ecs_compile.common.settings import CompilerSettings
from ecs_compile.compatibility import check_compatibility
from ecs_compile.compute.hosts_template import add_ec2_capacity
from ecs_compile.ecs.ecs_service import define_ecs_service, define_service_dependencies
from ecs_compile.ecs.log_group import add_log_group
from ecs_compile.ecs.rolling_update import define_deployment_configuration
from ecs_compile.ecs.scaling import add_autoscaling
from ecs_compile.ecs.task_definition import define_task_definition
from ecs_compile.ecs.task_iam import add_task_roles
from ecs_compile.efs import add_efs_resources
from ecs_compile.elbv2 import expose_service
from ecs_compile.lookup_load_balancer import resolve_load_balancer_type
from ecs_compile.secrets import create_secret
from ecs_compile.storage import resolve_filesystems


class TemplateCompiler:
    """
    Class to compile one compose project into a ResourceGraph.

    :ivar ComposeProject project:
    :ivar dict filesystems: volume name to FileSystem ID, resolved before compiling
    :ivar str load_balancer_type: type of the existing load balancer, resolved before compiling
    :ivar NameAllocator names:
    """

    def __init__(
        self,
        project: ComposeProject,
        filesystems: dict = None,
        settings: CompilerSettings = None,
        load_balancer_type: str = None,
    ):
        self.project = project
        self.filesystems = filesystems if filesystems else {}
        self.load_balancer_type = load_balancer_type
        self.names = NameAllocator(
            capitalize=settings.capitalize_names if settings else False
        )

    def __repr__(self):
        return f"TemplateCompiler({self.project.name})"

    def compile(self) -> ResourceGraph:
        """
        Builds the ResourceGraph of the project.
        Secrets created in the template are bound to their resource, see ComposeSecret.bind_resource.

        :rtype: ResourceGraph
        :raises CompileBaseException: on any error. No partial graph is returned.
        """
        graph = ResourceGraph(
            f"ECS services of docker-compose project {self.project.name} - ecs-compile {__version__}"
        )
        resources = AwsResources(
            self.project, self.filesystems, self.load_balancer_type
        )
        ensure_resources(graph, self.project, resources, self.names)
        add_ec2_capacity(graph, self.project, resources)
        for secret in self.project.secrets.values():
            create_secret(graph, self.project, secret, self.names)
        add_log_group(graph, self.project)
        add_efs_resources(graph, self.project, resources, self.names)
        add_namespace(graph, self.project, resources)
        for service in self.project.services.values():
            self.add_service(graph, service, resources)
        graph.check_closure()
        LOG.info(f"{self.project.name} - compiled {len(graph)} resources")
        return graph

    def add_service(
        self, graph: ResourceGraph, service: ComposeService, resources: AwsResources
    ) -> None:
        """
        Adds all the resources of the service. The deployment configuration is resolved first, so that
        an invalid configuration fails before any resource of the service is created.
        """
        LOG.debug(f"services.{service.name} - compiling")
        deployment = define_deployment_configuration(service)
        exec_role, task_role = add_task_roles(graph, self.project, service, self.names)
        task_definition = graph.add(
            define_task_definition(
                self.project, service, resources, self.names, exec_role, task_role
            )
        )
        exposure = expose_service(graph, self.project, service, resources, self.names)
        depends_on = define_service_dependencies(
            self.project, service, resources, self.names, exposure
        )
        service_registry = add_service_registry(graph, service, self.names)
        graph.add(
            define_ecs_service(
                self.project,
                service,
                resources,
                self.names,
                task_definition,
                exposure,
                service_registry,
                deployment,
            ),
            depends_on=unique_ordered(depends_on),
        )
        add_autoscaling(graph, self.project, service, resources, self.names)


def convert(
    project: ComposeProject,
    settings: CompilerSettings = None,
    storage: EfsStorage = None,
    checker: Callable = check_compatibility,
    lookup: LookupLoadBalancer = None,
) -> ResourceGraph:
    """
    Checks the project, resolves its volumes FileSystems and existing load balancer, then compiles it.

    :param ComposeProject project:
    :param CompilerSettings settings:
    :param EfsStorage storage: to find or create the volumes FileSystems. Without, the FileSystems
        are created in the template.
    :param checker: function validating the project can be deployed, called before anything else
    :param LookupLoadBalancer lookup: to describe the existing load balancer. Without, its type is
        read from its ARN.
    :rtype: ResourceGraph
    """
    if checker:
        checker(project)
    filesystems = resolve_filesystems(project, storage)
    load_balancer_type = resolve_load_balancer_type(project, lookup)
    return TemplateCompiler(
        project, filesystems, settings, load_balancer_type=load_balancer_type
    ).compile()
