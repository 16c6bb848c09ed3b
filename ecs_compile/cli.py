# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_compile.
"""

import argparse
import sys

from boto3.session import Session

from ecs_compile import __version__
from ecs_compile.common.files import write_template
from ecs_compile.common.logging import LOG, set_log_level
from ecs_compile.common.settings import CompilerSettings
from ecs_compile.compiler import convert
from ecs_compile.compose.loader import load_project
from ecs_compile.exceptions import CompileBaseException
from ecs_compile.lookup_load_balancer import LookupLoadBalancer
from ecs_compile.storage import EfsStorage


def main_parser():
    """
    Console script for ecs_compile.
    """
    parser = argparse.ArgumentParser()
    cmd_parsers = parser.add_subparsers(
        dest=CompilerSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    base_command_parser.add_argument(
        "-f",
        "--docker-compose-file",
        dest=CompilerSettings.input_file_arg,
        required=True,
        help="Path to the Docker compose file. Repeat to merge several files, in order",
        action="append",
    )
    base_command_parser.add_argument(
        "-n",
        "-p",
        "--name",
        help="Name of your docker-compose project",
        required=True,
        type=str,
        dest=CompilerSettings.name_arg,
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write the template to. Defaults to current directory",
        type=str,
        dest=CompilerSettings.output_dir_arg,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=CompilerSettings.format_arg,
        choices=CompilerSettings.allowed_formats,
        default=CompilerSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=CompilerSettings.region_arg,
        help="Region to look up the volumes FileSystems and the load balancer in. "
        "Defaults to the region from config or environment vars",
    )
    base_command_parser.add_argument(
        "--offline",
        dest=CompilerSettings.offline_arg,
        action="store_true",
        default=False,
        help="Do not call AWS. The volumes FileSystems are created in the template "
        "and the existing load balancer type is read from its ARN",
    )
    base_command_parser.add_argument(
        "--capitalize-names",
        dest=CompilerSettings.capitalize_arg,
        action="store_true",
        default=False,
        help="Upper-case the first character of the compose names in the resources logical names",
    )
    base_command_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    for command in CompilerSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"], help=command["help"], parents=[base_command_parser]
        )
    for command in CompilerSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def render(settings: CompilerSettings) -> str:
    """
    Loads, checks and compiles the compose files, then writes the template.

    :return: path to the template file
    """
    project = load_project(settings.name, settings.input_files)
    storage = None
    lookup = None
    if not settings.offline:
        session = Session(region_name=settings.region)
        if project.volumes:
            storage = EfsStorage(session)
        if project.extensions.loadbalancer:
            lookup = LookupLoadBalancer(session)
    graph = convert(project, settings, storage, lookup=lookup)
    return write_template(graph, settings)


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit()
    args = parser.parse_args()
    if args.command == "version":
        print(__version__)
        return 0
    if args.loglevel and not set_log_level(args.loglevel):
        LOG.warning(f"Log level value {args.loglevel} is invalid")
    LOG.debug(args)
    try:
        settings = CompilerSettings(**vars(args))
        render(settings)
    except (CompileBaseException, FileNotFoundError) as error:
        LOG.error(error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
