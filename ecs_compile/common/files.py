# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to write the compiled template to the local filesystem.
"""

from __future__ import annotations

from os import makedirs, path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_compile.common.graph import ResourceGraph
    from ecs_compile.common.settings import CompilerSettings

from ecs_compile.common.logging import LOG


def render_template(graph: ResourceGraph, template_format: str) -> str:
    if template_format == "yaml":
        return graph.to_yaml()
    return graph.to_json()


def write_template(graph: ResourceGraph, settings: CompilerSettings) -> str:
    """
    Writes the template in the output directory, in the settings format.

    :return: the path to the file written
    :rtype: str
    """
    if not path.exists(settings.output_dir):
        makedirs(settings.output_dir)
    file_path = path.abspath(path.join(settings.output_dir, settings.output_file))
    with open(file_path, "w") as template_fd:
        template_fd.write(render_template(graph, settings.format))
    LOG.info(f"Template written to {file_path}")
    return file_path
