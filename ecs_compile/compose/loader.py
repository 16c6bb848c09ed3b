#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to read, merge and render the docker-compose files.

Merging, environment variables interpolation and validation against the compose specification
are done by compose_x_render, the same way docker-compose config renders the files.
"""

from __future__ import annotations

from os import path

import yaml
from compose_x_render.compose_x_render import ComposeDefinition
from jsonschema.exceptions import ValidationError

from ecs_compile.common.logging import LOG
from ecs_compile.compose import ComposeProject
from ecs_compile.exceptions import ConfigurationError


def load_compose_files(files: list) -> dict:
    """
    Loads and merges the compose files, in order. ${VAR} values are interpolated from the
    environment, undefined variables are rendered empty.

    :param list[str] files:
    :rtype: dict
    :raises FileNotFoundError: if one of the files does not exist
    :raises ConfigurationError: if the files cannot be parsed, merged or are not valid compose content
    """
    if not files:
        raise ConfigurationError("At least one docker-compose file is required")
    for file_path in files:
        if not path.exists(file_path):
            raise FileNotFoundError(f"No compose file found at {file_path}")
        LOG.info(f"Loading compose file {file_path}")
    try:
        content = ComposeDefinition(list(files)).definition
    except yaml.YAMLError as error:
        raise ConfigurationError(f"{files} - invalid YAML: {error}") from error
    except ValidationError as error:
        raise ConfigurationError(
            f"{files} - invalid compose content at {list(error.absolute_path)}: {error.message}"
        ) from error
    except (TypeError, ValueError, AttributeError) as error:
        raise ConfigurationError(f"{files} - failed to render: {error}") from error
    if not isinstance(content, dict):
        raise ConfigurationError(f"{files} must define a mapping at the top level")
    return content


def load_project(name: str, files: list) -> ComposeProject:
    """
    Loads the compose files into a ComposeProject
    """
    working_dir = path.dirname(path.abspath(files[0])) if files else None
    return ComposeProject(name, load_compose_files(files), working_dir)
