#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Load the JSON Schema specifications of the extension fields
"""

import json
from functools import lru_cache

from importlib_resources import files


@lru_cache(maxsize=None)
def load_spec(name: str) -> dict:
    """
    :param str name: name of the spec, i.e. x-aws-autoscaling
    :return: the JSON schema
    :rtype: dict
    """
    spec_file = files("ecs_compile").joinpath("specs").joinpath(f"{name}.spec.json")
    return json.loads(spec_file.read_text())
