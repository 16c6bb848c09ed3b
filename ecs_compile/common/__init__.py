# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Most commonly used functions shared across all modules.
"""

from __future__ import annotations

import re
from math import ceil, log

NONALPHANUM = re.compile(r"([^a-zA-Z\d]+)")

COMPOSE_PROJECT_TAG = "com.docker.compose.project"
COMPOSE_SERVICE_TAG = "com.docker.compose.service"
COMPOSE_VOLUME_TAG = "com.docker.compose.volume"
COMPOSE_NETWORK_TAG = "com.docker.compose.network"


def clpow2(x):
    """
    Function to return the closest power of two from given x

    :param x: Number to look the closest power of two for

    :returns: int() closest power of two
    """
    return pow(2, int(log(x, 2) + 0.5))


def nxtpow2(x):
    """Function to find the next power of two from given x number

    :param x: number to look for the next power of two

    :returns: next power of two number
    """
    return int(pow(2, ceil(log(x, 2))))


def unique_ordered(values: list) -> list:
    """
    Removes duplicates from a list, keeping the first occurrence order.

    :param list values:
    :rtype: list
    """
    found = []
    for value in values:
        if value not in found:
            found.append(value)
    return found
