# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Docker compose integration related function, wrapping transformation to Container definition.
"""

import re

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_compile.common import clpow2, nxtpow2
from ecs_compile.common.logging import LOG
from ecs_compile.ecs.ecs_params import (
    DEFAULT_FARGATE_CPU,
    DEFAULT_FARGATE_RAM,
    FARGATE_MODES,
)
from ecs_compile.exceptions import ConfigurationError

NUMBERS_REG = r"[^0-9.]"
MINIMUM_SUPPORTED = 4


def import_time_values_to_seconds(time_string, as_tuple=False):
    """
    Function to parse strings with h/m/s

    :param str time_string:
    :param bool as_tuple: Whether or not return a tuple (hours, minutes, seconds)
    :return: The number of seconds or tuple of time breakdown as ints
    :rtype: int, tuple(int, int, int)
    """
    time_re = re.compile(r"(?P<hours>\d+h)?(?P<minutes>\d+m)?(?P<seconds>\d+s)?$")
    parts = time_re.match(str(time_string))
    if not parts or not any(t for t in parts.groups()):
        raise ConfigurationError(
            f"The time provided {time_string} does not match the expected pattern {time_re.pattern}"
        )
    hours, minutes, seconds = [
        int(re.sub(r"[^\d]", "", value)) if value else 0
        for value in (
            parts.group("hours"),
            parts.group("minutes"),
            parts.group("seconds"),
        )
    ]
    if as_tuple:
        return hours, minutes, seconds
    return seconds + (60 * minutes) + (60 * 60 * hours)


def handle_bytes_units(value, factor):
    """
    Function to handle KB use-case
    """
    amount = float(re.sub(NUMBERS_REG, "", value))
    if factor == pow(2, 10):
        unit = "KBytes"
    elif factor == pow(pow(2, 10), 2):
        unit = "Bytes"
    else:
        raise ValueError(
            "Factor is not valid.",
            factor,
            "Must be one of",
            [pow(2, 10), pow(pow(2, 10), 2)],
        )
    if amount < (MINIMUM_SUPPORTED * factor):
        LOG.warning(
            f"You set unit to {unit} and value is lower than {MINIMUM_SUPPORTED}MB. "
            "Setting to minimum supported by Docker"
        )
        return MINIMUM_SUPPORTED
    return int(amount / factor)


def set_memory_to_mb(value) -> int:
    """
    Returns the value of MB. If no unit set, assuming MB

    :param value: the string value
    :rtype: int
    """
    if isinstance(value, (int, float)):
        return int(value)
    b_pat = re.compile(r"(^[0-9.]+(b|B)$)")
    kb_pat = re.compile(r"(^[0-9.]+(k|kb|kB|Kb|K|KB)$)")
    mb_pat = re.compile(r"(^[0-9.]+(m|mb|mB|Mb|M|MB)?$)")
    gb_pat = re.compile(r"(^[0-9.]+(g|gb|gB|Gb|G|GB)$)")
    value = str(value).strip()
    if b_pat.findall(value):
        final_amount = handle_bytes_units(value, pow(pow(2, 10), 2))
    elif kb_pat.findall(value):
        final_amount = handle_bytes_units(value, pow(2, 10))
    elif mb_pat.findall(value):
        final_amount = int(float(re.sub(NUMBERS_REG, "", value)))
    elif gb_pat.findall(value):
        final_amount = int(float(re.sub(NUMBERS_REG, "", value)) * pow(2, 10))
    else:
        raise ConfigurationError(f"Could not parse {value} to units")
    LOG.debug(f"Computed {value} into {final_amount}MB")
    return int(final_amount)


def find_closest_ram_config(ram, ram_range):
    """
    Function to find the closest RAM configuration

    :param int ram: amount of RAM we are trying to match up
    :param list ram_range: List of possible values for Fargate
    :return: the closest amount of RAM.
    :rtype: int
    """
    if ram >= ram_range[-1]:
        return ram_range[-1]
    elif ram <= ram_range[0]:
        return ram_range[0]
    for ram_value in ram_range:
        if ram <= ram_value:
            return ram_value
    return ram_range[-1]


def find_closest_fargate_configuration(cpu, ram):
    """
    Function to get the closest Fargate CPU / RAM Configuration out of a CPU and RAM combination.

    :param int cpu: CPU units for the Task Definition
    :param int ram: RAM in MB for the Task Definition
    :return: the Fargate CPU and RAM
    :rtype: tuple(int, int)
    """
    fargate_cpus = sorted(FARGATE_MODES.keys())
    fargate_cpu = clpow2(cpu)
    if fargate_cpu < cpu:
        fargate_cpu = nxtpow2(cpu)
    if fargate_cpu not in fargate_cpus:
        LOG.warning(f"Value {cpu} is not valid for Fargate. Valid modes: {fargate_cpus}")
        if fargate_cpu < fargate_cpus[0]:
            fargate_cpu = fargate_cpus[0]
        elif fargate_cpu > fargate_cpus[-1]:
            fargate_cpu = fargate_cpus[-1]
    fargate_ram = find_closest_ram_config(ram, FARGATE_MODES[fargate_cpu])
    return fargate_cpu, fargate_ram


def define_fargate_compute(limits: dict) -> tuple:
    """
    Defines the task CPU and RAM from the deploy.resources.limits of the service.

    :param dict limits:
    :return: the Fargate CPU units and RAM in MB
    :rtype: tuple(int, int)
    """
    if not limits or not (keyisset("cpus", limits) or keyisset("memory", limits)):
        return DEFAULT_FARGATE_CPU, DEFAULT_FARGATE_RAM
    cpus = set_else_none("cpus", limits, None)
    memory = set_else_none("memory", limits, None)
    try:
        cpu_units = int(float(cpus) * 1024) if cpus else DEFAULT_FARGATE_CPU
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"cpus {cpus} is not a valid number") from error
    if cpu_units < 1:
        raise ConfigurationError(
            f"cpus {cpus} is lower than one CPU unit (1/1024 of a vCPU)"
        )
    ram = set_memory_to_mb(memory) if memory else DEFAULT_FARGATE_RAM
    return find_closest_fargate_configuration(cpu_units, ram)


def import_healthcheck(healthcheck: dict) -> dict:
    """
    Transforms the docker-compose healthcheck into the ECS container HealthCheck properties

    :param dict healthcheck:
    :rtype: dict
    """
    test = healthcheck["test"]
    if isinstance(test, str):
        test = ["CMD-SHELL", test]
    props = {"Command": [str(part) for part in test]}
    for key, prop_name in (
        ("interval", "Interval"),
        ("timeout", "Timeout"),
        ("start_period", "StartPeriod"),
    ):
        if keyisset(key, healthcheck):
            props[prop_name] = import_time_values_to_seconds(healthcheck[key])
    if keyisset("retries", healthcheck):
        props["Retries"] = int(healthcheck["retries"])
    return props
