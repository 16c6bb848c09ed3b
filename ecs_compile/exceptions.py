#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ecs-compile
"""


class CompileBaseException(Exception):
    """
    Top class for ecs-compile Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class ConfigurationError(CompileBaseException):
    """
    Exception when the deploy / extension settings of the compose project are malformed or contradict
    each other, i.e. update_config.parallelism is set but deploy.replicas is not.
    """


class SecretFileError(CompileBaseException, IOError):
    """
    Exception when the file backing a compose secret cannot be read
    """


class ProvisioningError(CompileBaseException):
    """
    Exception when looking up or creating the EFS FileSystem for a volume failed
    """


class IncompatibleProjectError(CompileBaseException):
    """
    Exception when the compose project uses features that cannot be translated to ECS
    """


class DuplicateResourceError(CompileBaseException, ValueError):
    """
    Exception when two resources are added to the template with the same logical name
    """


class DanglingDependencyError(CompileBaseException):
    """
    Exception when a resource DependsOn a logical name that is not in the template
    """
