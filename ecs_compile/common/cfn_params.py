# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Common parameters for CFN
Parameters are only added to the template when the compose project does not define
the matching x-aws setting, i.e. x-aws-vpc.
"""

from troposphere import Parameter as CfnParameter

VPC_TYPE = "AWS::EC2::VPC::Id"
SUBNETS_TYPE = "List<AWS::EC2::Subnet::Id>"

VPC_SETTINGS = "VPC Settings"


class Parameter(CfnParameter):
    """
    Class to extend the default Parameter behaviour
    """

    def __init__(
        self, title, return_value=None, group_label=None, label=None, **kwargs
    ):
        self.return_value = return_value
        self.group_label = group_label if group_label else "Uncategorized parameters"
        self.label = label
        super().__init__(title, **kwargs)


VPC_ID_T = "VpcId"
VPC_ID = Parameter(
    VPC_ID_T,
    group_label=VPC_SETTINGS,
    Type=VPC_TYPE,
    Description="VPC to deploy the services into",
)

SUBNETS_T = "SubnetIds"
SUBNETS = Parameter(
    SUBNETS_T,
    group_label=VPC_SETTINGS,
    Type=SUBNETS_TYPE,
    Description="Subnets to deploy the services and load balancer into",
)
