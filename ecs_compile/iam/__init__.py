# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM helpers shared by the builders creating roles.
"""

import re

from troposphere import Sub

from ecs_compile.exceptions import ConfigurationError

POLICY_RE = re.compile(
    r"((^([a-zA-Z0-9-_./]+)$)|(^(arn:aws:iam::(aws|\d{12}):policy/)[a-zA-Z0-9-_./]+$))"
)
POLICY_DOCUMENT_VERSION = "2012-10-17"


def service_role_trust_policy(service_name: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service

    :param str service_name: name of the AWS service principal, i.e. ecs-tasks
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [Sub(f"{service_name}.${{AWS::URLSuffix}}")]},
        "Action": ["sts:AssumeRole"],
        "Condition": {"Bool": {"aws:SecureTransport": "true"}},
    }
    return {"Version": POLICY_DOCUMENT_VERSION, "Statement": [statement]}


def define_iam_policy(policy: str):
    """
    From input, determines if the policy string is the full ARN or just the name of the policy.
    If just the name, assumes it is from the account itself, and adds the necessary ARN prefix.

    :param str policy:
    :return: the policy ARN
    :rtype: str or troposphere.Sub
    """
    if not isinstance(policy, str) or not POLICY_RE.match(policy):
        raise ConfigurationError(
            f"policy name {policy} does not match expected regexp", POLICY_RE.pattern
        )
    if not policy.startswith("arn:aws:iam::"):
        return Sub(f"arn:${{AWS::Partition}}:iam::${{AWS::AccountId}}:policy/{policy}")
    return policy


def policy_document(statements: list) -> dict:
    return {"Version": POLICY_DOCUMENT_VERSION, "Statement": statements}
