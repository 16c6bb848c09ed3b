#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
EC2 compute of the services Fargate cannot run, i.e. services requiring GPUs.
"""
