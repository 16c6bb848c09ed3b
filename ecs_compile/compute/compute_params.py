#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and parameters of the EC2 capacity of the cluster.
"""

from ecs_compile.common.cfn_params import Parameter

HOST_ROLE_T = "EcsHostsRole"
HOST_PROFILE_T = "EcsHostsInstanceProfile"
HOSTS_SG_T = "EcsHostsSg"
LAUNCH_TEMPLATE_T = "LaunchTemplate"
AUTOSCALING_GROUP_T = "AutoScalingGroup"
CAPACITY_PROVIDER_T = "CapacityProvider"
CLUSTER_CAPACITY_PROVIDERS_T = "ClusterCapacityProviders"

COMPUTE_SETTINGS = "Compute Settings"

ECS_GPU_AMI_ID_T = "EcsGpuAmiId"
ECS_GPU_AMI_ID = Parameter(
    ECS_GPU_AMI_ID_T,
    group_label=COMPUTE_SETTINGS,
    Type="AWS::SSM::Parameter::Value<AWS::EC2::Image::Id>",
    Default="/aws/service/ecs/optimized-ami/amazon-linux-2/gpu/recommended/image_id",
    Description="ECS optimized AMI with GPU support for the EC2 hosts",
)

HOST_MANAGED_POLICIES = [
    "arn:aws:iam::aws:policy/service-role/AmazonEC2ContainerServiceforEC2Role"
]

# instance type, GPUs, vCPUs, memory in MiB. Ordered by size.
GPU_INSTANCE_TYPES = (
    ("g4dn.xlarge", 1, 4, 16384),
    ("g4dn.2xlarge", 1, 8, 32768),
    ("g4dn.4xlarge", 1, 16, 65536),
    ("g4dn.8xlarge", 1, 32, 131072),
    ("g4dn.16xlarge", 1, 64, 262144),
    ("g4dn.12xlarge", 4, 48, 196608),
    ("g4dn.metal", 8, 96, 393216),
)
