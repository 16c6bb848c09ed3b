# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Constants bound to ecs_compile.ecs
"""

FARGATE_MODES = {
    256: [2**i for i in [9, 10, 11]],
    512: [(2**10) * i for i in range(1, 5)],
    1024: [(2**10) * i for i in range(2, 9)],
    2048: [(2**10) * i for i in range(4, 17)],
    4096: [(2**10) * i for i in range(8, 33)],
    8192: [(2**10) * i for i in range(16, 61, 4)],
    16384: [(2**10) * i for i in range(32, 121, 8)],
}
DEFAULT_FARGATE_CPU = 256
DEFAULT_FARGATE_RAM = 512

FARGATE = "FARGATE"
EC2 = "EC2"
FARGATE_PLATFORM_VERSION = "1.4.0"
NETWORK_MODE = "awsvpc"

DEPLOYMENT_CONTROLLER = "ECS"
PROPAGATE_TAGS = "SERVICE"
SCHEDULING_STRATEGY = "REPLICA"

DEFAULT_MIN_PERCENT = 100
DEFAULT_MAX_PERCENT = 200

ECS_TASKS_PRINCIPAL = "ecs-tasks"
EXECUTION_ROLE_MANAGED_POLICIES = [
    "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy",
    "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryReadOnly",
]
SECRETS_ACCESS_ACTIONS = [
    "secretsmanager:GetSecretValue",
    "ssm:GetParameters",
    "kms:Decrypt",
]

LOGS_DRIVER = "awslogs"
EFS_VOLUME_DRIVER_PORT = 2049
