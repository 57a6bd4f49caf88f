#!/usr/bin/env python3
import os

import aws_cdk as cdk

from stacks.imagebuilder.image_builder import ImageBuilderStack
from stacks.network.network import NetworkStack
from utils.CdkUtils import CdkUtils

app = cdk.App()

config = CdkUtils.get_project_settings()

# If you don't specify 'env', this stack will be environment-agnostic.
# Account/Region-dependent features and context lookups will not work,
# but a single synthesized template can be deployed anywhere.
env = cdk.Environment(account=os.getenv('CDK_DEFAULT_ACCOUNT'), region=os.getenv('CDK_DEFAULT_REGION'))

placement = None
if config["network"]["createVpc"]:
    network_stack = NetworkStack(
        app,
        'UbuntuServer20WithNET5Network',
        env=env
    )
    placement = network_stack.placement

ImageBuilderStack(
    app,
    'UbuntuServer20WithNET5',
    placement=placement,
    env=env
)

app.synth()
