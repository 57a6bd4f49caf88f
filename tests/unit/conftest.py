import copy

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from stacks.imagebuilder.image_builder import ImageBuilderStack
from stacks.network.network import NetworkStack
from utils.CdkUtils import CdkUtils

IMAGE_STACK = "UbuntuServer20WithNET5"
NETWORK_STACK = "UbuntuServer20WithNET5Network"
IMAGE_STACK_WITH_NETWORK = "UbuntuServer20WithNET5InNetwork"


@pytest.fixture(scope="session")
def project_settings():
    return CdkUtils.get_project_settings()


@pytest.fixture(scope="session")
def synth(project_settings):
    """Synthesizes the stacks in-process and returns their templates by stack name."""
    app = cdk.App()

    image_stack = ImageBuilderStack(app, IMAGE_STACK, project_settings=project_settings)

    network_stack = NetworkStack(app, NETWORK_STACK)
    image_stack_with_network = ImageBuilderStack(
        app,
        IMAGE_STACK_WITH_NETWORK,
        placement=network_stack.placement,
        project_settings=project_settings
    )

    return {
        stack.stack_name: Template.from_stack(stack).to_json()
        for stack in (image_stack, network_stack, image_stack_with_network)
    }


@pytest.fixture
def synth_with_settings(project_settings):
    """Synthesizes the image stack with overridden project settings."""

    def _synth(**overrides) -> dict:
        settings = copy.deepcopy(project_settings)
        for path, value in overrides.items():
            section, key = path.split("__")
            settings[section][key] = value
        app = cdk.App()
        stack = ImageBuilderStack(app, IMAGE_STACK, project_settings=settings)
        return Template.from_stack(stack).to_json()

    return _synth
