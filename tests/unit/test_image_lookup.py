import datetime

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber
from expects import be_false, be_none, be_true, equal, expect

from client.image_lookup import ImageLookup
from client.image_lookup_utils import ImageLookupUtils
from utils.CdkConstants import CdkConstants

REGION = "us-east-1"
STACK_NAME = "UbuntuServer20WithNET5"
PARAMETER_NAME = "/Test/Images/UbuntuServer20WithNET5"
IMAGE_ARN = "arn:aws:imagebuilder:us-east-1:123456789012:image/ubuntuserver20net5/0.0.1/1"


def stack_response(outputs: dict) -> dict:
    return {
        "Stacks": [
            {
                "StackName": STACK_NAME,
                "CreationTime": datetime.datetime(2021, 5, 1),
                "StackStatus": "CREATE_COMPLETE",
                "Outputs": [
                    {"OutputKey": key, "OutputValue": value} for key, value in outputs.items()
                ]
            }
        ]
    }


def image_response(status: str, amis: list, reason: str = None) -> dict:
    state = {"status": status}
    if reason:
        state["reason"] = reason
    return {
        "image": {
            "arn": IMAGE_ARN,
            "state": state,
            "outputResources": {"amis": amis}
        }
    }


@pytest.fixture
def aws():
    ssm_client = boto3.client("ssm", region_name=REGION)
    imagebuilder_client = boto3.client("imagebuilder", region_name=REGION)
    cfn_resource = boto3.resource("cloudformation", region_name=REGION)

    stubbers = {
        "ssm": Stubber(ssm_client),
        "imagebuilder": Stubber(imagebuilder_client),
        "cloudformation": Stubber(cfn_resource.meta.client),
    }
    for stubber in stubbers.values():
        stubber.activate()

    lookup = ImageLookup(
        region=REGION,
        ssm_client=ssm_client,
        imagebuilder_client=imagebuilder_client,
        cfn_resource=cfn_resource
    )

    yield lookup, stubbers

    for stubber in stubbers.values():
        stubber.deactivate()


def stub_outputs(stubbers: dict) -> None:
    stubbers["cloudformation"].add_response(
        "describe_stacks",
        stack_response({
            CdkConstants.IMAGE_ARN: IMAGE_ARN,
            CdkConstants.IMAGE_ID_PARAMETER_NAME: PARAMETER_NAME
        }),
        {"StackName": STACK_NAME}
    )


def stub_parameter(stubbers: dict, value: str) -> None:
    stubbers["ssm"].add_response(
        "get_parameter",
        {"Parameter": {"Name": PARAMETER_NAME, "Type": "String", "Value": value}},
        {"Name": PARAMETER_NAME}
    )


class TestImageLookup:

    def test_get_published_image_id(self, aws):
        lookup, stubbers = aws
        stub_parameter(stubbers, "ami-0123456789abcdef0")

        expect(lookup.get_published_image_id(PARAMETER_NAME)).to(equal("ami-0123456789abcdef0"))

    def test_missing_parameter(self, aws):
        lookup, stubbers = aws
        stubbers["ssm"].add_client_error("get_parameter", service_error_code="ParameterNotFound")

        with pytest.raises(ValueError, match="does not exist"):
            lookup.get_published_image_id(PARAMETER_NAME)

    def test_other_ssm_errors_propagate(self, aws):
        lookup, stubbers = aws
        stubbers["ssm"].add_client_error("get_parameter", service_error_code="AccessDeniedException")

        with pytest.raises(ClientError):
            lookup.get_published_image_id(PARAMETER_NAME)

    def test_get_built_image(self, aws):
        lookup, stubbers = aws
        stubbers["imagebuilder"].add_response(
            "get_image",
            image_response("available", [{"region": REGION, "image": "ami-0123456789abcdef0"}]),
            {"imageBuildVersionArn": IMAGE_ARN}
        )

        built_image = lookup.get_built_image(IMAGE_ARN)

        expect(built_image.available).to(be_true)
        expect(built_image.ami_id(REGION)).to(equal("ami-0123456789abcdef0"))
        expect(built_image.ami_id("eu-west-1")).to(be_none)

    def test_verify_published_image(self, aws):
        lookup, stubbers = aws
        stub_outputs(stubbers)
        stubbers["imagebuilder"].add_response(
            "get_image",
            image_response("AVAILABLE", [{"region": REGION, "image": "ami-0123456789abcdef0"}]),
            {"imageBuildVersionArn": IMAGE_ARN}
        )
        stub_parameter(stubbers, "ami-0123456789abcdef0")

        expect(lookup.verify_published_image(STACK_NAME)).to(be_true)

    def test_verify_mismatched_parameter(self, aws):
        lookup, stubbers = aws
        stub_outputs(stubbers)
        stubbers["imagebuilder"].add_response(
            "get_image",
            image_response("AVAILABLE", [{"region": REGION, "image": "ami-0123456789abcdef0"}]),
            {"imageBuildVersionArn": IMAGE_ARN}
        )
        stub_parameter(stubbers, "ami-0fedcba9876543210")

        expect(lookup.verify_published_image(STACK_NAME)).to(be_false)

    def test_verify_failed_image(self, aws):
        lookup, stubbers = aws
        stub_outputs(stubbers)
        stubbers["imagebuilder"].add_response(
            "get_image",
            image_response("FAILED", [], reason="ValidateSDKInstall exited with 1"),
            {"imageBuildVersionArn": IMAGE_ARN}
        )

        expect(lookup.verify_published_image(STACK_NAME)).to(be_false)
        stubbers["ssm"].assert_no_pending_responses()

    def test_verify_missing_outputs(self, aws):
        lookup, stubbers = aws
        stubbers["cloudformation"].add_response(
            "describe_stacks",
            stack_response({}),
            {"StackName": STACK_NAME}
        )

        with pytest.raises(ValueError, match=CdkConstants.IMAGE_ARN):
            lookup.verify_published_image(STACK_NAME)


class TestImageLookupUtils:

    def test_get_cloudformation_outputs(self):
        cfn_resource = boto3.resource("cloudformation", region_name=REGION)
        with Stubber(cfn_resource.meta.client) as stubber:
            stubber.add_response(
                "describe_stacks",
                stack_response({CdkConstants.IMAGE_ID: "ami-0123456789abcdef0"}),
                {"StackName": STACK_NAME}
            )

            outputs = ImageLookupUtils.get_cloudformation_outputs(STACK_NAME, REGION, cfn_resource=cfn_resource)

        expect(outputs).to(equal({CdkConstants.IMAGE_ID: "ami-0123456789abcdef0"}))

    def test_missing_stack(self):
        cfn_resource = boto3.resource("cloudformation", region_name=REGION)
        with Stubber(cfn_resource.meta.client) as stubber:
            stubber.add_client_error("describe_stacks", service_error_code="ValidationError")

            with pytest.raises(ClientError):
                ImageLookupUtils.get_cloudformation_outputs(STACK_NAME, REGION, cfn_resource=cfn_resource)
