#!/usr/bin/env python

"""
    image_lookup.py:
    Reads the AMI id published to SSM Parameter Store by the
    UbuntuServer20WithNET5 stack, and verifies it against the image
    built by EC2 Image Builder.
"""

import json
import logging

import boto3
from botocore.exceptions import ClientError

from client.image_lookup_utils import ImageLookupUtils
from utils.CdkConstants import CdkConstants

logger = logging.getLogger()
logger.setLevel(logging.DEBUG)

IMAGE_STATUS_AVAILABLE = "AVAILABLE"


class BuiltImage:
    """Details of an EC2 Image Builder image build version."""

    def __init__(self, arn: str, status: str, amis: list, reason: str = None) -> None:
        self.arn = arn
        self.status = status
        self.amis = amis
        self.reason = reason

    @property
    def available(self) -> bool:
        return self.status == IMAGE_STATUS_AVAILABLE

    def ami_id(self, region: str) -> str:
        """The AMI produced in the given region, or None."""
        for ami in self.amis:
            if ami.get('region') == region:
                return ami.get('image')
        return None

    def to_json(self) -> str:
        return json.dumps(
            {
                "arn": self.arn,
                "status": self.status,
                "reason": self.reason,
                "amis": self.amis
            }, indent=2
        )


class ImageLookup:
    """Looks up the published AMI id and the image it was produced by."""

    image_lookup_utils = ImageLookupUtils()

    def __init__(
            self,
            region: str,
            ssm_client=None,
            imagebuilder_client=None,
            cfn_resource=None
        ) -> None:
        self.region = region
        self.ssm_client = ssm_client or boto3.client('ssm', region_name=region)
        self.imagebuilder_client = imagebuilder_client or boto3.client('imagebuilder', region_name=region)
        self.cfn_resource = cfn_resource

    def get_published_image_id(self, parameter_name: str) -> str:
        try:
            response = self.ssm_client.get_parameter(Name=parameter_name)
        except ClientError as e:
            if e.response['Error']['Code'] == 'ParameterNotFound':
                error_msg = (
                    f"Parameter {parameter_name} does not exist in {self.region}. " +
                    "Has the image stack been deployed?"
                )
                logger.error(error_msg)
                raise ValueError(error_msg) from e
            raise

        image_id = response['Parameter']['Value']
        logger.debug(f"Parameter {parameter_name} == {image_id}")
        return image_id

    def get_stack_outputs(self, stack_name: str) -> dict:
        return self.image_lookup_utils.get_cloudformation_outputs(
            stack_name=stack_name,
            region=self.region,
            cfn_resource=self.cfn_resource
        )

    def get_built_image(self, image_arn: str) -> BuiltImage:
        response = self.imagebuilder_client.get_image(
            imageBuildVersionArn=image_arn
        )

        image = response['image']
        state = image.get('state', {})
        amis = image.get('outputResources', {}).get('amis', [])

        built_image = BuiltImage(
            arn=image['arn'],
            status=str(state.get('status', '')).upper(),
            amis=[{'region': ami.get('region'), 'image': ami.get('image')} for ami in amis],
            reason=state.get('reason')
        )
        logger.debug(built_image.to_json())
        return built_image

    def verify_published_image(self, stack_name: str) -> bool:
        """
            True when the image built by the stack is AVAILABLE and the
            published parameter holds the AMI it produced in this region.
        """
        outputs = self.get_stack_outputs(stack_name)

        for key in (CdkConstants.IMAGE_ARN, CdkConstants.IMAGE_ID_PARAMETER_NAME):
            if key not in outputs:
                raise ValueError(f"Stack {stack_name} has no output named {key}")

        built_image = self.get_built_image(outputs[CdkConstants.IMAGE_ARN])
        if not built_image.available:
            logger.error(
                f"Image {built_image.arn} is {built_image.status}: {built_image.reason}"
            )
            return False

        expected_ami_id = built_image.ami_id(self.region)
        published_ami_id = self.get_published_image_id(outputs[CdkConstants.IMAGE_ID_PARAMETER_NAME])

        if expected_ami_id is None or published_ami_id != expected_ami_id:
            logger.error(
                f"Published AMI id {published_ami_id} does not match " +
                f"the AMI {expected_ami_id} produced by {built_image.arn}"
            )
            return False

        logger.info(f"Published AMI id {published_ami_id} matches {built_image.arn}")
        return True
