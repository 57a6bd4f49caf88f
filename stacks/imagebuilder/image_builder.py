#!/usr/bin/env python

"""
    image_builder.py:
    CDK stack which uses EC2 Image Builder to build an Ubuntu Server 20 AMI
    with the latest .NET 5 preview installed, and publishes the resulting
    AMI id to SSM Parameter Store.
"""

from typing import Optional

import aws_cdk as cdk
from aws_cdk import aws_iam as iam
from aws_cdk import aws_imagebuilder as imagebuilder
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_ssm as ssm
from constructs import Construct
from stacks.imagebuilder.components.dotnet import dotnet_recipe
from stacks.imagebuilder.network_placement import BuildNetworkPlacement
from stacks.imagebuilder.recipe import Recipe
from utils.CdkConstants import CdkConstants
from utils.CdkUtils import CdkUtils

INSTANCE_ROLE_PATH = "/executionServiceEC2Role/"


class ImageBuilderStack(cdk.Stack):
    """
        CDK stack which uses EC2 Image Builder to build an Ubuntu Server 20 AMI
        with the latest .NET 5 preview installed, and publishes the resulting
        AMI id to SSM Parameter Store.

        When no network placement is given the build instances go to the
        default VPC, unless a custom subnet and security groups are passed
        as template parameters at deploy time.

        The recipe defaults to the .NET recipe described by the project settings.
    """

    def __init__(
            self,
            scope: Construct,
            construct_id: str,
            placement: Optional[BuildNetworkPlacement] = None,
            project_settings: Optional[dict] = None,
            recipe: Optional[Recipe] = None,
            **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        config = project_settings or CdkUtils.get_project_settings()

        tags = {
            "project": CdkUtils.stack_prefix
        }

        ##################################################
        ## <START> Access & logging
        ##################################################

        # S3 bucket for the image build logs.
        # With the destroy removal policy the bucket must be emptied before the stack is deleted.
        log_bucket = s3.Bucket(
            self,
            "ImageBuilderLogBucket",
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            public_read_access=False,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            removal_policy=CdkUtils.get_removal_policy(config["logBucket"]["removalPolicy"])
        )

        # below role is assumed by the ImageBuilder ec2 build and test instances
        instance_role = iam.Role(
            self,
            "InstanceRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            description="Role to be used by instance during image build.",
            path=INSTANCE_ROLE_PATH,
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("AmazonSSMManagedInstanceCore"),
                iam.ManagedPolicy.from_aws_managed_policy_name("EC2InstanceProfileForImageBuilder")
            ]
        )

        # write only access to the log bucket
        logging_policy = iam.Policy(
            self,
            "InstanceRoleLoggingPolicy",
            policy_name="ImageBuilderLogBucketPolicy",
            roles=[instance_role],
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["s3:PutObject"],
                    resources=[log_bucket.arn_for_objects("*")]
                )
            ]
        )

        # create an instance profile to attach the role
        instance_profile = iam.CfnInstanceProfile(
            self,
            "InstanceProfile",
            path=INSTANCE_ROLE_PATH,
            roles=[instance_role.role_name]
        )

        ##################################################
        ## </END> Access & logging
        ##################################################


        ##################################################
        ## <START> Build infrastructure
        ##################################################

        default_instance_types = config["imageBuilder"]["instanceTypes"]
        if not default_instance_types:
            raise ValueError("imageBuilder.instanceTypes must contain at least one instance type")

        build_instance_type = cdk.CfnParameter(
            self,
            CdkConstants.BUILD_INSTANCE_TYPE,
            type="CommaDelimitedList",
            default=",".join(default_instance_types),
            description=(
                "Comma-delimited list of one or more instance types to select from when building " +
                "the image. Image Builder will select a type based on availability."
            )
        )

        infra_config = imagebuilder.CfnInfrastructureConfiguration(
            self,
            "InfrastructureConfiguration",
            name=config["imageBuilder"]["infrastructureConfigurationName"],
            instance_profile_name=instance_profile.ref,
            instance_types=build_instance_type.value_as_list,
            logging=imagebuilder.CfnInfrastructureConfiguration.LoggingProperty(
                s3_logs=imagebuilder.CfnInfrastructureConfiguration.S3LogsProperty(
                    s3_bucket_name=log_bucket.bucket_name,
                    s3_key_prefix=cdk.Fn.join("-", [config["logBucket"]["keyPrefix"], cdk.Aws.STACK_NAME])
                )
            ),
            terminate_instance_on_failure=config["imageBuilder"].get("terminateInstanceOnFailure", True),
            resource_tags=tags,
            tags=tags,
            **self._network_properties(placement)
        )
        # infrastructure need to wait for instance profile and log permissions before beginning deployment.
        infra_config.add_resource_dependency(instance_profile)
        infra_config.node.add_dependency(logging_policy)

        ##################################################
        ## </END> Build infrastructure
        ##################################################


        ##################################################
        ## <START> Components & recipe
        ##################################################

        recipe = recipe or dotnet_recipe(config)

        components = {}
        for recipe_component in recipe.components:
            components[recipe_component.name] = imagebuilder.CfnComponent(
                self,
                f"{recipe_component.name}Component",
                name=recipe_component.component_name,
                version=recipe_component.version,
                description=recipe_component.document.description,
                change_description=recipe_component.change_description,
                platform="Linux",
                data=recipe_component.document.to_yaml(),
                tags=tags
            )

        image_recipe = imagebuilder.CfnImageRecipe(
            self,
            "ImageRecipe",
            name=recipe.name,
            version=recipe.version,
            parent_image=cdk.Fn.sub(
                "arn:${AWS::Partition}:imagebuilder:${AWS::Region}:aws:image/" + recipe.parent_image
            ),
            components=[
                imagebuilder.CfnImageRecipe.ComponentConfigurationProperty(
                    component_arn=components[recipe_component.name].attr_arn
                )
                for recipe_component in recipe.components
            ],
            tags=tags
        )

        ##################################################
        ## </END> Components & recipe
        ##################################################


        ##################################################
        ## <START> Image & publication
        ##################################################

        # the stack resource completes only when the image is built, validated and tested
        image = imagebuilder.CfnImage(
            self,
            "Image",
            image_recipe_arn=image_recipe.attr_arn,
            infrastructure_configuration_arn=infra_config.attr_arn,
            image_tests_configuration=imagebuilder.CfnImage.ImageTestsConfigurationProperty(
                image_tests_enabled=True,
                timeout_minutes=config["imageBuilder"]["imageTestsTimeoutMinutes"]
            ),
            tags=tags
        )

        image_id_parameter = ssm.StringParameter(
            self,
            "ImageIdParameter",
            parameter_name=config["ssm"]["imageIdParameterName"],
            string_value=image.attr_image_id,
            description=config["ssm"].get(
                "imageIdParameterDescription",
                f"Image Id for {recipe.name} built by EC2 Image Builder"
            )
        )

        ##################################################
        ## </END> Image & publication
        ##################################################


        ##################################################
        ## <START> CDK Outputs
        ##################################################

        cdk.CfnOutput(
            self,
            id="image-arn-output",
            value=image.attr_arn,
            description="EC2 Image Builder image build version ARN"
        ).override_logical_id(CdkConstants.IMAGE_ARN)

        cdk.CfnOutput(
            self,
            id="image-id-output",
            value=image.attr_image_id,
            description="AMI Id of the built image"
        ).override_logical_id(CdkConstants.IMAGE_ID)

        cdk.CfnOutput(
            self,
            id="image-id-parameter-name-output",
            value=image_id_parameter.parameter_name,
            description="SSM Parameter holding the AMI Id of the built image"
        ).override_logical_id(CdkConstants.IMAGE_ID_PARAMETER_NAME)

        cdk.CfnOutput(
            self,
            id="log-bucket-name-output",
            value=log_bucket.bucket_name,
            description="S3 Bucket receiving the EC2 Image Builder logs"
        ).override_logical_id(CdkConstants.LOG_BUCKET_NAME)

        cdk.CfnOutput(
            self,
            id="ec2-instance-profile-name-output",
            value=instance_profile.ref,
            description="EC2 Instance Profile used by the build instances"
        ).override_logical_id(CdkConstants.EC2_INSTANCE_PROFILE_NAME)

        ##################################################
        ## </END> CDK Outputs
        ##################################################

        ##################################################
        ## <START> Export values for consumption
        ## by other stacks
        ##################################################

        self.recipe: Recipe = recipe
        self.image_arn = image.attr_arn
        self.image_id = image.attr_image_id
        self.image_id_parameter_name = image_id_parameter.parameter_name
        self.log_bucket_name = log_bucket.bucket_name

        ##################################################
        ## </END> Export values for consumption
        ## by other stacks
        ##################################################

    def _network_properties(self, placement: Optional[BuildNetworkPlacement]) -> dict:
        """
            SubnetId and SecurityGroupIds for the infrastructure configuration.

            With a concrete placement the ids are set directly. Otherwise both
            properties are bound to template parameters through the UseCustomSubnetId
            condition and resolve to AWS::NoValue when no subnet is supplied, which
            removes them from the resource instead of sending empty values.
        """
        if placement is not None:
            return placement.to_infrastructure_properties()

        custom_subnet_id = cdk.CfnParameter(
            self,
            CdkConstants.CUSTOM_SUBNET_ID,
            type="String",
            default="",
            description=(
                "If you do not have a default VPC, or want to use a different VPC, specify the ID " +
                "of a subnet in which to place the instance used to customize your EC2 AMI. " +
                "If not specified, a subnet from your default VPC will be used."
            )
        )

        custom_security_group_id = cdk.CfnParameter(
            self,
            CdkConstants.CUSTOM_SECURITY_GROUP_ID,
            type="CommaDelimitedList",
            default="",
            description=(
                "Required if you specified a custom subnet ID. Comma-delimited list of one or more " +
                "IDs of security groups belonging to the VPC to associate with the instance used " +
                "to customize your EC2 AMI."
            )
        )

        use_custom_subnet = cdk.Fn.condition_not(
            cdk.Fn.condition_equals(custom_subnet_id.value_as_string, "")
        )

        condition = cdk.CfnCondition(
            self,
            CdkConstants.USE_CUSTOM_SUBNET_ID,
            expression=use_custom_subnet
        )

        rule = cdk.CfnRule(
            self,
            "CustomSecurityGroupIdRequired",
            rule_condition=use_custom_subnet
        )
        rule.add_assertion(
            cdk.Fn.condition_not(
                cdk.Fn.condition_contains(custom_security_group_id.value_as_list, "")
            ),
            "CustomSecurityGroupId is required when CustomSubnetId is specified"
        )

        return {
            "subnet_id": cdk.Token.as_string(
                cdk.Fn.condition_if(
                    condition.logical_id,
                    custom_subnet_id.value_as_string,
                    cdk.Aws.NO_VALUE
                )
            ),
            "security_group_ids": cdk.Token.as_list(
                cdk.Fn.condition_if(
                    condition.logical_id,
                    custom_security_group_id.value_as_list,
                    cdk.Aws.NO_VALUE
                )
            )
        }
