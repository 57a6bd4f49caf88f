#!/usr/bin/env python

"""
    network.py:
    Optional CDK stack which creates a dedicated VPC and security group for
    the EC2 Image Builder build and test instances, for accounts without a
    default VPC.
"""

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2
from constructs import Construct
from stacks.imagebuilder.network_placement import BuildNetworkPlacement
from utils.CdkConstants import CdkConstants
from utils.CdkUtils import CdkUtils


class NetworkStack(cdk.Stack):
    """
        Optional CDK stack which creates a dedicated VPC and security group for
        the EC2 Image Builder build and test instances.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        config = CdkUtils.get_project_settings()

        ##################################################
        ## <START> Network prequisites
        ##################################################

        # build instances only need outbound access to download the
        # install script and reach the SSM and Image Builder endpoints
        vpc = ec2.Vpc(
            self,
            "imagebuilder-vpc",
            ip_addresses=ec2.IpAddresses.cidr(config["network"]["cidr"]),
            max_azs=1,
            nat_gateways=1,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="imagebuilder-subnet-public",
                    cidr_mask=config["network"]["subnetMask"],
                    subnet_type=ec2.SubnetType.PUBLIC
                ),
                ec2.SubnetConfiguration(
                    name="imagebuilder-subnet-private",
                    cidr_mask=config["network"]["subnetMask"],
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
                )
            ]
        )

        build_sg = ec2.SecurityGroup(
            self, "imagebuilder-sg",
            vpc=vpc,
            allow_all_outbound=True,
            description="Security group for the EC2 Image Builder build and test instances"
        )

        ##################################################
        ## </END> Network prequisites
        ##################################################


        ##################################################
        ## <START> CDK Outputs
        ##################################################

        cdk.CfnOutput(
            self,
            id="vpc-id",
            value=vpc.vpc_id,
            description="VPC Id"
        ).override_logical_id(CdkConstants.VPC_ID)

        cdk.CfnOutput(
            self,
            id="vpc-build-subnet-id-output",
            value=vpc.private_subnets[0].subnet_id,
            description="VPC Subnet Id used by the image build instances"
        ).override_logical_id(CdkConstants.VPC_BUILD_SUBNET_ID)

        cdk.CfnOutput(
            self,
            id="build-security-group-id-output",
            value=build_sg.security_group_id,
            description="Security Group Id used by the image build instances"
        ).override_logical_id(CdkConstants.BUILD_SECURITY_GROUP_ID)

        ##################################################
        ## </END> CDK Outputs
        ##################################################


        ##################################################
        ## <START> Export values for consumption
        ## by other stacks
        ##################################################

        self.vpc = vpc
        self.placement = BuildNetworkPlacement(
            subnet_id=vpc.private_subnets[0].subnet_id,
            security_group_ids=[build_sg.security_group_id]
        )

        ##################################################
        ## </END> Export values for consumption
        ## by other stacks
        ##################################################
