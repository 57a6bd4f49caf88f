class CdkConstants():

    ### NETWORK STACK OUTPUT NAMES ###
    VPC_ID = "vpcId"
    VPC_BUILD_SUBNET_ID = "vpcBuildSubnetId"
    BUILD_SECURITY_GROUP_ID = "buildSecurityGroupId"

    ### IMAGEBUILDER STACK PARAMETER NAMES ###
    CUSTOM_SUBNET_ID = "CustomSubnetId"
    CUSTOM_SECURITY_GROUP_ID = "CustomSecurityGroupId"
    BUILD_INSTANCE_TYPE = "BuildInstanceType"

    ### IMAGEBUILDER STACK CONDITION NAMES ###
    USE_CUSTOM_SUBNET_ID = "UseCustomSubnetId"

    ### IMAGEBUILDER STACK OUTPUT NAMES ###
    IMAGE_ARN = "imageArn"
    IMAGE_ID = "imageId"
    IMAGE_ID_PARAMETER_NAME = "imageIdParameterName"
    LOG_BUCKET_NAME = "logBucketName"
    EC2_INSTANCE_PROFILE_NAME = "ec2InstanceProfileName"
