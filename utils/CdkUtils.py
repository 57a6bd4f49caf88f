import json
import os
from typing import Optional

import aws_cdk as cdk
import semver
from jsii.python import classproperty

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

_REMOVAL_POLICIES = {
    "destroy": cdk.RemovalPolicy.DESTROY,
    "retain": cdk.RemovalPolicy.RETAIN,
}


class CdkUtils():

    @classproperty
    def stack_prefix(self) -> str:
        return "ec2-imagebuilder-ubuntu-dotnet"

    @staticmethod
    def get_project_settings(filename: Optional[str] = None) -> dict:
        if filename is None:
            filename = os.path.join(_PROJECT_ROOT, "cdk.json")
        with open(filename, 'r') as cdk_json:
            data = cdk_json.read()
        return json.loads(data).get("projectSettings")

    @staticmethod
    def get_removal_policy(name: str) -> cdk.RemovalPolicy:
        """Maps a removal policy name from cdk.json to the CDK enum."""
        try:
            return _REMOVAL_POLICIES[str(name).lower()]
        except KeyError:
            raise ValueError(
                f"Unsupported removal policy '{name}'. " +
                f"Expected one of: {', '.join(sorted(_REMOVAL_POLICIES))}"
            ) from None

    @staticmethod
    def validate_semantic_version(version: str, resource: str) -> str:
        """
            Image Builder components and recipes only accept plain
            <major>.<minor>.<patch> versions, without pre-release or build parts.
        """
        try:
            parsed = semver.Version.parse(version)
        except (TypeError, ValueError):
            raise ValueError(
                f"Invalid version '{version}' for {resource}. " +
                "Expected <major>.<minor>.<patch>, e.g. 1.0.0"
            ) from None

        if parsed.prerelease or parsed.build:
            raise ValueError(
                f"Invalid version '{version}' for {resource}. " +
                "Pre-release and build metadata are not supported by EC2 Image Builder"
            )

        return str(parsed)
