import aws_cdk as cdk
import pytest
from expects import equal, expect, have_keys

from utils.CdkUtils import CdkUtils


class TestCdkUtils:

    def test_project_settings(self):
        expect(CdkUtils.get_project_settings()).to(have_keys("imageBuilder", "dotnet", "logBucket", "network", "ssm"))

    def test_project_settings_from_file(self, tmp_path):
        settings_file = tmp_path / "cdk.json"
        settings_file.write_text('{"app": "python3 app.py", "projectSettings": {"ssm": {}}}')

        expect(CdkUtils.get_project_settings(str(settings_file))).to(equal({"ssm": {}}))

    def test_removal_policy(self):
        expect(CdkUtils.get_removal_policy("RETAIN")).to(equal(cdk.RemovalPolicy.RETAIN))
        expect(CdkUtils.get_removal_policy("destroy")).to(equal(cdk.RemovalPolicy.DESTROY))

    @pytest.mark.parametrize("version", ["0.0.1", "1.2.3", "10.0.0"])
    def test_valid_versions(self, version):
        expect(CdkUtils.validate_semantic_version(version, "component")).to(equal(version))

    @pytest.mark.parametrize("version", ["1", "1.0", "v1.0.0", "latest", ""])
    def test_invalid_versions(self, version):
        with pytest.raises(ValueError, match="Invalid version"):
            CdkUtils.validate_semantic_version(version, "component")

    def test_build_metadata_rejected(self):
        with pytest.raises(ValueError, match="Pre-release and build metadata"):
            CdkUtils.validate_semantic_version("1.0.0+build.1", "image recipe")
