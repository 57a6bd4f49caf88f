#!/usr/bin/env python

"""
    dotnet.py:
    Component which downloads and installs the latest .NET preview on Linux.
    The validate phase checks the runtime and SDK versions on the build instance,
    the test phase creates a sample console project on an instance launched
    from the finished image.
"""

from stacks.imagebuilder.component_document import (PHASE_BUILD, PHASE_TEST,
                                                    PHASE_VALIDATE,
                                                    ComponentConstant,
                                                    ComponentDocument,
                                                    ComponentPhase,
                                                    ComponentStep)
from stacks.imagebuilder.recipe import Recipe, RecipeComponent
from utils.CdkUtils import CdkUtils

DEFAULT_INSTALL_SCRIPT_SOURCE = "https://aka.ms/install-dotnet-preview"
DEFAULT_VERSION = "5.0"

SAMPLE_PROJECT_NAME = "sample"

VALIDATE_RUNTIME_SCRIPT = """VERSION='{{ Version }}'
echo "Invoking command: dotnet --list-runtimes | grep \\"^Microsoft.NETCore.App $VERSION\\""
EXISTS=$(dotnet --list-runtimes | grep "^Microsoft.NETCore.App $VERSION")
if [[ $? == 0 ]]; then
  echo "Found .NET runtime version $VERSION. Proceeding."
else
  echo "Unable to find .NET runtime version $VERSION. Failing build."
  exit 1
fi
"""

VALIDATE_SDK_SCRIPT = """VERSION='{{ Version }}'
echo "Invoking command: dotnet --list-sdks | grep \\"^$VERSION\\""
EXISTS=$(dotnet --list-sdks | grep "^$VERSION")
if [[ $? == 0 ]]; then
  echo "Found .NET SDK version $VERSION. Proceeding."
else
  echo "Unable to find .NET SDK version $VERSION. Failing build."
  exit 1
fi
"""

VALIDATE_SAMPLE_SCRIPT = """FILE={{ test.InstallFolder.outputs.stdout }}/%(project)s/%(project)s.csproj
if [ -e $FILE ]; then
  echo "Found generated sample project. Proceeding."
else
  echo "Generated sample project '$FILE' does not exist. Failing test."
  exit 1
fi
""" % {"project": SAMPLE_PROJECT_NAME}


def install_dotnet_document(
        install_script_source: str = DEFAULT_INSTALL_SCRIPT_SOURCE,
        version: str = DEFAULT_VERSION
    ) -> ComponentDocument:

    build_folder = "{{ build.InstallFolder.outputs.stdout }}"
    test_folder = "{{ test.InstallFolder.outputs.stdout }}"

    build = ComponentPhase(PHASE_BUILD, [
        ComponentStep("InstallFolder", "ExecuteBash", {
            "commands": ['echo "$HOME/dotnet_install"']
        }),
        ComponentStep("CreateInstallFolder", "CreateFolder", [
            {"path": build_folder}
        ]),
        ComponentStep("DownloadInstallScript", "WebDownload", [
            {
                "source": "{{ InstallScriptSource }}",
                "destination": f"{build_folder}/install.sh"
            }
        ]),
        ComponentStep("InstallNET5", "ExecuteBash", {
            "commands": [
                "set -e",
                f"cd {build_folder}",
                "sudo bash install.sh"
            ]
        }),
        ComponentStep("Cleanup", "DeleteFolder", [
            {"path": build_folder, "force": True}
        ]),
    ])

    validate = ComponentPhase(PHASE_VALIDATE, [
        ComponentStep("ValidateRuntimeInstall", "ExecuteBash", {
            "commands": [VALIDATE_RUNTIME_SCRIPT]
        }),
        ComponentStep("ValidateSDKInstall", "ExecuteBash", {
            "commands": [VALIDATE_SDK_SCRIPT]
        }),
    ])

    test = ComponentPhase(PHASE_TEST, [
        ComponentStep("InstallFolder", "ExecuteBash", {
            "commands": ['echo "$HOME/dotnet_test"']
        }),
        ComponentStep("CreateInstallFolder", "CreateFolder", [
            {"path": test_folder}
        ]),
        ComponentStep("GenerateSample", "ExecuteBash", {
            "commands": [
                "set -e",
                f"cd {test_folder}",
                f"dotnet new console --name {SAMPLE_PROJECT_NAME}"
            ]
        }),
        ComponentStep("ValidateSample", "ExecuteBash", {
            "commands": [VALIDATE_SAMPLE_SCRIPT]
        }),
    ])

    return ComponentDocument(
        name="InstallNET5",
        description="Install the latest .NET 5 preview.",
        constants=[
            ComponentConstant("InstallScriptSource", install_script_source),
            ComponentConstant("Version", version),
        ],
        phases=[build, validate, test]
    ).validate()


def dotnet_recipe(config: dict) -> Recipe:
    """Builds the Ubuntu Server 20 + .NET recipe from the cdk.json project settings."""
    dotnet = config["dotnet"]
    image_builder = config["imageBuilder"]

    document = install_dotnet_document(
        install_script_source=dotnet.get("installScriptSource", DEFAULT_INSTALL_SCRIPT_SOURCE),
        version=str(dotnet.get("version", DEFAULT_VERSION))
    )

    return Recipe(
        name=image_builder["recipeName"],
        version=CdkUtils.validate_semantic_version(image_builder["recipeVersion"], "image recipe"),
        parent_image=image_builder["parentImage"],
        components=[
            RecipeComponent(
                document=document,
                version=CdkUtils.validate_semantic_version(dotnet["componentVersion"], "component"),
                component_name=dotnet["componentName"],
                change_description=dotnet.get("changeDescription")
            )
        ]
    )
