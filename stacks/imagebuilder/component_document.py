#!/usr/bin/env python

"""
    component_document.py:
    Model of an EC2 Image Builder (AWSTOE) component document.
    A component is a list of constants plus ordered phases (build, validate, test),
    each phase being an ordered list of steps. Steps may reference constants and
    the outputs of earlier steps through the `{{ ... }}` interpolation syntax.
    The document is validated at synth time and rendered to YAML for the
    AWS::ImageBuilder::Component `Data` property.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

# phases in the order the orchestrator runs them
PHASE_BUILD = "build"
PHASE_VALIDATE = "validate"
PHASE_TEST = "test"
PHASES = (PHASE_BUILD, PHASE_VALIDATE, PHASE_TEST)

# AWSTOE action modules and the outputs they expose to later steps
ACTION_OUTPUTS = {
    "ExecuteBash": ("stdout",),
    "ExecutePowerShell": ("stdout",),
    "ExecuteBinary": ("stdout",),
    "CreateFolder": (),
    "DeleteFolder": (),
    "CreateFile": (),
    "DeleteFile": (),
    "WebDownload": (),
    "S3Download": (),
    "Reboot": (),
}

SCHEMA_VERSION = "1.0"

_INTERPOLATION = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_STEP_REFERENCE = re.compile(r"^(?P<phase>[A-Za-z0-9_-]+)\.(?P<step>[A-Za-z0-9_-]+)\.outputs\.(?P<field>[A-Za-z0-9_]+)$")
_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


class ComponentDocumentError(ValueError):
    """Raised when a component document is malformed."""


class ComponentConstant:
    """A named constant, referenced from step inputs as `{{ Name }}`."""

    def __init__(self, name: str, value: str, type: str = "string") -> None:
        self.name = name
        self.value = value
        self.type = type

    def to_dict(self) -> dict:
        return {
            self.name: {
                "type": self.type,
                "value": self.value
            }
        }


class ComponentStep:

    def __init__(self, name: str, action: str, inputs: Any) -> None:
        self.name = name
        self.action = action
        self.inputs = inputs

    @property
    def outputs(self) -> Tuple[str, ...]:
        return ACTION_OUTPUTS.get(self.action, ())

    def references(self) -> List[str]:
        """All interpolation expressions used in the step inputs, in order."""
        return [match.group(1) for value in _iter_strings(self.inputs) for match in _INTERPOLATION.finditer(value)]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "action": self.action,
            "inputs": self.inputs
        }


class ComponentPhase:

    def __init__(self, name: str, steps: List[ComponentStep]) -> None:
        self.name = name
        self.steps = list(steps)

    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "steps": [step.to_dict() for step in self.steps]
        }


class ComponentDocument:
    """
        An AWSTOE component document.

        Execution contexts:
            * build and validate run on the build instance, one after the other,
              so validate steps can read the outputs of build steps.
            * test runs on a fresh instance launched from the captured image,
              so test steps can only read the outputs of earlier test steps.
    """

    def __init__(
            self,
            name: str,
            description: str,
            phases: List[ComponentPhase],
            constants: Optional[List[ComponentConstant]] = None,
            schema_version: str = SCHEMA_VERSION
        ) -> None:
        self.name = name
        self.description = description
        self.phases = list(phases)
        self.constants = list(constants or [])
        self.schema_version = schema_version

    def get_phase(self, name: str) -> Optional[ComponentPhase]:
        for phase in self.phases:
            if phase.name == name:
                return phase
        return None

    def validate(self) -> "ComponentDocument":
        if not self.name or not _NAME.match(self.name):
            raise ComponentDocumentError(f"Invalid component name '{self.name}'")

        if not self.phases:
            raise ComponentDocumentError(f"Component '{self.name}' declares no phases")

        constant_names = set()
        for constant in self.constants:
            if not _NAME.match(constant.name):
                raise ComponentDocumentError(f"Invalid constant name '{constant.name}'")
            if constant.name in constant_names:
                raise ComponentDocumentError(f"Duplicate constant '{constant.name}'")
            constant_names.add(constant.name)

        seen_phases = []
        for phase in self.phases:
            if phase.name not in PHASES:
                raise ComponentDocumentError(
                    f"Unknown phase '{phase.name}' in component '{self.name}'. " +
                    f"Expected one of: {', '.join(PHASES)}"
                )
            if phase.name in seen_phases:
                raise ComponentDocumentError(f"Duplicate phase '{phase.name}' in component '{self.name}'")
            if not phase.steps:
                raise ComponentDocumentError(f"Phase '{phase.name}' in component '{self.name}' has no steps")
            seen_phases.append(phase.name)

            step_names = set()
            for step in phase.steps:
                if not _NAME.match(step.name):
                    raise ComponentDocumentError(f"Invalid step name '{step.name}' in phase '{phase.name}'")
                if step.name in step_names:
                    raise ComponentDocumentError(f"Duplicate step '{step.name}' in phase '{phase.name}'")
                if step.action not in ACTION_OUTPUTS:
                    raise ComponentDocumentError(
                        f"Unknown action '{step.action}' for step '{phase.name}.{step.name}'"
                    )
                step_names.add(step.name)

        for phase in self.phases:
            for index, step in enumerate(phase.steps):
                for reference in step.references():
                    self._check_reference(phase, index, reference, constant_names)

        return self

    def _check_reference(self, phase: ComponentPhase, index: int, reference: str, constant_names: set) -> None:
        location = f"'{phase.name}.{phase.steps[index].name}'"

        if reference in constant_names:
            return

        match = _STEP_REFERENCE.match(reference)
        if match is None:
            raise ComponentDocumentError(f"Step {location} references undefined constant '{reference}'")

        target_phase = match.group("phase")
        target_step = match.group("step")
        field = match.group("field")

        visible = self._visible_steps(phase, index)
        if (target_phase, target_step) not in visible:
            raise ComponentDocumentError(
                f"Step {location} references '{reference}' which does not run before it " +
                "on the same instance"
            )

        outputs = visible[(target_phase, target_step)].outputs
        if field not in outputs:
            raise ComponentDocumentError(
                f"Step {location} references '{reference}' but " +
                f"'{target_phase}.{target_step}' does not expose output '{field}'"
            )

    def _visible_steps(self, phase: ComponentPhase, index: int) -> Dict[Tuple[str, str], ComponentStep]:
        """Steps that have already run on the same instance when phase.steps[index] starts."""
        visible = {}
        if phase.name == PHASE_VALIDATE:
            build = self.get_phase(PHASE_BUILD)
            if build is not None:
                visible.update({(build.name, step.name): step for step in build.steps})
        visible.update({(phase.name, step.name): step for step in phase.steps[:index]})
        return visible

    def to_dict(self) -> dict:
        document = {
            "name": self.name,
            "description": self.description,
            "schemaVersion": self.schema_version,
        }
        if self.constants:
            document["constants"] = [constant.to_dict() for constant in self.constants]
        document["phases"] = [phase.to_dict() for phase in self.phases]
        return document

    def to_yaml(self) -> str:
        self.validate()
        return yaml.dump(
            self.to_dict(),
            Dumper=_ComponentDumper,
            default_flow_style=False,
            sort_keys=False,
            width=4096
        )


class _ComponentDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    # shell scripts are easier to read in the rendered document as literal blocks
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_ComponentDumper.add_representer(str, _represent_str)


def _iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)
