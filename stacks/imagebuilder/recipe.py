#!/usr/bin/env python

"""
    recipe.py:
    Image recipe model: a parent image plus an ordered list of components,
    together with the phase schedule EC2 Image Builder follows when it
    materializes the recipe into an image.
"""

from typing import List, Optional

from stacks.imagebuilder.component_document import (PHASE_BUILD, PHASE_TEST,
                                                    PHASE_VALIDATE,
                                                    ComponentDocument)

BUILD_INSTANCE = "build-instance"
TEST_INSTANCE = "test-instance"


class RecipeComponent:
    """
        A component attached to a recipe. The document name identifies the
        component within the recipe, the component name is what it is
        published under in EC2 Image Builder.
    """

    def __init__(
            self,
            document: ComponentDocument,
            version: str,
            component_name: Optional[str] = None,
            change_description: Optional[str] = None
        ) -> None:
        self.document = document
        self.version = version
        self.component_name = component_name or document.name
        self.change_description = change_description

    @property
    def name(self) -> str:
        return self.document.name


class PlannedPhase:

    def __init__(self, order: int, instance: str, component: str, phase: str, steps: List[str]) -> None:
        self.order = order
        self.instance = instance
        self.component = component
        self.phase = phase
        self.steps = steps

    def __repr__(self) -> str:
        return f"PlannedPhase({self.order}, {self.instance}, {self.component}.{self.phase})"


class Recipe:

    def __init__(
            self,
            name: str,
            version: str,
            parent_image: str,
            components: List[RecipeComponent]
        ) -> None:
        if not components:
            raise ValueError(f"Recipe '{name}' must contain at least one component")
        for attribute in ("name", "component_name"):
            seen = set()
            for component in components:
                value = getattr(component, attribute)
                if value in seen:
                    raise ValueError(f"Duplicate component '{value}' in recipe '{name}'")
                seen.add(value)
        self.name = name
        self.version = version
        self.parent_image = parent_image
        self.components = list(components)

    def execution_plan(self) -> List[PlannedPhase]:
        """
            The order in which phases run. All build phases run on the build
            instance in component order, then all validate phases on the same
            instance. The image is captured only when every one of them exits
            with zero, then a new instance is launched from it for the test phases.
            Any failing step aborts the whole build.
        """
        plan = []
        schedule = (
            (PHASE_BUILD, BUILD_INSTANCE),
            (PHASE_VALIDATE, BUILD_INSTANCE),
            (PHASE_TEST, TEST_INSTANCE),
        )
        for phase_name, instance in schedule:
            for component in self.components:
                phase = component.document.get_phase(phase_name)
                if phase is None:
                    continue
                plan.append(PlannedPhase(
                    order=len(plan) + 1,
                    instance=instance,
                    component=component.name,
                    phase=phase_name,
                    steps=phase.step_names()
                ))
        return plan
