"""
Registry of installable host components.

Components register themselves with the `ComponentRegistry.register`
decorator when their module is imported; entry points look them up by name
and install them in dependency order.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Type

from installer.base_component import BaseComponent
from installer.config_models import AppSettings


class ComponentRegistry:
    """Name -> component class mapping shared by every entry point."""

    _registry: Dict[str, Type["BaseComponent"]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Decorator for registering component classes.

        Args:
            name: The name of the component, as typed on the command line.
            metadata: Optional metadata for the component: dependencies,
                      error code and description.

        Returns:
            A decorator function that registers the component class.
        """

        def decorator(
            component_class: Type["BaseComponent"],
        ) -> Type["BaseComponent"]:
            if name in cls._registry:
                raise ValueError(
                    f"Component with name '{name}' already registered"
                )

            if metadata:
                component_class.metadata = metadata

            cls._registry[name] = component_class
            return component_class

        return decorator

    @classmethod
    def get_component(cls, name: str) -> Type["BaseComponent"]:
        """
        Get a component class by name.

        Raises:
            KeyError: If no component with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No component registered with name '{name}'")

        return cls._registry[name]

    @classmethod
    def get_all_components(cls) -> Dict[str, Type["BaseComponent"]]:
        return dict(sorted(cls._registry.items()))

    @classmethod
    def create(
        cls,
        name: str,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
    ) -> BaseComponent:
        """Instantiate the component registered under name."""
        return cls.get_component(name)(app_settings, logger=logger, trace=trace)

    @classmethod
    def get_component_dependencies(cls, name: str) -> Set[str]:
        """
        Get the direct dependencies of a component.

        Raises:
            KeyError: If no component with the given name is registered.
        """
        component_class = cls.get_component(name)
        metadata = getattr(component_class, "metadata", {})
        return set(metadata.get("dependencies", []))

    @classmethod
    def resolve_dependencies(cls, components: List[str]) -> List[str]:
        """
        Order components so every dependency comes before its dependents.

        Args:
            components: A list of component names.

        Returns:
            The requested components plus their dependencies, each once.

        Raises:
            KeyError: If any of the components or their dependencies are not registered.
            ValueError: If there is a circular dependency.
        """
        result: List[str] = []
        visited: Set[str] = set()
        in_progress: Set[str] = set()

        def visit(component: str):
            if component in in_progress:
                raise ValueError(
                    f"Circular dependency detected involving '{component}'"
                )
            if component in visited:
                return

            in_progress.add(component)
            for dependency in sorted(cls.get_component_dependencies(component)):
                visit(dependency)
            in_progress.remove(component)

            visited.add(component)
            result.append(component)

        for component in components:
            visit(component)

        return result
