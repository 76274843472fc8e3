"""
MongoDB node installer.

This package holds the configuration, the component framework and the
components that provision a MongoDB replica set member.
"""

from installer.base_component import BaseComponent
from installer.registry import ComponentRegistry

__all__ = ["BaseComponent", "ComponentRegistry"]
