"""Systems run once per frame against the entity world"""
from .world import World, InMemoryWorld, ComponentChange
from .path_calculate import PathCalculateSystem

__all__ = ["World", "InMemoryWorld", "ComponentChange", "PathCalculateSystem"]
