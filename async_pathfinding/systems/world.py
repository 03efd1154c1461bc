"""
World Interface

Minimal entity/component store the path calculation system runs against.
Only what the system needs is part of the interface: existence checks,
component reads and writes, and change queries per component type.

Changes are recorded only for component types a system has asked to
track; every other type is stored without history.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Type, TypeVar

import structlog

logger = structlog.get_logger(__name__)

C = TypeVar("C")


@dataclass(frozen=True)
class ComponentChange:
    """One recorded change of a component on an entity"""
    entity: int
    old: Optional[Any]
    new: Optional[Any]

    @property
    def added(self) -> bool:
        """Absent to present edge"""
        return self.old is None and self.new is not None

    @property
    def removed(self) -> bool:
        return self.old is not None and self.new is None


class World(ABC):
    """Entity/component store as seen by systems"""

    @abstractmethod
    def contains(self, entity: int) -> bool:
        pass

    @abstractmethod
    def get(self, entity: int, component_type: Type[C]) -> Optional[C]:
        pass

    @abstractmethod
    def insert(self, entity: int, component: Any) -> None:
        pass

    @abstractmethod
    def remove(self, entity: int, component_type: Type[Any]) -> Optional[Any]:
        pass

    @abstractmethod
    def track(self, component_type: Type[Any]) -> None:
        """Start recording changes of ``component_type``"""
        pass

    @abstractmethod
    def query_changed(self, component_type: Type[Any]) -> Iterator[ComponentChange]:
        """Yield changes of ``component_type`` recorded since the last query"""
        pass


class InMemoryWorld(World):
    """
    Dictionary-backed world.

    Changes of tracked component types are recorded and consumed by
    ``query_changed``, so each change is reported once. Querying a type
    also starts tracking it.
    """

    def __init__(self):
        self._next_entity = 1
        self._components: dict[int, dict[type, Any]] = {}
        self._changes: dict[type, list[ComponentChange]] = {}
        self._tracked: set[type] = set()

    def spawn(self, *components: Any) -> int:
        entity = self._next_entity
        self._next_entity += 1
        self._components[entity] = {}
        for component in components:
            self.insert(entity, component)
        logger.debug("Entity spawned", entity=entity, components=len(components))
        return entity

    def despawn(self, entity: int) -> None:
        components = self._components.pop(entity, None)
        if components is None:
            return
        for component_type, component in components.items():
            self._record(component_type, ComponentChange(entity, component, None))
        logger.debug("Entity despawned", entity=entity)

    def contains(self, entity: int) -> bool:
        return entity in self._components

    def get(self, entity: int, component_type: Type[C]) -> Optional[C]:
        return self._components.get(entity, {}).get(component_type)

    def insert(self, entity: int, component: Any) -> None:
        components = self._components.get(entity)
        if components is None:
            raise KeyError(f"entity {entity} does not exist")
        old = components.get(type(component))
        components[type(component)] = component
        self._record(type(component), ComponentChange(entity, old, component))

    def remove(self, entity: int, component_type: Type[Any]) -> Optional[Any]:
        components = self._components.get(entity)
        if components is None or component_type not in components:
            return None
        old = components.pop(component_type)
        self._record(component_type, ComponentChange(entity, old, None))
        return old

    def track(self, component_type: Type[Any]) -> None:
        self._tracked.add(component_type)

    def query_changed(self, component_type: Type[Any]) -> Iterator[ComponentChange]:
        self._tracked.add(component_type)
        changes = self._changes.pop(component_type, [])
        return iter(changes)

    def pending_changes(self) -> dict[str, int]:
        """Unread change records per component type name"""
        return {component_type.__name__: len(changes) for component_type, changes in self._changes.items() if changes}

    def _record(self, component_type: type, change: ComponentChange) -> None:
        if component_type not in self._tracked:
            return
        self._changes.setdefault(component_type, []).append(change)
