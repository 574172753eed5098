"""A small entity store that wires snapshot interpolation and prediction together."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable

from replisnap.interpolation import (
    SnapshotBuffer,
    SnapshotInterpolationConfig,
    advance_predicted,
    interpolate_snapshot,
)
from replisnap.prediction import PredictedEventHistory, predict_component


@dataclass(frozen=True)
class NetworkOwner:
    """The entity of the client that owns this entity."""

    entity: int


@dataclass(frozen=True)
class ClientNetId:
    """The network id of a client."""

    client_id: int


@dataclass(frozen=True)
class Interpolated:
    """Marks an entity whose replicated components are interpolated."""


@dataclass(frozen=True)
class OwnerPredicted:
    """Marks an entity predicted by its owner and interpolated by everyone else."""


@dataclass(frozen=True)
class Predicted:
    """Marks an entity whose components are predicted locally."""


class InterpolationSet(enum.Enum):
    """Phases of a frame update, run in declaration order."""

    INIT = "init"
    INTERPOLATE = "interpolate"


class World:
    """Entities with typed components, plus the interpolation and prediction systems."""

    def __init__(self, max_tick_rate: int) -> None:
        self.config = SnapshotInterpolationConfig(max_tick_rate)
        self._entities: dict[int, dict[type, Any]] = {}
        self._buffers: dict[int, dict[type, SnapshotBuffer]] = {}
        self._next_entity = 0
        self._interpolated_kinds: list[type] = []
        self._histories: dict[type, PredictedEventHistory] = {}
        self._predictions: list[tuple[type, type, type]] = []
        self._recording: set[int] = set()
        self._newly_flagged: dict[int, None] = {}

    # -- entity storage -------------------------------------------------

    def _components(self, entity: int) -> dict[type, Any]:
        try:
            return self._entities[entity]
        except KeyError:
            raise KeyError(f"entity {entity} does not exist") from None

    def spawn(self, *args: Any) -> int:
        """Create an entity holding the given components and return its id."""
        entity = self._next_entity
        self._next_entity += 1
        self._entities[entity] = {}
        self.insert(entity, *args)
        return entity

    def insert(self, entity: int, *args: Any) -> None:
        """Add or replace components on an entity."""
        components = self._components(entity)
        for component in args:
            kind = type(component)
            if isinstance(component, (Predicted, Interpolated)) and kind not in components:
                self._newly_flagged[entity] = None
            components[kind] = component

    def get(self, entity: int, kind: type) -> Any:
        """The component of type ``kind`` on ``entity``."""
        components = self._components(entity)
        try:
            return components[kind]
        except KeyError:
            raise KeyError(f"entity {entity} has no {kind.__name__}") from None

    def has(self, entity: int, kind: type) -> bool:
        """Whether ``entity`` exists and holds a component of type ``kind``."""
        return kind in self._entities.get(entity, {})

    def remove(self, entity: int, kind: type) -> Any:
        """Remove and return the component of type ``kind`` from ``entity``."""
        components = self._components(entity)
        try:
            return components.pop(kind)
        except KeyError:
            raise KeyError(f"entity {entity} has no {kind.__name__}") from None

    def despawn(self, entity: int) -> None:
        """Delete an entity and everything attached to it."""
        self._components(entity)
        del self._entities[entity]
        self._buffers.pop(entity, None)
        self._recording.discard(entity)
        self._newly_flagged.pop(entity, None)

    def entities_with(self, *args: type) -> list[int]:
        """Entities holding components of every given type, in spawn order."""
        return self._query(args, ())

    def _query(self, with_kinds: Iterable[type], without_kinds: Iterable[type]) -> list[int]:
        with_kinds = tuple(with_kinds)
        without_kinds = tuple(without_kinds)
        return [
            entity
            for entity, components in self._entities.items()
            if all(k in components for k in with_kinds)
            and not any(k in components for k in without_kinds)
        ]

    def _buffer(self, entity: int, kind: type) -> SnapshotBuffer | None:
        return self._buffers.get(entity, {}).get(kind)

    # -- registration ---------------------------------------------------

    def replicate_interpolated(self, kind: type) -> World:
        """Register a component type to be buffered and interpolated between snapshots."""
        if kind not in self._interpolated_kinds:
            self._interpolated_kinds.append(kind)
        return self

    def add_client_predicted_event(self, event_type: type) -> World:
        """Register an event type whose local history is kept for replay."""
        self._histories[event_type] = PredictedEventHistory()
        return self

    def predict_event_for_component(
        self, event_type: type, context_type: type, component_type: type
    ) -> World:
        """Register an event, context and component triple for prediction."""
        self._predictions.append((event_type, context_type, component_type))
        return self

    # -- replication ----------------------------------------------------

    def mark_owner_predicted(self, entity: int, local_entity: int) -> None:
        """Flag an entity as owner predicted.

        It becomes Predicted when owned by ``local_entity`` and Interpolated otherwise.
        """
        components = self._components(entity)
        self.insert(entity, OwnerPredicted())
        owner = components.get(NetworkOwner)
        if owner is not None and owner.entity == local_entity:
            self.insert(entity, Predicted())
        else:
            self.insert(entity, Interpolated())

    def _records(self, entity: int, kind: type) -> bool:
        return entity in self._recording and kind in self._interpolated_kinds

    def receive_component(self, entity: int, component: Any, tick: int) -> None:
        """Apply a component value replicated from the server at ``tick``."""
        components = self._components(entity)
        kind = type(component)
        if self._records(entity, kind):
            buffer = self._buffers.setdefault(entity, {}).setdefault(kind, SnapshotBuffer())
            buffer.insert(component, tick)
        else:
            components[kind] = component

    def remove_component(self, entity: int, kind: type) -> None:
        """Apply a replicated removal of a component type."""
        components = self._components(entity)
        if self._records(entity, kind):
            self._buffers.get(entity, {}).pop(kind, None)
        components.pop(kind, None)

    # -- systems --------------------------------------------------------

    def update(self, delta_secs: float) -> None:
        """Run one frame of the interpolation systems."""
        for phase in InterpolationSet:
            if phase is InterpolationSet.INIT:
                self._init_snapshot_recording()
            else:
                self._interpolate(delta_secs)

    def _init_snapshot_recording(self) -> None:
        for entity in self._newly_flagged:
            components = self._entities.get(entity, {})
            if any(kind in components for kind in self._interpolated_kinds):
                self._recording.add(entity)
        self._newly_flagged.clear()

    def _interpolate(self, delta_secs: float) -> None:
        for kind in self._interpolated_kinds:
            for entity in self._query((Interpolated, kind), (Predicted,)):
                buffer = self._buffer(entity, kind)
                if buffer is None:
                    continue
                value = interpolate_snapshot(buffer, delta_secs, self.config)
                if value is not None:
                    self._entities[entity][kind] = value
            for entity in self._query((Predicted,), (Interpolated,)):
                buffer = self._buffer(entity, kind)
                if buffer is not None:
                    advance_predicted(buffer, delta_secs)

    def server_apply_event(self, client_entity: int, event: Any, delta_secs: float) -> list[int]:
        """Apply a client's event to the non-predicted entities it owns.

        Returns the entities that were changed.
        """
        changed: list[int] = []
        for event_type, context_type, component_type in self._predictions:
            if not isinstance(event, event_type):
                continue
            for entity in self._query((NetworkOwner, component_type, context_type), (Predicted,)):
                components = self._entities[entity]
                if components[NetworkOwner].entity == client_entity:
                    components[component_type].apply_event(
                        event, delta_secs, components[context_type]
                    )
                    changed.append(entity)
        return changed

    def client_apply_event(self, event: Any, confirmed_tick: int, delta_secs: float) -> list[int]:
        """Record a local event and re-predict every predicted entity from its latest snapshot.

        Returns the entities that were changed.
        """
        changed: list[int] = []
        for event_type, context_type, component_type in self._predictions:
            if not isinstance(event, event_type):
                continue
            history = self._histories.get(event_type)
            if history is None:
                raise LookupError(
                    f"event {event_type.__name__} is not registered for client prediction"
                )
            for entity in self._query((Predicted, component_type, context_type), (Interpolated,)):
                buffer = self._buffer(entity, component_type)
                if buffer is None:
                    continue
                components = self._entities[entity]
                history.insert(event, confirmed_tick, delta_secs)
                components[component_type] = predict_component(
                    buffer, history, components[context_type]
                )
                changed.append(entity)
        return changed