from dataclasses import dataclass

import pytest

from replisnap.interpolation import derive_interpolate
from replisnap.prediction import Predict
from replisnap.vec2 import Vec2
from replisnap.world import (
    Interpolated,
    NetworkOwner,
    OwnerPredicted,
    Predicted,
    World,
)


@derive_interpolate
@dataclass
class Pos(Predict):
    value: Vec2

    def apply_event(self, event, delta_time, context):
        self.value = self.value + event.direction * (delta_time * context.speed)


@dataclass
class Move:
    direction: Vec2


@dataclass
class Speed:
    speed: float


@dataclass
class Label:
    text: str


def _interpolating_world(rate=4):
    world = World(rate).replicate_interpolated(Pos)
    entity = world.spawn(Pos(Vec2()), Interpolated())
    world.update(0.0)
    return world, entity


def _predicting_world(local=7):
    world = (
        World(4)
        .replicate_interpolated(Pos)
        .add_client_predicted_event(Move)
        .predict_event_for_component(Move, Speed, Pos)
    )
    entity = world.spawn(NetworkOwner(local), Pos(Vec2()), Speed(1.0))
    world.mark_owner_predicted(entity, local)
    world.update(0.0)
    return world, entity


def test_world_rejects_non_positive_tick_rate():
    with pytest.raises(ValueError):
        World(0)


def test_spawn_get_has_remove():
    world = World(10)
    entity = world.spawn(Label("a"))
    assert world.get(entity, Label) == Label("a")
    assert world.has(entity, Label)
    assert not world.has(entity, Pos)
    assert world.remove(entity, Label) == Label("a")
    assert not world.has(entity, Label)
    with pytest.raises(KeyError):
        world.remove(entity, Label)
    with pytest.raises(KeyError):
        world.get(entity, Label)


def test_despawn_and_missing_entity():
    world = World(10)
    entity = world.spawn(Label("a"))
    world.despawn(entity)
    assert not world.has(entity, Label)
    with pytest.raises(KeyError):
        world.despawn(entity)
    with pytest.raises(KeyError):
        world.insert(entity, Label("b"))


def test_entities_with_in_spawn_order():
    world = World(10)
    a = world.spawn(Label("a"), Interpolated())
    b = world.spawn(Label("b"))
    c = world.spawn(Label("c"), Interpolated())
    assert world.entities_with(Label) == [a, b, c]
    assert world.entities_with(Label, Interpolated) == [a, c]


def test_receive_writes_directly_without_snapshot_recording():
    world = World(10).replicate_interpolated(Pos)
    entity = world.spawn(Pos(Vec2()))
    world.receive_component(entity, Pos(Vec2(2.0, 3.0)), 1)
    assert world.get(entity, Pos) == Pos(Vec2(2.0, 3.0))


def test_receive_buffers_once_recording():
    world, entity = _interpolating_world()
    world.receive_component(entity, Pos(Vec2(9.0, 9.0)), 1)
    assert world.get(entity, Pos) == Pos(Vec2())


def test_interpolates_between_snapshots():
    world, entity = _interpolating_world(rate=4)
    world.receive_component(entity, Pos(Vec2(0.0, 0.0)), 1)
    world.receive_component(entity, Pos(Vec2(10.0, 0.0)), 2)
    world.update(0.125)
    assert world.get(entity, Pos) == Pos(Vec2(0.0, 0.0))
    world.update(0.125)
    assert world.get(entity, Pos) == Pos(Vec2(5.0, 0.0))


def test_single_snapshot_does_not_interpolate():
    world, entity = _interpolating_world()
    world.receive_component(entity, Pos(Vec2(4.0, 4.0)), 1)
    world.update(0.1)
    assert world.get(entity, Pos) == Pos(Vec2())


def test_stale_snapshots_stop_interpolation():
    world, entity = _interpolating_world(rate=4)
    world.receive_component(entity, Pos(Vec2(0.0, 0.0)), 1)
    world.receive_component(entity, Pos(Vec2(10.0, 0.0)), 2)
    world.update(1.0)
    world.insert(entity, Pos(Vec2(-1.0, -1.0)))
    world.update(0.0)
    assert world.get(entity, Pos) == Pos(Vec2(-1.0, -1.0))


def test_remove_component_drops_value_and_buffer():
    world, entity = _interpolating_world()
    world.receive_component(entity, Pos(Vec2(1.0, 0.0)), 1)
    world.receive_component(entity, Pos(Vec2(2.0, 0.0)), 2)
    world.remove_component(entity, Pos)
    assert not world.has(entity, Pos)
    world.receive_component(entity, Pos(Vec2(3.0, 0.0)), 3)
    world.update(0.0)
    assert not world.has(entity, Pos)


def test_mark_owner_predicted_local_and_remote():
    world = World(10)
    local = world.spawn(NetworkOwner(1))
    remote = world.spawn(NetworkOwner(2))
    world.mark_owner_predicted(local, 1)
    world.mark_owner_predicted(remote, 1)
    assert world.entities_with(OwnerPredicted) == [local, remote]
    assert world.entities_with(Predicted) == [local]
    assert world.entities_with(Interpolated) == [remote]


def test_server_apply_event_only_to_owner_and_not_predicted():
    world = World(10).predict_event_for_component(Move, Speed, Pos)
    owned = world.spawn(NetworkOwner(1), Pos(Vec2()), Speed(1.0))
    other = world.spawn(NetworkOwner(2), Pos(Vec2()), Speed(1.0))
    predicted = world.spawn(NetworkOwner(1), Pos(Vec2()), Speed(1.0), Predicted())
    direction = Vec2(1.0, 0.0)
    assert world.server_apply_event(1, Move(direction), 1.0) == [owned]
    assert world.get(owned, Pos) == Pos(direction)
    assert world.get(other, Pos) == Pos(Vec2())
    assert world.get(predicted, Pos) == Pos(Vec2())


def test_server_ignores_unregistered_event():
    world = World(10).predict_event_for_component(Move, Speed, Pos)
    world.spawn(NetworkOwner(1), Pos(Vec2()), Speed(1.0))
    assert world.server_apply_event(1, Label("x"), 1.0) == []


def test_client_apply_event_requires_history():
    world = World(10).predict_event_for_component(Move, Speed, Pos)
    with pytest.raises(LookupError):
        world.client_apply_event(Move(Vec2(1.0, 0.0)), 1, 1.0)


def test_client_prediction_replays_pending_events():
    world, entity = _predicting_world()
    world.receive_component(entity, Pos(Vec2()), 5)
    direction = Vec2(3.0, 4.0)
    assert world.client_apply_event(Move(direction), 5, 1.0) == [entity]
    assert world.get(entity, Pos) == Pos(direction)
    world.client_apply_event(Move(direction), 5, 1.0)
    assert world.get(entity, Pos) == Pos(direction + direction)


def test_client_prediction_drops_events_older_than_snapshot():
    world, entity = _predicting_world()
    world.receive_component(entity, Pos(Vec2()), 5)
    direction = Vec2(3.0, 4.0)
    world.client_apply_event(Move(direction), 5, 1.0)
    world.client_apply_event(Move(direction), 5, 1.0)
    server = Vec2(100.0, 0.0)
    world.receive_component(entity, Pos(server), 7)
    world.client_apply_event(Move(direction), 7, 1.0)
    assert world.get(entity, Pos) == Pos(server + direction)


def test_client_prediction_skips_entities_without_snapshots():
    world, entity = _predicting_world()
    assert world.client_apply_event(Move(Vec2(1.0, 0.0)), 1, 1.0) == []
    assert world.get(entity, Pos) == Pos(Vec2())


def test_predicted_entity_is_not_interpolated():
    world, entity = _predicting_world()
    world.receive_component(entity, Pos(Vec2(1.0, 1.0)), 1)
    world.receive_component(entity, Pos(Vec2(2.0, 2.0)), 2)
    world.update(0.1)
    assert world.get(entity, Pos) == Pos(Vec2())