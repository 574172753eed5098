"""Box demo where the local player is predicted and every other box is interpolated."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from replisnap.demos.common import (
    GREEN,
    SERVER_CLIENT_ID,
    WHITE,
    Cli,
    Color,
    Mode,
    MoveDirection,
    PlayerColor,
    _label,
    _print_state,
    input_direction,
    parse_cli,
)
from replisnap.interpolation import derive_interpolate
from replisnap.prediction import Predict
from replisnap.vec2 import Vec2
from replisnap.world import NetworkOwner, World

log = logging.getLogger(__name__)

PREDICTED_MAX_TICK_RATE = 30
DEFAULT_MOVE_SPEED = 200.0


@dataclass
class MovementSystemContext:
    """Per-player parameters the movement prediction needs."""

    move_speed: float = DEFAULT_MOVE_SPEED


@derive_interpolate
@dataclass
class PredictedPosition(Predict):
    """Position of a player's box that movement events can predict."""

    value: Vec2 = field(default_factory=Vec2)

    def apply_event(
        self, event: MoveDirection, delta_time: float, context: MovementSystemContext
    ) -> None:
        """Move the box along the event's direction for ``delta_time`` seconds."""
        self.value = self.value + event.direction * (delta_time * context.move_speed)


class PredictedBoxGame:
    """An authoritative server world and a replica that predicts its own box."""

    def __init__(self, cli: Cli, max_tick_rate: int = PREDICTED_MAX_TICK_RATE) -> None:
        self.cli = cli
        self.server = World(max_tick_rate).predict_event_for_component(
            MoveDirection, MovementSystemContext, PredictedPosition
        )
        self.replica = (
            World(max_tick_rate)
            .replicate_interpolated(PredictedPosition)
            .add_client_predicted_event(MoveDirection)
            .predict_event_for_component(MoveDirection, MovementSystemContext, PredictedPosition)
        )
        self.tick = 0
        self._mirrors: dict[int, int] = {}
        self.label, self.client_id = _label(cli.mode)
        self._spawn_player(SERVER_CLIENT_ID, GREEN)

    @property
    def _local_owner(self) -> Optional[int]:
        return self.client_id if self.cli.mode is Mode.CLIENT else None

    def _spawn_player(self, client_id: int, color: Color) -> int:
        return self.server.spawn(
            NetworkOwner(client_id),
            PredictedPosition(Vec2()),
            PlayerColor(color),
            MovementSystemContext(),
        )

    def _find_player(self, client_id: int) -> Optional[int]:
        return next(
            (
                entity
                for entity in self.server.entities_with(NetworkOwner, PredictedPosition)
                if self.server.get(entity, NetworkOwner).entity == client_id
            ),
            None,
        )

    def _require_network(self) -> None:
        if self.cli.mode is Mode.SINGLE_PLAYER:
            raise RuntimeError("no clients connect in single player")

    def connect_client(self, client_id: int) -> int:
        """Spawn a white player for a newly connected client and return its server entity."""
        self._require_network()
        log.info("player: %s Connected", client_id)
        return self._spawn_player(client_id, WHITE)

    def disconnect_client(self, client_id: int) -> bool:
        """Despawn the client's player; returns whether there was one."""
        self._require_network()
        entity = self._find_player(client_id)
        if entity is None:
            log.info("No player to de-spawn")
            return False
        self.server.despawn(entity)
        return True

    def send_input(
        self, client_id: int, pressed: Iterable[str], delta_secs: float
    ) -> Optional[Vec2]:
        """Send a movement for the pressed keys.

        The server applies it; the local client also predicts it. Returns the box
        position as this side sees it, or None without input.
        """
        direction = input_direction(pressed)
        if direction == Vec2():
            return None
        entity = self._find_player(client_id)
        if entity is None:
            raise LookupError(f"`{client_id}` should be connected")
        event = MoveDirection(direction)
        self.server.server_apply_event(client_id, event, delta_secs)

        if self.cli.mode is Mode.CLIENT and client_id == self.client_id:
            self.replica.client_apply_event(event, self.tick, delta_secs)
            mirror = self._mirrors.get(entity)
            if mirror is not None:
                return self.replica.get(mirror, PredictedPosition).value
        return self.server.get(entity, PredictedPosition).value

    def server_tick(self) -> int:
        """Replicate the server state to the replica as a new snapshot; returns the tick."""
        if self.cli.mode is Mode.SINGLE_PLAYER:
            raise RuntimeError("nothing is replicated in single player")
        self.tick += 1
        live: set[int] = set()
        for entity in self.server.entities_with(NetworkOwner, PredictedPosition, PlayerColor):
            live.add(entity)
            position = PredictedPosition(self.server.get(entity, PredictedPosition).value)
            mirror = self._mirrors.get(entity)
            if mirror is None:
                context = self.server.get(entity, MovementSystemContext)
                mirror = self.replica.spawn(
                    self.server.get(entity, NetworkOwner),
                    position,
                    PlayerColor(self.server.get(entity, PlayerColor).color),
                    MovementSystemContext(context.move_speed),
                )
                self.replica.mark_owner_predicted(mirror, self._local_owner)
                self._mirrors[entity] = mirror
            else:
                self.replica.receive_component(mirror, position, self.tick)
        for entity in [e for e in self._mirrors if e not in live]:
            self.replica.despawn(self._mirrors.pop(entity))
        return self.tick

    def update(self, delta_secs: float) -> None:
        """Advance the replica's interpolation by one frame."""
        if self.cli.mode is Mode.SINGLE_PLAYER:
            return
        self.replica.update(delta_secs)

    def boxes(self) -> list[tuple[Vec2, Color]]:
        """Boxes as this side sees them: the replica on a client, the server state otherwise."""
        world = self.replica if self.cli.mode is Mode.CLIENT else self.server
        return [
            (world.get(e, PredictedPosition).value, world.get(e, PlayerColor).color)
            for e in world.entities_with(PredictedPosition, PlayerColor)
        ]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the owner-predicted box demo and print its state."""
    game = PredictedBoxGame(parse_cli(argv))
    _print_state(game.label, game.boxes())
    return 0