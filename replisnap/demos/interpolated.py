"""Box demo whose client view interpolates between server snapshots."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from replisnap.demos.common import (
    GREEN,
    MAX_TICK_RATE,
    MOVE_SPEED,
    SERVER_CLIENT_ID,
    Cli,
    Color,
    Mode,
    PlayerColor,
    PlayerPosition,
    _label,
    _print_state,
    color_from_client_id,
    input_direction,
    parse_cli,
)
from replisnap.vec2 import Vec2
from replisnap.world import Interpolated, NetworkOwner, World

log = logging.getLogger(__name__)


class InterpolatedBoxGame:
    """An authoritative server world and a client replica that smooths snapshots."""

    def __init__(self, cli: Cli, max_tick_rate: int = MAX_TICK_RATE) -> None:
        self.cli = cli
        self.server = World(max_tick_rate)
        self.replica = World(max_tick_rate).replicate_interpolated(PlayerPosition)
        self.tick = 0
        self._mirrors: dict[int, int] = {}
        self.label, self.client_id = _label(cli.mode)
        self._spawn_player(SERVER_CLIENT_ID, GREEN)

    def _spawn_player(self, client_id: int, color: Color) -> int:
        return self.server.spawn(
            NetworkOwner(client_id),
            PlayerPosition(Vec2()),
            PlayerColor(color),
            Interpolated(),
        )

    def _require_server(self) -> None:
        if self.cli.mode is not Mode.SERVER:
            raise RuntimeError("client connections are handled only by a server")

    def connect_client(self, client_id: int) -> int:
        """Spawn a player for a newly connected client and return its server entity."""
        self._require_server()
        log.info("player: %s Connected", client_id)
        return self._spawn_player(client_id, color_from_client_id(client_id))

    def disconnect_client(self, client_id: int, reason: str) -> None:
        """Record that a client left."""
        self._require_server()
        log.info("client %s disconnected: %s", client_id, reason)

    def send_input(self, client_id: int, pressed: Iterable[str], delta_secs: float) -> Optional[Vec2]:
        """Move the client's box on the server; returns its new position, or None without input."""
        direction = input_direction(pressed)
        if direction == Vec2():
            return None
        for entity in self.server.entities_with(NetworkOwner, PlayerPosition):
            if self.server.get(entity, NetworkOwner).entity == client_id:
                position = self.server.get(entity, PlayerPosition)
                position.value = position.value + direction * (delta_secs * MOVE_SPEED)
                return position.value
        raise LookupError(f"`{client_id}` should be connected")

    def server_tick(self) -> int:
        """Replicate the server state to the replica as a new snapshot; returns the tick."""
        if self.cli.mode is Mode.SINGLE_PLAYER:
            raise RuntimeError("nothing is replicated in single player")
        self.tick += 1
        live: set[int] = set()
        for entity in self.server.entities_with(NetworkOwner, PlayerPosition, PlayerColor):
            live.add(entity)
            position = PlayerPosition(self.server.get(entity, PlayerPosition).value)
            mirror = self._mirrors.get(entity)
            if mirror is None:
                self._mirrors[entity] = self.replica.spawn(
                    self.server.get(entity, NetworkOwner),
                    position,
                    PlayerColor(self.server.get(entity, PlayerColor).color),
                    Interpolated(),
                )
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
            (world.get(e, PlayerPosition).value, world.get(e, PlayerColor).color)
            for e in world.entities_with(PlayerPosition, PlayerColor)
        ]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the interpolated box demo and print its state."""
    game = InterpolatedBoxGame(parse_cli(argv))
    _print_state(game.label, game.boxes())
    return 0