"""Shared pieces of the box demos, and the plain variant without smoothing."""

from __future__ import annotations

import argparse
import enum
import ipaddress
import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from replisnap.interpolation import derive_interpolate
from replisnap.vec2 import Vec2
from replisnap.world import ClientNetId, World

log = logging.getLogger(__name__)

PORT = 5000
PROTOCOL_ID = 0
MAX_TICK_RATE = 5
MOVE_SPEED = 300.0
BOX_SIZE = 50.0
SERVER_CLIENT_ID = 0

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class Mode(enum.Enum):
    """How the demo runs."""

    SINGLE_PLAYER = "single-player"
    SERVER = "server"
    CLIENT = "client"


@dataclass(frozen=True)
class Cli:
    """Parsed command line of a demo."""

    mode: Mode
    port: int = PORT
    ip: IpAddress = ipaddress.IPv4Address("127.0.0.1")


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from None
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def _ip(text: str) -> IpAddress:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid IP address: {text!r}") from None


def parse_cli(argv: Optional[Sequence[str]] = None) -> Cli:
    """Parse the demo command line; exits with status 2 on bad input."""
    parser = argparse.ArgumentParser(description="Moving boxes over a replicated world.")
    commands = parser.add_subparsers(dest="mode", required=True)
    commands.add_parser(Mode.SINGLE_PLAYER.value, help="play locally")
    server = commands.add_parser(Mode.SERVER.value, help="host a game")
    server.add_argument("-p", "--port", type=_port, default=PORT)
    client = commands.add_parser(Mode.CLIENT.value, help="join a game")
    client.add_argument("-i", "--ip", type=_ip, default=ipaddress.IPv4Address("127.0.0.1"))
    client.add_argument("-p", "--port", type=_port, default=PORT)

    args = parser.parse_args(argv)
    mode = Mode(args.mode)
    if mode is Mode.SERVER:
        return Cli(mode, port=args.port)
    if mode is Mode.CLIENT:
        return Cli(mode, port=args.port, ip=args.ip)
    return Cli(mode)


@dataclass(frozen=True)
class Color:
    """An sRGB colour with channels in [0, 1]."""

    r: float
    g: float
    b: float


GREEN = Color(0.0, 128 / 255, 0.0)
WHITE = Color(1.0, 1.0, 1.0)


def color_from_client_id(client_id: int) -> Color:
    """A pseudo-random colour derived from a client id."""
    return Color((client_id % 23) / 23, (client_id % 27) / 27, (client_id % 39) / 39)


_KEY_DIRECTIONS = {
    "ArrowRight": Vec2(1.0, 0.0),
    "ArrowLeft": Vec2(-1.0, 0.0),
    "ArrowUp": Vec2(0.0, 1.0),
    "ArrowDown": Vec2(0.0, -1.0),
}


def input_direction(pressed: Iterable[str]) -> Vec2:
    """Unit movement direction for the pressed arrow keys; zero when they cancel out."""
    direction = Vec2()
    for key in set(pressed):
        direction = direction + _KEY_DIRECTIONS.get(key, Vec2())
    return direction.normalize_or_zero()


@derive_interpolate
@dataclass
class PlayerPosition:
    """Position of a player's box."""

    value: Vec2 = field(default_factory=Vec2)


@dataclass
class PlayerColor:
    """Colour of a player's box."""

    color: Color


@dataclass(frozen=True)
class MoveDirection:
    """A movement request for the controlled box."""

    direction: Vec2 = field(default_factory=Vec2)


def _label(mode: Mode) -> tuple[Optional[str], Optional[int]]:
    if mode is Mode.SERVER:
        return "Server", None
    if mode is Mode.CLIENT:
        client_id = time.time_ns() // 1_000_000
        return f"Client: {client_id}", client_id
    return None, None


class PlainBoxGame:
    """Boxes whose positions are replicated as-is, without smoothing."""

    def __init__(self, cli: Cli) -> None:
        self.cli = cli
        self.world = World(MAX_TICK_RATE)
        self.label, self.client_id = _label(cli.mode)
        if cli.mode is not Mode.CLIENT:
            self._spawn_player(SERVER_CLIENT_ID, GREEN)

    def _spawn_player(self, client_id: int, color: Color) -> int:
        return self.world.spawn(
            ClientNetId(client_id), PlayerPosition(Vec2()), PlayerColor(color)
        )

    def _require_server(self) -> None:
        if self.cli.mode is not Mode.SERVER:
            raise RuntimeError("client connections are handled only by a server")

    def connect_client(self, client_id: int) -> int:
        """Spawn a player for a newly connected client and return its entity."""
        self._require_server()
        log.info("player: %s Connected", client_id)
        return self._spawn_player(client_id, color_from_client_id(client_id))

    def disconnect_client(self, client_id: int, reason: str) -> None:
        """Record that a client left."""
        self._require_server()
        log.info("client %s disconnected: %s", client_id, reason)

    def send_input(self, client_id: int, pressed: Iterable[str], delta_secs: float) -> Optional[Vec2]:
        """Move the client's box by the pressed keys; returns its new position, or None without input."""
        if self.cli.mode is Mode.CLIENT:
            raise RuntimeError("movement runs only on the server or in single player")
        direction = input_direction(pressed)
        if direction == Vec2():
            return None
        for entity in self.world.entities_with(ClientNetId, PlayerPosition):
            if self.world.get(entity, ClientNetId).client_id == client_id:
                position = self.world.get(entity, PlayerPosition)
                position.value = position.value + direction * (delta_secs * MOVE_SPEED)
                return position.value
        raise LookupError(f"`{client_id}` should be connected")

    def boxes(self) -> list[tuple[Vec2, Color]]:
        """Position and colour of every box, in spawn order."""
        return [
            (self.world.get(e, PlayerPosition).value, self.world.get(e, PlayerColor).color)
            for e in self.world.entities_with(PlayerPosition, PlayerColor)
        ]


def _print_state(label: Optional[str], boxes: list[tuple[Vec2, Color]]) -> None:
    if label:
        print(label)
    for position, color in boxes:
        print(
            f"box at ({position.x:.1f}, {position.y:.1f}) size {BOX_SIZE:g} "
            f"color ({color.r:.3f}, {color.g:.3f}, {color.b:.3f})"
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the plain box demo and print its state."""
    game = PlainBoxGame(parse_cli(argv))
    _print_state(game.label, game.boxes())
    return 0