import ipaddress
import logging

import pytest

from replisnap.demos.common import (
    GREEN,
    Cli,
    Color,
    Mode,
    MoveDirection,
    PlainBoxGame,
    PlayerPosition,
    color_from_client_id,
    input_direction,
    main,
    parse_cli,
)
from replisnap.vec2 import Vec2


def test_parse_server_defaults():
    assert parse_cli(["server"]) == Cli(Mode.SERVER, port=5000)


def test_parse_client_options():
    cli = parse_cli(["client", "--ip", "10.0.0.2", "-p", "6000"])
    assert cli.mode is Mode.CLIENT
    assert cli.port == 6000
    assert cli.ip == ipaddress.ip_address("10.0.0.2")


def test_parse_client_default_ip():
    assert parse_cli(["client"]).ip == ipaddress.ip_address("127.0.0.1")


def test_parse_single_player():
    assert parse_cli(["single-player"]).mode is Mode.SINGLE_PLAYER


@pytest.mark.parametrize(
    "argv", [[], ["server", "-p", "70000"], ["client", "--ip", "nowhere"], ["bogus"]]
)
def test_parse_rejects_bad_input(argv):
    with pytest.raises(SystemExit):
        parse_cli(argv)


def test_color_zero_id_is_black():
    assert color_from_client_id(0) == Color(0.0, 0.0, 0.0)


@pytest.mark.parametrize("client_id", [1, 22, 100, 12345])
def test_color_is_periodic_and_in_range(client_id):
    color = color_from_client_id(client_id)
    assert color == color_from_client_id(client_id + 23 * 27 * 39)
    assert all(0.0 <= c < 1.0 for c in (color.r, color.g, color.b))


def test_input_direction_diagonal_is_unit():
    d = input_direction({"ArrowRight", "ArrowUp"})
    assert d.length() == pytest.approx(1.0)
    assert d.x == pytest.approx(d.y)
    assert d.x > 0


def test_input_direction_cancels():
    assert input_direction(["ArrowLeft", "ArrowRight"]) == Vec2()
    assert input_direction([]) == Vec2()


def test_player_position_interpolates():
    a = PlayerPosition(Vec2(0.0, 0.0))
    b = PlayerPosition(Vec2(10.0, 20.0))
    assert a.interpolate(b, 0.0) == a
    assert a.interpolate(b, 1.0) == b


def test_move_direction_default_is_zero():
    assert MoveDirection().direction == Vec2()


def test_single_player_starts_with_green_box():
    game = PlainBoxGame(Cli(Mode.SINGLE_PLAYER))
    assert game.boxes() == [(Vec2(), GREEN)]
    assert game.label is None


def test_single_player_movement():
    game = PlainBoxGame(Cli(Mode.SINGLE_PLAYER))
    position = game.send_input(0, {"ArrowRight"}, 0.5)
    assert position.x == pytest.approx(150.0)
    assert position.y == 0.0
    assert game.boxes()[0][0] == position


def test_no_input_leaves_position():
    game = PlainBoxGame(Cli(Mode.SINGLE_PLAYER))
    assert game.send_input(0, set(), 1.0) is None
    assert game.boxes()[0][0] == Vec2()


def test_unknown_client_raises():
    game = PlainBoxGame(Cli(Mode.SINGLE_PLAYER))
    with pytest.raises(LookupError):
        game.send_input(42, {"ArrowUp"}, 0.1)


def test_server_connect_spawns_colored_box():
    game = PlainBoxGame(Cli(Mode.SERVER))
    game.connect_client(5)
    boxes = game.boxes()
    assert len(boxes) == 2
    assert boxes[1][1] == color_from_client_id(5)
    assert game.label == "Server"


def test_server_disconnect_logs(caplog):
    game = PlainBoxGame(Cli(Mode.SERVER))
    game.connect_client(5)
    with caplog.at_level(logging.INFO):
        game.disconnect_client(5, "timeout")
    assert "timeout" in caplog.text
    assert len(game.boxes()) == 2


def test_connect_outside_server_raises():
    with pytest.raises(RuntimeError):
        PlainBoxGame(Cli(Mode.SINGLE_PLAYER)).connect_client(1)


def test_client_mode_cannot_move():
    game = PlainBoxGame(Cli(Mode.CLIENT))
    assert game.label.startswith("Client: ")
    assert game.boxes() == []
    with pytest.raises(RuntimeError):
        game.send_input(0, {"ArrowUp"}, 0.1)


def test_main_prints_server_label(capsys):
    assert main(["server"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0] == "Server"
    assert "box at (0.0, 0.0)" in out