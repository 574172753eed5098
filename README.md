# replisnap

Snapshot interpolation and owner-side prediction for entities replicated from
an authoritative game server. The package uses only the standard library.

## Modules

- **`replisnap.vec2`** – `Vec2`, an immutable 2D float vector with `+`, `-`,
  multiplication by a number, `length()`, `normalize_or_zero()` and
  `lerp(other, t)`, plus a plain `lerp(a, b, t)` helper that uses a value's
  own `lerp` method when it has one.
- **`replisnap.interpolation`** – the `Interpolate` base class; the
  `derive_interpolate` class decorator, which gives a dataclass an
  `interpolate(other, t)` that lerps every field (it raises `TypeError` for
  anything that is not a dataclass); `Snapshot`; and `SnapshotBuffer`, which
  keeps the last ten snapshots of a component, oldest first, with the tick of
  the latest one and its age (`age()`). `latest_snapshot()` returns a copy of
  the newest one and raises `LookupError` when the buffer is empty.
  `interpolate_snapshot(buffer, delta_secs, config)` blends the two oldest
  buffered snapshots over one server tick
  (`SnapshotInterpolationConfig.tick_duration()`) and advances the buffer's
  clock; it returns `None` when fewer than two snapshots are buffered or the
  latest one is older than a tick plus the frame time.
  `advance_predicted(buffer, delta_secs)` only ages a buffer.
- **`replisnap.prediction`** – the `Predict` base class
  (`apply_event(event, delta_time, context)`, mutating in place),
  `EventSnapshot`, `PredictedEventHistory`, which records local events with
  the tick and frame time they were issued at and drops those before the
  latest server tick (`remove_stale`, `predict`), and
  `predict_component(buffer, history, context)`, which replays the pending
  events on top of the latest buffered snapshot.
- **`replisnap.world`** – `World`, a small entity store that ties these
  together. Spawn entities with components such as `NetworkOwner`,
  `ClientNetId`, `Interpolated`, `OwnerPredicted` and `Predicted`; register
  interpolated component types with `replicate_interpolated`, and predicted
  events with `add_client_predicted_event` and `predict_event_for_component`.
  `mark_owner_predicted(entity, local_entity)` flags an entity as predicted
  when `local_entity` owns it and interpolated otherwise.
  `receive_component(entity, component, tick)` and `remove_component` apply
  replicated updates, `update(delta_secs)` runs one frame in the order given
  by `InterpolationSet`, and `server_apply_event` / `client_apply_event` apply
  a movement event on the server and re-predict on the client.

## Interpolation in short

Once an entity is flagged `Interpolated` or `Predicted` and holds a type
registered with `replicate_interpolated`, the next `update` starts recording
its snapshots: values passed to `receive_component` then go into the entity's
`SnapshotBuffer` instead of straight onto the entity, and each frame the
displayed value is blended between the buffered snapshots.

## Prediction in short

The owning client applies its own events at once and keeps them in a
`PredictedEventHistory`. Each new event is replayed, together with the
pending ones, on top of the latest server snapshot, so corrections from the
server are absorbed quietly. The server applies the same events through the
same `Predict.apply_event`.

## Demos

`replisnap.demos` holds three "simple box" games, each with an authoritative
server world and, for the networked variants, a client replica in the same
process:

- `PlainBoxGame` (`replisnap.demos.common`) moves boxes directly, without
  smoothing.
- `InterpolatedBoxGame` (`replisnap.demos.interpolated`) copies the server
  state to the replica on each `server_tick()` and interpolates every box.
- `PredictedBoxGame` (`replisnap.demos.owner_predicted`) predicts the local
  player's box and interpolates the others.

They share `connect_client`, `disconnect_client`, `send_input(client_id,
pressed, delta_secs)` (with arrow key names such as `"ArrowUp"`) and
`boxes()`. Each is also installed as a command:

    replisnap-plain single-player
    replisnap-interpolated server --port 5000
    replisnap-predicted client --ip 127.0.0.1 --port 5000

The modes are `single-player`, `server` (`-p/--port`, default 5000) and
`client` (`-i/--ip`, default 127.0.0.1, and `-p/--port`). A command sets up
the game for that mode, prints its label (`Server` or `Client: <id>`) and
the boxes it starts with, and exits.

## What it does not do

- There is no network transport: no sockets are opened, and the port and
  address options are only parsed and stored. Replication between the server
  world and the replica happens in memory through `server_tick()`.
- There is no window, drawing or keyboard reading; the commands print the
  starting state as text and do not run a game loop.

## Tests

    pip install -e ".[test]"
    pytest