import json

import pytest
from websockets.exceptions import ConnectionClosedError

from maritime_stream.client import ConnectionManager, ConnectionStatus
from maritime_stream.config import StreamConfig
from maritime_stream.envelope import Category, encode
from maritime_stream.telemetry import MaritimeDataGenerator

from .conftest import FakeConnector, settle

URL = "ws://localhost:8080"


def weather_frame():
    return encode(Category.WEATHER_DATA, MaritimeDataGenerator().generate_weather_data())


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def manager(connector, clock):
    return ConnectionManager(URL, StreamConfig(), connector=connector, clock=clock)


async def test_initial_status_is_connecting(manager):
    assert manager.status is ConnectionStatus.CONNECTING
    assert manager.last_message is None


async def test_open_moves_to_connected(manager, connector):
    statuses = []
    manager.on_status(statuses.append)
    manager.connect()
    await settle()
    assert manager.status is ConnectionStatus.CONNECTED
    assert manager.is_connected
    assert connector.attempts == 1
    assert statuses == [ConnectionStatus.CONNECTED]
    await manager.disconnect()


async def test_unreachable_endpoint_schedules_one_reconnect(clock):
    connector = FakeConnector(fail=True)
    manager = ConnectionManager(URL, StreamConfig(), connector=connector, clock=clock)
    manager.connect()
    await settle()
    assert manager.status is ConnectionStatus.DISCONNECTED
    assert connector.attempts == 1
    assert manager.reconnect_pending
    assert clock.pending() == 1

    await clock.advance(2.5)
    assert connector.attempts == 1
    await clock.advance(0.5)
    assert connector.attempts == 2
    assert manager.status is ConnectionStatus.DISCONNECTED
    await manager.disconnect()


async def test_disconnect_before_delay_cancels_reconnect(clock):
    connector = FakeConnector(fail=True)
    manager = ConnectionManager(URL, StreamConfig(), connector=connector, clock=clock)
    manager.connect()
    await settle()
    await manager.disconnect()
    await clock.advance(30)
    assert connector.attempts == 1
    assert not manager.reconnect_pending
    assert manager.status is ConnectionStatus.DISCONNECTED


async def test_dropped_connection_reconnects_after_fixed_delay(manager, connector, clock):
    manager.connect()
    await settle()
    connector.connections[0].drop()
    await settle()
    assert manager.status is ConnectionStatus.DISCONNECTED
    await clock.advance(3.0)
    assert connector.attempts == 2
    assert manager.status is ConnectionStatus.CONNECTED
    assert not manager.reconnect_pending
    await manager.disconnect()


async def test_transport_error_also_reconnects(manager, connector, clock):
    manager.connect()
    await settle()
    connector.connections[0].drop(ConnectionClosedError(None, None))
    await settle()
    assert manager.status is ConnectionStatus.DISCONNECTED
    await clock.advance(3.0)
    assert manager.is_connected
    await manager.disconnect()


async def test_fixed_delay_does_not_grow(clock):
    connector = FakeConnector(fail=True)
    manager = ConnectionManager(URL, StreamConfig(), connector=connector, clock=clock)
    manager.connect()
    await clock.advance(3.0 * 5)
    assert connector.attempts == 6
    await manager.disconnect()


async def test_backoff_and_attempt_limit(clock):
    connector = FakeConnector(fail=True)
    config = StreamConfig(reconnect_delay=1.0, reconnect_backoff=2.0, reconnect_max_attempts=3)
    manager = ConnectionManager(URL, config, connector=connector, clock=clock)
    manager.connect()
    await clock.advance(1.0)
    assert connector.attempts == 2
    await clock.advance(1.5)
    assert connector.attempts == 2
    await clock.advance(0.5)
    assert connector.attempts == 3
    await clock.advance(4.0)
    assert connector.attempts == 4
    await clock.advance(100)
    assert connector.attempts == 4
    assert not manager.reconnect_pending


async def test_connect_is_idempotent(manager, connector):
    manager.connect()
    manager.connect()
    await settle()
    manager.connect()
    await settle()
    assert connector.attempts == 1
    await manager.disconnect()


async def test_frames_update_last_message(manager, connector):
    seen = []
    manager.on_message(seen.append)
    manager.connect()
    await settle()
    connector.connections[0].feed(weather_frame())
    await settle()
    assert manager.last_message.category is Category.WEATHER_DATA
    assert seen == [manager.last_message]
    await manager.disconnect()


async def test_malformed_frame_is_dropped_and_connection_kept(manager, connector, caplog):
    errors = []
    manager.on_error(errors.append)
    manager.connect()
    await settle()
    conn = connector.connections[0]
    conn.feed("{not json")
    await settle()
    assert manager.status is ConnectionStatus.CONNECTED
    assert manager.last_message is None
    assert manager.parse_errors == 1
    assert len(errors) == 1
    assert "Failed to parse" in caplog.text

    conn.feed(weather_frame())
    await settle()
    assert manager.last_message.category is Category.WEATHER_DATA
    await manager.disconnect()


def test_handle_frame_never_raises(manager):
    assert manager.handle_frame('{"type": "vessel_update", "data": {}, "timestamp": "x"}') is None
    assert manager.handle_frame(b"\x00\x01") is None
    assert manager.parse_errors == 2
    assert manager.status is ConnectionStatus.CONNECTING


async def test_listener_errors_do_not_break_receive_loop(manager, connector):
    def bad_listener(envelope):
        raise RuntimeError("ui bug")

    manager.on_message(bad_listener)
    manager.connect()
    await settle()
    connector.connections[0].feed(weather_frame())
    connector.connections[0].feed(weather_frame())
    await settle()
    assert manager.is_connected
    await manager.disconnect()


async def test_send_message_only_when_open(manager, connector):
    assert await manager.send_message({"ack": 1}) is False
    manager.connect()
    await settle()
    assert await manager.send_message({"ack": 1}) is True
    assert json.loads(connector.connections[0].sent[0]) == {"ack": 1}
    assert await manager.send_message({"bad": object()}) is False
    connector.connections[0].broken = True
    assert await manager.send_message({"ack": 2}) is False
    await manager.disconnect()
    assert await manager.send_message({"ack": 3}) is False


async def test_disconnect_closes_transport_and_allows_manual_reconnect(manager, connector, clock):
    manager.connect()
    await settle()
    await manager.disconnect()
    assert connector.connections[0].closed
    assert manager.status is ConnectionStatus.DISCONNECTED
    await clock.advance(10)
    assert connector.attempts == 1

    manager.connect()
    await settle()
    assert manager.is_connected
    assert connector.attempts == 2
    await manager.disconnect()


async def test_deeply_nested_frame_is_dropped_and_connection_kept(manager, connector):
    manager.connect()
    await settle()
    conn = connector.connections[0]
    conn.feed("[" * 200000)
    await settle()
    assert manager.status is ConnectionStatus.CONNECTED
    assert manager.parse_errors == 1
    conn.feed(weather_frame())
    await settle()
    assert manager.last_message.category is Category.WEATHER_DATA
    await manager.disconnect()


async def test_receive_loop_failure_drops_connection_and_reconnects(manager, connector, clock, monkeypatch, caplog):
    def explode(frame):
        raise RuntimeError("decoder bug")

    manager.connect()
    await settle()
    monkeypatch.setattr(manager, "handle_frame", explode)
    connector.connections[0].feed(weather_frame())
    await settle()
    assert manager.status is ConnectionStatus.DISCONNECTED
    assert connector.connections[0].closed
    assert manager.reconnect_pending
    assert "receive loop failed" in caplog.text

    monkeypatch.undo()
    await clock.advance(3.0)
    assert manager.is_connected
    assert connector.attempts == 2
    await manager.disconnect()
