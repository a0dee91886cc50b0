import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `geoguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from geoguess import create_app, rooms, socketio
from geoguess.services.rooms.registry import RoomRegistry
from geoguess.services.rooms.scheduler import TimerHandle


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = '/'
    SOCKETIO_ASYNC_MODE = 'threading'
    MAX_GUESSES = 2
    SPAWN_INDEX_BOUND = 100000
    ROOM_ID_DIGITS = 4
    MAX_NAME_LENGTH = 24
    DEFAULT_TIME_LIMIT_SEC = -1
    DEFAULT_GUESS_COUNTDOWN_SEC = -1
    DISCONNECT_GRACE_SEC = 0
    TIMER_HEARTBEAT_SEC = 0


class RecordingBroadcaster:
    """Stands in for the Socket.IO gateway and keeps everything it was asked to send."""

    def __init__(self):
        self.events = []
        self.direct = []
        self.members = defaultdict(set)

    def attach(self, sid, room_id):
        self.members[room_id].add(sid)

    def detach(self, sid, room_id):
        self.members[room_id].discard(sid)

    def emit(self, room_id, event, payload=None):
        self.events.append((room_id, event, payload))

    def send_to(self, sid, event, payload=None):
        self.direct.append((sid, event, payload))

    def names(self):
        return [name for _, name, _ in self.events]

    def payloads(self, event):
        return [payload for _, name, payload in self.events if name == event]

    def clear(self):
        self.events.clear()
        self.direct.clear()


class ManualScheduler:
    """Timers that only fire when the test says so."""

    def __init__(self):
        self.pending = []

    def arm(self, label, delay, callback):
        handle = TimerHandle(label, delay)
        self.pending.append((handle, callback))
        return handle

    def active(self):
        return [handle for handle, _ in self.pending if handle.active]

    def fire(self, handle):
        for armed, callback in list(self.pending):
            if armed is handle:
                self.pending.remove((armed, callback))
                if not armed.cancelled:
                    armed.fired = True
                    callback(armed)

    def fire_all(self):
        for handle, _ in list(self.pending):
            self.fire(handle)


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def registry(broadcaster, scheduler):
    return RoomRegistry(broadcaster=broadcaster, scheduler=scheduler)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    rooms.reset()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    """Connect any number of Socket.IO test clients; all are disconnected afterwards."""
    created = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _connect
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
