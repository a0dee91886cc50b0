import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Socket.IO transport
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # None lets Flask-SocketIO pick eventlet/gevent/threading
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or None
    # Round rules
    MAX_GUESSES = int(os.environ.get('MAX_GUESSES', '2'))
    SPAWN_INDEX_BOUND = int(os.environ.get('SPAWN_INDEX_BOUND', '100000'))
    ROOM_ID_DIGITS = int(os.environ.get('ROOM_ID_DIGITS', '4'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    # Room settings defaults (seconds, -1 disables)
    DEFAULT_TIME_LIMIT_SEC = int(os.environ.get('DEFAULT_TIME_LIMIT_SEC', '-1'))
    DEFAULT_GUESS_COUNTDOWN_SEC = int(os.environ.get('DEFAULT_GUESS_COUNTDOWN_SEC', '-1'))
    # Seconds a disconnected player is kept before removal. 0 removes immediately.
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '0'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
