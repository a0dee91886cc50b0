from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from geoguess import rooms, socketio
from geoguess.errors import GameError
from geoguess.services.rooms import rounds


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _acked(event):
    """Turn a handler's return value into an ack and GameErrors into a failure ack."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(data=None):
            payload = data if isinstance(data, dict) else {}
            try:
                extra = fn(payload) or {}
            except GameError as exc:
                current_app.logger.info(f"[{event}-rejected] sid={_get_sid()} error={exc.code} msg={exc.message}")
                return exc.to_ack()
            return {'ok': True, **extra}
        return wrapper
    return decorator


def handle_connect(auth=None):
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    current_app.logger.info(f"[disconnect] sid={_get_sid()} reason={reason}")
    rooms.handle_disconnect(_get_sid())


@_acked('create_room')
def handle_create_room(data):
    room_id = rooms.create_room(_get_sid(), data.get('name'), data.get('settings'))
    return {'roomId': room_id}


@_acked('join_room')
def handle_join_room(data):
    room = rooms.join_room(_get_sid(), data.get('roomId'), data.get('name'))
    return {'roomId': room.id}


def handle_leave_room(data=None):
    # Fire-and-forget: no ack payload and no error for unknown rooms
    room_id = data.get('roomId') if isinstance(data, dict) else None
    rooms.leave_room(_get_sid(), room_id)


@_acked('kick_player')
def handle_kick_player(data):
    rooms.kick(data.get('roomId'), _get_sid(), data.get('playerId'))


@_acked('toggle_team')
def handle_toggle_team(data):
    player = rooms.toggle_team(data.get('roomId'), _get_sid(), data.get('playerId'))
    return {'team': player.team}


@_acked('start_round')
def handle_start_round(data):
    room = rounds.start_round(rooms, data.get('roomId'), _get_sid(), data.get('spawnIndex'))
    return {'spawnIndex': room.spawn_index}


@_acked('submit_guess')
def handle_submit_guess(data):
    player = rounds.submit_guess(
        rooms, data.get('roomId'), _get_sid(), data.get('lat'), data.get('lng'), data.get('time')
    )
    return {'submitCount': player.submit_count}


@_acked('next_round')
def handle_next_round(data):
    room = rounds.next_round(rooms, data.get('roomId'), _get_sid())
    return {'spawnIndex': room.spawn_index}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('create_room', handle_create_room, namespace=namespace)
    socketio.on_event('join_room', handle_join_room, namespace=namespace)
    socketio.on_event('leave_room', handle_leave_room, namespace=namespace)
    socketio.on_event('kick_player', handle_kick_player, namespace=namespace)
    socketio.on_event('toggle_team', handle_toggle_team, namespace=namespace)
    socketio.on_event('start_round', handle_start_round, namespace=namespace)
    socketio.on_event('submit_guess', handle_submit_guess, namespace=namespace)
    socketio.on_event('next_round', handle_next_round, namespace=namespace)
