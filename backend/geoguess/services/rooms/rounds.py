"""Round lifecycle for a room: waiting -> playing -> ended -> waiting.

``start_round`` and ``next_round`` are host actions, ``submit_guess`` is a
player action and ``end_round`` is triggered by the system: every player
guessed, the round timer expired, or the shared guess countdown expired.
"""
import math
import time
from functools import partial

from geoguess.errors import (
    AttemptsExhausted,
    Forbidden,
    InvalidPayload,
    InvalidState,
    PlayerNotFound,
    RoomNotFound,
)
from geoguess.models import ENDED, PLAYING, WAITING, Room


def now_ms() -> int:
    return int(time.time() * 1000)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _require_host(room: Room, requester_id: str, action: str) -> None:
    if room.host_id != requester_id:
        raise Forbidden(f'only the host can {action}')


def _arm(rooms, room: Room, attr: str, seconds: int) -> None:
    kind = 'round' if attr == 'round_timer' else 'countdown'
    handle = rooms.scheduler.arm(
        f"room={room.id} kind={kind}",
        seconds,
        partial(_on_timer, rooms, room.id, attr),
    )
    setattr(room, attr, handle)


def _on_timer(rooms, room_id: str, attr: str, handle) -> None:
    with rooms.lock:
        room = rooms.get_room(room_id)
        if room is None:
            rooms.logger.info(f"[timer-abort] room={room_id} room gone")
            return
        if getattr(room, attr) is not handle:
            rooms.logger.info(f"[timer-abort] room={room_id} {attr} superseded")
            return
        setattr(room, attr, None)
        end_round(rooms, room_id, reason='timer' if attr == 'round_timer' else 'countdown')


def start_round(rooms, room_id, requester_id: str, spawn_index=None) -> Room:
    with rooms.lock:
        room = rooms.require_room(room_id)
        _require_host(room, requester_id, 'start a round')
        if room.status == ENDED:
            raise InvalidState('round has ended; advance to the next round first')

        room.cancel_timers()
        room.status = PLAYING
        if isinstance(spawn_index, int) and not isinstance(spawn_index, bool):
            room.spawn_index = spawn_index % rooms.spawn_index_bound
        elif _is_finite_number(spawn_index):
            room.spawn_index = int(spawn_index) % rooms.spawn_index_bound
        room.started_at = now_ms()
        room.reset_players()

        rooms.broadcaster.emit(room.id, 'round_started', {
            'spawnIndex': room.spawn_index,
            'settings': dict(room.settings),
            'startedAt': room.started_at,
        })
        time_limit = room.settings.get('timeLimit', -1)
        if time_limit > 0:
            _arm(rooms, room, 'round_timer', time_limit)
        rooms.logger.info(f"[round-start] room={room.id} spawn={room.spawn_index} players={len(room.players)}")
        return room


def submit_guess(rooms, room_id, sid: str, lat, lng, client_time=None):
    """Record a player's guess, overwriting any earlier one this round.

    Failure precedence: room missing, player missing, not playing,
    attempts used up, then malformed coordinates.
    """
    with rooms.lock:
        room = rooms.get_room(room_id)
        if room is None:
            raise RoomNotFound()
        player = room.players.get(sid)
        if player is None:
            raise PlayerNotFound()
        if room.status != PLAYING:
            raise InvalidState('not playing')
        if player.submit_count >= rooms.max_guesses:
            raise AttemptsExhausted()
        if not (_is_finite_number(lat) and _is_finite_number(lng)):
            raise InvalidPayload('lat and lng must be numbers')

        player.submit_count += 1
        player.last_guess = {
            'lat': lat,
            'lng': lng,
            'time': client_time if _is_finite_number(client_time) and client_time else now_ms(),
        }
        rooms.broadcaster.emit(room.id, 'player_guessed', {
            'playerId': player.id,
            'name': player.name,
            'color': player.color,
            'submitCount': player.submit_count,
        })

        # First guess of the round starts the shared countdown
        countdown = room.settings.get('guessCountdown', -1)
        if countdown > 0 and room.countdown_timer is None:
            rooms.broadcaster.emit(room.id, 'countdown_started', {'duration': countdown})
            _arm(rooms, room, 'countdown_timer', countdown)

        if room.all_guessed():
            end_round(rooms, room.id, reason='all-guessed')
        return player


def end_round(rooms, room_id, reason: str = 'manual') -> bool:
    """Finish the current round once; later calls for the same round do nothing."""
    with rooms.lock:
        room = rooms.get_room(room_id)
        if room is None:
            return False
        room.cancel_timers()
        if room.status != PLAYING:
            return False
        room.status = ENDED
        for player in room.players.values():
            player.excluded = player.last_guess is None
        results = room.results()
        rooms.broadcaster.emit(room.id, 'round_ended', {
            'results': results,
            'spawnIndex': room.spawn_index,
            'startedAt': room.started_at,
        })
        guessed = sum(1 for r in results if not r['excluded'])
        rooms.logger.info(f"[round-end] room={room.id} reason={reason} guessed={guessed}/{len(results)}")
        return True


def next_round(rooms, room_id, requester_id: str) -> Room:
    with rooms.lock:
        room = rooms.require_room(room_id)
        _require_host(room, requester_id, 'advance the round')
        room.spawn_index = (room.spawn_index + 1) % rooms.spawn_index_bound
        room.status = WAITING
        room.cancel_timers()
        room.reset_players()
        rooms.broadcaster.emit(room.id, 'round_ready')
        rooms.logger.info(f"[next-round] room={room.id} spawn={room.spawn_index}")
        return room
