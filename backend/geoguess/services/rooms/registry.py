import logging
import threading
from typing import Dict, Iterable, List, Optional

from geoguess.broadcast import SocketIOBroadcaster
from geoguess.errors import Forbidden, PlayerNotFound, RoomNotFound
from geoguess.models import (
    HOST_COLOR,
    PLAYER_COLORS,
    PLAYING,
    Player,
    Room,
    generate_room_id,
    normalize_settings,
)
from . import rounds
from .scheduler import TimerHandle, TimerScheduler


def choose_new_host(remaining: Iterable[Player]) -> Optional[str]:
    """Pick the next host: first connected member in join order, else the first member."""
    remaining = list(remaining)
    for player in remaining:
        if player.connected:
            return player.id
    return remaining[0].id if remaining else None


class RoomRegistry:
    """Process-wide store of live rooms.

    Every mutation runs under ``lock`` so handlers dispatched on different
    threads or greenlets never interleave on room state. Timer callbacks
    take the same lock.
    """

    def __init__(self, broadcaster=None, scheduler=None, logger=None, **options):
        self._rooms: Dict[str, Room] = {}
        # Deferred removals of disconnected sessions, keyed by sid
        self._pending_drops: Dict[str, TimerHandle] = {}
        self.lock = threading.RLock()
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.logger = logger or logging.getLogger(__name__)
        self.configure(**options)

    def configure(self, max_guesses=2, spawn_index_bound=100000, room_id_digits=4,
                  max_name_length=24, default_time_limit=-1, default_guess_countdown=-1,
                  disconnect_grace_sec=0):
        self.max_guesses = max_guesses
        self.spawn_index_bound = spawn_index_bound
        self.room_id_digits = room_id_digits
        self.max_name_length = max_name_length
        self.default_time_limit = default_time_limit
        self.default_guess_countdown = default_guess_countdown
        self.disconnect_grace_sec = disconnect_grace_sec

    def init_app(self, app, socketio):
        cfg = app.config
        self.reset()
        self.logger = app.logger
        self.broadcaster = SocketIOBroadcaster(socketio, cfg.get('SOCKETIO_NAMESPACE', '/'))
        self.scheduler = TimerScheduler(socketio, app.logger, int(cfg.get('TIMER_HEARTBEAT_SEC', 0)))
        self.configure(
            max_guesses=int(cfg.get('MAX_GUESSES', 2)),
            spawn_index_bound=int(cfg.get('SPAWN_INDEX_BOUND', 100000)),
            room_id_digits=int(cfg.get('ROOM_ID_DIGITS', 4)),
            max_name_length=int(cfg.get('MAX_NAME_LENGTH', 24)),
            default_time_limit=int(cfg.get('DEFAULT_TIME_LIMIT_SEC', -1)),
            default_guess_countdown=int(cfg.get('DEFAULT_GUESS_COUNTDOWN_SEC', -1)),
            disconnect_grace_sec=float(cfg.get('DISCONNECT_GRACE_SEC', 0)),
        )
        app.extensions['geoguess_rooms'] = self

    def reset(self) -> None:
        with self.lock:
            for room in self._rooms.values():
                room.cancel_timers()
            for handle in self._pending_drops.values():
                handle.cancel()
            self._rooms = {}
            self._pending_drops = {}

    # ---- lookup ----

    def __len__(self):
        return len(self._rooms)

    def __contains__(self, room_id):
        return room_id in self._rooms

    def get_room(self, room_id) -> Optional[Room]:
        return self._rooms.get(str(room_id)) if room_id is not None else None

    def require_room(self, room_id) -> Room:
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def rooms_for(self, sid: str) -> List[str]:
        return [room_id for room_id, room in self._rooms.items() if sid in room.players]

    def snapshot(self) -> List[dict]:
        with self.lock:
            return [room.summary() for room in self._rooms.values()]

    def broadcast_update(self, room: Room) -> None:
        self.broadcaster.emit(room.id, 'room_update', room.to_dict())

    def _clean_name(self, name, default: str) -> str:
        if not isinstance(name, str):
            return default
        return name.strip()[:self.max_name_length] or default

    # ---- lifecycle ----

    def create_room(self, sid: str, name=None, settings=None) -> str:
        with self.lock:
            room_id = generate_room_id(self._rooms, self.room_id_digits)
            room = Room(
                room_id,
                host_id=sid,
                settings=normalize_settings(settings, self.default_time_limit, self.default_guess_countdown),
            )
            room.players[sid] = Player(sid, self._clean_name(name, 'Host'), HOST_COLOR)
            self._rooms[room_id] = room
            self.broadcaster.attach(sid, room_id)
            self.logger.info(f"[room-create] room={room_id} host={sid} settings={room.settings}")
            self.broadcast_update(room)
            return room_id

    def destroy_room(self, room_id) -> bool:
        with self.lock:
            room = self._rooms.pop(str(room_id), None)
            if room is None:
                return False
            room.cancel_timers()
            self.logger.info(f"[room-destroy] room={room.id}")
            return True

    def join_room(self, sid: str, room_id, name=None) -> Room:
        with self.lock:
            room = self.require_room(room_id)
            player = room.players.get(sid)
            if player is not None:
                player.name = self._clean_name(name, player.name)
                player.connected = True
            else:
                color = PLAYER_COLORS[len(room.players) % len(PLAYER_COLORS)]
                room.players[sid] = Player(sid, self._clean_name(name, 'Player'), color)
            self.broadcaster.attach(sid, room.id)
            self.logger.info(f"[room-join] room={room.id} player={sid} count={len(room.players)}")
            self.broadcast_update(room)
            return room

    def leave_room(self, sid: str, room_id) -> bool:
        with self.lock:
            room = self.get_room(room_id)
            if room is None or sid not in room.players:
                return False
            self.broadcaster.detach(sid, room.id)
            self._remove_player(room, sid, reason='leave')
            return True

    def kick(self, room_id, requester_id: str, target_id: str) -> None:
        with self.lock:
            room = self.require_room(room_id)
            if room.host_id != requester_id:
                raise Forbidden('only the host can kick players')
            if target_id not in room.players:
                raise PlayerNotFound()
            self.broadcaster.send_to(target_id, 'kicked')
            self.broadcaster.detach(target_id, room.id)
            self._remove_player(room, target_id, reason='kick')

    def toggle_team(self, room_id, requester_id: str, target_id: str) -> Player:
        with self.lock:
            room = self.require_room(room_id)
            if room.host_id != requester_id:
                raise Forbidden('only the host can change teams')
            player = room.players.get(target_id)
            if player is None:
                raise PlayerNotFound()
            player.toggle_team()
            self.broadcast_update(room)
            return player

    def _remove_player(self, room: Room, sid: str, reason: str) -> None:
        room.players.pop(sid, None)
        self.logger.info(f"[room-remove] room={room.id} player={sid} reason={reason}")
        if room.is_empty:
            self.destroy_room(room.id)
            return
        if room.host_id == sid:
            room.host_id = choose_new_host(room.players.values())
            self.logger.info(f"[host-reassign] room={room.id} host={room.host_id}")
        self.broadcast_update(room)
        if room.status == PLAYING and room.all_guessed():
            rounds.end_round(self, room.id, reason='all-guessed')

    # ---- disconnects ----

    def mark_disconnected(self, sid: str) -> List[str]:
        """First disconnect phase: flag the player and hand the host role over."""
        with self.lock:
            affected = self.rooms_for(sid)
            for room_id in affected:
                room = self._rooms[room_id]
                room.players[sid].connected = False
                if room.host_id == sid:
                    # A sole member keeps the host role until it is removed
                    new_host = choose_new_host(p for p in room.players.values() if p.id != sid)
                    if new_host is not None:
                        room.host_id = new_host
                        self.logger.info(f"[host-reassign] room={room.id} host={room.host_id}")
                self.broadcast_update(room)
            return affected

    def drop_session(self, sid: str) -> None:
        """Second disconnect phase: remove the player everywhere and drop empty rooms."""
        with self.lock:
            for room_id in self.rooms_for(sid):
                self._remove_player(self._rooms[room_id], sid, reason='disconnect')

    def _drop_after_grace(self, sid: str, handle: TimerHandle) -> None:
        with self.lock:
            if self._pending_drops.get(sid) is not handle:
                return
            del self._pending_drops[sid]
            self.drop_session(sid)

    def handle_disconnect(self, sid: str) -> None:
        if not self.mark_disconnected(sid):
            return
        if self.disconnect_grace_sec and self.disconnect_grace_sec > 0:
            with self.lock:
                previous = self._pending_drops.pop(sid, None)
                if previous is not None:
                    previous.cancel()
                self._pending_drops[sid] = self.scheduler.arm(
                    f"session={sid} kind=disconnect",
                    self.disconnect_grace_sec,
                    lambda handle: self._drop_after_grace(sid, handle),
                )
        else:
            self.drop_session(sid)
