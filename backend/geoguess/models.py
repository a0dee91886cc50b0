import random
from typing import Dict, Optional

from geoguess.errors import RoomCapacityReached

WAITING = 'waiting'
PLAYING = 'playing'
ENDED = 'ended'

TEAMS = ('red', 'blue')
HOST_COLOR = '#1f2937'
PLAYER_COLORS = [
    '#ef4444', '#f59e0b', '#10b981', '#3b82f6', '#8b5cf6',
    '#ec4899', '#06b6d4', '#f97316', '#0ea5a4', '#7c3aed',
]


def random_team() -> str:
    return random.choice(TEAMS)


def generate_room_id(taken, digits=4, attempts=100):
    """Generate a short numeric room id not present in ``taken``.

    Random draws first; once those keep colliding, pick from the ids still free.
    """
    low, high = 10 ** (digits - 1), 10 ** digits - 1
    for _ in range(attempts):
        room_id = str(random.randint(low, high))
        if room_id not in taken:
            return room_id
    free = [str(n) for n in range(low, high + 1) if str(n) not in taken]
    if not free:
        raise RoomCapacityReached()
    return random.choice(free)


def _seconds_or_disabled(value, default):
    if value is None:
        value = default
    if isinstance(value, bool):
        return -1
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return -1
    return seconds if seconds > 0 else -1


def normalize_settings(raw, default_time_limit=-1, default_guess_countdown=-1):
    raw = raw if isinstance(raw, dict) else {}
    return {
        'timeLimit': _seconds_or_disabled(raw.get('timeLimit'), default_time_limit),
        'guessCountdown': _seconds_or_disabled(raw.get('guessCountdown'), default_guess_countdown),
    }


class Player:
    def __init__(self, id, name, color, team=None):
        self.id = id
        self.name = name
        self.color = color
        self.team = team or random_team()
        self.connected = True
        self.submit_count = 0
        self.last_guess: Optional[dict] = None
        self.excluded = False

    def reset_round(self):
        self.submit_count = 0
        self.last_guess = None
        self.excluded = False

    def toggle_team(self):
        self.team = 'blue' if self.team == 'red' else 'red'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'connected': self.connected,
            'submitCount': self.submit_count,
            'excluded': self.excluded,
            'team': self.team,
        }

    def to_result(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'lastGuess': dict(self.last_guess) if self.last_guess else None,
            'excluded': self.last_guess is None,
            'submitCount': self.submit_count,
            'team': self.team,
        }


class Room:
    def __init__(self, id, host_id, settings):
        self.id = id
        self.host_id: Optional[str] = host_id
        self.settings = settings
        self.players: Dict[str, Player] = {}
        self.spawn_index = 0
        self.status = WAITING
        self.started_at: Optional[int] = None
        # Pending TimerHandle objects, owned by this room only
        self.round_timer = None
        self.countdown_timer = None

    @property
    def is_empty(self) -> bool:
        return not self.players

    def all_guessed(self) -> bool:
        return bool(self.players) and all(p.last_guess is not None for p in self.players.values())

    def reset_players(self):
        for player in self.players.values():
            player.reset_round()

    def cancel_timers(self):
        for attr in ('round_timer', 'countdown_timer'):
            handle = getattr(self, attr)
            if handle is not None:
                handle.cancel()
                setattr(self, attr, None)

    def results(self):
        return [p.to_result() for p in self.players.values()]

    def to_dict(self):
        return {
            'roomId': self.id,
            'status': self.status,
            'players': [p.to_dict() for p in self.players.values()],
            'hostId': self.host_id,
            'settings': dict(self.settings),
            'spawnIndex': self.spawn_index,
        }

    def summary(self):
        return {
            'roomId': self.id,
            'status': self.status,
            'playerCount': len(self.players),
            'hostId': self.host_id,
        }
