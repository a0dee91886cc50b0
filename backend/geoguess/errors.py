"""Errors raised by room and round operations.

Every error is reported back to the requesting socket only; none of them
affects the room or its other members.
"""


class GameError(Exception):
    code = 'error'
    default_message = 'request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])

    def to_ack(self) -> dict:
        return {'ok': False, 'error': self.code, 'msg': self.message}


class NotFound(GameError):
    code = 'not_found'
    default_message = 'not found'


class RoomNotFound(NotFound):
    default_message = 'room not found'


class PlayerNotFound(NotFound):
    default_message = 'player not in room'


class Forbidden(GameError):
    code = 'forbidden'
    default_message = 'only the host can do that'


class InvalidState(GameError):
    code = 'invalid_state'
    default_message = 'not allowed in the current room status'


class AttemptsExhausted(GameError):
    code = 'attempts_exhausted'
    default_message = 'no guesses left this round'


class InvalidPayload(GameError):
    code = 'invalid_payload'
    default_message = 'invalid request payload'


class RoomCapacityReached(GameError):
    code = 'unavailable'
    default_message = 'no free room ids left'
