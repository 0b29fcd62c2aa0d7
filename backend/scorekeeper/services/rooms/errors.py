"""Typed errors raised by room operations.

Each error carries a stable machine ``code`` and an HTTP ``status`` hint.
Callers map codes to localized messages; the core never does.
"""


class RoomError(Exception):
    code = 'room_error'
    status = 400

    def __init__(self, detail: str = '', **context):
        super().__init__(detail or self.code)
        self.detail = detail
        self.context = context

    def to_dict(self):
        payload = {'error': self.code}
        if self.detail:
            payload['detail'] = self.detail
        payload.update(self.context)
        return payload


class NotFoundError(RoomError):
    code = 'not_found'
    status = 404


class NotHostError(RoomError):
    code = 'not_host'
    status = 403


class AlreadyMemberError(RoomError):
    """Raised on a repeated join; ``room_id`` lets callers redirect."""
    code = 'already_member'
    status = 409

    def __init__(self, detail: str = '', room_id: str = None):
        super().__init__(detail, room_id=room_id)
        self.room_id = room_id


class InsufficientPlayersError(RoomError):
    code = 'insufficient_players'
    status = 400


class ConflictError(RoomError):
    code = 'conflict'
    status = 409


class InvalidStateError(RoomError):
    code = 'invalid_state'
    status = 409


class ValidationError(RoomError):
    code = 'validation_error'
    status = 400


class StaleRoomError(RoomError):
    """A store refused a save because the room changed underneath it."""
    code = 'stale_room'
    status = 409
