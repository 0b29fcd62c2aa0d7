"""Room domain services: membership, rounds, totals and settlement.

This package contains the room/round state machine and its storage seams.
It never touches Flask request state, so it can be driven by HTTP routes,
socket handlers or tests alike.
"""

from .errors import (
    RoomError,
    NotFoundError,
    NotHostError,
    AlreadyMemberError,
    InsufficientPlayersError,
    ConflictError,
    InvalidStateError,
    ValidationError,
    StaleRoomError,
)
from .room import Identity, Player, Round, Room, RoomStatus
from .accumulator import RoundAccumulator
from .registry import RoomRegistry, InMemoryRoomStore
from .settlement import SettlementView
from .service import RoomService

__all__ = [
    'RoomError',
    'NotFoundError',
    'NotHostError',
    'AlreadyMemberError',
    'InsufficientPlayersError',
    'ConflictError',
    'InvalidStateError',
    'ValidationError',
    'StaleRoomError',
    'Identity',
    'Player',
    'Round',
    'Room',
    'RoomStatus',
    'RoundAccumulator',
    'RoomRegistry',
    'InMemoryRoomStore',
    'SettlementView',
    'RoomService',
]
