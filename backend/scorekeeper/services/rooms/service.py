"""Room operations as exposed to the transport layer.

Each method is one atomic step against a single room (see
``RoomRegistry.apply``) and returns the resulting Room, whose ``to_dict``
is the snapshot sent to clients.
"""

import logging
from typing import Optional

from . import stats
from .accumulator import RoundAccumulator
from .errors import NotFoundError, ValidationError
from .registry import RoomRegistry
from .room import Identity, Room
from .settlement import SettlementView

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, registry: RoomRegistry, min_players: int = 2, allow_late_join: bool = False):
        self.registry = registry
        self.min_players = min_players
        self.allow_late_join = allow_late_join
        self.accumulator = RoundAccumulator()

    def create_room(self, host: Identity) -> Room:
        return self.registry.create(host)

    def join_room(self, identity: Identity, join_code: str) -> Room:
        code = (join_code or '').strip()
        if not code:
            raise ValidationError('join code is required')
        room = self.registry.find_by_code(code)
        if room is None:
            raise NotFoundError(f'no room with code {code}')
        return self.registry.apply(
            room.id, lambda r: r.join(identity, code, allow_late_join=self.allow_late_join)
        )

    def start_room(self, room_id: str, caller_id: str) -> Room:
        return self.registry.apply(room_id, lambda r: r.start(caller_id, min_players=self.min_players))

    def get_room(self, room_id: str = None, join_code: str = None) -> Optional[Room]:
        if room_id:
            return self.registry.find_by_id(room_id)
        if join_code:
            return self.registry.find_by_code(join_code.strip())
        return None

    def submit_round(self, room_id: str, caller_id: str, is_winner: bool, score=None) -> Room:
        if not isinstance(is_winner, bool):
            raise ValidationError('is_winner must be true or false')
        return self.registry.apply(
            room_id,
            lambda r: r.submit_round(caller_id, is_winner, score, accumulator=self.accumulator),
        )

    def undo_last_round(self, room_id: str, caller_id: str) -> Room:
        return self.registry.apply(room_id, lambda r: r.undo_last_round(caller_id))

    def finish_room(self, room_id: str, caller_id: str) -> Room:
        return self.registry.apply(room_id, lambda r: r.finish(caller_id))

    def leave_room(self, room_id: str, user_id: str) -> None:
        room = self.registry.apply(room_id, lambda r: r.leave(user_id, accumulator=self.accumulator))
        if not room.members:
            self.registry.delete(room.id)
            logger.info(f"[leave] room={room.id} empty, deleted")

    def settlement(self, room_id: str) -> SettlementView:
        return SettlementView.from_room(self.registry.get(room_id))

    def recent_games(self, user_id: str, limit: int = 10):
        return stats.recent_games(self.registry.store, user_id, limit)

    def user_stats(self, user_id: str):
        return stats.user_stats(self.registry.store, user_id)
