"""Final ranking of a finished room.

Pure derivation: building a SettlementView never touches the room, and the
same room state always yields the same view.
"""

import copy
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from .errors import InvalidStateError
from .room import Room, Round, RoomStatus, encode_score


@dataclass(frozen=True)
class Standing:
    rank: int
    user_id: str
    display_name: str
    avatar_ref: str
    total_score: Decimal
    is_host: bool

    def to_dict(self):
        return {
            'rank': self.rank,
            'user_id': self.user_id,
            'display_name': self.display_name,
            'avatar_ref': self.avatar_ref,
            'total_score': encode_score(self.total_score),
            'is_host': self.is_host,
        }


@dataclass(frozen=True)
class SettlementView:
    room_id: str
    join_code: str
    finished_at: Optional[float]
    standings: Tuple[Standing, ...]
    rounds: Tuple[Round, ...]

    @classmethod
    def from_room(cls, room: Room) -> 'SettlementView':
        if room.status != RoomStatus.FINISHED:
            raise InvalidStateError(f'room {room.id} is not finished')

        # Highest total first; ties keep join order (sorted is stable).
        ordered = sorted(room.members, key=lambda p: -p.total_score)
        standings = []
        for position, player in enumerate(ordered, start=1):
            if standings and standings[-1].total_score == player.total_score:
                rank = standings[-1].rank
            else:
                rank = position
            standings.append(Standing(
                rank=rank,
                user_id=player.user_id,
                display_name=player.display_name,
                avatar_ref=player.avatar_ref,
                total_score=player.total_score,
                is_host=player.is_host,
            ))

        return cls(
            room_id=room.id,
            join_code=room.join_code,
            finished_at=room.finished_at,
            standings=tuple(standings),
            rounds=tuple(copy.deepcopy(r) for r in room.rounds if r.is_complete),
        )

    @property
    def round_count(self) -> int:
        return len(self.rounds)

    @property
    def leader(self) -> Optional[Standing]:
        return self.standings[0] if self.standings else None

    def to_dict(self):
        return {
            'room_id': self.room_id,
            'join_code': self.join_code,
            'finished_at': self.finished_at,
            'standings': [s.to_dict() for s in self.standings],
            'round_count': self.round_count,
            'rounds': [r.to_dict() for r in self.rounds],
        }
