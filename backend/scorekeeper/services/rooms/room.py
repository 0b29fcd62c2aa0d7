"""Room aggregate: membership, status, round history and running totals.

Invariants:
    - status only moves forward: waiting -> playing -> finished
    - a finished room never changes members or rounds again
    - a waiting room has no rounds
    - at most one round is open (incomplete), and it is always the last one
    - a completed round sums to exactly zero and has been folded into the
      totals of the members who played it
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from .accumulator import RoundAccumulator
from .errors import (
    AlreadyMemberError,
    InsufficientPlayersError,
    InvalidStateError,
    NotFoundError,
    NotHostError,
)

logger = logging.getLogger(__name__)

# A round needs someone to balance the winner against.
MIN_ROUND_PLAYERS = 2


class RoomStatus:
    WAITING = 'waiting'
    PLAYING = 'playing'
    FINISHED = 'finished'

    ALL = (WAITING, PLAYING, FINISHED)


def encode_score(value: Decimal):
    """Render a score for JSON without losing precision.

    Integral scores stay numbers; fractional ones are sent as decimal strings
    so a float never rounds them.
    """
    if value == value.to_integral_value():
        return int(value)
    return str(value.normalize())


def decode_score(value) -> Decimal:
    return Decimal(str(value))


@dataclass
class Identity:
    """Who is calling, as yielded by the identity provider."""
    user_id: str
    display_name: str
    avatar_ref: str = ''


@dataclass
class Player:
    user_id: str
    display_name: str
    avatar_ref: str = ''
    total_score: Decimal = Decimal(0)
    is_host: bool = False

    @classmethod
    def from_identity(cls, identity: Identity, is_host: bool = False) -> 'Player':
        return cls(
            user_id=identity.user_id,
            display_name=identity.display_name,
            avatar_ref=identity.avatar_ref,
            is_host=is_host,
        )

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'display_name': self.display_name,
            'avatar_ref': self.avatar_ref,
            'total_score': encode_score(self.total_score),
            'is_host': self.is_host,
        }

    @classmethod
    def from_dict(cls, data) -> 'Player':
        return cls(
            user_id=data['user_id'],
            display_name=data.get('display_name', ''),
            avatar_ref=data.get('avatar_ref', ''),
            total_score=decode_score(data.get('total_score', 0)),
            is_host=bool(data.get('is_host')),
        )


@dataclass
class Round:
    """One hand of play.

    ``participant_ids`` are the members present when the round opened (minus
    any who left while it was open). Only they take part in completion and
    folding. The winner's entry in ``scores`` only appears once the round
    completes.
    """
    round_number: int
    participant_ids: List[str]
    scores: Dict[str, Decimal] = field(default_factory=dict)
    winner_id: Optional[str] = None
    completed_at: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        if self.winner_id is None or self.winner_id not in self.scores:
            return False
        return all(pid in self.scores for pid in self.participant_ids)

    @property
    def submitted_ids(self) -> List[str]:
        submitted = [pid for pid in self.participant_ids if pid in self.scores]
        if self.winner_id and self.winner_id not in submitted:
            submitted.append(self.winner_id)
        return submitted

    def to_dict(self):
        return {
            'round_number': self.round_number,
            'participant_ids': list(self.participant_ids),
            'scores': {uid: encode_score(score) for uid, score in self.scores.items()},
            'winner_id': self.winner_id,
            'submitted_ids': self.submitted_ids,
            'is_complete': self.is_complete,
            'completed_at': self.completed_at,
        }

    @classmethod
    def from_dict(cls, data) -> 'Round':
        return cls(
            round_number=int(data['round_number']),
            participant_ids=list(data.get('participant_ids') or []),
            scores={uid: decode_score(v) for uid, v in (data.get('scores') or {}).items()},
            winner_id=data.get('winner_id'),
            completed_at=data.get('completed_at'),
        )


@dataclass
class Room:
    id: str
    join_code: str
    host_id: str
    status: str = RoomStatus.WAITING
    members: List[Player] = field(default_factory=list)
    rounds: List[Round] = field(default_factory=list)
    created_at: float = 0.0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    version: int = 0

    @classmethod
    def create(cls, room_id: str, join_code: str, host: Identity, now: float = None) -> 'Room':
        return cls(
            id=room_id,
            join_code=join_code,
            host_id=host.user_id,
            members=[Player.from_identity(host, is_host=True)],
            created_at=now if now is not None else time.time(),
        )

    # ---- lookups ----

    def member(self, user_id: str) -> Optional[Player]:
        for player in self.members:
            if player.user_id == user_id:
                return player
        return None

    def require_member(self, user_id: str) -> Player:
        player = self.member(user_id)
        if player is None:
            raise NotFoundError(f'user {user_id} is not a member of room {self.id}')
        return player

    def require_host(self, user_id: str) -> None:
        if user_id != self.host_id or self.member(user_id) is None:
            raise NotHostError(f'user {user_id} is not the host of room {self.id}')

    @property
    def open_round(self) -> Optional[Round]:
        if self.rounds and not self.rounds[-1].is_complete:
            return self.rounds[-1]
        return None

    @property
    def completed_rounds(self) -> List[Round]:
        return [r for r in self.rounds if r.is_complete]

    def _require_status(self, operation: str, *allowed: str) -> None:
        if self.status not in allowed:
            raise InvalidStateError(f'{operation} is not allowed while room is {self.status}')

    # ---- transitions ----

    def join(self, identity: Identity, join_code: str, allow_late_join: bool = False) -> Player:
        if join_code != self.join_code:
            raise NotFoundError(f'no room with code {join_code}')
        if self.member(identity.user_id) is not None:
            raise AlreadyMemberError(f'user {identity.user_id} already joined', room_id=self.id)
        allowed = (RoomStatus.WAITING, RoomStatus.PLAYING) if allow_late_join else (RoomStatus.WAITING,)
        self._require_status('join', *allowed)
        player = Player.from_identity(identity)
        self.members.append(player)
        logger.info(f"[join] room={self.id} user={identity.user_id} members={len(self.members)}")
        return player

    def start(self, caller_id: str, min_players: int = MIN_ROUND_PLAYERS, now: float = None) -> None:
        self.require_host(caller_id)
        self._require_status('start', RoomStatus.WAITING)
        needed = max(min_players, MIN_ROUND_PLAYERS)
        if len(self.members) < needed:
            raise InsufficientPlayersError(f'at least {needed} players are required to start')
        self.status = RoomStatus.PLAYING
        self.started_at = now if now is not None else time.time()
        logger.info(f"[start] room={self.id} players={len(self.members)}")

    def submit_round(self, caller_id: str, is_winner: bool, score=None, accumulator=None, now: float = None) -> Round:
        """Record the caller's result against the open round.

        Opens a new round when none is open. When the submission completes
        the round, its scores are folded into the members' totals.
        """
        accumulator = accumulator or RoundAccumulator()

        self._require_status('submit_round', RoomStatus.PLAYING)
        self.require_member(caller_id)

        round_ = self.open_round
        opened = round_ is None
        if opened:
            if len(self.members) < MIN_ROUND_PLAYERS:
                raise InsufficientPlayersError('a round needs at least two players')
            round_ = Round(
                round_number=len(self.rounds) + 1,
                participant_ids=[m.user_id for m in self.members],
            )
        elif caller_id not in round_.participant_ids:
            raise InvalidStateError(f'user {caller_id} joined after round {round_.round_number} opened')

        accumulator.submit(round_, caller_id, is_winner, score)
        if opened:
            self.rounds.append(round_)
        if round_.is_complete:
            self._fold(round_, now=now)
        return round_

    def undo_last_round(self, caller_id: str) -> Round:
        """Reverse the most recent completed round and drop it from history.

        An open round trailing it is discarded as well.
        """
        self._require_status('undo_last_round', RoomStatus.PLAYING)
        self.require_host(caller_id)
        if not self.completed_rounds:
            raise InvalidStateError('there is no completed round to undo')
        if self.open_round is not None:
            dropped = self.rounds.pop()
            logger.info(f"[undo] room={self.id} discarded open round={dropped.round_number}")
        last = self.rounds.pop()
        for user_id, score in last.scores.items():
            player = self.member(user_id)
            if player is not None:
                player.total_score -= score
        logger.info(f"[undo] room={self.id} round={last.round_number} reversed")
        return last

    def finish(self, caller_id: str, now: float = None) -> bool:
        """Freeze the room. Returns False when it was already finished."""
        self.require_host(caller_id)
        if self.status == RoomStatus.FINISHED:
            return False
        self._require_status('finish', RoomStatus.PLAYING)
        if self.open_round is not None:
            dropped = self.rounds.pop()
            logger.info(f"[finish] room={self.id} discarded open round={dropped.round_number}")
        self.status = RoomStatus.FINISHED
        self.finished_at = now if now is not None else time.time()
        logger.info(f"[finish] room={self.id} rounds={len(self.rounds)}")
        return True

    def leave(self, user_id: str, accumulator=None, now: float = None) -> Player:
        accumulator = accumulator or RoundAccumulator()

        self._require_status('leave', RoomStatus.WAITING, RoomStatus.PLAYING)
        player = self.require_member(user_id)
        self.members.remove(player)
        # Host role is not handed over; host-only operations stay unavailable.
        logger.info(f"[leave] room={self.id} user={user_id} was_host={player.is_host}")

        round_ = self.open_round
        if round_ is not None and user_id in round_.participant_ids:
            round_.participant_ids.remove(user_id)
            round_.scores.pop(user_id, None)
            if round_.winner_id == user_id:
                round_.winner_id = None
            if len(round_.participant_ids) < MIN_ROUND_PLAYERS:
                self.rounds.pop()
                logger.info(f"[leave] room={self.id} dropped open round={round_.round_number}")
            elif accumulator.settle(round_):
                self._fold(round_, now=now)
        return player

    def _fold(self, round_: Round, now: float = None) -> None:
        for user_id, score in round_.scores.items():
            player = self.member(user_id)
            if player is not None:
                player.total_score += score
        round_.completed_at = now if now is not None else time.time()
        logger.info(f"[round-complete] room={self.id} round={round_.round_number} winner={round_.winner_id}")

    # ---- snapshots ----

    def to_dict(self):
        open_round = self.open_round
        return {
            'id': self.id,
            'join_code': self.join_code,
            'host_id': self.host_id,
            'status': self.status,
            'members': [p.to_dict() for p in self.members],
            'rounds': [r.to_dict() for r in self.rounds],
            'open_round_number': open_round.round_number if open_round else None,
            'created_at': self.created_at,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data) -> 'Room':
        status = data.get('status', RoomStatus.WAITING)
        if status not in RoomStatus.ALL:
            raise ValueError(f'unknown room status {status!r}')
        return cls(
            id=data['id'],
            join_code=data['join_code'],
            host_id=data['host_id'],
            status=status,
            members=[Player.from_dict(p) for p in data.get('members') or []],
            rounds=[Round.from_dict(r) for r in data.get('rounds') or []],
            created_at=data.get('created_at') or 0.0,
            started_at=data.get('started_at'),
            finished_at=data.get('finished_at'),
            version=int(data.get('version') or 0),
        )
