"""Round accumulation: turn per-player submissions into one zero-sum result.

Losers report the magnitude of their own loss; the winner never reports a
score. Once a winner is known and every other participant has reported,
the winner's score is set to the negated sum of the losses, which makes
the round sum to exactly zero.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from .room import Round

logger = logging.getLogger(__name__)

SCORE_QUANTUM = Decimal('0.01')
# Largest single loss; totals are stored in a wider column.
MAX_LOSS = Decimal('999999999999.99')


def parse_loss(value) -> Decimal:
    """Validate a reported loss magnitude and return it as a Decimal."""
    if value is None:
        raise ValidationError('score is required when not claiming the win')
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f'score must be a number, got {type(value).__name__}')
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f'score {value!r} is not a number')
    if not amount.is_finite():
        raise ValidationError(f'score {value!r} is not finite')
    if amount <= 0:
        raise ValidationError('score must be a positive loss magnitude')
    if amount > MAX_LOSS:
        raise ValidationError(f'score may not exceed {MAX_LOSS}')
    if amount != amount.quantize(SCORE_QUANTUM):
        raise ValidationError('score may have at most two decimal places')
    return amount


class RoundAccumulator:
    """Stateless rules for filling in a Round from submissions."""

    def submit(self, round_: 'Round', user_id: str, is_winner: bool, reported_score=None) -> 'Round':
        if round_.is_complete:
            raise InvalidStateError(f'round {round_.round_number} is already complete')
        if user_id not in round_.participant_ids:
            raise NotFoundError(f'user {user_id} is not playing round {round_.round_number}')

        if is_winner:
            if round_.winner_id is not None and round_.winner_id != user_id:
                raise ConflictError(
                    f'round {round_.round_number} already has a winner',
                    winner_id=round_.winner_id,
                )
            round_.winner_id = user_id
            # Computed on completion, never taken from input.
            round_.scores.pop(user_id, None)
        else:
            loss = parse_loss(reported_score)
            if round_.winner_id == user_id:
                round_.winner_id = None
                logger.info(f"[winner-retract] round={round_.round_number} user={user_id}")
            round_.scores[user_id] = -loss

        self.settle(round_)
        return round_

    def settle(self, round_: 'Round') -> bool:
        """Complete the round if it can be completed. Returns True if it just was."""
        if round_.is_complete:
            return False
        winner_id = round_.winner_id
        if winner_id is None or winner_id not in round_.participant_ids:
            return False
        losers = [pid for pid in round_.participant_ids if pid != winner_id]
        if not losers or any(pid not in round_.scores for pid in losers):
            return False
        round_.scores[winner_id] = -sum((round_.scores[pid] for pid in losers), Decimal(0))
        return True
