from decimal import Decimal

import pytest

from scorekeeper.services.rooms import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    Round,
    RoundAccumulator,
    ValidationError,
)
from scorekeeper.services.rooms.accumulator import parse_loss


@pytest.fixture()
def acc():
    return RoundAccumulator()


def _round(*participants):
    return Round(round_number=1, participant_ids=list(participants))


def test_loss_is_stored_negative_and_round_stays_open(acc):
    r = _round('a', 'b')
    acc.submit(r, 'a', False, 50)
    assert r.scores == {'a': Decimal('-50')}
    assert not r.is_complete
    assert r.winner_id is None


def test_winner_score_is_negated_sum_of_losses(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', False, 30)
    acc.submit(r, 'b', False, 20)
    assert not r.is_complete
    acc.submit(r, 'c', True)
    assert r.is_complete
    assert r.scores == {'a': -30, 'b': -20, 'c': 50}
    assert sum(r.scores.values()) == 0


def test_winner_first_shows_no_score_until_complete(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'c', True)
    assert r.winner_id == 'c'
    assert 'c' not in r.scores
    acc.submit(r, 'a', False, 5)
    assert 'c' not in r.scores
    acc.submit(r, 'b', False, '7.25')
    assert r.is_complete
    assert r.scores['c'] == Decimal('12.25')


def test_winner_reported_score_is_ignored(acc):
    r = _round('a', 'b')
    acc.submit(r, 'a', False, 10)
    acc.submit(r, 'b', True, 9999)
    assert r.scores['b'] == 10


def test_second_winner_claim_conflicts(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', True)
    with pytest.raises(ConflictError):
        acc.submit(r, 'b', True)
    assert r.winner_id == 'a'


def test_same_winner_reclaim_is_idempotent(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', True)
    acc.submit(r, 'a', True)
    assert r.winner_id == 'a'


def test_resubmission_overwrites(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', False, 10)
    acc.submit(r, 'a', False, 10)
    acc.submit(r, 'a', False, 15)
    assert r.scores == {'a': Decimal('-15')}


def test_loser_claiming_win_replaces_entry(acc):
    r = _round('a', 'b')
    acc.submit(r, 'a', False, 10)
    acc.submit(r, 'a', True)
    assert r.winner_id == 'a'
    assert 'a' not in r.scores


def test_winner_reporting_loss_retracts_claim(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', True)
    acc.submit(r, 'a', False, 4)
    assert r.winner_id is None
    acc.submit(r, 'b', True)
    acc.submit(r, 'c', False, 6)
    assert r.is_complete
    assert r.scores == {'a': -4, 'c': -6, 'b': 10}


def test_all_losers_without_winner_never_completes(acc):
    r = _round('a', 'b')
    acc.submit(r, 'a', False, 1)
    acc.submit(r, 'b', False, 1)
    assert not r.is_complete


def test_non_participant_rejected(acc):
    r = _round('a', 'b')
    with pytest.raises(NotFoundError):
        acc.submit(r, 'z', False, 1)


def test_complete_round_rejects_submissions(acc):
    r = _round('a', 'b')
    acc.submit(r, 'a', False, 1)
    acc.submit(r, 'b', True)
    with pytest.raises(InvalidStateError):
        acc.submit(r, 'a', False, 2)


def test_invalid_scores_leave_round_untouched(acc):
    r = _round('a', 'b')
    for bad in (None, 0, -5, 'abc', True, 1.234, float('nan'), [1]):
        with pytest.raises(ValidationError):
            acc.submit(r, 'a', False, bad)
    assert r.scores == {}


def test_parse_loss_accepts_numeric_forms():
    assert parse_loss(3) == Decimal(3)
    assert parse_loss('2.50') == Decimal('2.5')
    assert parse_loss(Decimal('0.01')) == Decimal('0.01')


def test_settle_after_participant_removed(acc):
    r = _round('a', 'b', 'c')
    acc.submit(r, 'a', True)
    acc.submit(r, 'b', False, 8)
    r.participant_ids.remove('c')
    assert acc.settle(r) is True
    assert r.scores == {'b': -8, 'a': 8}
    assert acc.settle(r) is False


def test_loss_above_storage_limit_rejected():
    assert parse_loss('999999999999.99') == Decimal('999999999999.99')
    for bad in ('1000000000000', '12345678901234567.01', 10 ** 20):
        with pytest.raises(ValidationError):
            parse_loss(bad)
