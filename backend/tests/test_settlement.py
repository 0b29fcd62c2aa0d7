import pytest

from scorekeeper.services.rooms import InvalidStateError, Room, SettlementView


def _finished_room(alice, bob, cara, plays):
    room = Room.create('r1', '111111', alice, now=1.0)
    room.join(bob, '111111')
    room.join(cara, '111111')
    room.start('a')
    for submissions in plays:
        for uid, is_winner, score in submissions:
            room.submit_round(uid, is_winner, score)
    room.finish('a', now=9.0)
    return room


def test_ranking_descending_by_total(alice, bob, cara):
    room = _finished_room(alice, bob, cara, [
        [('a', False, 30), ('b', False, 20), ('c', True, None)],
        [('c', False, 5), ('a', False, 5), ('b', True, None)],
    ])
    view = SettlementView.from_room(room)
    assert [s.user_id for s in view.standings] == ['c', 'b', 'a']
    assert [s.total_score for s in view.standings] == [45, -10, -35]
    assert [s.rank for s in view.standings] == [1, 2, 3]
    assert view.round_count == 2
    assert view.leader.display_name == 'Cara'


def test_ties_keep_join_order(alice, bob, cara):
    room = _finished_room(alice, bob, cara, [
        [('b', False, 10), ('c', False, 10), ('a', True, None)],
        [('a', False, 10), ('c', False, 10), ('b', True, None)],
    ])
    view = SettlementView.from_room(room)
    # a: 20 - 10 = 10, b: -10 + 20 = 10, c: -20
    assert [s.user_id for s in view.standings] == ['a', 'b', 'c']
    assert [s.rank for s in view.standings] == [1, 1, 3]


def test_open_round_excluded(alice, bob, cara):
    room = Room.create('r1', '111111', alice)
    room.join(bob, '111111')
    room.join(cara, '111111')
    room.start('a')
    room.submit_round('a', False, 7)
    room.finish('a')
    view = SettlementView.from_room(room)
    assert view.round_count == 0
    assert view.rounds == ()
    assert all(s.total_score == 0 for s in view.standings)


def test_derivation_is_repeatable_and_pure(alice, bob, cara):
    room = _finished_room(alice, bob, cara, [
        [('a', False, '1.5'), ('b', True, None), ('c', False, 2)],
    ])
    before = room.to_dict()
    first = SettlementView.from_room(room).to_dict()
    second = SettlementView.from_room(room).to_dict()
    assert first == second
    assert room.to_dict() == before
    assert first['rounds'][0]['scores'] == {'a': '-1.5', 'b': '3.5', 'c': -2}
    assert first['finished_at'] == 9.0


def test_requires_finished_room(alice, bob):
    room = Room.create('r1', '111111', alice)
    with pytest.raises(InvalidStateError):
        SettlementView.from_room(room)
