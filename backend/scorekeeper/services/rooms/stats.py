"""Per-user history across finished rooms."""

from decimal import Decimal

from .room import RoomStatus, encode_score
from .settlement import SettlementView


def recent_games(store, user_id: str, limit: int = 10):
    """The user's finished rooms, newest first."""
    rooms = store.rooms_for_user(user_id, status=RoomStatus.FINISHED)
    rooms.sort(key=lambda r: r.finished_at or 0, reverse=True)
    games = []
    for room in rooms[:max(0, limit)]:
        view = SettlementView.from_room(room)
        profit = room.member(user_id).total_score
        games.append({
            'room_id': room.id,
            'join_code': room.join_code,
            'finished_at': room.finished_at,
            'profit': encode_score(profit),
            'player_count': len(room.members),
            'round_count': view.round_count,
            'winner': view.leader.display_name if view.leader else None,
            'is_winner': profit > 0,
        })
    return games


def user_stats(store, user_id: str):
    rooms = store.rooms_for_user(user_id, status=RoomStatus.FINISHED)
    profits = [room.member(user_id).total_score for room in rooms]
    games_played = len(profits)
    wins = sum(1 for p in profits if p > 0)
    return {
        'games_played': games_played,
        'wins': wins,
        'win_rate': round(wins * 100 / games_played) if games_played else 0,
        'total_profit': encode_score(sum(profits, Decimal(0))),
    }
