from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from scorekeeper import socketio, get_room_service
from scorekeeper.services.rooms.errors import NotFoundError, ValidationError


rooms = Blueprint('rooms', __name__)
users = Blueprint('users', __name__)


def handle_room_error(exc):
    try:
        current_app.logger.info(f"[rejected] {request.method} {request.path} error={exc.code} detail={exc.detail}")
    except Exception:
        pass
    return jsonify(exc.to_dict()), exc.status


def _caller_id() -> str:
    return str(current_user.id)


def _notify(room) -> None:
    # Push hint only; clients still poll for the snapshot
    socketio.emit(
        'room_update',
        {'room_id': room.id, 'join_code': room.join_code, 'version': room.version, 'status': room.status},
        to=f"room:{room.join_code}",
        namespace='/ws',
    )


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('request body must be a JSON object')
    return data


@rooms.route('', methods=['POST'])
@login_required
def create_room():
    room = get_room_service().create_room(current_user.to_identity())
    current_app.logger.info(f"[create] room={room.id} code={room.join_code} host={room.host_id}")
    return jsonify(room.to_dict()), 201


@rooms.route('/join', methods=['POST'])
@login_required
def join_room():
    join_code = _body().get('join_code')
    if not isinstance(join_code, str):
        raise ValidationError('join_code is required')
    room = get_room_service().join_room(current_user.to_identity(), join_code)
    _notify(room)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    room = get_room_service().get_room(room_id=room_id)
    if room is None:
        raise NotFoundError(f'room {room_id} not found')
    return jsonify(room.to_dict())


@rooms.route('/code/<string:join_code>', methods=['GET'])
@login_required
def get_room_by_code(join_code):
    room = get_room_service().get_room(join_code=join_code)
    if room is None:
        raise NotFoundError(f'no room with code {join_code}')
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/start', methods=['POST'])
@login_required
def start_room(room_id):
    room = get_room_service().start_room(room_id, _caller_id())
    _notify(room)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/rounds', methods=['POST'])
@login_required
def submit_round(room_id):
    data = _body()
    room = get_room_service().submit_round(
        room_id,
        _caller_id(),
        is_winner=data.get('is_winner', False),
        score=data.get('score'),
    )
    _notify(room)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/undo', methods=['POST'])
@login_required
def undo_last_round(room_id):
    room = get_room_service().undo_last_round(room_id, _caller_id())
    _notify(room)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/finish', methods=['POST'])
@login_required
def finish_room(room_id):
    room = get_room_service().finish_room(room_id, _caller_id())
    _notify(room)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/leave', methods=['POST'])
@login_required
def leave_room(room_id):
    service = get_room_service()
    room = service.get_room(room_id=room_id)
    if room is None:
        raise NotFoundError(f'room {room_id} not found')
    service.leave_room(room_id, _caller_id())
    socketio.emit('room_update', {'room_id': room.id, 'join_code': room.join_code},
                  to=f"room:{room.join_code}", namespace='/ws')
    return jsonify({'message': 'You have left the room.'})


@rooms.route('/<string:room_id>/settlement', methods=['GET'])
@login_required
def get_settlement(room_id):
    view = get_room_service().settlement(room_id)
    return jsonify(view.to_dict())


@users.route('/<string:user_id>/stats', methods=['GET'])
@login_required
def get_user_stats(user_id):
    return jsonify(get_room_service().user_stats(user_id))


@users.route('/<string:user_id>/recent-games', methods=['GET'])
@login_required
def get_recent_games(user_id):
    default_limit = int(current_app.config.get('RECENT_GAMES_LIMIT', 10))
    limit = request.args.get('limit', default_limit, type=int)
    if limit is None or limit < 1:
        raise ValidationError('limit must be a positive integer')
    return jsonify({'games': get_room_service().recent_games(user_id, limit)})
