from flask_socketio import join_room, leave_room, emit


def _room_channel(join_code: str) -> str:
    return f"room:{join_code.strip()}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_watch_room(data):
    """Subscribe this socket to update notifications for a room.

    Notifications only say that a room changed; clients fetch the snapshot
    over HTTP as they would when polling.
    """
    join_code = (data or {}).get('join_code')
    if not join_code or not isinstance(join_code, str):
        emit('error', {'error': 'validation_error', 'detail': 'join_code is required'})
        return
    channel = _room_channel(join_code)
    join_room(channel)
    emit('watching', {'room': channel})


def handle_unwatch_room(data):
    join_code = (data or {}).get('join_code')
    if not join_code or not isinstance(join_code, str):
        emit('error', {'error': 'validation_error', 'detail': 'join_code is required'})
        return
    channel = _room_channel(join_code)
    leave_room(channel)
    emit('unwatched', {'room': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from scorekeeper import socketio

    handlers = {
        'connect': handle_connect,
        'watch_room': handle_watch_room,
        'unwatch_room': handle_unwatch_room,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
