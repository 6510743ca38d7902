from flask_socketio import emit
from flask import current_app
from riddlegate import socketio

NAMESPACE = '/ws'


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_request_leaderboard(data=None):
    from riddlegate.services.progression.leaderboard import load_leaderboard
    try:
        entries = load_leaderboard()
    except Exception as exc:
        current_app.logger.error(f"[leaderboard] socket request failed: {exc}")
        emit('leaderboardError', {'message': 'Failed to fetch leaderboard data.'})
        return
    emit('leaderboardData', [e.to_dict() for e in entries])


def handle_ping(data):
    emit('pong', data or {})


def publish_leaderboard_update(user_id: int, unlocked_count: int) -> None:
    """Broadcast a folder completion to every connected observer.

    Best effort: having no listeners is fine and delivery errors are only logged.
    """
    try:
        socketio.emit(
            'leaderboardUpdate',
            {'userId': user_id, 'unlockedFoldersCount': unlocked_count},
            namespace=NAMESPACE,
        )
    except Exception as exc:
        current_app.logger.warning(f"[leaderboard] emit failed for user={user_id}: {exc}")


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('requestLeaderboard', handle_request_leaderboard, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
