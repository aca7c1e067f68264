from flask import request
from flask_login import current_user
from flask_socketio import emit
from konsept import socketio
from konsept.access import game_for_viewer
from konsept.errors import KonseptError
from konsept.services.scoring.realtime import GameSynchronizer
from typing import Dict

# One synchronizer per connected socket (its open game view)
_sid_to_view: Dict[str, GameSynchronizer] = {}

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _close_view(sid: str) -> bool:
    view = _sid_to_view.pop(sid, None)
    if view is None:
        return False
    view.close()
    return True

def open_view_count() -> int:
    return len(_sid_to_view)

def handle_connect():
    emit('connected', {'message': 'Connected to game updates'})

def handle_disconnect(*args):
    _close_view(_get_sid())

def make_open_game_handler(namespace: str):
    def handle_open_game(data):
        try:
            game_id = int((data or {}).get('game_id'))
        except (TypeError, ValueError):
            emit('error', {'message': 'game_id is required'})
            return
        if not current_user.is_authenticated:
            emit('error', {'message': 'Login required'})
            return
        try:
            game = game_for_viewer(current_user, game_id)
        except KonseptError as exc:
            emit('error', {'message': exc.message})
            return

        sid = _get_sid()
        _close_view(sid)

        def push(state):
            socketio.emit('game_state', state, to=sid, namespace=namespace)

        view = GameSynchronizer(game.id, push)
        _sid_to_view[sid] = view
        emit('opened', {'game_id': game.id})
        view.open()

    return handle_open_game

def handle_close_game(data=None):
    closed = _close_view(_get_sid())
    emit('closed', {'closed': closed})

def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game view namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('open_game', make_open_game_handler(namespace), namespace=namespace)
    socketio.on_event('close_game', handle_close_game, namespace=namespace)
